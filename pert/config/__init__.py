from pert.config.settings import Settings, settings

__all__ = ["Settings", "settings"]
