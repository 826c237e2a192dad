"""
Configuration settings for the PERT engine.
Load configuration from environment variables or a .env file.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
env_file = Path(__file__).parent.parent.parent / ".env"
if env_file.exists():
    load_dotenv(env_file)


class Settings:
    """Engine settings loaded from environment variables."""

    # Logging
    LOG_LEVEL = os.getenv("PERT_LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("PERT_LOG_FILE", "")

    # Minutes east of UTC used to determine "today" for change reports
    TIMEZONE_OFFSET = int(os.getenv("PERT_TIMEZONE_OFFSET", "0"))

    # Prefix used when suggesting names for new projects
    PROJECT_NAME_PREFIX = os.getenv("PERT_PROJECT_NAME_PREFIX", "Untitled Project ")

    # Prefixes of generated entity ids
    MILESTONE_ID_PREFIX = "n"
    DEPENDENCY_ID_PREFIX = "e"
    RESOURCE_ID_PREFIX = "r"


settings = Settings()
