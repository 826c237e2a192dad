import copy
import logging

from pert.config.settings import settings
from pert.services.planner import ProjectPlanner
from pert.utils.dates import epoch_millis

logger = logging.getLogger(__name__)


class ProjectNameError(ValueError):
    """Raised for empty, duplicate or unknown project names."""

    pass


class ProjectRegistry:
    """
    In-memory store of project snapshots keyed by project name.

    Planners are handed out by load() and written back by save(); the
    registry itself only ever holds plain snapshot dictionaries.
    """

    def __init__(self, snapshots=None):
        self.snapshots = {}
        for name, data in (snapshots or {}).items():
            self.import_snapshot(name, data)

    def __contains__(self, name):
        return name in self.snapshots

    def __len__(self):
        return len(self.snapshots)

    def names(self):
        return list(self.snapshots)

    def _require(self, name):
        if name not in self.snapshots:
            raise ProjectNameError(f"No project named {name!r}")
        return self.snapshots[name]

    @staticmethod
    def _validate_name(name):
        if not isinstance(name, str) or not name.strip():
            raise ProjectNameError("Project name cannot be empty")
        return name

    def suggest_name(self):
        """First free "Untitled Project N" name."""
        i = 0
        while True:
            i += 1
            name = f"{settings.PROJECT_NAME_PREFIX}{i}"
            if name not in self.snapshots:
                return name

    def create(self, name=None):
        """
        Create an empty project.

        Args:
            name: Project name; a free default name is used when omitted

        Returns:
            ProjectPlanner: The new project

        Raises:
            ProjectNameError: If the name is empty or already taken
        """
        name = self._validate_name(name if name is not None else self.suggest_name())
        if name in self.snapshots:
            raise ProjectNameError(f"A project named {name!r} already exists")

        planner = ProjectPlanner(name)
        self.snapshots[name] = planner.to_snapshot()
        logger.info("Created project %s", name)
        return planner

    def load(self, name):
        """Open a stored project, stamping its access time."""
        data = self._require(name)
        planner = ProjectPlanner.from_snapshot(name, data)
        planner.stats.touch_accessed()
        data["stats"] = planner.stats.to_dict()
        logger.debug("Loaded project %s", name)
        return planner

    def save(self, planner):
        """Store a planner's current state, stamping its modification time."""
        self._validate_name(planner.name)
        planner.stats.touch_modified()
        self.snapshots[planner.name] = planner.to_snapshot()
        logger.debug("Saved project %s", planner.name)

    def rename(self, old_name, new_name):
        """
        Raises:
            ProjectNameError: If old_name is unknown, or new_name is empty or taken
        """
        data = self._require(old_name)
        self._validate_name(new_name)
        if new_name == old_name:
            return
        if new_name in self.snapshots:
            raise ProjectNameError(f"A project named {new_name!r} already exists")

        self.snapshots = {
            (new_name if name == old_name else name): value
            for name, value in self.snapshots.items()
        }
        data.setdefault("stats", {})["modifiedAt"] = epoch_millis()
        logger.info("Renamed project %s to %s", old_name, new_name)

    def delete(self, name):
        self._require(name)
        del self.snapshots[name]
        logger.info("Deleted project %s", name)

    def import_snapshot(self, name, data):
        """
        Store an externally produced snapshot under a new name.

        The snapshot is validated by building a planner from it.

        Raises:
            ProjectNameError: If the name is empty or taken
            SnapshotError: If the snapshot is malformed
        """
        self._validate_name(name)
        if name in self.snapshots:
            raise ProjectNameError(f"A project named {name!r} already exists")

        planner = ProjectPlanner.from_snapshot(name, data)
        self.snapshots[name] = planner.to_snapshot()
        logger.info("Imported project %s", name)
        return planner

    def export_snapshot(self, name):
        """Deep copy of a stored snapshot, ready to be serialized."""
        return copy.deepcopy(self._require(name))

    def most_recently_accessed(self):
        """Name of the project opened last, or None when nothing was opened."""
        best_name, best_time = None, None
        for name, data in self.snapshots.items():
            accessed = (data.get("stats") or {}).get("accessedAt")
            if accessed is None:
                continue
            if best_time is None or accessed > best_time:
                best_name, best_time = name, accessed
        return best_name
