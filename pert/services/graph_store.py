import copy
import logging

from pert.config.settings import settings
from pert.domain.dependency import Dependency
from pert.domain.envelope import ProjectEnvelope
from pert.domain.milestone import Milestone
from pert.domain.resource import Resource
from pert.utils.graph import (
    build_dependency_graph,
    can_reach,
    find_sinks,
    find_sources,
)

logger = logging.getLogger(__name__)


class CycleError(ValueError):
    """Raised when a dependency would create a self-loop, duplicate or cycle."""

    def __init__(self, from_id, to_id, reason):
        self.from_id = from_id
        self.to_id = to_id
        self.reason = reason
        super().__init__(f"Cannot connect {from_id} -> {to_id}: {reason}")


class UnknownMilestoneError(KeyError):
    pass


class UnknownResourceError(KeyError):
    pass


class UnknownDependencyError(KeyError):
    pass


def key_number(prefix, key):
    """
    Numeric suffix of a generated key ("n12" -> 12).

    Returns:
        int or None: None when the key was not generated with this prefix
    """
    if not isinstance(key, str) or not key.startswith(prefix):
        return None
    suffix = key[len(prefix):]
    return int(suffix) if suffix.isdigit() else None


class ProjectGraph:
    """
    Owns the milestones, dependency edges and resources of one project.

    Every mutation goes through this class so that the edge set stays
    acyclic and removals cascade. Entities are kept in insertion order and
    keyed by generated ids. Generated ids are never handed out twice, even
    after the entity holding one is removed.
    """

    def __init__(self, start=None, end=None):
        self.milestones = {}  # Dictionary of Milestone objects
        self.dependencies = {}  # Dictionary of Dependency objects
        self.resources = {}  # Dictionary of Resource objects
        self.envelope = ProjectEnvelope(start, end)

        # Highest number issued or seen per id prefix
        self._last_ids = {}

        # Lazily rebuilt networkx view of milestones and dependencies
        self._graph = None

    # ------------------------------------------------------------------
    # Ids
    # ------------------------------------------------------------------

    def _new_id(self, prefix, existing):
        number = self._last_ids.get(prefix, 0)
        while True:
            number += 1
            key = f"{prefix}{number}"
            if key not in existing:
                break
        self._last_ids[prefix] = number
        return key

    def _claim_id(self, prefix, key):
        number = key_number(prefix, key)
        if number is not None and number > self._last_ids.get(prefix, 0):
            self._last_ids[prefix] = number

    def claim_ids(self, other):
        """Never generate an id that `other` (e.g. a baseline) already uses."""
        for prefix, keys in (
            (settings.MILESTONE_ID_PREFIX, other.milestones),
            (settings.DEPENDENCY_ID_PREFIX, other.dependencies),
            (settings.RESOURCE_ID_PREFIX, other.resources),
        ):
            for key in keys:
                self._claim_id(prefix, key)
        for prefix, number in other._last_ids.items():
            if number > self._last_ids.get(prefix, 0):
                self._last_ids[prefix] = number

    # ------------------------------------------------------------------
    # Graph view
    # ------------------------------------------------------------------

    @property
    def dependency_graph(self):
        """networkx DiGraph of the current milestones and dependencies."""
        if self._graph is None:
            self._graph = build_dependency_graph(self.milestones, self.dependencies)
        return self._graph

    def _invalidate(self):
        self._graph = None

    def predecessors(self, milestone_id):
        self._require_milestone(milestone_id)
        return list(self.dependency_graph.predecessors(milestone_id))

    def successors(self, milestone_id):
        self._require_milestone(milestone_id)
        return list(self.dependency_graph.successors(milestone_id))

    def sources(self):
        return find_sources(self.dependency_graph)

    def sinks(self):
        return find_sinks(self.dependency_graph)

    def can_reach(self, source_id, target_id):
        return can_reach(self.dependency_graph, source_id, target_id)

    def find_dependency(self, from_id, to_id):
        """Return the dependency for an ordered pair, or None."""
        for dependency in self.dependencies.values():
            if dependency.pair == (from_id, to_id):
                return dependency
        return None

    def incident_dependencies(self, milestone_id):
        return [d for d in self.dependencies.values() if d.touches(milestone_id)]

    # ------------------------------------------------------------------
    # Milestones
    # ------------------------------------------------------------------

    def get_milestone(self, milestone_id):
        return self._require_milestone(milestone_id)

    def _require_milestone(self, milestone_id):
        try:
            return self.milestones[milestone_id]
        except KeyError:
            raise UnknownMilestoneError(milestone_id) from None

    def add_milestone(
        self, name, start=None, end=None, critical=False, milestone_id=None, extra=None
    ):
        """
        Add a milestone.

        Args:
            name: Non-empty display name
            start: Optional pinned start date
            end: Optional pinned end date
            critical: Critical highlight flag
            milestone_id: Explicit id (snapshot import); generated when omitted
            extra: Opaque snapshot fields to carry along

        Returns:
            str: The milestone id

        Raises:
            MilestoneError: If the name or dates are invalid
            ValueError: If an explicit id is already taken
        """
        if milestone_id is None:
            milestone_id = self._new_id(settings.MILESTONE_ID_PREFIX, self.milestones)
        elif milestone_id in self.milestones:
            raise ValueError(f"Milestone {milestone_id} already exists")
        else:
            self._claim_id(settings.MILESTONE_ID_PREFIX, milestone_id)

        milestone = Milestone(
            id=milestone_id,
            name=name,
            start=start,
            end=end,
            critical=critical,
            extra=extra,
        )
        self.milestones[milestone_id] = milestone
        self._invalidate()

        logger.debug("Added milestone %s (%s)", milestone_id, name)
        return milestone_id

    def insert_milestone(self, milestone):
        """Add an already built Milestone (snapshot import)."""
        if milestone.id in self.milestones:
            raise ValueError(f"Milestone {milestone.id} already exists")
        self._claim_id(settings.MILESTONE_ID_PREFIX, milestone.id)
        self.milestones[milestone.id] = milestone
        self._invalidate()
        return milestone.id

    def remove_milestone(self, milestone_id):
        """Remove a milestone together with every edge touching it."""
        self._require_milestone(milestone_id)

        for dependency in self.incident_dependencies(milestone_id):
            self.remove_dependency(dependency.id)

        del self.milestones[milestone_id]
        self._invalidate()
        logger.debug("Removed milestone %s", milestone_id)

    def rename_milestone(self, milestone_id, name):
        """
        Raises:
            MilestoneError: If the new name is empty
        """
        self._require_milestone(milestone_id).name = name

    def set_milestone_dates(self, milestone_id, start=..., end=...):
        """
        Pin or clear a milestone's dates; arguments left out are unchanged.

        Both values are parsed before either is stored, so a rejected edit
        leaves the milestone as it was.

        Raises:
            MilestoneError: If either date is invalid
        """
        milestone = self._require_milestone(milestone_id)
        if start is not ...:
            start = Milestone.coerce_date(start, "start")
        if end is not ...:
            end = Milestone.coerce_date(end, "end")

        if start is not ...:
            milestone.start = start
        if end is not ...:
            milestone.end = end

    def set_critical(self, milestone_id, critical):
        self._require_milestone(milestone_id).critical = bool(critical)

    def toggle_critical(self, milestone_id):
        milestone = self._require_milestone(milestone_id)
        milestone.critical = not milestone.critical
        return milestone.critical

    def set_allocation(self, milestone_id, resource_id, quantity):
        """
        Set how much of a resource a milestone consumes.

        Raises:
            UnknownMilestoneError: If the milestone does not exist
            UnknownResourceError: If the resource does not exist
            MilestoneError: If the quantity is negative or not a number
        """
        milestone = self._require_milestone(milestone_id)
        self._require_resource(resource_id)
        milestone.set_allocation(resource_id, quantity)

    def allocations(self, milestone_id):
        """
        Allocations of a milestone, restricted to resources that still exist.

        Allocations pointing at deleted resources are dropped from the
        milestone here, when they are read, rather than on resource deletion.
        """
        milestone = self._require_milestone(milestone_id)
        for resource_id in list(milestone.resource_allocations):
            if resource_id not in self.resources:
                del milestone.resource_allocations[resource_id]
        return dict(milestone.resource_allocations)

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def add_dependency(self, from_id, to_id, dependency_id=None):
        """
        Connect two milestones so that to_id cannot start before from_id ends.

        Returns:
            str: The dependency id

        Raises:
            UnknownMilestoneError: If either endpoint does not exist
            CycleError: If the edge is a self-loop, already exists, or would
                close a cycle (to_id can already reach from_id)
        """
        self._require_milestone(from_id)
        self._require_milestone(to_id)

        if from_id == to_id:
            raise CycleError(from_id, to_id, "a milestone cannot depend on itself")
        if self.find_dependency(from_id, to_id) is not None:
            raise CycleError(from_id, to_id, "the dependency already exists")
        if self.can_reach(to_id, from_id):
            logger.info("Rejected dependency %s -> %s: would create a cycle", from_id, to_id)
            raise CycleError(from_id, to_id, "the dependency would create a cycle")

        if dependency_id is None:
            dependency_id = self._new_id(settings.DEPENDENCY_ID_PREFIX, self.dependencies)
        elif dependency_id in self.dependencies:
            raise ValueError(f"Dependency {dependency_id} already exists")
        else:
            self._claim_id(settings.DEPENDENCY_ID_PREFIX, dependency_id)

        self.dependencies[dependency_id] = Dependency(dependency_id, from_id, to_id)
        self._invalidate()

        logger.debug("Added dependency %s: %s -> %s", dependency_id, from_id, to_id)
        return dependency_id

    def remove_dependency(self, dependency_id):
        if dependency_id not in self.dependencies:
            raise UnknownDependencyError(dependency_id)
        del self.dependencies[dependency_id]
        self._invalidate()
        logger.debug("Removed dependency %s", dependency_id)

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def get_resource(self, resource_id):
        return self._require_resource(resource_id)

    def _require_resource(self, resource_id):
        try:
            return self.resources[resource_id]
        except KeyError:
            raise UnknownResourceError(resource_id) from None

    def add_resource(self, name=None, amount=None, concurrency=None, resource_id=None):
        """
        Define a new resource.

        Returns:
            str: The resource id

        Raises:
            ResourceError: If any field is invalid
            ValueError: If an explicit id is already taken
        """
        if resource_id is None:
            resource_id = self._new_id(settings.RESOURCE_ID_PREFIX, self.resources)
        elif resource_id in self.resources:
            raise ValueError(f"Resource {resource_id} already exists")
        else:
            self._claim_id(settings.RESOURCE_ID_PREFIX, resource_id)

        self.resources[resource_id] = Resource(
            resource_id, name=name, amount=amount, concurrency=concurrency
        )
        logger.debug("Added resource %s (%s)", resource_id, name)
        return resource_id

    def update_resource(self, resource_id, field, value):
        """
        Update one resource field.

        Setting the name to an empty value deletes the resource.

        Returns:
            bool: False if the resource was deleted, True otherwise
        """
        resource = self._require_resource(resource_id)
        if field == "name" and (value is None or value == ""):
            self.remove_resource(resource_id)
            return False
        resource.update(field, value)
        return True

    def remove_resource(self, resource_id):
        self._require_resource(resource_id)
        del self.resources[resource_id]
        logger.debug("Removed resource %s", resource_id)

    # ------------------------------------------------------------------
    # Project envelope
    # ------------------------------------------------------------------

    def set_project_dates(self, start=..., end=...):
        self.envelope.set_dates(start=start, end=end)

    # ------------------------------------------------------------------

    def copy(self):
        """Deep copy of the whole graph (used to freeze a baseline)."""
        return copy.deepcopy(self)

    def __repr__(self):
        return (
            f"ProjectGraph(milestones={len(self.milestones)}, "
            f"dependencies={len(self.dependencies)}, resources={len(self.resources)})"
        )
