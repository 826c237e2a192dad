import logging
from enum import Enum

from pert.config.settings import settings
from pert.io.snapshot import graph_from_snapshot, graph_to_snapshot
from pert.services.change_report import MissingBaselineError, diff_projects
from pert.services.cost import (
    cost_until,
    cost_up_to,
    critical_dependencies,
    milestone_levels,
    stats_rows,
)
from pert.services.date_constraints import propagate_date_constraints, window_snapshot
from pert.services.feasibility import check_resource_feasibility, feasibility_flags
from pert.services.graph_store import ProjectGraph
from pert.utils.dates import days_between, epoch_millis, today

logger = logging.getLogger(__name__)


class ProjectAlreadyStartedError(Exception):
    """Raised when a baseline is committed twice."""

    pass


class Advancement(Enum):
    """
    Enum representing how a milestone moved since the project was started.
    """

    AHEAD = "ahead"
    ON_SCHEDULE = "on_schedule"
    BEHIND = "behind"
    NEW = "new"


class ProjectStats:
    """Epoch-millisecond timestamps kept alongside a project snapshot."""

    def __init__(self, created_at=None, modified_at=None, accessed_at=None):
        self.created_at = created_at if created_at is not None else epoch_millis()
        self.modified_at = modified_at
        self.accessed_at = accessed_at

    def touch_modified(self):
        self.modified_at = epoch_millis()

    def touch_accessed(self):
        self.accessed_at = epoch_millis()

    def to_dict(self):
        return {
            "createdAt": self.created_at,
            "modifiedAt": self.modified_at,
            "accessedAt": self.accessed_at,
        }

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            created_at=data.get("createdAt"),
            modified_at=data.get("modifiedAt"),
            accessed_at=data.get("accessedAt"),
        )


class ProjectPlanner:
    """
    Coordinates edits and recomputation for one project.

    Every edit is applied to the project's ProjectGraph and immediately
    followed by a full recomputation of date windows, resource feasibility
    and critical edges, so the computed state is always current.
    """

    def __init__(
        self,
        name,
        graph=None,
        baseline=None,
        stats=None,
        timezone_offset=None,
    ):
        self.name = name
        self.graph = graph if graph is not None else ProjectGraph()
        self.baseline = baseline  # Frozen copy taken by start_project()
        self.stats = stats or ProjectStats()
        self.timezone_offset = (
            settings.TIMEZONE_OFFSET if timezone_offset is None else timezone_offset
        )

        # Computed state
        self.constraint_violations = []
        self.resource_violations = []
        self.critical_dependency_ids = []
        self.levels = {}

        self.recalculate()

    # ------------------------------------------------------------------
    # Recalculation
    # ------------------------------------------------------------------

    def recalculate(self):
        """Recompute date windows, feasibility and critical edges."""
        self.constraint_violations = propagate_date_constraints(self.graph)
        self.levels = milestone_levels(self.graph)
        self.resource_violations = check_resource_feasibility(self.graph, self.levels)
        self.critical_dependency_ids = critical_dependencies(self.graph)
        return self

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def add_milestone(self, name, start=None, end=None, critical=False):
        milestone_id = self.graph.add_milestone(name, start=start, end=end, critical=critical)
        self.recalculate()
        return milestone_id

    def remove_milestone(self, milestone_id):
        self.graph.remove_milestone(milestone_id)
        self.recalculate()

    def rename_milestone(self, milestone_id, name):
        self.graph.rename_milestone(milestone_id, name)
        self.recalculate()

    def set_milestone_dates(self, milestone_id, start=..., end=...):
        """
        Raises:
            MilestoneError: If either date is invalid; the project is unchanged
        """
        self.graph.set_milestone_dates(milestone_id, start=start, end=end)
        self.recalculate()

    def toggle_critical(self, milestone_id):
        critical = self.graph.toggle_critical(milestone_id)
        self.recalculate()
        return critical

    def set_critical(self, milestone_id, critical=True):
        self.graph.set_critical(milestone_id, critical)
        self.recalculate()

    def add_dependency(self, from_id, to_id):
        """
        Raises:
            CycleError: If the dependency is rejected; the project is unchanged
        """
        dependency_id = self.graph.add_dependency(from_id, to_id)
        self.recalculate()
        return dependency_id

    def remove_dependency(self, dependency_id):
        self.graph.remove_dependency(dependency_id)
        self.recalculate()

    def add_resource(self, name=None, amount=None, concurrency=None):
        resource_id = self.graph.add_resource(name=name, amount=amount, concurrency=concurrency)
        self.recalculate()
        return resource_id

    def update_resource(self, resource_id, field, value):
        kept = self.graph.update_resource(resource_id, field, value)
        self.recalculate()
        return kept

    def remove_resource(self, resource_id):
        self.graph.remove_resource(resource_id)
        self.recalculate()

    def set_allocation(self, milestone_id, resource_id, quantity):
        self.graph.set_allocation(milestone_id, resource_id, quantity)
        self.recalculate()

    def set_project_dates(self, start=..., end=...):
        self.graph.set_project_dates(start=start, end=end)
        self.recalculate()

    def set_timezone_offset(self, minutes):
        self.timezone_offset = int(minutes)

    # ------------------------------------------------------------------
    # Baseline
    # ------------------------------------------------------------------

    @property
    def is_started(self):
        return self.baseline is not None

    def start_project(self):
        """
        Freeze the current project as the baseline for change reports.

        Raises:
            ProjectAlreadyStartedError: If a baseline already exists
        """
        if self.baseline is not None:
            raise ProjectAlreadyStartedError(f"Project {self.name} has already been started")
        self.baseline = self.graph.copy()
        logger.info("Project %s started; baseline committed", self.name)
        return self.baseline

    def today(self):
        """Current date in the project's timezone."""
        return today(self.timezone_offset)

    def requirement_changes(self, now=None, strict=False):
        """
        Compare the current project with its baseline.

        Args:
            now: Reference date (defaults to today in the project timezone)
            strict: Raise instead of returning None when there is no baseline

        Returns:
            ChangeReport, or None when the project has not been started

        Raises:
            MissingBaselineError: If strict and the project has not been started
        """
        if self.baseline is None:
            if strict:
                raise MissingBaselineError(f"Project {self.name} has not been started")
            logger.warning("Project %s has no baseline; no change report", self.name)
            return None
        return diff_projects(self.baseline, self.graph, now or self.today())

    def advancement(self):
        """
        Classify each milestone against the baseline.

        A milestone is behind when its end (else start) moved later than in
        the baseline, ahead when it moved earlier, and new when it did not
        exist in the baseline.

        Returns:
            dict: {milestone_id: Advancement}; empty when not started
        """
        if self.baseline is None:
            return {}

        result = {}
        for milestone_id, milestone in self.graph.milestones.items():
            original = self.baseline.milestones.get(milestone_id)
            if original is None:
                result[milestone_id] = Advancement.NEW
                continue

            old = original.end or original.start
            new = milestone.end or milestone.start
            offset = days_between(old, new) if old and new else 0
            if offset > 0:
                result[milestone_id] = Advancement.BEHIND
            elif offset < 0:
                result[milestone_id] = Advancement.AHEAD
            else:
                result[milestone_id] = Advancement.ON_SCHEDULE
        return result

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    def date_windows(self):
        return window_snapshot(self.graph)

    def feasibility_flags(self):
        return feasibility_flags(self.resource_violations)

    def cost_until(self, until=None):
        return cost_until(self.graph, until)

    def cost_up_to(self, milestone_id):
        return cost_up_to(self.graph, milestone_id)

    def stats_rows(self, milestone_id=None):
        return stats_rows(self.graph, milestone_id)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def to_snapshot(self):
        """Whole-project snapshot, including stats and the baseline if any."""
        data = graph_to_snapshot(self.graph)
        data["stats"] = self.stats.to_dict()
        data["timezone"] = self.timezone_offset
        if self.baseline is not None:
            data["original"] = graph_to_snapshot(self.baseline)
        return data

    @classmethod
    def from_snapshot(cls, name, data):
        """
        Raises:
            SnapshotError: If the snapshot or its baseline is malformed
        """
        graph = graph_from_snapshot(data)
        original = data.get("original")
        baseline = graph_from_snapshot(original) if original else None
        if baseline is not None:
            # Ids deleted since the start must stay retired
            graph.claim_ids(baseline)
        return cls(
            name,
            graph=graph,
            baseline=baseline,
            stats=ProjectStats.from_dict(data.get("stats")),
            timezone_offset=data.get("timezone"),
        )

    def __repr__(self):
        return f"ProjectPlanner(name={self.name!r}, graph={self.graph!r}, started={self.is_started})"
