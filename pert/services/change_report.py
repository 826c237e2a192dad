"""
Requirement changes report.

Compares the baseline frozen when the project was started with the current
project and describes, in plain sentences, what moved: project dates,
resource definitions, and for each milestone its dates, flags, allocations
and connections.
"""

import logging

from pert.utils.dates import days_between, format_date

logger = logging.getLogger(__name__)

EVERYTHING_ACCORDING_TO_PLAN = "Everything according to plan."


class MissingBaselineError(LookupError):
    """Raised when a baseline-dependent operation runs on an unstarted project."""

    pass


def format_days(offset):
    days = abs(offset)
    return f"{days} day" if days == 1 else f"{days} days"


def format_quantity(value):
    if value is None:
        return "unlimited"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _direction(offset):
    return "forward" if offset > 0 else "back"


def _lateness(offset):
    return "late" if offset > 0 else "ahead of time"


def _offset(old, new):
    if old is None or new is None:
        return None
    return days_between(old, new)


def _describe_point(label, offset, new_date, now):
    if now > new_date:
        verb = "Started" if label == "Start" else "Finished"
        return f"{verb} {format_days(offset)} {_lateness(offset)}"
    return f"{label} shifted {_direction(offset)} by {format_days(offset)}"


def describe_date_changes(old_start, old_end, new_start, new_end, now):
    """
    Describe how a start/end pair moved between two versions.

    Offsets are whole days (positive means later). A pure shift (both dates
    moved by the same amount) is reported once; otherwise start and end are
    reported separately, phrased as lateness when `now` is already past the
    new date, plus the change in duration.

    Args:
        old_start, old_end: Baseline dates (None when unset)
        new_start, new_end: Current dates (None when unset)
        now: Reference date deciding between "late" and "shifted" phrasing

    Returns:
        list: Sentences, empty when nothing changed
    """
    entries = []
    for label, old, new in (("Start", old_start, new_start), ("End", old_end, new_end)):
        if old is None and new is not None:
            entries.append(f"{label} date set to {format_date(new)}")
        elif old is not None and new is None:
            entries.append(f"{label} date cleared")

    start_offset = _offset(old_start, new_start)
    end_offset = _offset(old_end, new_end)

    duration = None
    if start_offset is not None and end_offset is not None:
        duration = end_offset - start_offset
        if duration == 0 and start_offset != 0:
            entries.append(
                f"Shifted {_direction(start_offset)} by {format_days(start_offset)}"
            )
            return entries

    if start_offset:
        entries.append(_describe_point("Start", start_offset, new_start, now))
    if end_offset:
        entries.append(_describe_point("End", end_offset, new_end, now))

    if duration:
        if now > new_end:
            entries.append(f"Completed {format_days(duration)} {_lateness(duration)}")
        else:
            change = "increased" if duration > 0 else "decreased"
            entries.append(f"Duration {change} by {format_days(duration)}")

    return entries


class MilestoneChanges:
    """Changes of a single milestone."""

    def __init__(self, milestone_id, name, entries=None):
        self.milestone_id = milestone_id
        self.name = name
        self.entries = list(entries or [])

    def __repr__(self):
        return f"MilestoneChanges({self.milestone_id!r}, {self.entries!r})"


class ChangeReport:
    """
    Structured requirement changes report.

    Every bucket holds at least one sentence: empty buckets read
    EVERYTHING_ACCORDING_TO_PLAN.
    """

    def __init__(self, project, resources, milestones, allocation_totals):
        """
        Args:
            project: Sentences about the project as a whole
            resources: Sentences about resource definitions
            milestones: List of MilestoneChanges in display order
            allocation_totals: {resource_id: net allocation delta}
        """
        self.has_changes = bool(project or resources) or any(
            m.entries for m in milestones
        )
        self.project = project or [EVERYTHING_ACCORDING_TO_PLAN]
        self.resources = resources or [EVERYTHING_ACCORDING_TO_PLAN]
        self.milestones = {}
        for changes in milestones:
            if not changes.entries:
                changes.entries = [EVERYTHING_ACCORDING_TO_PLAN]
            self.milestones[changes.milestone_id] = changes
        self.allocation_totals = allocation_totals

    def to_dict(self):
        return {
            "project": list(self.project),
            "resources": list(self.resources),
            "milestones": {
                milestone_id: {"name": changes.name, "entries": list(changes.entries)}
                for milestone_id, changes in self.milestones.items()
            },
            "allocation_totals": dict(self.allocation_totals),
        }

    def to_text(self, title="Requirement changes"):
        """Render the report as plain text."""
        lines = [title, "=" * len(title), "", "Project", "-------"]
        lines.extend(f"  {entry}" for entry in self.project)
        lines.extend(["", "Resources", "---------"])
        lines.extend(f"  {entry}" for entry in self.resources)
        lines.extend(["", "Milestones", "----------"])
        for changes in self.milestones.values():
            lines.append(f"{changes.name}:")
            lines.extend(f"  {entry}" for entry in changes.entries)
        return "\n".join(lines)


def _diff_resources(baseline, current):
    entries = []
    for resource_id, old in baseline.resources.items():
        new = current.resources.get(resource_id)
        if new is None:
            entries.append(f"Resource '{old.display_name}' deleted")
            continue
        if old.name != new.name:
            entries.append(
                f"Resource '{old.display_name}' renamed to '{new.display_name}'"
            )
        if old.amount != new.amount:
            entries.append(
                f"Resource '{new.display_name}' amount changed from "
                f"{format_quantity(old.amount)} to {format_quantity(new.amount)}"
            )
        if (old.concurrency or None) != (new.concurrency or None):
            entries.append(
                f"Resource '{new.display_name}' concurrency changed from "
                f"{old.concurrency or 'uncapped'} to {new.concurrency or 'uncapped'}"
            )
    for resource_id, new in current.resources.items():
        if resource_id not in baseline.resources:
            entries.append(f"Resource '{new.display_name}' added")
    return entries


def _resource_name(resource_id, baseline, current):
    resource = current.resources.get(resource_id) or baseline.resources.get(resource_id)
    return resource.display_name if resource else resource_id


def _live_allocations(graph, milestone):
    # Read-only: the baseline must not be pruned
    return {
        resource_id: quantity
        for resource_id, quantity in milestone.resource_allocations.items()
        if resource_id in graph.resources
    }


def _diff_allocations(old_allocations, new_allocations, baseline, current, totals):
    entries = []
    for resource_id in list(old_allocations) + [
        r for r in new_allocations if r not in old_allocations
    ]:
        old = old_allocations.get(resource_id, 0)
        new = new_allocations.get(resource_id, 0)
        if old == new:
            continue
        totals[resource_id] = totals.get(resource_id, 0) + (new - old)
        change = "increased" if new > old else "decreased"
        entries.append(
            f"'{_resource_name(resource_id, baseline, current)}' allocation {change} "
            f"from {format_quantity(old)} to {format_quantity(new)}"
        )
    return entries


def _diff_connections(milestone_id, baseline, current):
    old_pairs = {d.pair for d in baseline.dependencies.values() if d.from_id == milestone_id}
    new_pairs = {d.pair for d in current.dependencies.values() if d.from_id == milestone_id}

    entries = []
    for dependency in baseline.dependencies.values():
        pair = dependency.pair
        if dependency.from_id != milestone_id or pair in new_pairs:
            continue
        target = current.milestones.get(dependency.to_id)
        if target is not None:
            entries.append(f"Connection to '{target.name}' severed")
    for dependency in current.dependencies.values():
        if dependency.from_id != milestone_id or dependency.pair in old_pairs:
            continue
        target = current.milestones[dependency.to_id]
        entries.append(f"Connected to '{target.name}'")
    return entries


def _diff_milestone(old, new, baseline, current, now, totals):
    entries = []
    if old.name != new.name:
        entries.append(f"Renamed from '{old.name}'")
    if old.critical != new.critical:
        entries.append(
            "Marked as critical" if new.critical else "No longer marked as critical"
        )
    entries.extend(describe_date_changes(old.start, old.end, new.start, new.end, now))
    entries.extend(
        _diff_allocations(
            _live_allocations(baseline, old),
            _live_allocations(current, new),
            baseline,
            current,
            totals,
        )
    )
    entries.extend(_diff_connections(new.id, baseline, current))
    return entries


def diff_projects(baseline, current, now):
    """
    Compare a frozen baseline with the current project.

    Args:
        baseline: ProjectGraph committed when the project was started
        current: Live ProjectGraph
        now: Reference date for "late"/"ahead of time" phrasing

    Returns:
        ChangeReport

    Raises:
        MissingBaselineError: If no baseline is given
    """
    if baseline is None:
        raise MissingBaselineError("The project has not been started; no baseline exists")

    project_entries = describe_date_changes(
        baseline.envelope.start,
        baseline.envelope.end,
        current.envelope.start,
        current.envelope.end,
        now,
    )

    totals = {}
    milestones = []
    for milestone_id, old in baseline.milestones.items():
        new = current.milestones.get(milestone_id)
        if new is None:
            milestones.append(MilestoneChanges(milestone_id, old.name, ["Deleted"]))
            continue
        entries = _diff_milestone(old, new, baseline, current, now, totals)
        milestones.append(MilestoneChanges(milestone_id, new.name, entries))

    for milestone_id, new in current.milestones.items():
        if milestone_id in baseline.milestones:
            continue
        entries = ["Added"] + _diff_connections(milestone_id, baseline, current)
        milestones.append(MilestoneChanges(milestone_id, new.name, entries))

    for resource_id, delta in totals.items():
        if delta:
            change = "increased" if delta > 0 else "decreased"
            project_entries.append(
                f"Total '{_resource_name(resource_id, baseline, current)}' allocation "
                f"{change} by {format_quantity(abs(delta))}"
            )

    report = ChangeReport(
        project=project_entries,
        resources=_diff_resources(baseline, current),
        milestones=milestones,
        allocation_totals=totals,
    )
    logger.debug("Requirement changes computed (changes found: %s)", report.has_changes)
    return report
