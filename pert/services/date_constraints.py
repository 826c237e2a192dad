"""
Date constraint propagation.

For every milestone, and for the project envelope, derive the window in
which its start and end dates may lie, given the pinned dates, the rule
that a milestone never ends before it starts, and the rule that a
dependency's successor cannot start before its predecessor ends.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

import networkx as nx

from pert.utils.dates import earliest, latest, format_date
from pert.utils.graph import topological_order

logger = logging.getLogger(__name__)

PROJECT = "project"


class PropagationError(RuntimeError):
    """The dependency graph is cyclic; bounds cannot be computed."""

    pass


@dataclass(frozen=True)
class ConstraintViolation:
    """A pinned date that lies outside its computed window."""

    subject_id: str  # milestone id, or "project" for the envelope
    field: str  # "start" or "end"
    pinned: date
    window_min: Optional[date]
    window_max: Optional[date]

    @property
    def kind(self):
        return "ConstraintViolation"

    def describe(self):
        return (
            f"{self.subject_id} {self.field} {format_date(self.pinned)} is outside "
            f"[{format_date(self.window_min) or '-'}, {format_date(self.window_max) or '-'}]"
        )


def _ordered_milestones(graph):
    try:
        return topological_order(graph.dependency_graph)
    except nx.NetworkXUnfeasible as e:
        logger.error("Dependency graph contains a cycle; refusing to propagate dates")
        raise PropagationError("Milestone dependencies contain a cycle") from e


def forward_pass(graph, order):
    """
    Calculate the earliest allowed start and end of every milestone.

    Sources are seeded with the project start. Each milestone passes on its
    pinned end, or else its earliest end, to its successors; a milestone with
    several predecessors keeps the latest bound among them.

    Args:
        graph: ProjectGraph whose milestones receive the lower bounds
        order: Milestone ids in topological order
    """
    G = graph.dependency_graph
    outgoing_limit = {}

    for milestone_id in order:
        milestone = graph.milestones[milestone_id]
        predecessors = list(G.predecessors(milestone_id))

        if not predecessors:  # Source milestone
            limit = graph.envelope.start
        else:
            limit = latest(*(outgoing_limit[p] for p in predecessors))

        milestone.start_window.min = limit
        milestone.end_window.min = latest(limit, milestone.start)

        outgoing_limit[milestone_id] = milestone.end or milestone.end_window.min

    return graph.milestones


def backward_pass(graph, order):
    """
    Calculate the latest allowed end and start of every milestone.

    Mirror image of the forward pass: sinks are seeded with the project end,
    and each milestone passes on its pinned start, or else its latest start,
    to its predecessors, keeping the earliest bound among its successors.

    Args:
        graph: ProjectGraph whose milestones receive the upper bounds
        order: Milestone ids in topological order
    """
    G = graph.dependency_graph
    outgoing_limit = {}

    for milestone_id in reversed(order):
        milestone = graph.milestones[milestone_id]
        successors = list(G.successors(milestone_id))

        if not successors:  # Sink milestone
            limit = graph.envelope.end
        else:
            limit = earliest(*(outgoing_limit[s] for s in successors))

        milestone.end_window.max = limit
        milestone.start_window.max = earliest(limit, milestone.end)

        outgoing_limit[milestone_id] = milestone.start or milestone.start_window.max

    return graph.milestones


def envelope_bounds(graph):
    """
    Bound the project dates by the milestones at the edges of the network.

    The project cannot start later than the earliest date any source
    milestone is pinned to (or may end by), nor end earlier than the latest
    date any sink milestone is pinned to (or may start from).
    """
    envelope = graph.envelope
    envelope.reset_windows()

    for milestone_id in graph.sources():
        milestone = graph.milestones[milestone_id]
        value = milestone.start or milestone.end or milestone.end_window.max
        envelope.start_window.max = earliest(envelope.start_window.max, value)

    for milestone_id in graph.sinks():
        milestone = graph.milestones[milestone_id]
        value = milestone.end or milestone.start or milestone.start_window.min
        envelope.end_window.min = latest(envelope.end_window.min, value)

    return envelope


def find_constraint_violations(graph):
    """Pinned dates lying outside their computed windows."""
    violations = []

    def check(subject_id, field, pinned, window):
        if pinned is not None and not window.contains(pinned):
            violations.append(
                ConstraintViolation(subject_id, field, pinned, window.min, window.max)
            )

    envelope = graph.envelope
    check(PROJECT, "start", envelope.start, envelope.start_window)
    check(PROJECT, "end", envelope.end, envelope.end_window)

    for milestone_id, milestone in graph.milestones.items():
        check(milestone_id, "start", milestone.start, milestone.start_window)
        check(milestone_id, "end", milestone.end, milestone.end_window)

    return violations


def propagate_date_constraints(graph):
    """
    Recompute all date windows of a project.

    Pinned dates are never modified; dates outside their windows are
    reported instead.

    Args:
        graph: ProjectGraph to update in place

    Returns:
        list: ConstraintViolation findings

    Raises:
        PropagationError: If the dependency graph contains a cycle
    """
    order = _ordered_milestones(graph)

    for milestone in graph.milestones.values():
        milestone.reset_windows()

    forward_pass(graph, order)
    backward_pass(graph, order)
    envelope_bounds(graph)

    violations = find_constraint_violations(graph)
    for violation in violations:
        logger.info("Constraint violation: %s", violation.describe())
    return violations


def window_snapshot(graph):
    """
    Computed windows as ISO strings, keyed by milestone id plus "project".

    Returns:
        dict: {id: {"start": {"min", "max"}, "end": {"min", "max"}}}
    """
    windows = {
        PROJECT: {
            "start": graph.envelope.start_window.to_dict(),
            "end": graph.envelope.end_window.to_dict(),
        }
    }
    for milestone_id, milestone in graph.milestones.items():
        windows[milestone_id] = {
            "start": milestone.start_window.to_dict(),
            "end": milestone.end_window.to_dict(),
        }
    return windows


__all__ = [
    "ConstraintViolation",
    "PropagationError",
    "backward_pass",
    "envelope_bounds",
    "find_constraint_violations",
    "forward_pass",
    "propagate_date_constraints",
    "window_snapshot",
]
