"""
Resource feasibility checks.

Two independent dimensions are evaluated per resource:

- quantity: walking milestones in date order, the running total of
  allocations must not exceed the resource amount;
- concurrency: the number of milestones using the resource at the same
  time must not exceed its concurrency cap.

Findings are reported, never corrected.
"""

import logging
from collections import namedtuple
from dataclasses import dataclass
from datetime import date
from enum import Enum

from pert.utils.graph import longest_path_depths

logger = logging.getLogger(__name__)


class ViolationKind(Enum):
    """
    Enum representing the kind of resource infeasibility.
    """

    QUANTITY = "quantity"
    CONCURRENCY = "concurrency"


@dataclass(frozen=True)
class ResourceViolation:
    milestone_id: str
    resource_id: str
    kind: ViolationKind


ResourceEvent = namedtuple(
    "ResourceEvent", ["time", "is_start", "milestone_id", "resource_id"]
)


def _quantity_order_key(milestone):
    # Undated milestones sort first
    value = milestone.effective_date
    return (value is not None, value or date.min)


def check_quantity(graph):
    """
    Flag milestones whose allocation exhausts a resource's amount.

    Milestones are ordered by pinned start, else pinned end, with undated
    ones first; ties keep insertion order. Resources without an amount are
    unlimited and never flagged.

    Args:
        graph: ProjectGraph

    Returns:
        list: ResourceViolation findings of kind QUANTITY
    """
    remaining = {
        resource_id: resource.amount
        for resource_id, resource in graph.resources.items()
        if not resource.is_unlimited
    }
    ordered = sorted(graph.milestones.values(), key=_quantity_order_key)

    violations = []
    for milestone in ordered:
        for resource_id, quantity in graph.allocations(milestone.id).items():
            if resource_id not in remaining:
                continue
            remaining[resource_id] -= quantity
            if quantity and remaining[resource_id] < 0:
                violations.append(
                    ResourceViolation(milestone.id, resource_id, ViolationKind.QUANTITY)
                )
    return violations


def build_concurrency_events(graph):
    """
    Start/end events for every milestone using a concurrency-capped resource.

    A start event happens at the pinned start or else the earliest allowed
    start; an end event at the pinned end or else the latest allowed end.
    Missing times fall back to date.min for starts and date.max for ends.

    Returns:
        list: ResourceEvent tuples, unsorted
    """
    capped = {
        resource_id
        for resource_id, resource in graph.resources.items()
        if resource.is_concurrency_capped
    }

    events = []
    for milestone in graph.milestones.values():
        for resource_id, quantity in graph.allocations(milestone.id).items():
            if resource_id not in capped or not quantity:
                continue
            start = milestone.start or milestone.start_window.min or date.min
            end = milestone.end or milestone.end_window.max or date.max
            events.append(ResourceEvent(start, True, milestone.id, resource_id))
            events.append(ResourceEvent(end, False, milestone.id, resource_id))
    return events


def sort_concurrency_events(graph, events, levels=None):
    """
    Order events for the sweep.

    Earlier first; at equal times ends before starts, critical milestones
    before the rest, then shallower milestones (closer to a source) first.
    """
    if levels is None:
        levels = longest_path_depths(graph.dependency_graph)

    def key(event):
        milestone = graph.milestones[event.milestone_id]
        return (
            event.time,
            event.is_start,
            not milestone.critical,
            levels.get(event.milestone_id, 0),
        )

    return sorted(events, key=key)


def check_concurrency(graph, levels=None):
    """
    Flag milestones that start while all slots of a resource are taken.

    Args:
        graph: ProjectGraph with computed date windows
        levels: Optional precomputed milestone depths

    Returns:
        list: ResourceViolation findings of kind CONCURRENCY
    """
    available = {
        resource_id: resource.concurrency
        for resource_id, resource in graph.resources.items()
        if resource.is_concurrency_capped
    }
    if not available:
        return []

    events = sort_concurrency_events(graph, build_concurrency_events(graph), levels)

    violations = []
    for event in events:
        if event.is_start:
            available[event.resource_id] -= 1
            if available[event.resource_id] < 0:
                violations.append(
                    ResourceViolation(
                        event.milestone_id, event.resource_id, ViolationKind.CONCURRENCY
                    )
                )
        else:
            available[event.resource_id] += 1
    return violations


def check_resource_feasibility(graph, levels=None):
    """
    Run both feasibility checks.

    Args:
        graph: ProjectGraph with computed date windows
        levels: Optional precomputed milestone depths

    Returns:
        list: quantity findings followed by concurrency findings
    """
    violations = check_quantity(graph) + check_concurrency(graph, levels)
    for violation in violations:
        logger.info(
            "Milestone %s is %s-infeasible for resource %s",
            violation.milestone_id,
            violation.kind.value,
            violation.resource_id,
        )
    return violations


def feasibility_flags(violations):
    """
    Group findings for display.

    Returns:
        dict: {milestone_id: {resource_id: [kind strings]}}
    """
    flags = {}
    for violation in violations:
        kinds = flags.setdefault(violation.milestone_id, {}).setdefault(
            violation.resource_id, []
        )
        if violation.kind.value not in kinds:
            kinds.append(violation.kind.value)
    return flags
