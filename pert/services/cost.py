from dataclasses import dataclass

from pert.utils.graph import longest_path_depths, predecessor_closure


@dataclass
class CostRow:
    resource_id: str
    name: str
    value: float = 0


def _empty_rows(graph):
    return {
        resource_id: CostRow(resource_id, resource.display_name)
        for resource_id, resource in graph.resources.items()
    }


def _add_allocations(rows, graph, milestone_id):
    for resource_id, quantity in graph.allocations(milestone_id).items():
        rows[resource_id].value += quantity


def cost_until(graph, until=None):
    """
    Resources consumed by milestones starting on or before a date.

    The dependency structure is ignored. A milestone's effective start is its
    pinned start, else its earliest allowed start; milestones with neither
    are always counted, as are all milestones when no date is given.

    Args:
        graph: ProjectGraph with computed date windows
        until: Cut-off date (inclusive), or None for the whole project

    Returns:
        list: One CostRow per resource, in resource order
    """
    rows = _empty_rows(graph)
    for milestone_id, milestone in graph.milestones.items():
        start = milestone.effective_start
        if until is not None and start is not None and start > until:
            continue
        _add_allocations(rows, graph, milestone_id)
    return list(rows.values())


def cost_up_to(graph, milestone_id):
    """
    Resources consumed by a milestone and everything it depends on.

    Ancestors reachable through several paths are counted once.

    Args:
        graph: ProjectGraph
        milestone_id: The milestone whose predecessor chain is summed

    Returns:
        list: One CostRow per resource, in resource order
    """
    graph.get_milestone(milestone_id)

    rows = _empty_rows(graph)
    contributors = predecessor_closure(graph.dependency_graph, milestone_id)
    contributors.add(milestone_id)
    for contributor_id in contributors:
        _add_allocations(rows, graph, contributor_id)
    return list(rows.values())


def is_critical_dependency(graph, dependency):
    """
    An edge is highlighted as critical when both its endpoints are flagged.

    This only mirrors the users' own critical flags; no longest-path
    (CPM) analysis takes place.
    """
    source = graph.milestones.get(dependency.from_id)
    target = graph.milestones.get(dependency.to_id)
    return bool(source and target and source.critical and target.critical)


def critical_dependencies(graph):
    """Ids of all edges whose endpoints are both flagged critical."""
    return [
        dependency_id
        for dependency_id, dependency in graph.dependencies.items()
        if is_critical_dependency(graph, dependency)
    ]


def milestone_levels(graph):
    """Depth of every milestone: 0 for sources, 1 + deepest predecessor otherwise."""
    return longest_path_depths(graph.dependency_graph)


def stats_rows(graph, milestone_id=None):
    """
    Cost rows shown in the project statistics panel.

    With a milestone selected the rows cover its predecessor chain;
    otherwise they cover everything up to the project end date.
    """
    if milestone_id is not None:
        return cost_up_to(graph, milestone_id)
    return cost_until(graph, graph.envelope.end)
