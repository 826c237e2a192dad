import networkx as nx


def build_dependency_graph(milestones, dependencies):
    """
    Build a directed graph representing milestone dependencies.

    Args:
        milestones: Dictionary of Milestone objects keyed by ID
        dependencies: Dictionary of Dependency objects keyed by ID

    Returns:
        nx.DiGraph: one node per milestone, one edge per dependency
    """
    G = nx.DiGraph()

    # Add milestone nodes
    for milestone_id, milestone in milestones.items():
        G.add_node(milestone_id, node_type="milestone", milestone=milestone)

    # Add dependency edges, skipping any whose endpoints are gone
    for dependency_id, dependency in dependencies.items():
        if dependency.from_id in milestones and dependency.to_id in milestones:
            G.add_edge(dependency.from_id, dependency.to_id, dependency_id=dependency_id)

    return G


def find_sources(graph):
    """Milestones with no incoming edge, in node insertion order."""
    return [node for node in graph.nodes() if graph.in_degree(node) == 0]


def find_sinks(graph):
    """Milestones with no outgoing edge, in node insertion order."""
    return [node for node in graph.nodes() if graph.out_degree(node) == 0]


def topological_order(graph):
    """
    Milestones ordered so that every predecessor comes before its successors.

    Raises:
        nx.NetworkXUnfeasible: If the graph contains a cycle
    """
    return list(nx.topological_sort(graph))


def can_reach(graph, source, target):
    """Check whether target is reachable from source along edge direction."""
    if source not in graph or target not in graph:
        return False
    return nx.has_path(graph, source, target)


def predecessor_closure(graph, node):
    """
    All milestones the node transitively depends on.

    Each ancestor appears once, however many paths lead to it.
    """
    return nx.ancestors(graph, node)


def longest_path_depths(graph):
    """
    Depth of each milestone: 0 for a source, otherwise one more than its
    deepest predecessor.
    """
    depths = {}
    for node in topological_order(graph):
        predecessors = list(graph.predecessors(node))
        if not predecessors:
            depths[node] = 0
        else:
            depths[node] = 1 + max(depths[p] for p in predecessors)
    return depths
