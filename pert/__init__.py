"""
PERT Planning Engine
====================

Planning core for milestone networks (PERT charts).

Available modules:
- domain: Milestone, Dependency, Resource and project envelope models
- services.graph_store: the acyclic project graph and its edit operations
- services.date_constraints: earliest/latest date windows
- services.feasibility: resource quantity and concurrency checks
- services.cost: cost aggregation and critical edges
- services.change_report: requirement changes against the baseline
- services.planner: per-project coordinator
- services.registry: named project snapshots
- io.snapshot: JSON snapshot import/export
"""

from pert.services.graph_store import CycleError, ProjectGraph
from pert.services.planner import ProjectPlanner
from pert.services.registry import ProjectRegistry

__version__ = "0.1.0"

__all__ = [
    "CycleError",
    "ProjectGraph",
    "ProjectPlanner",
    "ProjectRegistry",
]
