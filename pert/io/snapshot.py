"""
Project snapshot import/export.

A snapshot is the JSON document the persistence layer stores per project:

    {resources, nodes, edges, start, end, stats, timezone?, original?}

`original` holds the baseline (same shape, without stats) once the project
has been started.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from pert.domain.envelope import EnvelopeError
from pert.domain.milestone import Milestone, MilestoneError
from pert.domain.resource import ResourceError
from pert.services.graph_store import CycleError, ProjectGraph
from pert.utils.dates import format_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapshotError(Exception):
    """Malformed snapshot. `path` points at the offending entry."""

    code: str
    message: str
    path: Optional[str] = None

    def __str__(self) -> str:
        loc = self.path or "<snapshot>"
        return f"{loc}: {self.code}: {self.message}"


def _require_mapping(data, path):
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SnapshotError(code="E_INVALID_FIELD", message="must be an object", path=path)
    return data


def graph_from_snapshot(data: dict[str, Any]) -> ProjectGraph:
    """
    Build a ProjectGraph from the graph part of a snapshot.

    Edges go through the store, so a cyclic or duplicated edge set is
    rejected rather than loaded.

    Raises:
        SnapshotError: If any entry is malformed
    """
    data = _require_mapping(data, "$")

    try:
        graph = ProjectGraph(start=data.get("start"), end=data.get("end"))
    except EnvelopeError as e:
        raise SnapshotError(code="E_INVALID_FIELD", message=str(e), path="start/end") from e

    for resource_id, raw in _require_mapping(data.get("resources"), "resources").items():
        raw = _require_mapping(raw, f"resources.{resource_id}")
        try:
            graph.add_resource(
                name=raw.get("name"),
                amount=raw.get("amount"),
                concurrency=raw.get("concurrency"),
                resource_id=resource_id,
            )
        except ResourceError as e:
            raise SnapshotError(
                code="E_INVALID_FIELD", message=str(e), path=f"resources.{resource_id}"
            ) from e

    for milestone_id, raw in _require_mapping(data.get("nodes"), "nodes").items():
        raw = _require_mapping(raw, f"nodes.{milestone_id}")
        _require_mapping(raw.get("resources"), f"nodes.{milestone_id}.resources")
        try:
            milestone = Milestone.from_dict(milestone_id, raw)
        except MilestoneError as e:
            raise SnapshotError(
                code="E_INVALID_FIELD", message=str(e), path=f"nodes.{milestone_id}"
            ) from e
        graph.insert_milestone(milestone)

    for dependency_id, raw in _require_mapping(data.get("edges"), "edges").items():
        raw = _require_mapping(raw, f"edges.{dependency_id}")
        from_id, to_id = raw.get("from"), raw.get("to")
        if not isinstance(from_id, str) or not isinstance(to_id, str):
            raise SnapshotError(
                code="E_INVALID_FIELD",
                message="edge endpoints must be milestone ids",
                path=f"edges.{dependency_id}",
            )
        if from_id not in graph.milestones or to_id not in graph.milestones:
            raise SnapshotError(
                code="E_DANGLING_EDGE",
                message=f"edge {from_id} -> {to_id} references an unknown milestone",
                path=f"edges.{dependency_id}",
            )
        try:
            graph.add_dependency(from_id, to_id, dependency_id=dependency_id)
        except CycleError as e:
            raise SnapshotError(
                code="E_CYCLE", message=str(e), path=f"edges.{dependency_id}"
            ) from e

    return graph


def graph_to_snapshot(graph: ProjectGraph) -> dict[str, Any]:
    """Graph part of a snapshot (no stats, no baseline)."""
    nodes = {}
    for milestone_id, milestone in graph.milestones.items():
        data = milestone.to_dict()
        # Allocations of deleted resources are not exported
        data["resources"] = {
            resource_id: quantity
            for resource_id, quantity in data["resources"].items()
            if resource_id in graph.resources
        }
        nodes[milestone_id] = data

    return {
        "resources": {
            resource_id: resource.to_dict()
            for resource_id, resource in graph.resources.items()
        },
        "nodes": nodes,
        "edges": {
            dependency_id: dependency.to_dict()
            for dependency_id, dependency in graph.dependencies.items()
        },
        "start": format_date(graph.envelope.start),
        "end": format_date(graph.envelope.end),
    }


def parse_snapshot(text: str) -> dict[str, Any]:
    """
    Decode a snapshot document.

    Raises:
        SnapshotError: If the text is not a JSON object
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SnapshotError(code="E_JSON_PARSE", message=str(e)) from e

    if not isinstance(data, dict):
        raise SnapshotError(
            code="E_INVALID_TOP_LEVEL", message="top-level document must be an object"
        )
    return data


def serialize_snapshot(data: dict[str, Any]) -> str:
    return json.dumps(data)


def load_snapshot(path: str) -> dict[str, Any]:
    """Read and decode a snapshot file (e.g. an exported ".pert" file)."""
    p = Path(path)
    if not p.exists():
        raise SnapshotError(code="E_FILE_NOT_FOUND", message="file does not exist", path=str(p))
    logger.debug("Loading snapshot from %s", p)
    return parse_snapshot(p.read_text(encoding="utf-8"))


def dump_snapshot(data: dict[str, Any], path: str) -> Path:
    p = Path(path)
    p.write_text(serialize_snapshot(data), encoding="utf-8")
    logger.debug("Wrote snapshot to %s", p)
    return p
