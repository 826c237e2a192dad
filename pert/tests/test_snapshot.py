import copy
import json
import os
import sys
import tempfile
import unittest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from pert.io.snapshot import (
    SnapshotError,
    dump_snapshot,
    graph_from_snapshot,
    graph_to_snapshot,
    load_snapshot,
    parse_snapshot,
    serialize_snapshot,
)
from pert.services.date_constraints import propagate_date_constraints, window_snapshot

SAMPLE = {
    "resources": {
        "r1": {"name": "Dev", "amount": 5, "concurrency": 1},
        "r2": {"name": "Budget", "amount": None, "concurrency": None},
    },
    "nodes": {
        "n1": {
            "name": "Design",
            "start": "2024-01-01",
            "end": "2024-01-10",
            "critical": True,
            "resources": {"r1": 3},
            "top": 200,
            "left": 400,
        },
        "n2": {
            "name": "Build",
            "start": "",
            "end": "2024-02-01",
            "critical": False,
            "resources": {"r1": 4, "r2": 1000},
            "top": 200,
            "left": 700,
        },
        "n4": {
            "name": "Launch",
            "start": "",
            "end": "",
            "critical": False,
            "resources": {},
        },
    },
    "edges": {
        "e1": {"from": "n1", "to": "n2"},
        "e3": {"from": "n2", "to": "n4"},
    },
    "start": "2024-01-01",
    "end": "2024-03-31",
}


class TestGraphSnapshot(unittest.TestCase):
    def test_round_trip(self):
        graph = graph_from_snapshot(copy.deepcopy(SAMPLE))
        self.assertEqual(graph_to_snapshot(graph), SAMPLE)

    def test_ids_are_preserved(self):
        graph = graph_from_snapshot(SAMPLE)
        self.assertEqual(list(graph.milestones), ["n1", "n2", "n4"])
        self.assertEqual(list(graph.dependencies), ["e1", "e3"])
        # Generated ids continue after the highest imported one
        self.assertEqual(graph.add_milestone("New"), "n5")
        self.assertEqual(graph.add_resource(name="Ops"), "r3")
        self.assertEqual(graph.add_dependency("n1", "n4"), "e4")

    def test_round_trip_keeps_bounds(self):
        graph = graph_from_snapshot(SAMPLE)
        propagate_date_constraints(graph)

        reloaded = graph_from_snapshot(json.loads(serialize_snapshot(graph_to_snapshot(graph))))
        propagate_date_constraints(reloaded)

        self.assertEqual(window_snapshot(reloaded), window_snapshot(graph))

    def test_deleted_resource_allocations_not_exported(self):
        graph = graph_from_snapshot(SAMPLE)
        graph.remove_resource("r2")

        data = graph_to_snapshot(graph)

        self.assertEqual(data["nodes"]["n2"]["resources"], {"r1": 4})
        self.assertIn("r2", graph.milestones["n2"].resource_allocations)

    def test_empty_snapshot(self):
        graph = graph_from_snapshot({})
        self.assertEqual(
            graph_to_snapshot(graph),
            {"resources": {}, "nodes": {}, "edges": {}, "start": "", "end": ""},
        )


class TestSnapshotErrors(unittest.TestCase):
    def assertSnapshotError(self, data, code, path=None):
        with self.assertRaises(SnapshotError) as ctx:
            graph_from_snapshot(data)
        self.assertEqual(ctx.exception.code, code)
        if path is not None:
            self.assertEqual(ctx.exception.path, path)

    def test_dangling_edge(self):
        data = copy.deepcopy(SAMPLE)
        data["edges"]["e9"] = {"from": "n1", "to": "n9"}
        self.assertSnapshotError(data, "E_DANGLING_EDGE", "edges.e9")

    def test_cyclic_edges(self):
        data = copy.deepcopy(SAMPLE)
        data["edges"]["e9"] = {"from": "n4", "to": "n1"}
        self.assertSnapshotError(data, "E_CYCLE", "edges.e9")

    def test_invalid_fields(self):
        data = copy.deepcopy(SAMPLE)
        data["nodes"]["n1"]["start"] = "01/02/2024"
        self.assertSnapshotError(data, "E_INVALID_FIELD", "nodes.n1")

        data = copy.deepcopy(SAMPLE)
        data["resources"]["r1"]["amount"] = -5
        self.assertSnapshotError(data, "E_INVALID_FIELD", "resources.r1")

        data = copy.deepcopy(SAMPLE)
        data["nodes"] = []
        self.assertSnapshotError(data, "E_INVALID_FIELD", "nodes")

        data = copy.deepcopy(SAMPLE)
        data["end"] = "soon"
        self.assertSnapshotError(data, "E_INVALID_FIELD", "start/end")

    def test_malformed_node_allocations(self):
        data = copy.deepcopy(SAMPLE)
        data["nodes"]["n1"]["resources"] = [["r1", 3]]
        self.assertSnapshotError(data, "E_INVALID_FIELD", "nodes.n1.resources")

    def test_malformed_edge_endpoints(self):
        data = copy.deepcopy(SAMPLE)
        data["edges"]["e1"]["from"] = ["n1"]
        self.assertSnapshotError(data, "E_INVALID_FIELD", "edges.e1")

        data = copy.deepcopy(SAMPLE)
        del data["edges"]["e3"]["to"]
        self.assertSnapshotError(data, "E_INVALID_FIELD", "edges.e3")

    def test_fractional_concurrency_truncated(self):
        data = copy.deepcopy(SAMPLE)
        data["resources"]["r1"]["concurrency"] = 2.5
        graph = graph_from_snapshot(data)
        self.assertEqual(graph.resources["r1"].concurrency, 2)

    def test_parse_errors(self):
        with self.assertRaises(SnapshotError) as ctx:
            parse_snapshot("{not json")
        self.assertEqual(ctx.exception.code, "E_JSON_PARSE")

        with self.assertRaises(SnapshotError) as ctx:
            parse_snapshot("[1, 2]")
        self.assertEqual(ctx.exception.code, "E_INVALID_TOP_LEVEL")

    def test_error_message(self):
        error = SnapshotError(code="E_CYCLE", message="boom", path="edges.e1")
        self.assertEqual(str(error), "edges.e1: E_CYCLE: boom")


class TestSnapshotFiles(unittest.TestCase):
    def test_dump_and_load(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "project.pert")
            dump_snapshot(SAMPLE, path)
            self.assertEqual(load_snapshot(path), SAMPLE)

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(SnapshotError) as ctx:
                load_snapshot(os.path.join(tmp, "missing.pert"))
        self.assertEqual(ctx.exception.code, "E_FILE_NOT_FOUND")


if __name__ == "__main__":
    unittest.main()
