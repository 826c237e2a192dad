import unittest
from datetime import date

import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from pert.domain.dependency import Dependency
from pert.services.date_constraints import (
    PROJECT,
    PropagationError,
    propagate_date_constraints,
    window_snapshot,
)
from pert.services.graph_store import ProjectGraph


class TestChainPropagation(unittest.TestCase):
    """A -> B -> C inside a pinned project envelope."""

    def setUp(self):
        self.graph = ProjectGraph(start="2024-01-01", end="2024-12-31")
        self.a = self.graph.add_milestone("A", end="2024-02-01")
        self.b = self.graph.add_milestone("B")
        self.c = self.graph.add_milestone("C", start="2024-03-01")
        self.graph.add_dependency(self.a, self.b)
        self.graph.add_dependency(self.b, self.c)

    def milestone(self, milestone_id):
        return self.graph.milestones[milestone_id]

    def test_lower_bounds(self):
        violations = propagate_date_constraints(self.graph)
        self.assertEqual(violations, [])

        a, b, c = self.milestone(self.a), self.milestone(self.b), self.milestone(self.c)
        self.assertEqual(a.start_window.min, date(2024, 1, 1))
        self.assertEqual(a.end_window.min, date(2024, 1, 1))
        self.assertEqual(b.start_window.min, date(2024, 2, 1))
        self.assertEqual(b.end_window.min, date(2024, 2, 1))
        self.assertEqual(c.start_window.min, date(2024, 2, 1))
        self.assertEqual(c.end_window.min, date(2024, 3, 1))

    def test_upper_bounds(self):
        propagate_date_constraints(self.graph)

        a, b, c = self.milestone(self.a), self.milestone(self.b), self.milestone(self.c)
        self.assertEqual(c.end_window.max, date(2024, 12, 31))
        self.assertEqual(c.start_window.max, date(2024, 12, 31))
        self.assertEqual(b.end_window.max, date(2024, 3, 1))
        self.assertEqual(b.start_window.max, date(2024, 3, 1))
        self.assertEqual(a.end_window.max, date(2024, 3, 1))
        self.assertEqual(a.start_window.max, date(2024, 2, 1))

    def test_envelope_bounds(self):
        propagate_date_constraints(self.graph)

        envelope = self.graph.envelope
        self.assertEqual(envelope.start_window.max, date(2024, 2, 1))
        self.assertEqual(envelope.end_window.min, date(2024, 3, 1))

    def test_pinned_date_outside_window_is_reported(self):
        self.graph.set_milestone_dates(self.c, start="2024-01-15")

        violations = propagate_date_constraints(self.graph)

        # C starting early also squeezes the window A must end in
        self.assertEqual(
            [(v.subject_id, v.field) for v in violations],
            [(self.a, "end"), (self.c, "start")],
        )
        self.assertEqual(violations[0].pinned, date(2024, 2, 1))
        self.assertEqual(violations[0].window_max, date(2024, 1, 15))

        violation = violations[1]
        self.assertEqual(violation.subject_id, self.c)
        self.assertEqual(violation.field, "start")
        self.assertEqual(violation.pinned, date(2024, 1, 15))
        self.assertEqual(violation.window_min, date(2024, 2, 1))
        self.assertEqual(violation.kind, "ConstraintViolation")
        # Pinned dates are never corrected
        self.assertEqual(self.milestone(self.c).start, date(2024, 1, 15))

    def test_project_start_after_source_is_reported(self):
        self.graph.set_project_dates(start="2024-03-01")

        violations = propagate_date_constraints(self.graph)

        subjects = {(v.subject_id, v.field) for v in violations}
        self.assertIn((PROJECT, "start"), subjects)
        self.assertIn((self.a, "end"), subjects)

    def test_windows_reset_when_dependency_removed(self):
        propagate_date_constraints(self.graph)
        self.assertEqual(self.milestone(self.c).start_window.min, date(2024, 2, 1))

        dependency = self.graph.find_dependency(self.b, self.c)
        self.graph.remove_dependency(dependency.id)
        propagate_date_constraints(self.graph)

        self.assertEqual(self.milestone(self.c).start_window.min, date(2024, 1, 1))
        self.assertEqual(self.milestone(self.b).end_window.max, date(2024, 12, 31))

    def test_windows_are_ordered(self):
        propagate_date_constraints(self.graph)

        for milestone in self.graph.milestones.values():
            self.assertTrue(milestone.start_window.is_consistent())
            self.assertTrue(milestone.end_window.is_consistent())
            self.assertGreaterEqual(milestone.end_window.min, milestone.start_window.min)

    def test_window_snapshot(self):
        propagate_date_constraints(self.graph)
        windows = window_snapshot(self.graph)

        self.assertEqual(set(windows), {PROJECT, self.a, self.b, self.c})
        self.assertEqual(
            windows[self.b],
            {
                "start": {"min": "2024-02-01", "max": "2024-03-01"},
                "end": {"min": "2024-02-01", "max": "2024-03-01"},
            },
        )
        self.assertEqual(windows[PROJECT]["start"], {"min": "", "max": "2024-02-01"})


class TestDiamondPropagation(unittest.TestCase):
    def test_latest_predecessor_wins(self):
        graph = ProjectGraph()
        a = graph.add_milestone("A")
        b = graph.add_milestone("B", end="2024-03-01")
        c = graph.add_milestone("C", end="2024-04-01")
        d = graph.add_milestone("D", start="2024-05-01")
        graph.add_dependency(a, b)
        graph.add_dependency(a, c)
        graph.add_dependency(b, d)
        graph.add_dependency(c, d)

        propagate_date_constraints(graph)

        self.assertEqual(graph.milestones[d].start_window.min, date(2024, 4, 1))
        # A must end before both B and C start
        self.assertEqual(graph.milestones[a].end_window.max, date(2024, 3, 1))
        self.assertEqual(graph.milestones[b].end_window.max, date(2024, 5, 1))

    def test_unconstrained_milestones_have_open_windows(self):
        graph = ProjectGraph()
        a = graph.add_milestone("A")

        self.assertEqual(propagate_date_constraints(graph), [])
        milestone = graph.milestones[a]
        self.assertIsNone(milestone.start_window.min)
        self.assertIsNone(milestone.start_window.max)
        self.assertIsNone(graph.envelope.start_window.max)

    def test_empty_project(self):
        graph = ProjectGraph(start="2024-01-01", end="2024-01-31")
        self.assertEqual(propagate_date_constraints(graph), [])
        self.assertIsNone(graph.envelope.end_window.min)


class TestCycleDetection(unittest.TestCase):
    def test_cycle_is_fatal(self):
        graph = ProjectGraph()
        a = graph.add_milestone("A")
        b = graph.add_milestone("B")
        graph.add_dependency(a, b)

        # Bypass the store's cycle check
        graph.dependencies["x1"] = Dependency("x1", b, a)
        graph._invalidate()

        with self.assertRaises(PropagationError):
            propagate_date_constraints(graph)


if __name__ == "__main__":
    unittest.main()
