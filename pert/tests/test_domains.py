import unittest
from datetime import date, datetime

import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from pert.domain.dependency import Dependency, DependencyError
from pert.domain.envelope import EnvelopeError, ProjectEnvelope
from pert.domain.milestone import DateWindow, Milestone, MilestoneError
from pert.domain.resource import Resource, ResourceError


class TestMilestone(unittest.TestCase):
    def test_milestone_creation(self):
        milestone = Milestone(
            id="n1",
            name="Design approved",
            start="2024-01-01",
            end=date(2024, 1, 10),
            critical=True,
            resources={"r1": 3},
        )

        self.assertEqual(milestone.id, "n1")
        self.assertEqual(milestone.name, "Design approved")
        self.assertEqual(milestone.start, date(2024, 1, 1))
        self.assertEqual(milestone.end, date(2024, 1, 10))
        self.assertTrue(milestone.critical)
        self.assertEqual(milestone.get_allocation("r1"), 3)
        self.assertEqual(milestone.get_allocation("r2"), 0)

    def test_unset_dates(self):
        milestone = Milestone(id="n1", name="M", start="", end=None)
        self.assertIsNone(milestone.start)
        self.assertIsNone(milestone.end)
        self.assertIsNone(milestone.effective_date)

    def test_datetime_is_truncated_to_date(self):
        milestone = Milestone(id="n1", name="M", start=datetime(2024, 5, 3, 14, 30))
        self.assertEqual(milestone.start, date(2024, 5, 3))

    def test_validation(self):
        with self.assertRaises(MilestoneError):
            Milestone(id=None, name="M")
        with self.assertRaises(MilestoneError):
            Milestone(id="n1", name="")
        with self.assertRaises(MilestoneError):
            Milestone(id="n1", name="M", start="2024-02-30")
        with self.assertRaises(MilestoneError):
            Milestone(id="n1", name="M", resources={"r1": -1})
        with self.assertRaises(MilestoneError):
            Milestone(id="n1", name="M", resources={"r1": "3"})

        milestone = Milestone(id="n1", name="M")
        with self.assertRaises(MilestoneError):
            milestone.name = ""
        with self.assertRaises(MilestoneError):
            milestone.set_allocation("r1", True)

    def test_effective_dates(self):
        milestone = Milestone(id="n1", name="M", end="2024-03-01")
        self.assertEqual(milestone.effective_date, date(2024, 3, 1))

        milestone.start_window.min = date(2024, 2, 1)
        self.assertEqual(milestone.effective_start, date(2024, 2, 1))

        milestone.start = "2024-02-15"
        self.assertEqual(milestone.effective_date, date(2024, 2, 15))
        self.assertEqual(milestone.effective_start, date(2024, 2, 15))

    def test_to_dict_keeps_extra_fields(self):
        data = {
            "name": "M",
            "start": "2024-01-01",
            "end": "",
            "critical": False,
            "resources": {"r1": 2},
            "top": 200,
            "left": 400,
        }
        milestone = Milestone.from_dict("n1", data)

        self.assertEqual(milestone.extra, {"top": 200, "left": 400})
        self.assertEqual(milestone.to_dict(), data)


class TestDateWindow(unittest.TestCase):
    def test_contains(self):
        window = DateWindow(date(2024, 1, 1), date(2024, 1, 31))
        self.assertTrue(window.contains(date(2024, 1, 1)))
        self.assertTrue(window.contains(date(2024, 1, 31)))
        self.assertFalse(window.contains(date(2023, 12, 31)))
        self.assertFalse(window.contains(date(2024, 2, 1)))
        self.assertTrue(window.contains(None))

    def test_open_bounds(self):
        window = DateWindow(max=date(2024, 1, 31))
        self.assertTrue(window.contains(date(1990, 1, 1)))
        self.assertTrue(DateWindow().contains(date(2024, 6, 1)))

    def test_consistency_and_reset(self):
        window = DateWindow(date(2024, 2, 1), date(2024, 1, 1))
        self.assertFalse(window.is_consistent())

        window.reset()
        self.assertEqual(window, DateWindow())
        self.assertTrue(window.is_consistent())

    def test_to_dict(self):
        window = DateWindow(date(2024, 1, 1), None)
        self.assertEqual(window.to_dict(), {"min": "2024-01-01", "max": ""})


class TestResource(unittest.TestCase):
    def test_resource_creation(self):
        resource = Resource("r1", name="Dev", amount=5, concurrency=2)
        self.assertEqual(resource.display_name, "Dev")
        self.assertFalse(resource.is_unlimited)
        self.assertTrue(resource.is_concurrency_capped)

    def test_defaults(self):
        resource = Resource("r1")
        self.assertTrue(resource.is_unlimited)
        self.assertFalse(resource.is_concurrency_capped)
        self.assertEqual(resource.display_name, "r1")

    def test_zero_amount_is_not_unlimited(self):
        resource = Resource("r1", name="Budget", amount=0)
        self.assertFalse(resource.is_unlimited)

    def test_zero_concurrency_is_uncapped(self):
        resource = Resource("r1", name="Dev", concurrency=0)
        self.assertFalse(resource.is_concurrency_capped)

    def test_validation(self):
        with self.assertRaises(ResourceError):
            Resource("")
        with self.assertRaises(ResourceError):
            Resource("r1", name="")
        with self.assertRaises(ResourceError):
            Resource("r1", amount=-1)
        with self.assertRaises(ResourceError):
            Resource("r1", amount="5")

    def test_fractional_concurrency_truncated(self):
        self.assertEqual(Resource("r1", concurrency=2.5).concurrency, 2)

        resource = Resource("r1", name="Dev")
        resource.update("concurrency", "2.5")
        self.assertEqual(resource.concurrency, 2)
        resource.update("concurrency", 2.5)
        self.assertEqual(resource.concurrency, 2)

    def test_update_coerces_numbers(self):
        resource = Resource("r1", name="Dev")

        resource.update("amount", "12")
        self.assertEqual(resource.amount, 12)
        resource.update("amount", "2.5")
        self.assertEqual(resource.amount, 2.5)
        resource.update("amount", "abc")
        self.assertEqual(resource.amount, 0)
        resource.update("amount", "-3")
        self.assertEqual(resource.amount, 0)
        resource.update("concurrency", "")
        self.assertEqual(resource.concurrency, 0)
        self.assertFalse(resource.is_concurrency_capped)

    def test_update_rejects_unknown_field_and_empty_name(self):
        resource = Resource("r1", name="Dev")
        with self.assertRaises(ResourceError):
            resource.update("colour", "red")
        with self.assertRaises(ResourceError):
            resource.update("name", "")

        resource.update("name", "Developers")
        self.assertEqual(resource.name, "Developers")

    def test_round_trip(self):
        resource = Resource("r1", name="Dev", amount=5, concurrency=1)
        copy = Resource.from_dict("r1", resource.to_dict())
        self.assertEqual(copy.to_dict(), {"name": "Dev", "amount": 5, "concurrency": 1})


class TestDependency(unittest.TestCase):
    def test_dependency(self):
        dependency = Dependency("e1", "n1", "n2")
        self.assertEqual(dependency.pair, ("n1", "n2"))
        self.assertTrue(dependency.touches("n1"))
        self.assertTrue(dependency.touches("n2"))
        self.assertFalse(dependency.touches("n3"))
        self.assertEqual(dependency.to_dict(), {"from": "n1", "to": "n2"})
        self.assertEqual(Dependency.from_dict("e1", {"from": "n1", "to": "n2"}).pair, ("n1", "n2"))

    def test_validation(self):
        with self.assertRaises(DependencyError):
            Dependency("", "n1", "n2")
        with self.assertRaises(DependencyError):
            Dependency("e1", None, "n2")


class TestProjectEnvelope(unittest.TestCase):
    def test_set_dates(self):
        envelope = ProjectEnvelope("2024-01-01")
        self.assertIsNone(envelope.duration)

        envelope.set_dates(end="2024-01-31")
        self.assertEqual(envelope.start, date(2024, 1, 1))
        self.assertEqual(envelope.duration, 30)

        envelope.set_dates(start=None)
        self.assertIsNone(envelope.start)
        self.assertEqual(envelope.end, date(2024, 1, 31))

    def test_invalid_dates_rejected(self):
        with self.assertRaises(EnvelopeError):
            ProjectEnvelope("2024-13-01")

        envelope = ProjectEnvelope("2024-01-01", "2024-01-31")
        with self.assertRaises(EnvelopeError):
            envelope.set_dates(start="2024-02-01", end="later")

        # Neither date was applied
        self.assertEqual(envelope.start, date(2024, 1, 1))
        self.assertEqual(envelope.end, date(2024, 1, 31))


if __name__ == "__main__":
    unittest.main()
