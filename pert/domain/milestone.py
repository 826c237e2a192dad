from datetime import date
from typing import Dict, Optional, Union

from pert.utils.dates import parse_date, format_date


class MilestoneError(Exception):
    """Exception raised for errors in the Milestone class."""

    pass


class DateWindow:
    """
    A feasible [min, max] window for one of a milestone's dates.

    Either bound may be None, meaning the engine found no constraint on
    that side.
    """

    def __init__(self, min: Optional[date] = None, max: Optional[date] = None):
        self.min = min
        self.max = max

    def contains(self, value: Optional[date]) -> bool:
        """Check whether a date lies inside the window (unset dates always do)."""
        if value is None:
            return True
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True

    def is_consistent(self) -> bool:
        """False when both bounds are set and min is after max."""
        return self.min is None or self.max is None or self.min <= self.max

    def reset(self):
        self.min = None
        self.max = None

    def to_dict(self) -> Dict[str, str]:
        return {"min": format_date(self.min), "max": format_date(self.max)}

    def __eq__(self, other):
        if not isinstance(other, DateWindow):
            return NotImplemented
        return self.min == other.min and self.max == other.max

    def __repr__(self):
        return f"DateWindow(min={format_date(self.min) or None}, max={format_date(self.max) or None})"


class Milestone:
    """
    Represents a milestone (a node of the PERT network).

    A milestone has a name, optional user-pinned start/end dates, a critical
    highlight flag and a quantity of each resource it consumes. The computed
    start/end windows are written by the date constraint propagator and never
    replace the pinned dates.
    """

    # Snapshot keys the engine understands; anything else is kept in `extra`
    KNOWN_FIELDS = ("name", "start", "end", "critical", "resources")

    def __init__(
        self,
        id: str,
        name: str,
        start: Union[date, str, None] = None,
        end: Union[date, str, None] = None,
        critical: bool = False,
        resources: Optional[Dict[str, float]] = None,
        extra: Optional[Dict] = None,
    ):
        """
        Initialize a new Milestone.

        Args:
            id: Unique identifier of the milestone within its project
            name: Display name, must be non-empty
            start: Pinned start date (date, ISO string, or None/"" when unset)
            end: Pinned end date (date, ISO string, or None/"" when unset)
            critical: Whether the user flagged the milestone as critical
            resources: Mapping of resource id to allocated quantity
            extra: Opaque fields carried through snapshots (e.g. layout)

        Raises:
            MilestoneError: If any input validation fails
        """
        if id is None or str(id).strip() == "":
            raise MilestoneError("Milestone ID cannot be None or empty")
        self.id = id

        self._name = None
        self.name = name

        self._start = None
        self._end = None
        self.start = start
        self.end = end

        self.critical = bool(critical)

        self.resource_allocations = {}
        for resource_id, quantity in (resources or {}).items():
            self.set_allocation(resource_id, quantity)

        self.extra = dict(extra) if extra else {}

        # Computed by the propagator
        self.start_window = DateWindow()
        self.end_window = DateWindow()

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str):
        if not value or not isinstance(value, str):
            raise MilestoneError("Milestone name cannot be empty")
        self._name = value

    @property
    def start(self) -> Optional[date]:
        """Pinned start date."""
        return self._start

    @start.setter
    def start(self, value):
        self._start = self.coerce_date(value, "start")

    @property
    def end(self) -> Optional[date]:
        """Pinned end date."""
        return self._end

    @end.setter
    def end(self, value):
        self._end = self.coerce_date(value, "end")

    @staticmethod
    def coerce_date(value, field):
        try:
            return parse_date(value)
        except ValueError as e:
            raise MilestoneError(f"Invalid {field} date: {value!r}") from e

    @property
    def effective_date(self) -> Optional[date]:
        """Pinned start, else pinned end (used to order milestones by time)."""
        return self._start or self._end

    @property
    def effective_start(self) -> Optional[date]:
        """Pinned start, else the earliest allowed start."""
        return self._start or self.start_window.min

    def set_allocation(self, resource_id: str, quantity: float):
        """
        Set the quantity of a resource consumed by this milestone.

        Raises:
            MilestoneError: If the quantity is not a non-negative number
        """
        if isinstance(quantity, bool) or not isinstance(quantity, (int, float)):
            raise MilestoneError(
                f"Allocation of {resource_id} must be a number, got {quantity!r}"
            )
        if quantity < 0:
            raise MilestoneError(f"Allocation of {resource_id} cannot be negative")
        self.resource_allocations[resource_id] = quantity

    def get_allocation(self, resource_id: str) -> float:
        return self.resource_allocations.get(resource_id, 0)

    def reset_windows(self):
        self.start_window.reset()
        self.end_window.reset()

    def to_dict(self) -> Dict:
        """Snapshot representation (the "nodes" entry of a project snapshot)."""
        data = dict(self.extra)
        data.update(
            {
                "name": self.name,
                "start": format_date(self.start),
                "end": format_date(self.end),
                "critical": self.critical,
                "resources": dict(self.resource_allocations),
            }
        )
        return data

    @classmethod
    def from_dict(cls, id: str, data: Dict) -> "Milestone":
        extra = {k: v for k, v in data.items() if k not in cls.KNOWN_FIELDS}
        return cls(
            id=id,
            name=data.get("name"),
            start=data.get("start"),
            end=data.get("end"),
            critical=data.get("critical", False),
            resources=data.get("resources") or {},
            extra=extra,
        )

    def __repr__(self):
        return f"Milestone(id={self.id!r}, name={self.name!r})"
