from datetime import date
from typing import Optional, Union

from pert.domain.milestone import DateWindow
from pert.utils.dates import parse_date


class EnvelopeError(Exception):
    """Exception raised for invalid project dates."""

    pass


class ProjectEnvelope:
    """
    The project's own start/end dates.

    It mirrors a milestone's date fields: the user may pin a start and an
    end, and the propagator computes how late the project may start and how
    early it may end given the milestones at the edges of the network.
    """

    def __init__(
        self,
        start: Union[date, str, None] = None,
        end: Union[date, str, None] = None,
    ):
        """
        Raises:
            EnvelopeError: If either date is invalid
        """
        self.start = self._coerce_date(start, "start")
        self.end = self._coerce_date(end, "end")
        self.start_window = DateWindow()
        self.end_window = DateWindow()

    @staticmethod
    def _coerce_date(value, field):
        try:
            return parse_date(value)
        except ValueError as e:
            raise EnvelopeError(f"Invalid project {field} date: {value!r}") from e

    def set_dates(self, start=..., end=...):
        """
        Update the pinned dates; arguments left out are unchanged.

        Raises:
            EnvelopeError: If either date is invalid; nothing is changed then
        """
        if start is not ...:
            start = self._coerce_date(start, "start")
        if end is not ...:
            end = self._coerce_date(end, "end")

        if start is not ...:
            self.start = start
        if end is not ...:
            self.end = end

    def reset_windows(self):
        self.start_window.reset()
        self.end_window.reset()

    @property
    def duration(self) -> Optional[int]:
        if self.start is None or self.end is None:
            return None
        return (self.end - self.start).days
