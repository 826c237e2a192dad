from typing import Dict, Tuple


class DependencyError(Exception):
    """Exception raised for malformed dependency edges."""

    pass


class Dependency:
    """
    A directed "must not start before the predecessor ends" edge.

    `from_id` is the predecessor milestone and `to_id` the successor.
    """

    def __init__(self, id: str, from_id: str, to_id: str):
        if id is None or str(id).strip() == "":
            raise DependencyError("Dependency ID cannot be None or empty")
        if from_id is None or to_id is None:
            raise DependencyError("Dependency endpoints cannot be None")
        self.id = id
        self.from_id = from_id
        self.to_id = to_id

    @property
    def pair(self) -> Tuple[str, str]:
        return (self.from_id, self.to_id)

    def touches(self, milestone_id: str) -> bool:
        """Check whether the milestone is either endpoint of this edge."""
        return milestone_id in self.pair

    def to_dict(self) -> Dict[str, str]:
        return {"from": self.from_id, "to": self.to_id}

    @classmethod
    def from_dict(cls, id: str, data: Dict) -> "Dependency":
        return cls(id=id, from_id=data.get("from"), to_id=data.get("to"))

    def __repr__(self):
        return f"Dependency(id={self.id!r}, {self.from_id!r} -> {self.to_id!r})"
