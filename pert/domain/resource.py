from typing import Dict, Optional, Union


class ResourceError(ValueError):
    """Exception raised for invalid resource definitions."""

    pass


class Resource:
    """
    Represents a resource that milestones consume.

    The amount is the total quantity available to the whole project (None
    means unlimited). The concurrency is the maximum number of milestones
    that may use the resource at the same time (None or 0 means uncapped).
    """

    FIELDS = ("name", "amount", "concurrency")

    def __init__(
        self,
        id: str,
        name: Optional[str] = None,
        amount: Optional[float] = None,
        concurrency: Optional[int] = None,
    ):
        """
        Initialize a resource.

        Args:
            id: Unique identifier for the resource
            name: Human-readable name (None while the resource is being defined)
            amount: Total available quantity, None for unlimited
            concurrency: Cap on simultaneously active milestones, None for uncapped;
                fractions are truncated to an integer

        Raises:
            ResourceError: If any input validation fails
        """
        if id is None or str(id).strip() == "":
            raise ResourceError("Resource ID cannot be None or empty")
        self.id = id

        if name is not None and (not isinstance(name, str) or name == ""):
            raise ResourceError("Resource name must be a non-empty string")
        self.name = name

        self.amount = self._validate_amount(amount)
        self.concurrency = self._validate_concurrency(concurrency)

    @staticmethod
    def _validate_amount(amount):
        if amount is None:
            return None
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise ResourceError("Resource amount must be a number")
        if amount < 0:
            raise ResourceError("Resource amount cannot be negative")
        return amount

    @staticmethod
    def _validate_concurrency(concurrency):
        if concurrency is None:
            return None
        if isinstance(concurrency, bool) or not isinstance(concurrency, (int, float)):
            raise ResourceError("Resource concurrency must be a number")
        if not 0 <= concurrency < float("inf"):
            raise ResourceError("Resource concurrency must be a non-negative number")
        # Fractional caps are truncated, as update() does
        return int(concurrency)

    @property
    def is_unlimited(self) -> bool:
        return self.amount is None

    @property
    def is_concurrency_capped(self) -> bool:
        # An empty concurrency field is stored as 0 and means "no cap"
        return bool(self.concurrency)

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def update(self, field: str, value: Union[str, float, int, None]):
        """
        Update a single field, coercing numeric input like a form field would.

        Numeric fields accept strings; unparsable or negative input becomes 0.

        Args:
            field: One of "name", "amount", "concurrency"
            value: New value

        Raises:
            ResourceError: If the field is unknown or the name is invalid
        """
        if field not in self.FIELDS:
            raise ResourceError(
                f"Unknown resource field: {field}. Must be one of {list(self.FIELDS)}"
            )

        if field == "name":
            if not value or not isinstance(value, str):
                raise ResourceError("Resource name must be a non-empty string")
            self.name = value
        elif field == "amount":
            self.amount = self._coerce_number(value)
        else:
            self.concurrency = int(self._coerce_number(value))

    @staticmethod
    def _coerce_number(value):
        if value is None or value == "":
            return 0
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0
        if number != number or number == float("inf"):
            return 0
        number = max(0.0, number)
        return int(number) if number.is_integer() else number

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "amount": self.amount,
            "concurrency": self.concurrency,
        }

    @classmethod
    def from_dict(cls, id: str, data: Dict) -> "Resource":
        return cls(
            id=id,
            name=data.get("name"),
            amount=data.get("amount"),
            concurrency=data.get("concurrency"),
        )

    def __repr__(self):
        return f"Resource(id={self.id!r}, name={self.name!r}, amount={self.amount}, concurrency={self.concurrency})"
