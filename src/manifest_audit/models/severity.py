"""Severity levels and helpers for ordering them."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """Severity level of a change.

    Levels are totally ordered: critical > high > medium > low > info.
    """

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Numeric rank used for ordering, higher is more severe."""
        return _RANKS[self]

    @classmethod
    def parse(cls, value: str | Severity) -> Severity:
        """Parse a severity string case-insensitively.

        Raises:
            ValueError: If the value is not a known severity
        """
        if isinstance(value, Severity):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Invalid severity {value!r}, expected one of: "
                + ", ".join(s.value for s in cls)
            ) from None

    def __str__(self) -> str:
        return self.value


_RANKS = {
    Severity.CRITICAL: 5,
    Severity.HIGH: 4,
    Severity.MEDIUM: 3,
    Severity.LOW: 2,
    Severity.INFO: 1,
}


def max_severity(severities: list[Severity]) -> Severity:
    """Return the highest severity of a list.

    An empty list yields medium.
    """
    if not severities:
        return Severity.MEDIUM
    return max(severities, key=lambda s: s.rank)


class SeverityDistribution(BaseModel):
    """Counts of changes per severity level."""

    critical: int = Field(default=0, description="Number of critical changes")
    high: int = Field(default=0, description="Number of high changes")
    medium: int = Field(default=0, description="Number of medium changes")
    low: int = Field(default=0, description="Number of low changes")
    info: int = Field(default=0, description="Number of info changes")

    def add(self, severity: Severity) -> None:
        """Increment the count for a severity."""
        name = Severity.parse(severity).value
        setattr(self, name, getattr(self, name) + 1)

    @property
    def total(self) -> int:
        """Total count across all levels."""
        return self.critical + self.high + self.medium + self.low + self.info

    def max(self) -> Severity:
        """Highest severity with a non-zero count, medium when empty."""
        for severity in Severity:
            if getattr(self, severity.value) > 0:
                return severity
        return Severity.MEDIUM
