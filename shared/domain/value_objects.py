"""
Common Value Objects

Value objects used across multiple domains:
- DateRange: Represents a stay (check-in to check-out)
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator

from shared.domain.base import ValueObject


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Date range value object

    Represents a range from start_date (inclusive) to end_date (exclusive).
    The end date is the checkout day: the last occupied night is
    end_date - 1 day. Used for stays, blockages and availability checks.
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        # Validation
        if not isinstance(self.start_date, date) or not isinstance(self.end_date, date):
            raise TypeError("DateRange bounds must be dates")
        if self.start_date >= self.end_date:
            raise ValueError(f"Start date ({self.start_date}) must be before end date ({self.end_date})")

    @classmethod
    def from_iso(cls, start: str, end: str) -> 'DateRange':
        """Build a range from two YYYY-MM-DD strings"""
        return cls(date.fromisoformat(start), date.fromisoformat(end))

    def overlaps_with(self, other: 'DateRange') -> bool:
        """
        Check if this range overlaps with another

        Two ranges overlap if they share a night.
        Note: end_date is exclusive, so adjacent ranges don't overlap.

        Examples:
            - DateRange(25, 28) overlaps with DateRange(27, 30) -> True
            - DateRange(25, 28) overlaps with DateRange(28, 31) -> False (adjacent)
        """
        if not isinstance(other, DateRange):
            raise TypeError("Can only check overlap with another DateRange")

        # Overlap formula: start1 < end2 AND start2 < end1
        return (self.start_date < other.end_date and
                other.start_date < self.end_date)

    def first_shared_night(self, other: 'DateRange') -> date | None:
        """Earliest night occupied by both ranges, or None when disjoint"""
        if not self.overlaps_with(other):
            return None
        return max(self.start_date, other.start_date)

    def contains(self, check_date: date) -> bool:
        """
        Check if a night is within this range

        Note: start_date is inclusive, end_date is exclusive
        """
        return self.start_date <= check_date < self.end_date

    def nights_iter(self) -> Iterator[date]:
        """Yield every occupied night (start_date .. end_date - 1)"""
        current = self.start_date
        while current < self.end_date:
            yield current
            current += timedelta(days=1)

    @property
    def nights(self) -> int:
        """Number of nights"""
        return (self.end_date - self.start_date).days

    def __len__(self) -> int:
        return self.nights

    def to_dict(self) -> dict:
        return {
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'DateRange':
        return cls.from_iso(data['start_date'], data['end_date'])

    @classmethod
    def spanning(cls, ranges) -> 'DateRange':
        """Smallest range covering every range given"""
        ranges = list(ranges)
        if not ranges:
            raise ValueError("Cannot span an empty set of ranges")
        return cls(
            min(r.start_date for r in ranges),
            max(r.end_date for r in ranges),
        )

    def __str__(self):
        return f"{self.start_date.strftime('%d.%m.%Y')} - {self.end_date.strftime('%d.%m.%Y')}"

    def __repr__(self):
        return f"DateRange({self.start_date}, {self.end_date})"
