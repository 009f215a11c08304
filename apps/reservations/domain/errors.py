"""
Reservation Domain Errors

Typed errors produced by the availability and pricing engine. Validation
hands them back inside a ValidationResult so callers can render specific
guidance; calculation raises them before any arithmetic runs.
"""

from dataclasses import dataclass
from datetime import date
from typing import Tuple


class ReservationError(Exception):
    """Base class for all reservation errors"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {
            'error': self.__class__.__name__,
            'detail': self.message,
        }


class InvalidInputError(ReservationError):
    """Raised when a request or calculation input violates a precondition"""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        return {**super().to_dict(), 'field': self.field}


class ConflictError(ReservationError):
    """
    A requested room/night is already taken

    Exactly one of booking_id / blockage_id / proposal_id identifies what
    holds the night.
    """

    status_code = 409

    def __init__(
        self,
        room_id: str,
        date: date,
        booking_id: str | None = None,
        blockage_id: str | None = None,
        proposal_id: str | None = None,
    ):
        if blockage_id:
            reason = f"blocked by {blockage_id}"
        elif proposal_id:
            reason = f"held by {proposal_id}"
        else:
            reason = f"booked by {booking_id}"
        super().__init__(f"Room {room_id} is not available on {date.isoformat()} ({reason})")
        self.room_id = room_id
        self.date = date
        self.booking_id = booking_id
        self.blockage_id = blockage_id
        self.proposal_id = proposal_id

    @property
    def is_blockage(self) -> bool:
        return self.blockage_id is not None

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            'room_id': self.room_id,
            'date': self.date.isoformat(),
            'booking_id': self.booking_id,
            'blockage_id': self.blockage_id,
            'proposal_id': self.proposal_id,
        }


class CapacityError(ReservationError):
    """Assigned guests exceed the beds of a room (or of the whole property)"""

    def __init__(self, room_id: str | None, guests: int, beds: int):
        where = f"room {room_id}" if room_id else "the property"
        super().__init__(f"{guests} guests exceed the {beds} beds of {where}")
        self.room_id = room_id
        self.guests = guests
        self.beds = beds

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            'room_id': self.room_id,
            'guests': self.guests,
            'beds': self.beds,
        }


class ConfigurationError(ReservationError):
    """
    The rate configuration lacks a field needed for a calculation

    Never substituted with zero: a zero-priced booking is worse than a
    visible failure.
    """

    status_code = 500

    def __init__(self, missing_field: str, message: str | None = None):
        super().__init__(message or f"Rate configuration is missing '{missing_field}'")
        self.missing_field = missing_field

    def to_dict(self) -> dict:
        return {**super().to_dict(), 'missing_field': self.missing_field}


class NotFoundError(ReservationError):
    status_code = 404

    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} {resource_id} not found")
        self.resource = resource
        self.resource_id = resource_id

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            'resource': self.resource,
            'resource_id': self.resource_id,
        }


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a request: empty errors means accepted"""

    errors: Tuple[ReservationError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def error(self) -> ReservationError | None:
        """First error found, the one callers usually surface"""
        return self.errors[0] if self.errors else None

    @property
    def conflicts(self) -> Tuple[ConflictError, ...]:
        return tuple(e for e in self.errors if isinstance(e, ConflictError))

    def merge(self, other: 'ValidationResult') -> 'ValidationResult':
        return ValidationResult(self.errors + other.errors)

    def raise_first(self):
        """Raise the first error; used by write paths that must roll back"""
        if self.errors:
            raise self.errors[0]

    def __bool__(self) -> bool:
        return self.ok
