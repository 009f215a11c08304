"""
Reservation Domain Events

Events that represent things that have happened in the reservation domain.
These are published after successful transaction commits.

skip_notification is set by administrator edits that must not reach the
guest; subscribers sending mail honour it.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Tuple

from shared.domain.base import DomainEvent
from shared.domain.value_objects import DateRange


# ===== Booking Events =====

@dataclass(kw_only=True)
class BookingCreated(DomainEvent):
    """
    Event: A new booking (or a new interval of a group) was stored

    Triggers:
    - Send confirmation email to the contact
    """
    booking_id: str
    group_id: str | None
    rooms: Tuple[str, ...]
    dates: DateRange
    total_price: Decimal
    email: str = ''
    skip_notification: bool = False

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            'booking_id': self.booking_id,
            'group_id': self.group_id,
            'rooms': list(self.rooms),
            'dates': self.dates.to_dict(),
            'total_price': str(self.total_price),
            'skip_notification': self.skip_notification,
        }


@dataclass(kw_only=True)
class BookingUpdated(DomainEvent):
    """
    Event: One interval was edited

    Siblings in the same group are untouched and emit nothing.
    """
    booking_id: str
    group_id: str | None
    changed_fields: List[str] = field(default_factory=list)
    total_price: Decimal = Decimal('0')
    email: str = ''
    skip_notification: bool = False

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            'booking_id': self.booking_id,
            'group_id': self.group_id,
            'changed_fields': list(self.changed_fields),
            'total_price': str(self.total_price),
            'skip_notification': self.skip_notification,
        }


@dataclass(kw_only=True)
class BookingDeleted(DomainEvent):
    """Event: A booking was removed; group_dissolved when it was the last member"""
    booking_id: str
    group_id: str | None
    group_dissolved: bool = False
    email: str = ''
    skip_notification: bool = False


# ===== Blockage Events =====

@dataclass(kw_only=True)
class BlockageCreated(DomainEvent):
    blockage_id: str
    room_ids: Tuple[str, ...]
    dates: DateRange
    reason: str = ''


@dataclass(kw_only=True)
class BlockageDeleted(DomainEvent):
    blockage_id: str


# ===== Settings Events =====

@dataclass(kw_only=True)
class RatesUpdated(DomainEvent):
    """
    Event: The rate table changed

    Stored booking totals stay as charged; every price shown afterwards is
    recomputed under the new table.
    """
    rates: dict
