"""
Reservation Domain Entities

Core business entities for the reservation domain:
- Room: Static catalogue entry with its bed count
- GuestRecord / RoomGuests: Guest composition, per person or per room
- BlockageInstance: Administrator blackout range, stored as one record
- ProposedHold: Short-lived hold on rooms while a guest completes a booking
- Booking: Main aggregate representing a reservation (possibly composite)
"""

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Mapping, Tuple

from shared.domain.base import Aggregate, ValueObject
from shared.domain.value_objects import DateRange

from apps.reservations.domain.errors import InvalidInputError

ID_ALPHABET = string.ascii_uppercase + string.digits


def generate_id(prefix: str, length: int) -> str:
    """Random identifier such as BK1A2B3C4D5E6F7"""
    return prefix + ''.join(secrets.choice(ID_ALPHABET) for _ in range(length))


def generate_booking_id() -> str:
    return generate_id('BK', 13)


def generate_blockage_id() -> str:
    return generate_id('BLK', 9)


def generate_group_id() -> str:
    return generate_id('GRP', 10)


def generate_proposal_id() -> str:
    return generate_id('PROP', 9)


class PersonType(Enum):
    ADULT = 'adult'
    CHILD = 'child'        # 3-17 years
    TODDLER = 'toddler'    # 0-3 years, free of charge


class GuestPriceType(Enum):
    UTIA = 'utia'          # Institute employees, discounted tier
    EXTERNAL = 'external'

    @classmethod
    def parse(cls, value, field_name: str = 'guest_type') -> 'GuestPriceType':
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidInputError(field_name, f"Unknown guest price type: {value!r}")


def _check_count(value: int, field_name: str):
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise InvalidInputError(field_name, f"{field_name} must be a non-negative integer, got {value!r}")


@dataclass(frozen=True)
class Room(ValueObject):
    id: str
    name: str
    bed_count: int

    def __post_init__(self):
        if self.bed_count < 1:
            raise InvalidInputError('bed_count', f"Room {self.id} must have at least one bed")


@dataclass(frozen=True)
class GuestRecord(ValueObject):
    """
    One named guest

    Belongs to exactly one booking and, within a composite booking, to
    exactly one room.
    """
    person_type: PersonType
    guest_price_type: GuestPriceType = GuestPriceType.EXTERNAL
    room_id: str | None = None
    first_name: str = ''
    last_name: str = ''

    @property
    def is_paying(self) -> bool:
        """Toddlers never contribute to price"""
        return self.person_type is not PersonType.TODDLER

    def to_dict(self) -> dict:
        return {
            'person_type': self.person_type.value,
            'guest_price_type': self.guest_price_type.value,
            'room_id': self.room_id,
            'first_name': self.first_name,
            'last_name': self.last_name,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> 'GuestRecord':
        try:
            person_type = PersonType(data.get('person_type', 'adult'))
        except ValueError:
            raise InvalidInputError('person_type', f"Unknown person type: {data.get('person_type')!r}")
        room_id = data.get('room_id')
        return cls(
            person_type=person_type,
            guest_price_type=GuestPriceType.parse(
                data.get('guest_price_type', 'external'), 'guest_price_type'
            ),
            room_id=str(room_id) if room_id is not None else None,
            first_name=data.get('first_name', ''),
            last_name=data.get('last_name', ''),
        )


@dataclass(frozen=True)
class RoomGuests(ValueObject):
    """Guest counters for one room of a composite booking"""
    adults: int = 0
    children: int = 0
    toddlers: int = 0
    guest_type: GuestPriceType | None = None

    def __post_init__(self):
        _check_count(self.adults, 'adults')
        _check_count(self.children, 'children')
        _check_count(self.toddlers, 'toddlers')

    @property
    def paying(self) -> int:
        return self.adults + self.children

    def to_dict(self) -> dict:
        return {
            'adults': self.adults,
            'children': self.children,
            'toddlers': self.toddlers,
            'guest_type': self.guest_type.value if self.guest_type else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> 'RoomGuests':
        guest_type = data.get('guest_type')
        return cls(
            adults=data.get('adults', 0),
            children=data.get('children', 0),
            toddlers=data.get('toddlers', 0),
            guest_type=GuestPriceType.parse(guest_type) if guest_type else None,
        )


@dataclass(frozen=True)
class BlockageInstance(ValueObject):
    """
    Administrator blackout range

    One record covers the whole range. An empty room_ids tuple blocks
    every room of the property.
    """
    blockage_id: str
    dates: DateRange
    room_ids: Tuple[str, ...] = ()
    reason: str = ''

    @property
    def is_property_wide(self) -> bool:
        return not self.room_ids

    def covers_room(self, room_id: str) -> bool:
        return self.is_property_wide or room_id in self.room_ids

    def blocks(self, room_id: str, night) -> bool:
        return self.covers_room(room_id) and self.dates.contains(night)


@dataclass(frozen=True)
class ProposedHold(ValueObject):
    """
    Temporary hold placed while a guest fills in the booking form

    Occupies its rooms like a booking until expires_at. Holds of the
    guest's own session never conflict with that session's requests.
    """
    proposal_id: str
    session_id: str
    rooms: Tuple[str, ...]
    dates: DateRange
    created_at: datetime
    expires_at: datetime
    guests: RoomGuests = field(default_factory=RoomGuests)
    guest_type: GuestPriceType = GuestPriceType.EXTERNAL

    def __post_init__(self):
        if not self.session_id:
            raise InvalidInputError('session_id', "A hold needs a session id")
        if not self.rooms:
            raise InvalidInputError('rooms', "A hold needs at least one room")
        if self.expires_at <= self.created_at:
            raise InvalidInputError('expires_at', "A hold must expire after it was created")

    def is_active(self, now: datetime) -> bool:
        return self.expires_at > now

    def occupies(self, room_id: str, night) -> bool:
        return room_id in self.rooms and self.dates.contains(night)


@dataclass(kw_only=True, eq=False)
class Booking(Aggregate):
    """
    Booking Aggregate Root

    Key invariants:
    - rooms is non-empty and has no duplicates
    - per_room_dates, when present, has an entry for every room; when
      absent all rooms share `dates`
    - is_bulk_booking is explicit, never inferred from the room count
    - total_price is historical (what was charged); prices shown or
      summed are always recomputed from the current rate configuration
    """

    rooms: Tuple[str, ...]
    dates: DateRange
    group_id: str | None = None
    per_room_dates: Dict[str, DateRange] = field(default_factory=dict)
    per_room_guests: Dict[str, RoomGuests] = field(default_factory=dict)
    guest_names: Tuple[GuestRecord, ...] = ()

    # Booking-level counters, used when no per-room detail is available
    guest_type: GuestPriceType = GuestPriceType.EXTERNAL
    adults: int = 0
    children: int = 0
    toddlers: int = 0

    is_bulk_booking: bool = False
    paid: bool = False
    total_price: Decimal = Decimal('0')

    # Contact
    name: str = ''
    email: str = ''
    notes: str = ''

    def __post_init__(self):
        self.rooms = tuple(str(room_id) for room_id in self.rooms)
        self.guest_names = tuple(self.guest_names)
        self.per_room_dates = {str(k): v for k, v in (self.per_room_dates or {}).items()}
        self.per_room_guests = {str(k): v for k, v in (self.per_room_guests or {}).items()}
        self.guest_type = GuestPriceType.parse(self.guest_type)

        if not self.rooms:
            raise InvalidInputError('rooms', "A booking needs at least one room")
        if len(set(self.rooms)) != len(self.rooms):
            raise InvalidInputError('rooms', f"Duplicate rooms in booking {self.id}")

        if self.per_room_dates:
            missing = [r for r in self.rooms if r not in self.per_room_dates]
            if missing:
                raise InvalidInputError(
                    'per_room_dates',
                    f"Per-room dates missing for rooms {', '.join(missing)}"
                )
            extra = [r for r in self.per_room_dates if r not in self.rooms]
            if extra:
                raise InvalidInputError(
                    'per_room_dates',
                    f"Per-room dates given for rooms not in booking: {', '.join(extra)}"
                )

        extra_guests = [r for r in self.per_room_guests if r not in self.rooms]
        if extra_guests:
            raise InvalidInputError(
                'per_room_guests',
                f"Per-room guests given for rooms not in booking: {', '.join(extra_guests)}"
            )

        for guest in self.guest_names:
            if guest.room_id is not None and guest.room_id not in self.rooms:
                raise InvalidInputError(
                    'guest_names',
                    f"Guest assigned to room {guest.room_id} which is not part of the booking"
                )

        _check_count(self.adults, 'adults')
        _check_count(self.children, 'children')
        _check_count(self.toddlers, 'toddlers')

    @property
    def is_composite(self) -> bool:
        """Rooms carry their own date ranges"""
        return bool(self.per_room_dates)

    def range_for(self, room_id: str) -> DateRange:
        """Date range occupied in one room of this booking"""
        return self.per_room_dates.get(room_id, self.dates)

    def occupied_ranges(self) -> Dict[str, DateRange]:
        return {room_id: self.range_for(room_id) for room_id in self.rooms}

    def occupies(self, room_id: str, night) -> bool:
        return room_id in self.rooms and self.range_for(room_id).contains(night)

    @property
    def span(self) -> DateRange:
        """Earliest check-in to latest checkout across all rooms"""
        return DateRange.spanning(self.occupied_ranges().values())

    def guests_in_room(self, room_id: str) -> Tuple[GuestRecord, ...]:
        """
        Guest records assigned to a room

        In a single-room booking, records without a room belong to that room.
        """
        single_room = len(self.rooms) == 1
        return tuple(
            g for g in self.guest_names
            if g.room_id == room_id or (single_room and g.room_id is None)
        )

    def __str__(self):
        return f"Booking {self.id} ({', '.join(self.rooms)}, {self.dates})"

    def __repr__(self):
        return (
            f"Booking(id={self.id}, group_id={self.group_id}, rooms={self.rooms}, "
            f"dates={self.dates!r}, bulk={self.is_bulk_booking})"
        )
