"""
Availability Engine

Decides per room and night whether the property is free, booked, held or
blocked, and validates new or edited reservations against blockages,
existing bookings and unexpired proposed holds.

The engine works on a snapshot (rooms, blockages, bookings, holds) taken
when it is built. It does not serialise writers: callers hold
`storage.lock_rooms(...)` around validate + persist.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Sequence
import logging

from shared.domain.value_objects import DateRange

from apps.reservations.domain.blockages import BlockageRegistry
from apps.reservations.domain.entities import Booking, PersonType, ProposedHold, Room, RoomGuests
from apps.reservations.domain.errors import (
    CapacityError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
    ReservationError,
    ValidationResult,
)
from apps.reservations.domain.storage import AbstractStorage

logger = logging.getLogger(__name__)

DEFAULT_MAX_ADVANCE_DAYS = 730


class RoomStatus(Enum):
    FREE = 'free'
    BOOKED = 'booked'
    PROPOSED = 'proposed'
    BLOCKED = 'blocked'


@dataclass(frozen=True)
class Availability:
    room_id: str
    date: date
    status: RoomStatus
    booking_id: str | None = None
    blockage_id: str | None = None
    proposal_id: str | None = None

    @property
    def is_free(self) -> bool:
        return self.status is RoomStatus.FREE

    def to_dict(self) -> dict:
        return {
            'room_id': self.room_id,
            'date': self.date.isoformat(),
            'status': self.status.value,
            'booking_id': self.booking_id,
            'blockage_id': self.blockage_id,
            'proposal_id': self.proposal_id,
        }


class AvailabilityEngine:
    """
    Occupancy and conflict detection

    Usage:
        engine = AvailabilityEngine.from_storage(storage, now=now, exclude_session=session_id)
        result = engine.validate_request(['12'], DateRange(start, end))
        if not result.ok:
            conflict = result.error   # ConflictError(room_id, date, ...)

    Holds expired at `now`, and holds of `exclude_session`, are ignored.
    """

    def __init__(
        self,
        rooms: Iterable[Room],
        blockages: BlockageRegistry,
        bookings: Iterable[Booking],
        holds: Iterable[ProposedHold] = (),
        now: datetime | None = None,
        exclude_session: str | None = None,
    ):
        now = now or datetime.now(timezone.utc)
        self.rooms: Dict[str, Room] = {room.id: room for room in rooms}
        self._blockages = tuple(blockages.all())
        self._bookings = tuple(bookings)
        self._holds = tuple(
            hold for hold in holds
            if hold.is_active(now) and (exclude_session is None or hold.session_id != exclude_session)
        )

    @classmethod
    def from_storage(
        cls,
        storage: AbstractStorage,
        now: datetime | None = None,
        exclude_session: str | None = None,
    ) -> 'AvailabilityEngine':
        return cls(
            storage.get_rooms(),
            BlockageRegistry(storage),
            storage.get_bookings(),
            storage.get_holds(),
            now=now,
            exclude_session=exclude_session,
        )

    # ----- queries -----

    def check_availability(
        self,
        room_id: str,
        night: date,
        exclude_booking_id: str | None = None,
    ) -> Availability:
        """
        Status of one room on one night

        A blockage wins over a booking on the same night, and a booking over
        a hold. Bookings made before a blockage was created stay valid; they
        only show as blocked.
        """
        if room_id not in self.rooms:
            raise NotFoundError('Room', room_id)

        for blockage in self._blockages:
            if blockage.blocks(room_id, night):
                return Availability(room_id, night, RoomStatus.BLOCKED, blockage_id=blockage.blockage_id)

        for booking in self._bookings:
            if booking.id != exclude_booking_id and booking.occupies(room_id, night):
                return Availability(room_id, night, RoomStatus.BOOKED, booking_id=booking.id)

        for hold in self._holds:
            if hold.occupies(room_id, night):
                return Availability(room_id, night, RoomStatus.PROPOSED, proposal_id=hold.proposal_id)

        return Availability(room_id, night, RoomStatus.FREE)

    def occupancy(
        self,
        dates: DateRange,
        room_ids: Sequence[str] | None = None,
    ) -> Dict[str, Dict[date, RoomStatus]]:
        """Occupancy grid: room -> night -> status"""
        room_ids = list(room_ids) if room_ids else sorted(self.rooms)
        return {
            room_id: {
                night: self.check_availability(room_id, night).status
                for night in dates.nights_iter()
            }
            for room_id in room_ids
        }

    # ----- validation -----

    def _first_conflict(
        self,
        room_id: str,
        requested: DateRange,
        exclude_booking_id: str | None,
    ) -> ConflictError | None:
        """Earliest conflicting night in one room; ties go blockage, booking, hold"""
        best = None

        for blockage in self._blockages:
            if not blockage.covers_room(room_id):
                continue
            night = requested.first_shared_night(blockage.dates)
            if night is not None and (best is None or (night, 0) < best[:2]):
                best = (night, 0, ConflictError(room_id, night, blockage_id=blockage.blockage_id))

        for booking in self._bookings:
            if booking.id == exclude_booking_id or room_id not in booking.rooms:
                continue
            night = requested.first_shared_night(booking.range_for(room_id))
            if night is not None and (best is None or (night, 1) < best[:2]):
                best = (night, 1, ConflictError(room_id, night, booking_id=booking.id))

        for hold in self._holds:
            if room_id not in hold.rooms:
                continue
            night = requested.first_shared_night(hold.dates)
            if night is not None and (best is None or (night, 2) < best[:2]):
                best = (night, 2, ConflictError(room_id, night, proposal_id=hold.proposal_id))

        return best[2] if best else None

    def check_capacity(self, per_room_guests: Mapping[str, RoomGuests]) -> List[CapacityError]:
        """Paying guests per room must fit its beds; toddlers need no bed"""
        errors = []
        for room_id, guests in per_room_guests.items():
            room = self.rooms.get(room_id)
            if room is not None and guests.paying > room.bed_count:
                errors.append(CapacityError(room_id, guests.paying, room.bed_count))
        return errors

    def validate_request(
        self,
        rooms: Sequence[str],
        dates: DateRange | Mapping[str, DateRange],
        exclude_booking_id: str | None = None,
        per_room_guests: Mapping[str, RoomGuests] | None = None,
    ) -> ValidationResult:
        """
        Validate a reservation request

        `dates` is either one range shared by all rooms or a per-room
        mapping (composite request). Every room is checked independently
        and contributes at most its first conflict; the request is rejected
        if any room conflicts. exclude_booking_id skips the booking being
        edited.
        """
        errors: List[ReservationError] = []
        rooms = [str(r) for r in rooms]
        if not rooms:
            return ValidationResult((InvalidInputError('rooms', "At least one room is required"),))

        for room_id in rooms:
            if room_id not in self.rooms:
                errors.append(InvalidInputError('rooms', f"Unknown room {room_id}"))
                continue

            if isinstance(dates, DateRange):
                requested = dates
            elif room_id in dates:
                requested = dates[room_id]
            else:
                errors.append(InvalidInputError('per_room_dates', f"Missing dates for room {room_id}"))
                continue

            conflict = self._first_conflict(room_id, requested, exclude_booking_id)
            if conflict is not None:
                logger.info(f"Conflict: {conflict.message}")
                errors.append(conflict)

        if per_room_guests:
            errors.extend(self.check_capacity(per_room_guests))

        return ValidationResult(tuple(errors))

    def validate_booking(self, booking: Booking, exclude_self: bool = True) -> ValidationResult:
        """
        Validate a full booking: conflicts plus capacity

        Capacity is enforced the same way for every kind of booking: per
        room when guests are assigned to rooms, against the beds of the
        booked rooms otherwise, and against the whole property for bulk.
        """
        errors: List[ReservationError] = []
        single_room = len(booking.rooms) == 1

        if not booking.is_bulk_booking and not single_room:
            if any(g.room_id is None for g in booking.guest_names):
                errors.append(InvalidInputError(
                    'guest_names',
                    "Every guest of a multi-room booking must be assigned to a room"
                ))

        per_room_guests = {}
        if not booking.is_bulk_booking:
            for room_id in booking.rooms:
                records = booking.guests_in_room(room_id)
                if records:
                    per_room_guests[room_id] = RoomGuests(
                        adults=sum(1 for g in records if g.person_type is PersonType.ADULT),
                        children=sum(1 for g in records if g.person_type is PersonType.CHILD),
                        toddlers=sum(1 for g in records if g.person_type is PersonType.TODDLER),
                    )
                elif room_id in booking.per_room_guests:
                    per_room_guests[room_id] = booking.per_room_guests[room_id]

        if booking.is_bulk_booking:
            missing = sorted(set(self.rooms) - set(booking.rooms))
            if missing:
                errors.append(InvalidInputError(
                    'rooms',
                    f"A bulk booking must include every room; missing {', '.join(missing)}"
                ))
            if booking.guest_names:
                paying = sum(1 for g in booking.guest_names if g.is_paying)
            else:
                paying = booking.adults + booking.children
            beds = sum(room.bed_count for room in self.rooms.values())
            if paying > beds:
                errors.append(CapacityError(None, paying, beds))
        elif not per_room_guests:
            paying = booking.adults + booking.children
            beds = sum(self.rooms[r].bed_count for r in booking.rooms if r in self.rooms)
            if paying > beds:
                errors.append(CapacityError(None, paying, beds))

        result = self.validate_request(
            booking.rooms,
            booking.per_room_dates or booking.dates,
            exclude_booking_id=booking.id if exclude_self else None,
            per_room_guests=per_room_guests,
        )
        return ValidationResult(tuple(errors)).merge(result)

    @staticmethod
    def validate_stay_window(
        dates: DateRange,
        today: date,
        is_admin: bool = False,
        max_advance_days: int = DEFAULT_MAX_ADVANCE_DAYS,
    ) -> ValidationResult:
        """
        Booking window rules

        Check-in may not be in the past (administrators may back-date) and
        may not be more than max_advance_days ahead.
        """
        errors: List[ReservationError] = []
        if not is_admin and dates.start_date < today:
            errors.append(InvalidInputError('start_date', "Cannot book in the past"))
        if dates.start_date > today + timedelta(days=max_advance_days):
            errors.append(InvalidInputError(
                'start_date',
                f"Bookings cannot start more than {max_advance_days} days ahead"
            ))
        return ValidationResult(tuple(errors))
