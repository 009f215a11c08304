"""
Reservation Command Handlers

These are the use cases for the reservation domain.
They orchestrate domain operations within transactions.

Commands:
- CreateBookingCommand: Create a booking, optionally as an interval of a group
- EditBookingCommand: Edit one booking (one interval of a group)
- DeleteBookingCommand: Delete one booking
- CreateBlockageCommand: Block rooms for a date range
- DeleteBlockageCommand: Remove a blockage
- UpdateRatesCommand: Replace the rate table
- UpdateChristmasCommand: Replace the Christmas periods and access codes
- CreateHoldCommand: Hold rooms while a guest completes a booking
- ReleaseHoldCommand: Drop one hold, or every hold of a session

Every write runs as: open unit of work -> lock the affected rooms ->
validate -> price -> persist -> collect events. A failed validation raises
its first error inside the unit of work, so nothing is committed and no
event is published.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Dict, Mapping, Tuple
import logging

from shared.application.uow import AbstractUnitOfWork, DjangoUnitOfWork
from shared.domain.value_objects import DateRange

from apps.reservations.domain.availability import DEFAULT_MAX_ADVANCE_DAYS, AvailabilityEngine
from apps.reservations.domain.blockages import BlockageRegistry
from apps.reservations.domain.christmas import ChristmasPolicy
from apps.reservations.domain.entities import (
    Booking,
    GuestPriceType,
    GuestRecord,
    ProposedHold,
    RoomGuests,
    generate_booking_id,
)
from apps.reservations.domain.errors import (
    ConfigurationError,
    InvalidInputError,
    NotFoundError,
    ValidationResult,
)
from apps.reservations.domain.events import (
    BlockageCreated,
    BlockageDeleted,
    BookingCreated,
    BookingDeleted,
    BookingUpdated,
    RatesUpdated,
)
from apps.reservations.domain.groups import BookingGroup, BookingGroupManager, BookingOutcome
from apps.reservations.domain.holds import DEFAULT_HOLD_MINUTES, HoldRegistry
from apps.reservations.domain.rates import RateConfig
from apps.reservations.domain.storage import AbstractStorage

logger = logging.getLogger(__name__)

UnitOfWorkFactory = Callable[[], AbstractUnitOfWork]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Edits touching these re-check the Christmas rules
CHRISTMAS_FIELDS = frozenset({'dates', 'per_room_dates', 'rooms', 'is_bulk_booking', 'guest_type'})


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    """
    Command to create a new booking

    With group_id set the booking becomes a new interval of that group
    (founding it when the group has no members yet). Holds of session_id
    do not conflict with the booking and are released once it is stored.
    """
    rooms: Tuple[str, ...]
    dates: DateRange
    per_room_dates: Dict[str, DateRange] = field(default_factory=dict)
    per_room_guests: Dict[str, RoomGuests] = field(default_factory=dict)
    guest_names: Tuple[GuestRecord, ...] = ()
    guest_type: GuestPriceType = GuestPriceType.EXTERNAL
    adults: int = 0
    children: int = 0
    toddlers: int = 0
    is_bulk_booking: bool = False
    paid: bool = False
    name: str = ''
    email: str = ''
    notes: str = ''
    group_id: str | None = None
    session_id: str | None = None
    christmas_code: str = ''
    is_admin: bool = False
    today: date = field(default_factory=date.today)
    now: datetime = field(default_factory=_utcnow)
    skip_notification: bool = False


@dataclass
class EditBookingCommand:
    """Command to edit one booking; siblings in its group are untouched"""
    booking_id: str
    changes: Mapping
    christmas_code: str = ''
    is_admin: bool = False
    today: date = field(default_factory=date.today)
    now: datetime = field(default_factory=_utcnow)
    skip_notification: bool = False


@dataclass
class DeleteBookingCommand:
    booking_id: str
    skip_notification: bool = False


@dataclass
class CreateBlockageCommand:
    """Command to block rooms; empty room_ids blocks the whole property"""
    dates: DateRange
    room_ids: Tuple[str, ...] = ()
    reason: str = ''


@dataclass
class DeleteBlockageCommand:
    blockage_id: str


@dataclass
class UpdateRatesCommand:
    """Command to replace the rate table; every field is validated"""
    rates: Mapping


@dataclass
class UpdateChristmasCommand:
    """Command to replace the Christmas periods and access codes"""
    settings: Mapping


@dataclass
class CreateHoldCommand:
    session_id: str
    rooms: Tuple[str, ...]
    dates: DateRange
    guests: RoomGuests = field(default_factory=RoomGuests)
    guest_type: GuestPriceType = GuestPriceType.EXTERNAL
    now: datetime = field(default_factory=_utcnow)


@dataclass
class ReleaseHoldCommand:
    """Release one hold by id, or every hold of a session"""
    proposal_id: str | None = None
    session_id: str | None = None


# ===== Command Handlers =====

class _Handler:
    def __init__(
        self,
        storage: AbstractStorage,
        uow_factory: UnitOfWorkFactory = DjangoUnitOfWork,
        max_advance_days: int = DEFAULT_MAX_ADVANCE_DAYS,
        hold_minutes: int = DEFAULT_HOLD_MINUTES,
    ):
        self.storage = storage
        self.uow_factory = uow_factory
        self.max_advance_days = max_advance_days
        self.hold_minutes = hold_minutes

    def _all_room_ids(self) -> Tuple[str, ...]:
        return tuple(room.id for room in self.storage.get_rooms())

    def _stay_window(self, today: date, is_admin: bool):
        def check(booking: Booking):
            return AvailabilityEngine.validate_stay_window(
                booking.span,
                today,
                is_admin=is_admin,
                max_advance_days=self.max_advance_days,
            )
        return check

    def _christmas(self, today: date, is_admin: bool, access_code: str):
        def check(booking: Booking):
            policy = ChristmasPolicy.from_dict(self.storage.get_settings())
            return policy.validate(booking, today, access_code=access_code, is_admin=is_admin)
        return check

    @staticmethod
    def _all_of(*checks):
        """Merge the results of several prechecks; None when there are none"""
        checks = [c for c in checks if c is not None]
        if not checks:
            return None

        def check(booking: Booking):
            result = ValidationResult()
            for each in checks:
                result = result.merge(each(booking))
            return result
        return check


class CreateBookingHandler(_Handler):
    """
    Handler for CreateBooking command

    Double booking prevention:
    1. Start unit of work (transaction)
    2. Lock the requested rooms (SELECT FOR UPDATE on the room rows)
    3. Validate stay window, Christmas rules, conflicts and capacity
    4. Price under the current rates and store
    5. Events are published after commit
    """

    def handle(self, command: CreateBookingCommand) -> BookingOutcome:
        logger.info(
            f"Creating booking for rooms {', '.join(map(str, command.rooms))}, "
            f"dates {command.dates}"
            + (f", group {command.group_id}" if command.group_id else "")
        )

        booking = Booking(
            id=generate_booking_id(),
            rooms=command.rooms,
            dates=command.dates,
            group_id=command.group_id,
            per_room_dates=command.per_room_dates,
            per_room_guests=command.per_room_guests,
            guest_names=command.guest_names,
            guest_type=command.guest_type,
            adults=command.adults,
            children=command.children,
            toddlers=command.toddlers,
            is_bulk_booking=command.is_bulk_booking,
            paid=command.paid,
            name=command.name,
            email=command.email,
            notes=command.notes,
        )

        # Bulk bookings take the whole property
        lock_ids = self._all_room_ids() if booking.is_bulk_booking else booking.rooms

        precheck = self._all_of(
            self._stay_window(command.today, command.is_admin),
            self._christmas(command.today, command.is_admin, command.christmas_code),
        )

        with self.uow_factory() as uow, self.storage.lock_rooms(lock_ids):
            manager = BookingGroupManager(self.storage, session_id=command.session_id, now=command.now)
            if booking.group_id:
                outcome = manager.add_interval(booking.group_id, booking, precheck)
            else:
                outcome = manager.place(booking, precheck)
            outcome.validation.raise_first()
            if command.session_id:
                HoldRegistry(self.storage).release_session(command.session_id)

            booking.add_event(BookingCreated(
                aggregate_id=booking.id,
                booking_id=booking.id,
                group_id=booking.group_id,
                rooms=booking.rooms,
                dates=booking.span,
                total_price=booking.total_price,
                email=booking.email,
                skip_notification=command.skip_notification,
            ))
            uow.collect_events(booking)

        logger.info(f"Booking created successfully: {booking.id} ({booking.total_price})")
        return outcome


class EditBookingHandler(_Handler):
    """Handler for editing one booking (one interval of a group)"""

    def handle(self, command: EditBookingCommand) -> BookingOutcome:
        logger.info(f"Editing booking {command.booking_id}: {', '.join(sorted(command.changes))}")

        current = self.storage.get_booking(command.booking_id)
        if current is None:
            raise NotFoundError('Booking', command.booking_id)

        if current.is_bulk_booking or command.changes.get('is_bulk_booking'):
            lock_ids = self._all_room_ids()
        else:
            lock_ids = tuple(dict.fromkeys(
                current.rooms + tuple(str(r) for r in command.changes.get('rooms', ()))
            ))

        changed = set(command.changes)
        precheck = self._all_of(
            self._stay_window(command.today, command.is_admin)
            if {'dates', 'per_room_dates'} & changed else None,
            self._christmas(command.today, command.is_admin, command.christmas_code)
            if CHRISTMAS_FIELDS & changed else None,
        )

        with self.uow_factory() as uow, self.storage.lock_rooms(lock_ids):
            manager = BookingGroupManager(self.storage, now=command.now)
            outcome = manager.edit_interval(command.booking_id, command.changes, precheck)
            outcome.validation.raise_first()
            booking = outcome.booking

            booking.add_event(BookingUpdated(
                aggregate_id=booking.id,
                booking_id=booking.id,
                group_id=booking.group_id,
                changed_fields=sorted(command.changes),
                total_price=booking.total_price,
                email=booking.email,
                skip_notification=command.skip_notification,
            ))
            uow.collect_events(booking)

        logger.info(f"Booking {booking.id} updated successfully")
        return outcome


class DeleteBookingHandler(_Handler):
    """Handler for deleting one booking"""

    def handle(self, command: DeleteBookingCommand) -> BookingGroup | None:
        """Returns the remaining group, if any"""
        logger.info(f"Deleting booking {command.booking_id}")

        current = self.storage.get_booking(command.booking_id)
        if current is None:
            raise NotFoundError('Booking', command.booking_id)

        with self.uow_factory() as uow, self.storage.lock_rooms(current.rooms):
            remaining = BookingGroupManager(self.storage).remove_interval(command.booking_id)
            uow.add_event(BookingDeleted(
                aggregate_id=current.id,
                booking_id=current.id,
                group_id=current.group_id,
                group_dissolved=bool(current.group_id) and remaining is None,
                email=current.email,
                skip_notification=command.skip_notification,
            ))

        logger.info(f"Booking {command.booking_id} deleted successfully")
        return remaining


class CreateBlockageHandler(_Handler):
    """Handler for blocking rooms"""

    def handle(self, command: CreateBlockageCommand) -> str:
        lock_ids = tuple(command.room_ids) or self._all_room_ids()

        with self.uow_factory() as uow, self.storage.lock_rooms(lock_ids):
            registry = BlockageRegistry(self.storage)
            blockage_id = registry.create_blockage(command.dates, command.room_ids, command.reason)
            blockage = registry.get(blockage_id)
            uow.add_event(BlockageCreated(
                aggregate_id=blockage_id,
                blockage_id=blockage_id,
                room_ids=blockage.room_ids,
                dates=blockage.dates,
                reason=blockage.reason,
            ))

        return blockage_id


class DeleteBlockageHandler(_Handler):
    """Handler for removing a blockage"""

    def handle(self, command: DeleteBlockageCommand):
        registry = BlockageRegistry(self.storage)
        blockage = registry.get(command.blockage_id)
        lock_ids = blockage.room_ids or self._all_room_ids()

        with self.uow_factory() as uow, self.storage.lock_rooms(lock_ids):
            registry.delete_blockage(command.blockage_id)
            uow.add_event(BlockageDeleted(
                aggregate_id=command.blockage_id,
                blockage_id=command.blockage_id,
            ))


class UpdateRatesHandler(_Handler):
    """
    Handler for replacing the rate table

    Stored booking totals are left as charged; prices shown from now on are
    recomputed under the new table.
    """

    def handle(self, command: UpdateRatesCommand) -> RateConfig:
        try:
            config = RateConfig.from_dict(command.rates)
        except ConfigurationError as exc:
            raise InvalidInputError(exc.missing_field, exc.message)

        if config.utia is None or config.external is None or config.bulk is None:
            raise InvalidInputError(
                'rates',
                "Rates for utia, external and bulk_prices are all required"
            )

        with self.uow_factory() as uow, self.storage.lock_rooms(self._all_room_ids()):
            settings = self.storage.get_settings()
            settings.update(config.to_dict())
            self.storage.put_settings(settings)
            uow.add_event(RatesUpdated(rates=config.to_dict()))

        logger.info("Rate table updated")
        return config


class UpdateChristmasHandler(_Handler):
    """Handler for replacing the Christmas periods and access codes"""

    def handle(self, command: UpdateChristmasCommand) -> ChristmasPolicy:
        try:
            policy = ChristmasPolicy.from_dict(command.settings)
        except ConfigurationError as exc:
            raise InvalidInputError(exc.missing_field, exc.message)

        with self.uow_factory(), self.storage.lock_rooms(self._all_room_ids()):
            settings = self.storage.get_settings()
            settings.update(policy.to_dict())
            self.storage.put_settings(settings)

        logger.info(f"Christmas settings updated: {len(policy.periods)} periods")
        return policy


class CreateHoldHandler(_Handler):
    """
    Handler for holding rooms while a guest completes a booking

    The hold is validated like a booking request under the room locks, so
    two sessions cannot hold the same night.
    """

    def handle(self, command: CreateHoldCommand) -> ProposedHold:
        with self.uow_factory(), self.storage.lock_rooms(command.rooms):
            return HoldRegistry(self.storage, self.hold_minutes).create_hold(
                command.session_id,
                command.rooms,
                command.dates,
                command.now,
                guests=command.guests,
                guest_type=command.guest_type,
            )


class ReleaseHoldHandler(_Handler):
    """Handler for releasing holds; returns how many were released"""

    def handle(self, command: ReleaseHoldCommand) -> int:
        if not command.proposal_id and not command.session_id:
            raise InvalidInputError('proposal_id', "A hold id or a session id is required")

        registry = HoldRegistry(self.storage, self.hold_minutes)
        with self.uow_factory():
            if command.proposal_id:
                registry.release(command.proposal_id)
                return 1
            return registry.release_session(command.session_id)
