"""
Booking Groups

A group is a set of bookings sharing a group_id: several stay intervals
booked together by one contact. Groups are derived, never persisted; they
exist exactly as long as at least one member does.

Every interval is validated and priced on its own. Editing one interval
never re-validates or re-prices its siblings. Edits that only touch
payment or contact fields re-validate and re-price nothing: the stored
total stays what was charged.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Mapping, Tuple
import logging

from shared.domain.value_objects import DateRange

from apps.reservations.domain.availability import AvailabilityEngine
from apps.reservations.domain.entities import Booking
from apps.reservations.domain.errors import (
    InvalidInputError,
    NotFoundError,
    ReservationError,
    ValidationResult,
)
from apps.reservations.domain.pricing import PriceCalculator, PriceQuote
from apps.reservations.domain.rates import RateConfig
from apps.reservations.domain.storage import AbstractStorage

logger = logging.getLogger(__name__)

Precheck = Callable[[Booking], ValidationResult]

EDITABLE_FIELDS = frozenset({
    'rooms',
    'dates',
    'per_room_dates',
    'per_room_guests',
    'guest_names',
    'guest_type',
    'adults',
    'children',
    'toddlers',
    'is_bulk_booking',
    'paid',
    'name',
    'email',
    'notes',
})

# Edits limited to these keep the stored total and skip validation
RECORD_ONLY_FIELDS = frozenset({'paid', 'name', 'email', 'notes'})


@dataclass(frozen=True)
class BookingOutcome:
    """Result of placing or editing one interval"""
    validation: ValidationResult
    booking: Booking | None = None
    price: PriceQuote | None = None

    @property
    def ok(self) -> bool:
        return self.validation.ok


@dataclass(frozen=True)
class BookingGroup:
    group_id: str
    bookings: Tuple[Booking, ...]
    prices: Mapping[str, PriceQuote]

    @property
    def total_price(self) -> Decimal:
        """Sum of freshly recomputed member prices, never of stored totals"""
        return sum((quote.total for quote in self.prices.values()), Decimal('0'))

    @property
    def stored_total(self) -> Decimal:
        return sum((b.total_price for b in self.bookings), Decimal('0'))

    @property
    def paid(self) -> bool:
        return all(b.paid for b in self.bookings)

    @property
    def date_span(self) -> DateRange:
        return DateRange.spanning(b.span for b in self.bookings)


class BookingGroupManager:
    """
    Group aggregation and per-interval operations

    Reads the current rate configuration from storage on every call.
    Callers hold `storage.lock_rooms(...)` around the mutating methods.
    Holds of session_id do not conflict with the intervals it places.
    """

    def __init__(
        self,
        storage: AbstractStorage,
        session_id: str | None = None,
        now: datetime | None = None,
    ):
        self.storage = storage
        self.session_id = session_id
        self.now = now

    def rates(self) -> RateConfig:
        return RateConfig.from_dict(self.storage.get_settings())

    def members(self, group_id: str) -> List[Booking]:
        return sorted(
            self.storage.get_bookings_in_group(group_id),
            key=lambda b: (b.span.start_date, b.id),
        )

    def group_of(self, group_id: str) -> BookingGroup:
        bookings = self.members(group_id)
        if not bookings:
            raise NotFoundError('Group', group_id)
        rates = self.rates()
        return BookingGroup(
            group_id=group_id,
            bookings=tuple(bookings),
            prices={b.id: PriceCalculator.recompute(b, rates) for b in bookings},
        )

    def place(self, booking: Booking, precheck: Precheck | None = None) -> BookingOutcome:
        """
        Validate, price and store one interval

        precheck adds caller rules (e.g. the stay window) to the validation.
        Nothing is written when validation fails. The stored total_price
        becomes the price under the current rates.
        """
        engine = AvailabilityEngine.from_storage(
            self.storage, now=self.now, exclude_session=self.session_id,
        )
        result = precheck(booking) if precheck else ValidationResult()
        result = result.merge(engine.validate_booking(booking))
        if not result.ok:
            return BookingOutcome(result)

        quote = PriceCalculator.price(booking, self.rates())
        booking.total_price = quote.total
        booking.touch()
        self.storage.put_booking(booking)
        return BookingOutcome(
            result,
            booking,
            replace(quote, stored_total=quote.total),
        )

    def add_interval(
        self,
        group_id: str,
        booking: Booking,
        precheck: Precheck | None = None,
    ) -> BookingOutcome:
        """Add a booking to a group, founding the group if it has no members yet"""
        if not group_id:
            raise InvalidInputError('group_id', "A group id is required")
        founding = not self.storage.get_bookings_in_group(group_id)
        booking.group_id = group_id
        outcome = self.place(booking, precheck)
        if outcome.ok and founding:
            logger.info(f"Founded group {group_id} with booking {booking.id}")
        return outcome

    def remove_interval(self, booking_id: str) -> BookingGroup | None:
        """
        Delete one member

        Returns the remaining group, or None when the booking had no group
        or was its last member.
        """
        booking = self.storage.get_booking(booking_id)
        if booking is None:
            raise NotFoundError('Booking', booking_id)
        self.storage.delete_booking(booking_id)

        if not booking.group_id:
            return None
        if not self.storage.get_bookings_in_group(booking.group_id):
            logger.info(f"Group {booking.group_id} dissolved with removal of {booking_id}")
            return None
        return self.group_of(booking.group_id)

    def edit_interval(
        self,
        booking_id: str,
        changes: Mapping,
        precheck: Precheck | None = None,
    ) -> BookingOutcome:
        """
        Apply changes to one interval, re-validating and re-pricing only it

        The edited booking is validated against everything except itself.
        Changes limited to RECORD_ONLY_FIELDS are stored as they are: no
        validation, and total_price stays the amount charged.
        """
        current = self.storage.get_booking(booking_id)
        if current is None:
            raise NotFoundError('Booking', booking_id)

        unknown = sorted(set(changes) - EDITABLE_FIELDS)
        if unknown:
            return BookingOutcome(ValidationResult((
                InvalidInputError(unknown[0], f"Field {unknown[0]} cannot be edited"),
            )))

        changes = dict(changes)
        if changes.get('per_room_dates') and 'dates' not in changes:
            changes['dates'] = DateRange.spanning(changes['per_room_dates'].values())

        if 'rooms' in changes:
            kept = {str(r) for r in changes['rooms']}
            if 'per_room_dates' not in changes and current.per_room_dates:
                changes['per_room_dates'] = {
                    r: d for r, d in current.per_room_dates.items() if r in kept
                }
            if 'per_room_guests' not in changes:
                changes['per_room_guests'] = {
                    r: g for r, g in current.per_room_guests.items() if r in kept
                }
            if 'guest_names' not in changes:
                changes['guest_names'] = tuple(
                    g for g in current.guest_names if g.room_id is None or g.room_id in kept
                )

        try:
            edited = replace(current, **changes)
        except ReservationError as exc:
            return BookingOutcome(ValidationResult((exc,)))

        if set(changes) <= RECORD_ONLY_FIELDS:
            edited.touch()
            self.storage.put_booking(edited)
            logger.info(f"Updated record of booking {booking_id}: {', '.join(sorted(changes))}")
            return BookingOutcome(
                ValidationResult(),
                edited,
                PriceCalculator.recompute(edited, self.rates()),
            )

        outcome = self.place(edited, precheck)
        if outcome.ok:
            logger.info(f"Edited booking {booking_id} (group {edited.group_id})")
        return outcome
