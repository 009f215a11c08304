"""
Pricing Calculation
===================

Pure, stateless price calculation. Every entry point takes the current
RateConfig as an explicit `settings` argument, so identical inputs always
give identical results.

Pricing model (per night):
1. Per-room bookings: base rate per room (the base covers one adult per
   room) + additional adults x adult rate + children x child rate, all at
   the room's guest tier (ÚTIA or external).
2. Bulk (whole property): flat base price + per-guest surcharges at each
   guest's own tier.
3. Toddlers are free everywhere.

Each component is rounded to whole currency units (half up); totals are
sums of rounded components, so a breakdown always adds up to its total.
"""

from dataclasses import dataclass, replace
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Mapping, Sequence, Tuple
import logging

from shared.domain.value_objects import DateRange

from apps.reservations.domain.entities import (
    Booking,
    GuestPriceType,
    GuestRecord,
    PersonType,
    RoomGuests,
)
from apps.reservations.domain.errors import ConfigurationError, InvalidInputError
from apps.reservations.domain.rates import GuestRates, RateConfig

logger = logging.getLogger(__name__)

WHOLE_UNIT = Decimal('1')


def _round(amount: Decimal) -> Decimal:
    return amount.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


def _require_count(value, field_name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise InvalidInputError(field_name, f"{field_name} must be a non-negative integer, got {value!r}")
    return value


def _require_nights(value) -> int:
    if _require_count(value, 'nights') < 1:
        raise InvalidInputError('nights', "At least one night is required")
    return value


def _require_settings(settings) -> RateConfig:
    if not isinstance(settings, RateConfig):
        raise ConfigurationError('settings', "A RateConfig is required for price calculation")
    return settings


@dataclass(frozen=True)
class RoomPriceBreakdown:
    """Itemised price of one room (or of a group of rooms priced together)"""
    room_id: str | None
    guest_type: GuestPriceType
    nights: int
    adults: int
    children: int
    toddlers: int
    base: Decimal
    adult_surcharge: Decimal
    child_surcharge: Decimal
    room_count: int = 1

    @property
    def subtotal(self) -> Decimal:
        return self.base + self.adult_surcharge + self.child_surcharge

    def to_dict(self) -> dict:
        return {
            'room_id': self.room_id,
            'room_count': self.room_count,
            'guest_type': self.guest_type.value,
            'nights': self.nights,
            'adults': self.adults,
            'children': self.children,
            'toddlers': self.toddlers,
            'base': self.base,
            'adult_surcharge': self.adult_surcharge,
            'child_surcharge': self.child_surcharge,
            'subtotal': self.subtotal,
        }


@dataclass(frozen=True)
class BulkPriceBreakdown:
    """Itemised whole-property price"""
    nights: int
    utia_adults: int
    external_adults: int
    utia_children: int
    external_children: int
    toddlers: int
    base: Decimal
    utia_adult_surcharge: Decimal
    external_adult_surcharge: Decimal
    utia_child_surcharge: Decimal
    external_child_surcharge: Decimal

    @property
    def subtotal(self) -> Decimal:
        return (
            self.base
            + self.utia_adult_surcharge
            + self.external_adult_surcharge
            + self.utia_child_surcharge
            + self.external_child_surcharge
        )

    def to_dict(self) -> dict:
        return {
            'nights': self.nights,
            'utia_adults': self.utia_adults,
            'external_adults': self.external_adults,
            'utia_children': self.utia_children,
            'external_children': self.external_children,
            'toddlers': self.toddlers,
            'base': self.base,
            'utia_adult_surcharge': self.utia_adult_surcharge,
            'external_adult_surcharge': self.external_adult_surcharge,
            'utia_child_surcharge': self.utia_child_surcharge,
            'external_child_surcharge': self.external_child_surcharge,
            'subtotal': self.subtotal,
        }


@dataclass(frozen=True)
class PriceQuote:
    """
    Authoritative price of a booking under the current rates

    stored_total is the historical charged amount, carried only so a
    difference can be shown for audit. A mismatch is informational.
    """
    total: Decimal
    mode: str
    breakdown: Tuple = ()
    stored_total: Decimal | None = None

    @property
    def mismatch(self) -> bool:
        return self.stored_total is not None and self.stored_total != self.total

    @property
    def note(self) -> str | None:
        if not self.mismatch:
            return None
        return (
            f"Stored price {self.stored_total} differs from the price under "
            f"current rates ({self.total})"
        )

    def to_dict(self) -> dict:
        return {
            'total': self.total,
            'mode': self.mode,
            'breakdown': [item.to_dict() for item in self.breakdown],
            'stored_total': self.stored_total,
            'mismatch': self.mismatch,
            'note': self.note,
        }


class PriceCalculator:
    """
    Price calculation entry points

    Usage:
        rates = RateConfig.from_dict(storage.get_settings())

        PriceCalculator.calculate_simple(
            guest_type=GuestPriceType.UTIA,
            adults=2, children=1, nights=2, room_count=1,
            settings=rates,
        )                                   # -> Decimal('750') at 300/50/25

        quote = PriceCalculator.recompute(booking, rates)
        quote.total, quote.note
    """

    # ----- classification -----

    @staticmethod
    def classify_room(
        guests: Iterable[GuestRecord],
        stored_type: GuestPriceType | None = None,
        fallback: GuestPriceType = GuestPriceType.EXTERNAL,
    ) -> GuestPriceType:
        """
        Guest tier a room is priced at

        Precedence: a paying ÚTIA guest in the room -> ÚTIA; any other
        paying guest -> external; no paying guest -> the room's stored
        type, then the booking-wide fallback.
        """
        paying = [g for g in guests if g.is_paying]
        if any(g.guest_price_type is GuestPriceType.UTIA for g in paying):
            return GuestPriceType.UTIA
        if paying:
            return GuestPriceType.EXTERNAL
        return stored_type or fallback

    # ----- per-room pricing -----

    @staticmethod
    def _room_components(
        rates: GuestRates, nights: int, room_count: int, adults: int, children: int
    ) -> Tuple[Decimal, Decimal, Decimal]:
        # One adult per room is included in the room's base rate
        additional_adults = max(0, adults - room_count)
        base = _round(rates.base * room_count * nights)
        adult_surcharge = _round(rates.adult * additional_adults * nights)
        child_surcharge = _round(rates.child * children * nights)
        return base, adult_surcharge, child_surcharge

    @classmethod
    def simple_breakdown(
        cls,
        *,
        guest_type: GuestPriceType,
        adults: int = 0,
        children: int = 0,
        toddlers: int = 0,
        nights: int = 1,
        room_count: int = 1,
        settings: RateConfig,
        room_id: str | None = None,
    ) -> RoomPriceBreakdown:
        settings = _require_settings(settings)
        _require_count(adults, 'adults')
        _require_count(children, 'children')
        _require_count(toddlers, 'toddlers')
        _require_nights(nights)
        if _require_count(room_count, 'room_count') < 1:
            raise InvalidInputError('room_count', "At least one room is required")

        guest_type = GuestPriceType.parse(guest_type)
        rates = settings.guest_rates(guest_type)
        base, adult_surcharge, child_surcharge = cls._room_components(
            rates, nights, room_count, adults, children
        )
        return RoomPriceBreakdown(
            room_id=room_id,
            guest_type=guest_type,
            nights=nights,
            adults=adults,
            children=children,
            toddlers=toddlers,
            base=base,
            adult_surcharge=adult_surcharge,
            child_surcharge=child_surcharge,
            room_count=room_count,
        )

    @classmethod
    def calculate_simple(cls, **options) -> Decimal:
        """
        nights x (rooms x base + (adults - rooms) x adult + children x child)

        Adults up to one per room are covered by the base rate; toddlers are
        free.
        """
        return cls.simple_breakdown(**options).subtotal

    @classmethod
    def calculate_per_room_prices(
        cls,
        *,
        rooms: Sequence[str],
        guest_names: Iterable[GuestRecord] = (),
        nights: int | None = None,
        per_room_dates: Mapping[str, DateRange] | None = None,
        per_room_guests: Mapping[str, RoomGuests] | None = None,
        fallback_guest_type: GuestPriceType = GuestPriceType.EXTERNAL,
        settings: RateConfig,
    ) -> List[RoomPriceBreakdown]:
        """
        Itemised price of every room, each priced independently

        Guest counts come from the guest records assigned to the room and,
        when a room has none, from per_room_guests. Nights come from the
        room's own dates when per_room_dates is given.
        """
        settings = _require_settings(settings)
        rooms = [str(r) for r in rooms]
        if not rooms:
            raise InvalidInputError('rooms', "At least one room is required")
        guest_names = tuple(guest_names)
        per_room_dates = per_room_dates or {}
        per_room_guests = per_room_guests or {}
        fallback_guest_type = GuestPriceType.parse(fallback_guest_type)
        single_room = len(rooms) == 1

        breakdown = []
        for room_id in rooms:
            if per_room_dates:
                if room_id not in per_room_dates:
                    raise InvalidInputError('per_room_dates', f"Missing dates for room {room_id}")
                room_nights = per_room_dates[room_id].nights
            elif nights is None:
                raise InvalidInputError('nights', "Nights are required without per-room dates")
            else:
                room_nights = _require_nights(nights)

            records = [
                g for g in guest_names
                if g.room_id == room_id or (single_room and g.room_id is None)
            ]
            counters = per_room_guests.get(room_id)
            stored_type = counters.guest_type if counters else None

            if records:
                adults = sum(1 for g in records if g.person_type is PersonType.ADULT)
                children = sum(1 for g in records if g.person_type is PersonType.CHILD)
                toddlers = sum(1 for g in records if g.person_type is PersonType.TODDLER)
            elif counters:
                adults, children, toddlers = counters.adults, counters.children, counters.toddlers
            else:
                adults = children = toddlers = 0

            breakdown.append(cls.simple_breakdown(
                guest_type=cls.classify_room(records, stored_type, fallback_guest_type),
                adults=adults,
                children=children,
                toddlers=toddlers,
                nights=room_nights,
                room_count=1,
                settings=settings,
                room_id=room_id,
            ))
        return breakdown

    @classmethod
    def calculate_per_guest(cls, **options) -> Decimal:
        """Sum of calculate_per_room_prices; no cross-room rounding or discount"""
        return sum(
            (item.subtotal for item in cls.calculate_per_room_prices(**options)),
            Decimal('0'),
        )

    # ----- bulk pricing -----

    @classmethod
    def bulk_breakdown(
        cls,
        *,
        utia_adults: int = 0,
        external_adults: int = 0,
        utia_children: int = 0,
        external_children: int = 0,
        toddlers: int = 0,
        nights: int,
        settings: RateConfig,
    ) -> BulkPriceBreakdown:
        settings = _require_settings(settings)
        for value, name in (
            (utia_adults, 'utia_adults'),
            (external_adults, 'external_adults'),
            (utia_children, 'utia_children'),
            (external_children, 'external_children'),
            (toddlers, 'toddlers'),
        ):
            _require_count(value, name)
        _require_nights(nights)

        bulk = settings.bulk_rates()
        return BulkPriceBreakdown(
            nights=nights,
            utia_adults=utia_adults,
            external_adults=external_adults,
            utia_children=utia_children,
            external_children=external_children,
            toddlers=toddlers,
            # Charged once per night regardless of guest count
            base=_round(bulk.base_price * nights),
            utia_adult_surcharge=_round(bulk.utia_adult * utia_adults * nights),
            external_adult_surcharge=_round(bulk.external_adult * external_adults * nights),
            utia_child_surcharge=_round(bulk.utia_child * utia_children * nights),
            external_child_surcharge=_round(bulk.external_child * external_children * nights),
        )

    @classmethod
    def calculate_mixed_bulk(cls, **options) -> Decimal:
        """
        nights x (base + per-guest surcharges at each guest's own tier)

        Toddlers are accepted and ignored.
        """
        return cls.bulk_breakdown(**options).subtotal

    @staticmethod
    def count_bulk_guests(guest_names: Iterable[GuestRecord]) -> dict:
        counts = {
            'utia_adults': 0,
            'external_adults': 0,
            'utia_children': 0,
            'external_children': 0,
            'toddlers': 0,
        }
        for guest in guest_names:
            if guest.person_type is PersonType.TODDLER:
                counts['toddlers'] += 1
                continue
            tier = guest.guest_price_type.value
            kind = 'adults' if guest.person_type is PersonType.ADULT else 'children'
            counts[f"{tier}_{kind}"] += 1
        return counts

    # ----- recomputation -----

    @classmethod
    def recompute(cls, booking: Booking, settings: RateConfig) -> PriceQuote:
        """
        Price of a stored booking under the current rates

        The booking's stored total_price is never an input; it is only
        carried into the quote for comparison.
        """
        quote = replace(cls.price(booking, settings), stored_total=booking.total_price)
        if quote.mismatch:
            logger.info(
                f"Booking {booking.id}: stored price {booking.total_price} "
                f"differs from recomputed {quote.total}"
            )
        return quote

    @classmethod
    def price(cls, booking: Booking, settings: RateConfig) -> PriceQuote:
        """Price of a new or edited booking; the quote carries no stored total"""
        if booking.is_bulk_booking:
            if booking.guest_names:
                counts = cls.count_bulk_guests(booking.guest_names)
            else:
                tier = booking.guest_type.value
                counts = cls.count_bulk_guests(())
                counts[f"{tier}_adults"] = booking.adults
                counts[f"{tier}_children"] = booking.children
                counts['toddlers'] = booking.toddlers
            item = cls.bulk_breakdown(nights=booking.dates.nights, settings=settings, **counts)
            breakdown, mode = (item,), 'bulk'
        elif booking.is_composite or booking.guest_names or booking.per_room_guests:
            breakdown = tuple(cls.calculate_per_room_prices(
                rooms=booking.rooms,
                guest_names=booking.guest_names,
                nights=booking.dates.nights,
                per_room_dates=booking.per_room_dates or None,
                per_room_guests=booking.per_room_guests,
                fallback_guest_type=booking.guest_type,
                settings=settings,
            ))
            mode = 'composite' if booking.is_composite else 'per_guest'
        else:
            item = cls.simple_breakdown(
                guest_type=booking.guest_type,
                adults=booking.adults,
                children=booking.children,
                toddlers=booking.toddlers,
                nights=booking.dates.nights,
                room_count=len(booking.rooms),
                settings=settings,
            )
            breakdown, mode = (item,), 'simple'

        return PriceQuote(
            total=sum((item.subtotal for item in breakdown), Decimal('0')),
            mode=mode,
            breakdown=breakdown,
        )
