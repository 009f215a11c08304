"""
Booking Listing

Read side of the reservation domain: every stored booking paired with its
price recomputed under the current rates.

Recomputing every booking is the expensive part of a listing. Concurrent
callers share one computation: while a listing is in flight, later callers
wait for it and receive the same result instead of starting their own.
"""

from dataclasses import dataclass, field
from typing import List, Tuple
import logging
import threading

from apps.reservations.domain.entities import Booking
from apps.reservations.domain.pricing import PriceCalculator, PriceQuote
from apps.reservations.domain.rates import RateConfig
from apps.reservations.domain.storage import AbstractStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricedBooking:
    booking: Booking
    price: PriceQuote


@dataclass
class _Flight:
    done: threading.Event = field(default_factory=threading.Event)
    result: Tuple[PricedBooking, ...] = ()
    error: Exception | None = None


class BookingListing:
    """
    Usage:
        listing = BookingListing(storage)
        for item in listing.list(group_id='GRP...'):
            item.booking.id, item.price.total, item.price.note
    """

    def __init__(self, storage: AbstractStorage):
        self.storage = storage
        self._lock = threading.Lock()
        self._flight: _Flight | None = None

    def list(
        self,
        group_id: str | None = None,
        paid: bool | None = None,
        is_bulk_booking: bool | None = None,
    ) -> List[PricedBooking]:
        items = self._shared_listing()
        return [
            item for item in items
            if (group_id is None or item.booking.group_id == group_id)
            and (paid is None or item.booking.paid == paid)
            and (is_bulk_booking is None or item.booking.is_bulk_booking == is_bulk_booking)
        ]

    def _shared_listing(self) -> Tuple[PricedBooking, ...]:
        with self._lock:
            flight = self._flight
            leader = flight is None
            if leader:
                flight = self._flight = _Flight()

        if not leader:
            logger.debug("Joining booking listing already in flight")
            flight.done.wait()
            if flight.error is not None:
                raise flight.error
            return flight.result

        try:
            flight.result = self._compute()
        except Exception as exc:
            flight.error = exc
            raise
        finally:
            with self._lock:
                self._flight = None
            flight.done.set()
        return flight.result

    def _compute(self) -> Tuple[PricedBooking, ...]:
        rates = RateConfig.from_dict(self.storage.get_settings())
        bookings = sorted(
            self.storage.get_bookings(),
            key=lambda b: (b.span.start_date, b.id),
        )
        return tuple(
            PricedBooking(booking, PriceCalculator.recompute(booking, rates))
            for booking in bookings
        )
