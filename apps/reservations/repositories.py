"""Django ORM implementation of the reservation storage collaborator."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator, List
import logging

from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.value_objects import DateRange

from apps.reservations.domain.entities import (
    BlockageInstance,
    Booking,
    GuestPriceType,
    GuestRecord,
    ProposedHold,
    Room,
    RoomGuests,
)
from apps.reservations.domain.storage import AbstractStorage

from . import models

logger = logging.getLogger(__name__)


def _aware(value: datetime) -> datetime:
    if timezone.is_naive(value):
        return timezone.make_aware(value)
    return value


def booking_to_row(booking: Booking) -> dict:
    return {
        "group_id": booking.group_id,
        "room_ids": list(booking.rooms),
        "start_date": booking.dates.start_date,
        "end_date": booking.dates.end_date,
        "per_room_dates": {r: d.to_dict() for r, d in booking.per_room_dates.items()},
        "per_room_guests": {r: g.to_dict() for r, g in booking.per_room_guests.items()},
        "guest_names": [g.to_dict() for g in booking.guest_names],
        "guest_type": booking.guest_type.value,
        "adults": booking.adults,
        "children": booking.children,
        "toddlers": booking.toddlers,
        "is_bulk_booking": booking.is_bulk_booking,
        "paid": booking.paid,
        "total_price": booking.total_price,
        "name": booking.name,
        "email": booking.email,
        "notes": booking.notes,
        "created_at": _aware(booking.created_at),
        "updated_at": _aware(booking.updated_at),
    }


def booking_from_row(row: models.Booking) -> Booking:
    return Booking(
        id=row.id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        rooms=tuple(row.room_ids),
        dates=DateRange(row.start_date, row.end_date),
        group_id=row.group_id or None,
        per_room_dates={r: DateRange.from_dict(d) for r, d in (row.per_room_dates or {}).items()},
        per_room_guests={r: RoomGuests.from_dict(g) for r, g in (row.per_room_guests or {}).items()},
        guest_names=tuple(GuestRecord.from_dict(g) for g in (row.guest_names or [])),
        guest_type=row.guest_type,
        adults=row.adults,
        children=row.children,
        toddlers=row.toddlers,
        is_bulk_booking=row.is_bulk_booking,
        paid=row.paid,
        total_price=row.total_price,
        name=row.name,
        email=row.email,
        notes=row.notes,
    )


def blockage_from_row(row: models.Blockage) -> BlockageInstance:
    return BlockageInstance(
        blockage_id=row.blockage_id,
        dates=DateRange(row.start_date, row.end_date),
        room_ids=tuple(sorted(room.id for room in row.rooms.all())),
        reason=row.reason,
    )


def hold_from_row(row: models.ProposedHold) -> ProposedHold:
    return ProposedHold(
        proposal_id=row.proposal_id,
        session_id=row.session_id,
        rooms=tuple(row.room_ids),
        dates=DateRange(row.start_date, row.end_date),
        created_at=row.created_at,
        expires_at=row.expires_at,
        guests=RoomGuests(adults=row.adults, children=row.children, toddlers=row.toddlers),
        guest_type=GuestPriceType(row.guest_type),
    )


class DjangoStorage(AbstractStorage):
    """Storage backed by the reservations tables.

    lock_rooms takes row locks on the room rows (SELECT ... FOR UPDATE), so
    two writers touching a shared room serialise on the database.
    """

    def get_rooms(self) -> List[Room]:
        return [
            Room(id=row.id, name=row.name, bed_count=row.bed_count)
            for row in models.Room.objects.all()
        ]

    def get_bookings(self) -> List[Booking]:
        return [booking_from_row(row) for row in models.Booking.objects.all()]

    def get_booking(self, booking_id: str) -> Booking | None:
        row = models.Booking.objects.filter(id=booking_id).first()
        return booking_from_row(row) if row else None

    def put_booking(self, booking: Booking):
        models.Booking.objects.update_or_create(id=booking.id, defaults=booking_to_row(booking))

    def delete_booking(self, booking_id: str) -> bool:
        deleted, _ = models.Booking.objects.filter(id=booking_id).delete()
        return deleted > 0

    def get_blockages(self) -> List[BlockageInstance]:
        rows = models.Blockage.objects.prefetch_related("rooms")
        return [blockage_from_row(row) for row in rows]

    def put_blockage(self, blockage: BlockageInstance):
        with transaction.atomic():
            row, _ = models.Blockage.objects.update_or_create(
                blockage_id=blockage.blockage_id,
                defaults={
                    "start_date": blockage.dates.start_date,
                    "end_date": blockage.dates.end_date,
                    "reason": blockage.reason,
                },
            )
            row.rooms.set(list(blockage.room_ids))

    def delete_blockage(self, blockage_id: str) -> bool:
        deleted, _ = models.Blockage.objects.filter(blockage_id=blockage_id).delete()
        return deleted > 0

    def get_holds(self) -> List[ProposedHold]:
        return [hold_from_row(row) for row in models.ProposedHold.objects.all()]

    def put_hold(self, hold: ProposedHold):
        models.ProposedHold.objects.update_or_create(
            proposal_id=hold.proposal_id,
            defaults={
                "session_id": hold.session_id,
                "room_ids": list(hold.rooms),
                "start_date": hold.dates.start_date,
                "end_date": hold.dates.end_date,
                "adults": hold.guests.adults,
                "children": hold.guests.children,
                "toddlers": hold.guests.toddlers,
                "guest_type": hold.guest_type.value,
                "created_at": _aware(hold.created_at),
                "expires_at": _aware(hold.expires_at),
            },
        )

    def delete_hold(self, proposal_id: str) -> bool:
        deleted, _ = models.ProposedHold.objects.filter(proposal_id=proposal_id).delete()
        return deleted > 0

    def get_settings(self) -> dict:
        return {row.key: row.value for row in models.ReservationSetting.objects.all()}

    def put_settings(self, settings: dict):
        with transaction.atomic():
            models.ReservationSetting.objects.exclude(key__in=list(settings)).delete()
            for key, value in settings.items():
                models.ReservationSetting.objects.update_or_create(key=key, defaults={"value": value})

    @contextmanager
    def lock_rooms(self, room_ids: Iterable[str]) -> Iterator[None]:
        room_ids = sorted({str(r) for r in room_ids})
        with transaction.atomic():
            # Fixed lock order keeps concurrent writers from deadlocking
            locked = list(
                models.Room.objects.select_for_update().filter(id__in=room_ids).order_by("id")
            )
            logger.debug(f"Locked rooms {', '.join(r.id for r in locked)}")
            yield
