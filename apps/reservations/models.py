"""Reservation storage models for the chalet."""

from __future__ import annotations

from decimal import Decimal

from django.core.serializers.json import DjangoJSONEncoder  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Room(models.Model):
    """Room of the property; the catalogue is static and seeded by migration."""

    id = models.CharField(primary_key=True, max_length=8)
    name = models.CharField(max_length=64)
    bed_count = models.PositiveSmallIntegerField()

    class Meta:
        verbose_name = _("Room")
        verbose_name_plural = _("Rooms")
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(bed_count__gte=1),
                name="room_has_beds",
            ),
        ]

    def __str__(self) -> str:
        return self.name or self.id


class Booking(models.Model):
    """Stored booking record.

    Rooms, per-room dates/guests and guest records are JSON documents; the
    domain layer owns their structure (see repositories.py).
    """

    class GuestType(models.TextChoices):
        UTIA = "utia", _("ÚTIA employee")
        EXTERNAL = "external", _("External")

    id = models.CharField(primary_key=True, max_length=16, editable=False)
    group_id = models.CharField(max_length=16, blank=True, null=True, db_index=True)
    room_ids = models.JSONField(default=list)
    start_date = models.DateField()
    end_date = models.DateField()
    per_room_dates = models.JSONField(default=dict, blank=True)
    per_room_guests = models.JSONField(default=dict, blank=True)
    guest_names = models.JSONField(default=list, blank=True)
    guest_type = models.CharField(
        max_length=16,
        choices=GuestType.choices,
        default=GuestType.EXTERNAL,
    )
    adults = models.PositiveSmallIntegerField(default=0)
    children = models.PositiveSmallIntegerField(default=0)
    toddlers = models.PositiveSmallIntegerField(default=0)
    is_bulk_booking = models.BooleanField(default=False)
    paid = models.BooleanField(default=False)
    total_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Price charged at booking time; shown prices are recomputed."),
    )
    name = models.CharField(max_length=255, blank=True)
    email = models.EmailField(blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["start_date", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="reservation_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["start_date", "end_date"], name="reservation_dates_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.id} ({self.start_date} to {self.end_date})"


class Blockage(models.Model):
    """Administrator blackout; one row per blockage, rooms via M2M (none = all)."""

    blockage_id = models.CharField(primary_key=True, max_length=16, editable=False)
    start_date = models.DateField()
    end_date = models.DateField()
    rooms = models.ManyToManyField(Room, blank=True, related_name="blockages")
    reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Blockage")
        verbose_name_plural = _("Blockages")
        ordering = ["start_date", "blockage_id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="blockage_valid_dates",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.blockage_id} ({self.start_date} to {self.end_date})"


class ReservationSetting(models.Model):
    """Key/value settings document (rate table and friends)."""

    key = models.CharField(primary_key=True, max_length=64)
    value = models.JSONField(encoder=DjangoJSONEncoder)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Reservation setting")
        verbose_name_plural = _("Reservation settings")

    def __str__(self) -> str:
        return self.key


class ProposedHold(models.Model):
    """Short-lived hold on rooms while a guest completes the booking form."""

    proposal_id = models.CharField(primary_key=True, max_length=16, editable=False)
    session_id = models.CharField(max_length=64, db_index=True)
    room_ids = models.JSONField(default=list)
    start_date = models.DateField()
    end_date = models.DateField()
    adults = models.PositiveSmallIntegerField(default=0)
    children = models.PositiveSmallIntegerField(default=0)
    toddlers = models.PositiveSmallIntegerField(default=0)
    guest_type = models.CharField(
        max_length=16,
        choices=Booking.GuestType.choices,
        default=Booking.GuestType.EXTERNAL,
    )
    created_at = models.DateTimeField()
    expires_at = models.DateTimeField(db_index=True)

    class Meta:
        verbose_name = _("Proposed hold")
        verbose_name_plural = _("Proposed holds")
        ordering = ["start_date", "proposal_id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="hold_valid_dates",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.proposal_id} ({self.session_id}, until {self.expires_at:%H:%M})"
