"""Admin registration for reservations."""

from __future__ import annotations

from django.contrib import admin

from .models import Blockage, Booking, ProposedHold, ReservationSetting, Room


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "bed_count")


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "group_id",
        "name",
        "start_date",
        "end_date",
        "is_bulk_booking",
        "paid",
        "total_price",
    )
    list_filter = ("paid", "is_bulk_booking", "guest_type", "start_date")
    search_fields = ("id", "group_id", "name", "email")
    # Writes go through the API so conflicts and prices are checked
    readonly_fields = (
        "id",
        "group_id",
        "room_ids",
        "start_date",
        "end_date",
        "per_room_dates",
        "per_room_guests",
        "guest_names",
        "total_price",
        "created_at",
        "updated_at",
    )


@admin.register(Blockage)
class BlockageAdmin(admin.ModelAdmin):
    list_display = ("blockage_id", "start_date", "end_date", "reason", "created_at")
    search_fields = ("blockage_id", "reason")
    readonly_fields = ("blockage_id", "start_date", "end_date", "rooms", "created_at")


@admin.register(ReservationSetting)
class ReservationSettingAdmin(admin.ModelAdmin):
    list_display = ("key", "updated_at")


@admin.register(ProposedHold)
class ProposedHoldAdmin(admin.ModelAdmin):
    list_display = ("proposal_id", "session_id", "start_date", "end_date", "expires_at")
    search_fields = ("proposal_id", "session_id")
