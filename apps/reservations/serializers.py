"""Serializers for the reservation API.

Write serializers turn request payloads into domain values (DateRange,
RoomGuests, GuestRecord); read serializers render domain objects together
with the price recomputed under the current rates.
"""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from shared.domain.value_objects import DateRange

from apps.reservations.domain.entities import GuestPriceType, GuestRecord, PersonType, RoomGuests

GUEST_TYPES = [t.value for t in GuestPriceType]
PERSON_TYPES = [t.value for t in PersonType]


class DateRangeSerializer(serializers.Serializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField()

    def validate(self, attrs):  # type: ignore
        if attrs["end_date"] <= attrs["start_date"]:
            raise serializers.ValidationError("end_date must be after start_date.")
        return DateRange(attrs["start_date"], attrs["end_date"])

    def to_representation(self, instance: DateRange):  # type: ignore
        return instance.to_dict()


class RoomGuestsSerializer(serializers.Serializer):
    adults = serializers.IntegerField(min_value=0, default=0)
    children = serializers.IntegerField(min_value=0, default=0)
    toddlers = serializers.IntegerField(min_value=0, default=0)
    guest_type = serializers.ChoiceField(choices=GUEST_TYPES, required=False, allow_null=True)

    def validate(self, attrs):  # type: ignore
        return RoomGuests.from_dict(attrs)

    def to_representation(self, instance: RoomGuests):  # type: ignore
        return instance.to_dict()


class GuestRecordSerializer(serializers.Serializer):
    person_type = serializers.ChoiceField(choices=PERSON_TYPES)
    guest_price_type = serializers.ChoiceField(choices=GUEST_TYPES, default=GuestPriceType.EXTERNAL.value)
    room_id = serializers.CharField(required=False, allow_null=True, default=None)
    first_name = serializers.CharField(required=False, allow_blank=True, default="")
    last_name = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):  # type: ignore
        return GuestRecord.from_dict(attrs)

    def to_representation(self, instance: GuestRecord):  # type: ignore
        return instance.to_dict()


class BookingWriteSerializer(serializers.Serializer):
    """Create / edit payload.

    The booking range comes from start_date/end_date or, for composite
    bookings, from the span of per_room_dates. On partial updates the
    missing bound is taken from the booking in context["booking"].
    """

    rooms = serializers.ListField(child=serializers.CharField(), allow_empty=False)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    per_room_dates = serializers.DictField(child=DateRangeSerializer(), required=False)
    per_room_guests = serializers.DictField(child=RoomGuestsSerializer(), required=False)
    guest_names = GuestRecordSerializer(many=True, required=False)
    guest_type = serializers.ChoiceField(choices=GUEST_TYPES, default=GuestPriceType.EXTERNAL.value)
    adults = serializers.IntegerField(min_value=0, default=0)
    children = serializers.IntegerField(min_value=0, default=0)
    toddlers = serializers.IntegerField(min_value=0, default=0)
    is_bulk_booking = serializers.BooleanField(default=False)
    paid = serializers.BooleanField(default=False)
    name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    group_id = serializers.CharField(required=False, allow_null=True, max_length=16)
    session_id = serializers.CharField(required=False, allow_null=True, max_length=64)
    christmas_code = serializers.CharField(required=False, allow_blank=True, max_length=64)
    skip_notification = serializers.BooleanField(default=False)

    def validate(self, attrs):  # type: ignore
        attrs = dict(attrs)
        current = self.context.get("booking")

        if "guest_type" in attrs:
            attrs["guest_type"] = GuestPriceType(attrs["guest_type"])
        if "guest_names" in attrs:
            attrs["guest_names"] = tuple(attrs["guest_names"])

        start = attrs.pop("start_date", None)
        end = attrs.pop("end_date", None)
        if start is not None or end is not None:
            if current is not None:
                start = start or current.dates.start_date
                end = end or current.dates.end_date
            if start is None or end is None:
                raise serializers.ValidationError("start_date and end_date are required together.")
            if end <= start:
                raise serializers.ValidationError({"end_date": "end_date must be after start_date."})
            attrs["dates"] = DateRange(start, end)
        elif attrs.get("per_room_dates"):
            attrs["dates"] = DateRange.spanning(attrs["per_room_dates"].values())
        elif not self.partial:
            raise serializers.ValidationError(
                "Either start_date/end_date or per_room_dates is required."
            )
        return attrs


class BookingFilterSerializer(serializers.Serializer):
    group_id = serializers.CharField(required=False)
    paid = serializers.BooleanField(required=False, allow_null=True, default=None)
    is_bulk_booking = serializers.BooleanField(required=False, allow_null=True, default=None)


def _money(value):
    return serializers.DecimalField(max_digits=12, decimal_places=2).to_representation(value)


class PriceQuoteSerializer(serializers.Serializer):
    """Renders a PriceQuote."""

    def to_representation(self, instance):  # type: ignore
        data = instance.to_dict()
        data["total"] = _money(instance.total)
        if instance.stored_total is not None:
            data["stored_total"] = _money(instance.stored_total)
        return data


class BookingSerializer(serializers.Serializer):
    """Renders a PricedBooking: the stored record plus its recomputed price."""

    def to_representation(self, instance):  # type: ignore
        booking, price = instance.booking, instance.price
        return {
            "id": booking.id,
            "group_id": booking.group_id,
            "rooms": list(booking.rooms),
            "start_date": booking.dates.start_date.isoformat(),
            "end_date": booking.dates.end_date.isoformat(),
            "per_room_dates": {r: d.to_dict() for r, d in booking.per_room_dates.items()},
            "per_room_guests": {r: g.to_dict() for r, g in booking.per_room_guests.items()},
            "guest_names": [g.to_dict() for g in booking.guest_names],
            "guest_type": booking.guest_type.value,
            "adults": booking.adults,
            "children": booking.children,
            "toddlers": booking.toddlers,
            "is_bulk_booking": booking.is_bulk_booking,
            "paid": booking.paid,
            "name": booking.name,
            "email": booking.email,
            "notes": booking.notes,
            "total_price": _money(price.total),
            "stored_total_price": _money(booking.total_price),
            "price_mismatch": price.mismatch,
            "price_note": price.note,
            "price_mode": price.mode,
            "created_at": booking.created_at.isoformat(),
            "updated_at": booking.updated_at.isoformat(),
        }


class BookingGroupSerializer(serializers.Serializer):
    def to_representation(self, instance):  # type: ignore
        from apps.reservations.application.queries import PricedBooking

        span = instance.date_span
        return {
            "group_id": instance.group_id,
            "start_date": span.start_date.isoformat(),
            "end_date": span.end_date.isoformat(),
            "total_price": _money(instance.total_price),
            "stored_total_price": _money(instance.stored_total),
            "paid": instance.paid,
            "bookings": [
                BookingSerializer(PricedBooking(b, instance.prices[b.id])).data
                for b in instance.bookings
            ],
        }


class BlockageWriteSerializer(serializers.Serializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    room_ids = serializers.ListField(child=serializers.CharField(), default=list)
    reason = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)

    def validate(self, attrs):  # type: ignore
        if attrs["end_date"] <= attrs["start_date"]:
            raise serializers.ValidationError({"end_date": "end_date must be after start_date."})
        return {
            "dates": DateRange(attrs["start_date"], attrs["end_date"]),
            "room_ids": tuple(attrs["room_ids"]),
            "reason": attrs["reason"],
        }


class BlockageSerializer(serializers.Serializer):
    def to_representation(self, instance):  # type: ignore
        return {
            "blockage_id": instance.blockage_id,
            "start_date": instance.dates.start_date.isoformat(),
            "end_date": instance.dates.end_date.isoformat(),
            "room_ids": list(instance.room_ids),
            "property_wide": instance.is_property_wide,
            "reason": instance.reason,
        }


class AvailabilityQuerySerializer(serializers.Serializer):
    room = serializers.CharField()
    date = serializers.DateField()
    session = serializers.CharField(required=False, help_text="Session whose own holds are ignored.")


class OccupancyQuerySerializer(serializers.Serializer):
    start = serializers.DateField()
    end = serializers.DateField()
    rooms = serializers.CharField(required=False, help_text="Comma separated room ids.")
    session = serializers.CharField(required=False, help_text="Session whose own holds are ignored.")

    def validate(self, attrs):  # type: ignore
        if attrs["end"] <= attrs["start"]:
            raise serializers.ValidationError({"end": "end must be after start."})
        attrs["dates"] = DateRange(attrs["start"], attrs["end"])
        attrs["room_ids"] = [r.strip() for r in attrs.get("rooms", "").split(",") if r.strip()]
        return attrs


class RatesSerializer(serializers.Serializer):
    prices = serializers.DictField()
    bulk_prices = serializers.DictField()


class ChristmasSettingsSerializer(serializers.Serializer):
    christmas_periods = serializers.ListField(child=serializers.DictField(), default=list)
    christmas_access_codes = serializers.ListField(child=serializers.CharField(), default=list)


class HoldWriteSerializer(serializers.Serializer):
    session_id = serializers.CharField(max_length=64)
    rooms = serializers.ListField(child=serializers.CharField(), allow_empty=False)
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    adults = serializers.IntegerField(min_value=0, default=0)
    children = serializers.IntegerField(min_value=0, default=0)
    toddlers = serializers.IntegerField(min_value=0, default=0)
    guest_type = serializers.ChoiceField(choices=GUEST_TYPES, default=GuestPriceType.EXTERNAL.value)

    def validate(self, attrs):  # type: ignore
        if attrs["end_date"] <= attrs["start_date"]:
            raise serializers.ValidationError({"end_date": "end_date must be after start_date."})
        return {
            "session_id": attrs["session_id"],
            "rooms": tuple(attrs["rooms"]),
            "dates": DateRange(attrs["start_date"], attrs["end_date"]),
            "guests": RoomGuests(
                adults=attrs["adults"], children=attrs["children"], toddlers=attrs["toddlers"],
            ),
            "guest_type": GuestPriceType(attrs["guest_type"]),
        }


class HoldSerializer(serializers.Serializer):
    def to_representation(self, instance):  # type: ignore
        return {
            "proposal_id": instance.proposal_id,
            "session_id": instance.session_id,
            "rooms": list(instance.rooms),
            "start_date": instance.dates.start_date.isoformat(),
            "end_date": instance.dates.end_date.isoformat(),
            "expires_at": instance.expires_at.isoformat(),
            **instance.guests.to_dict(),
            "guest_type": instance.guest_type.value,
        }
