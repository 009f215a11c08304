"""API views for the reservation domain."""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.reservations.application.command_handlers import (
    CreateBlockageCommand,
    CreateBlockageHandler,
    CreateBookingCommand,
    CreateBookingHandler,
    CreateHoldCommand,
    CreateHoldHandler,
    DeleteBlockageCommand,
    DeleteBlockageHandler,
    DeleteBookingCommand,
    DeleteBookingHandler,
    EditBookingCommand,
    EditBookingHandler,
    ReleaseHoldCommand,
    ReleaseHoldHandler,
    UpdateChristmasCommand,
    UpdateChristmasHandler,
    UpdateRatesCommand,
    UpdateRatesHandler,
)
from apps.reservations.application.queries import BookingListing, PricedBooking
from apps.reservations.domain.availability import AvailabilityEngine
from apps.reservations.domain.blockages import BlockageRegistry
from apps.reservations.domain.christmas import ChristmasPolicy
from apps.reservations.domain.entities import Booking
from apps.reservations.domain.errors import NotFoundError
from apps.reservations.domain.groups import BookingGroupManager
from apps.reservations.domain.pricing import PriceCalculator
from apps.reservations.domain.rates import RateConfig

from .repositories import DjangoStorage
from .serializers import (
    AvailabilityQuerySerializer,
    BlockageSerializer,
    BlockageWriteSerializer,
    BookingFilterSerializer,
    BookingGroupSerializer,
    BookingSerializer,
    BookingWriteSerializer,
    ChristmasSettingsSerializer,
    HoldSerializer,
    HoldWriteSerializer,
    OccupancyQuerySerializer,
    PriceQuoteSerializer,
    RatesSerializer,
)

storage = DjangoStorage()
booking_listing = BookingListing(storage)


def _config(name: str):
    return settings.RESERVATIONS[name]


def _is_staff(request) -> bool:
    return bool(request.user and request.user.is_staff)


def _handler(handler_class):
    return handler_class(
        storage,
        max_advance_days=_config("MAX_ADVANCE_DAYS"),
        hold_minutes=_config("HOLD_MINUTES"),
    )


def _priced(outcome) -> PricedBooking:
    return PricedBooking(outcome.booking, outcome.price)


def _engine(session_id=None) -> AvailabilityEngine:
    return AvailabilityEngine.from_storage(storage, now=timezone.now(), exclude_session=session_id)


class BookingViewSet(viewsets.ViewSet):
    """Bookings: anyone may create one; everything else is staff only."""

    def get_permissions(self):  # type: ignore
        if self.action == "create":
            return [permissions.AllowAny()]
        return [permissions.IsAdminUser()]

    def list(self, request):  # type: ignore
        filters = BookingFilterSerializer(data=request.query_params.dict())
        filters.is_valid(raise_exception=True)
        items = booking_listing.list(**filters.validated_data)
        return Response([BookingSerializer(item).data for item in items])

    def retrieve(self, request, pk=None):  # type: ignore
        booking = storage.get_booking(pk)
        if booking is None:
            raise NotFoundError("Booking", pk)
        rates = RateConfig.from_dict(storage.get_settings())
        item = PricedBooking(booking, PriceCalculator.recompute(booking, rates))
        return Response(BookingSerializer(item).data)

    def create(self, request):  # type: ignore
        serializer = BookingWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        staff = _is_staff(request)
        skip_notification = data.pop("skip_notification", False) and staff
        if not staff:
            # Only staff may mark a booking paid
            data["paid"] = False

        outcome = _handler(CreateBookingHandler).handle(CreateBookingCommand(
            is_admin=staff,
            today=timezone.localdate(),
            skip_notification=skip_notification,
            **data,
        ))
        return Response(BookingSerializer(_priced(outcome)).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):  # type: ignore
        current = storage.get_booking(pk)
        if current is None:
            raise NotFoundError("Booking", pk)
        serializer = BookingWriteSerializer(data=request.data, partial=True, context={"booking": current})
        serializer.is_valid(raise_exception=True)
        changes = dict(serializer.validated_data)
        skip_notification = changes.pop("skip_notification", False)
        christmas_code = changes.pop("christmas_code", "")
        changes.pop("session_id", None)

        outcome = _handler(EditBookingHandler).handle(EditBookingCommand(
            booking_id=pk,
            changes=changes,
            christmas_code=christmas_code,
            is_admin=True,
            today=timezone.localdate(),
            skip_notification=skip_notification,
        ))
        return Response(BookingSerializer(_priced(outcome)).data)

    def destroy(self, request, pk=None):  # type: ignore
        skip_notification = request.query_params.get("skip_notification", "").lower() in ("1", "true")
        _handler(DeleteBookingHandler).handle(DeleteBookingCommand(
            booking_id=pk,
            skip_notification=skip_notification,
        ))
        return Response(status=status.HTTP_204_NO_CONTENT)


class BookingGroupViewSet(viewsets.ViewSet):
    """Groups of bookings; the price is the sum of freshly recomputed members."""

    permission_classes = [permissions.IsAdminUser]

    def retrieve(self, request, pk=None):  # type: ignore
        group = BookingGroupManager(storage).group_of(pk)
        return Response(BookingGroupSerializer(group).data)

    @action(detail=True, methods=["post"])
    def intervals(self, request, pk=None):  # type: ignore
        serializer = BookingWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data["group_id"] = pk
        skip_notification = data.pop("skip_notification", False)

        outcome = _handler(CreateBookingHandler).handle(CreateBookingCommand(
            is_admin=True,
            today=timezone.localdate(),
            skip_notification=skip_notification,
            **data,
        ))
        return Response(BookingSerializer(_priced(outcome)).data, status=status.HTTP_201_CREATED)


class BlockageViewSet(viewsets.ViewSet):
    permission_classes = [permissions.IsAdminUser]

    def list(self, request):  # type: ignore
        blockages = BlockageRegistry(storage).list_active(
            timezone.localdate(),
            grace_days=_config("BLOCKAGE_GRACE_DAYS"),
        )
        return Response([BlockageSerializer(b).data for b in blockages])

    def create(self, request):  # type: ignore
        serializer = BlockageWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        blockage_id = _handler(CreateBlockageHandler).handle(
            CreateBlockageCommand(**serializer.validated_data)
        )
        blockage = BlockageRegistry(storage).get(blockage_id)
        return Response(BlockageSerializer(blockage).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):  # type: ignore
        _handler(DeleteBlockageHandler).handle(DeleteBlockageCommand(blockage_id=pk))
        return Response(status=status.HTTP_204_NO_CONTENT)


class AvailabilityViewSet(viewsets.ViewSet):
    """Public availability: one room/night, or the occupancy grid."""

    permission_classes = [permissions.AllowAny]

    def list(self, request):  # type: ignore
        query = AvailabilityQuerySerializer(data=request.query_params.dict())
        query.is_valid(raise_exception=True)
        engine = _engine(query.validated_data.get("session"))
        result = engine.check_availability(query.validated_data["room"], query.validated_data["date"])
        data = result.to_dict()
        if not _is_staff(request):
            data.pop("booking_id")
            data.pop("proposal_id")
        return Response(data)

    @action(detail=False, methods=["get"])
    def grid(self, request):  # type: ignore
        query = OccupancyQuerySerializer(data=request.query_params.dict())
        query.is_valid(raise_exception=True)
        engine = _engine(query.validated_data.get("session"))
        grid = engine.occupancy(query.validated_data["dates"], query.validated_data["room_ids"] or None)
        return Response({
            room_id: {night.isoformat(): state.value for night, state in nights.items()}
            for room_id, nights in grid.items()
        })


class PriceViewSet(viewsets.ViewSet):
    permission_classes = [permissions.AllowAny]

    @action(detail=False, methods=["post"])
    def quote(self, request):  # type: ignore
        """Price of an unsaved request under the current rates."""
        serializer = BookingWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        record_fields = ("skip_notification", "group_id", "session_id", "christmas_code", "paid", "name", "email", "notes")
        for key in record_fields:
            data.pop(key, None)
        booking = Booking(id="QUOTE", **data)
        quote = PriceCalculator.price(booking, RateConfig.from_dict(storage.get_settings()))
        return Response(PriceQuoteSerializer(quote).data)


class RateSettingsView(APIView):
    """GET the current rate table, PUT a complete replacement (staff)."""

    def get_permissions(self):  # type: ignore
        if self.request.method == "GET":
            return [permissions.AllowAny()]
        return [permissions.IsAdminUser()]

    def get(self, request):  # type: ignore
        return Response(RateConfig.from_dict(storage.get_settings()).to_dict())

    def put(self, request):  # type: ignore
        serializer = RatesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        config = _handler(UpdateRatesHandler).handle(UpdateRatesCommand(rates=serializer.validated_data))
        return Response(config.to_dict())


class HoldViewSet(viewsets.ViewSet):
    """Proposed holds while a guest fills in the booking form."""

    permission_classes = [permissions.AllowAny]

    def create(self, request):  # type: ignore
        serializer = HoldWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        hold = _handler(CreateHoldHandler).handle(
            CreateHoldCommand(now=timezone.now(), **serializer.validated_data)
        )
        return Response(HoldSerializer(hold).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):  # type: ignore
        _handler(ReleaseHoldHandler).handle(ReleaseHoldCommand(proposal_id=pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["post"])
    def release(self, request):  # type: ignore
        """Release every hold of a session."""
        released = _handler(ReleaseHoldHandler).handle(
            ReleaseHoldCommand(session_id=request.data.get("session_id"))
        )
        return Response({"released": released})


class ChristmasSettingsView(APIView):
    """Christmas periods and access codes (staff only)."""

    permission_classes = [permissions.IsAdminUser]

    def get(self, request):  # type: ignore
        return Response(ChristmasPolicy.from_dict(storage.get_settings()).to_dict())

    def put(self, request):  # type: ignore
        serializer = ChristmasSettingsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        policy = _handler(UpdateChristmasHandler).handle(
            UpdateChristmasCommand(settings=serializer.validated_data)
        )
        return Response(policy.to_dict())
