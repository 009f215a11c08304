"""URL routing for the reservation domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import (
    AvailabilityViewSet,
    BlockageViewSet,
    BookingGroupViewSet,
    BookingViewSet,
    ChristmasSettingsView,
    HoldViewSet,
    PriceViewSet,
    RateSettingsView,
)

router = DefaultRouter()
router.register(r"bookings", BookingViewSet, basename="booking")
router.register(r"groups", BookingGroupViewSet, basename="group")
router.register(r"blockages", BlockageViewSet, basename="blockage")
router.register(r"availability", AvailabilityViewSet, basename="availability")
router.register(r"prices", PriceViewSet, basename="price")
router.register(r"holds", HoldViewSet, basename="hold")

urlpatterns = [
    path("", include(router.urls)),
    path("settings/rates/", RateSettingsView.as_view(), name="rate-settings"),
    path("settings/christmas/", ChristmasSettingsView.as_view(), name="christmas-settings"),
]
