"""Integration tests for the reservation API endpoints."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.reservations.models import Booking, ProposedHold


class ReservationAPITestCase(APITestCase):
    def setUp(self) -> None:
        self.staff = get_user_model().objects.create_user(
            username="spravce",
            email="spravce@example.com",
            password="StaffPass123",
            is_staff=True,
        )
        self.check_in = timezone.localdate() + timedelta(days=10)
        self.list_url = reverse("booking-list")

    def _day(self, offset: int) -> str:
        return str(self.check_in + timedelta(days=offset))

    def _payload(self, start: int = 0, end: int = 2, **overrides) -> dict:
        payload = {
            "rooms": ["14"],
            "start_date": self._day(start),
            "end_date": self._day(end),
            "guest_type": "utia",
            "adults": 2,
            "children": 1,
            "name": "Jana Nováková",
            "email": "jana@example.com",
        }
        payload.update(overrides)
        return payload

    def _create(self, **overrides):
        response = self.client.post(self.list_url, self._payload(**overrides), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return response.data


class BookingAPITests(ReservationAPITestCase):
    """Covers creation, conflicts, edits and deletion of bookings."""

    def test_guest_can_create_booking(self) -> None:
        data = self._create(paid=True)

        # 2 nights x (298 + 49 + 24) at the seeded rates
        self.assertEqual(data["total_price"], "742.00")
        self.assertEqual(data["stored_total_price"], "742.00")
        self.assertFalse(data["price_mismatch"])
        self.assertEqual(data["price_mode"], "simple")
        self.assertFalse(data["paid"])
        self.assertTrue(data["id"].startswith("BK"))
        self.assertEqual(Booking.objects.count(), 1)

    def test_overlapping_booking_is_rejected_with_conflict(self) -> None:
        self._create()

        response = self.client.post(self.list_url, self._payload(start=1, end=3), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["error"], "ConflictError")
        self.assertEqual(response.data["room_id"], "14")
        self.assertEqual(response.data["date"], self._day(1))
        self.assertEqual(Booking.objects.count(), 1)

    def test_back_to_back_bookings_are_allowed(self) -> None:
        self._create(start=0, end=2)
        self._create(start=2, end=4)
        self.assertEqual(Booking.objects.count(), 2)

    def test_guest_cannot_book_in_the_past(self) -> None:
        yesterday = timezone.localdate() - timedelta(days=1)
        payload = self._payload(start_date=str(yesterday), end_date=str(yesterday + timedelta(days=2)))

        response = self.client.post(self.list_url, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["field"], "start_date")

    def test_staff_can_back_date_booking(self) -> None:
        self.client.force_authenticate(self.staff)
        past = date(2025, 6, 1)
        payload = self._payload(start_date=str(past), end_date=str(past + timedelta(days=2)), paid=True)

        response = self.client.post(self.list_url, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertTrue(response.data["paid"])

    def test_over_capacity_booking_is_rejected(self) -> None:
        response = self.client.post(self.list_url, self._payload(adults=4), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["error"], "CapacityError")

    def test_invalid_payload_is_rejected(self) -> None:
        response = self.client.post(self.list_url, self._payload(start=2, end=1), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)

        response = self.client.post(self.list_url, self._payload(rooms=[]), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)

    def test_listing_requires_staff(self) -> None:
        self._create()
        response = self.client.get(self.list_url)
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_staff_can_list_and_filter_bookings(self) -> None:
        self.client.force_authenticate(self.staff)
        unpaid = self._create()
        paid = self._create(start=3, end=5, paid=True)

        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual([item["id"] for item in response.data], [unpaid["id"], paid["id"]])

        response = self.client.get(self.list_url, {"paid": "true"})
        self.assertEqual([item["id"] for item in response.data], [paid["id"]])

    def test_listing_shows_price_under_current_rates(self) -> None:
        booking = self._create()
        Booking.objects.filter(id=booking["id"]).update(total_price=Decimal("700.00"))
        self.client.force_authenticate(self.staff)

        response = self.client.get(reverse("booking-detail", args=[booking["id"]]))

        self.assertEqual(response.data["total_price"], "742.00")
        self.assertEqual(response.data["stored_total_price"], "700.00")
        self.assertTrue(response.data["price_mismatch"])
        self.assertIn("700", response.data["price_note"])

    def test_staff_can_edit_booking(self) -> None:
        booking = self._create()
        self.client.force_authenticate(self.staff)
        detail_url = reverse("booking-detail", args=[booking["id"]])

        response = self.client.patch(detail_url, {"end_date": self._day(3)}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["end_date"], self._day(3))
        self.assertEqual(response.data["total_price"], "1113.00")
        self.assertEqual(Booking.objects.get(id=booking["id"]).total_price, Decimal("1113.00"))

    def test_edit_into_conflict_is_rejected(self) -> None:
        self._create()
        second = self._create(start=3, end=5)
        self.client.force_authenticate(self.staff)

        response = self.client.patch(
            reverse("booking-detail", args=[second["id"]]),
            {"start_date": self._day(1)},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(str(Booking.objects.get(id=second["id"]).start_date), self._day(3))

    def test_staff_can_delete_booking(self) -> None:
        booking = self._create()
        self.client.force_authenticate(self.staff)

        response = self.client.delete(reverse("booking-detail", args=[booking["id"]]))

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Booking.objects.exists())

        response = self.client.delete(reverse("booking-detail", args=[booking["id"]]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND, response.data)


class BookingGroupAPITests(ReservationAPITestCase):
    def setUp(self) -> None:
        super().setUp()
        self.client.force_authenticate(self.staff)

    def test_intervals_are_priced_and_summed(self) -> None:
        intervals_url = reverse("group-intervals", args=["GRPFAMILY01"])
        first = self.client.post(intervals_url, self._payload(), format="json")
        second = self.client.post(
            intervals_url,
            self._payload(start=5, end=6, rooms=["13"], guest_type="external", adults=1, children=0),
            format="json",
        )
        self.assertEqual(first.status_code, status.HTTP_201_CREATED, first.data)
        self.assertEqual(second.status_code, status.HTTP_201_CREATED, second.data)

        response = self.client.get(reverse("group-detail", args=["GRPFAMILY01"]))

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        # 742 + 1 night x 499
        self.assertEqual(response.data["total_price"], "1241.00")
        self.assertEqual(response.data["start_date"], self._day(0))
        self.assertEqual(response.data["end_date"], self._day(6))
        self.assertEqual([b["id"] for b in response.data["bookings"]], [first.data["id"], second.data["id"]])

    def test_deleting_last_interval_removes_group(self) -> None:
        created = self.client.post(reverse("group-intervals", args=["GRPSOLO0001"]), self._payload(), format="json")
        self.client.delete(reverse("booking-detail", args=[created.data["id"]]))

        response = self.client.get(reverse("group-detail", args=["GRPSOLO0001"]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND, response.data)


class AvailabilityAPITests(ReservationAPITestCase):
    def _block(self, **payload):
        self.client.force_authenticate(self.staff)
        response = self.client.post(reverse("blockage-list"), payload, format="json")
        self.client.force_authenticate(None)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return response.data

    def test_blocked_room_reports_blockage(self) -> None:
        blockage = self._block(start_date=self._day(0), end_date=self._day(2), room_ids=["12"], reason="Malování")

        response = self.client.get(reverse("availability-list"), {"room": "12", "date": self._day(1)})

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "blocked")
        self.assertEqual(response.data["blockage_id"], blockage["blockage_id"])

    def test_blockage_rejects_booking(self) -> None:
        self._block(start_date=self._day(0), end_date=self._day(2))

        response = self.client.post(self.list_url, self._payload(start=1, end=3, rooms=["44"]), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["date"], self._day(1))
        self.assertIsNotNone(response.data["blockage_id"])

    def test_public_availability_hides_booking_id(self) -> None:
        self._create()

        response = self.client.get(reverse("availability-list"), {"room": "14", "date": self._day(0)})

        self.assertEqual(response.data["status"], "booked")
        self.assertNotIn("booking_id", response.data)

    def test_unknown_room_is_not_found(self) -> None:
        response = self.client.get(reverse("availability-list"), {"room": "99", "date": self._day(0)})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND, response.data)

    def test_occupancy_grid(self) -> None:
        self._create()
        self._block(start_date=self._day(1), end_date=self._day(2), room_ids=["13"])

        response = self.client.get(
            reverse("availability-grid"),
            {"start": self._day(0), "end": self._day(2), "rooms": "14,13"},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data, {
            "14": {self._day(0): "booked", self._day(1): "booked"},
            "13": {self._day(0): "free", self._day(1): "blocked"},
        })

    def test_blockage_listing_and_deletion(self) -> None:
        blockage = self._block(start_date=self._day(0), end_date=self._day(2))
        self.client.force_authenticate(self.staff)

        listed = self.client.get(reverse("blockage-list"))
        self.assertEqual([b["blockage_id"] for b in listed.data], [blockage["blockage_id"]])
        self.assertTrue(listed.data[0]["property_wide"])

        response = self.client.delete(reverse("blockage-detail", args=[blockage["blockage_id"]]))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get(reverse("blockage-list")).data, [])


class PricingAPITests(ReservationAPITestCase):
    def test_quote_is_public_and_stores_nothing(self) -> None:
        response = self.client.post(reverse("price-quote"), self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["total"], "742.00")
        self.assertIsNone(response.data["stored_total"])
        self.assertFalse(response.data["mismatch"])
        self.assertFalse(Booking.objects.exists())

    def test_rates_are_public(self) -> None:
        response = self.client.get(reverse("rate-settings"))

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["prices"]["utia"]["base"], Decimal("298"))
        self.assertEqual(response.data["bulk_prices"]["base_price"], Decimal("2000"))

    def test_staff_can_replace_rates(self) -> None:
        booking = self._create()
        self.client.force_authenticate(self.staff)
        rates = {
            "prices": {
                "utia": {"base": 300, "adult": 50, "child": 25},
                "external": {"base": 500, "adult": 100, "child": 50},
            },
            "bulk_prices": {
                "base_price": 2000,
                "utia_adult": 100,
                "utia_child": 0,
                "external_adult": 250,
                "external_child": 50,
            },
        }

        response = self.client.put(reverse("rate-settings"), rates, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)

        detail = self.client.get(reverse("booking-detail", args=[booking["id"]]))
        self.assertEqual(detail.data["total_price"], "750.00")
        self.assertEqual(detail.data["stored_total_price"], "742.00")

    def test_incomplete_rates_are_rejected(self) -> None:
        self.client.force_authenticate(self.staff)
        rates = {
            "prices": {"utia": {"base": 300, "adult": 50}, "external": {"base": 500, "adult": 100, "child": 50}},
            "bulk_prices": {"base_price": 2000},
        }

        response = self.client.put(reverse("rate-settings"), rates, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["field"], "prices.utia.child")

    def test_guests_cannot_replace_rates(self) -> None:
        response = self.client.put(reverse("rate-settings"), {"prices": {}, "bulk_prices": {}}, format="json")
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))


class RecordEditAPITests(ReservationAPITestCase):
    def test_payment_edit_keeps_charged_price(self) -> None:
        booking = self._create()
        self.client.force_authenticate(self.staff)
        rates = self.client.get(reverse("rate-settings")).data
        rates["prices"]["utia"]["base"] = 400
        self.client.put(reverse("rate-settings"), rates, format="json")

        response = self.client.patch(
            reverse("booking-detail", args=[booking["id"]]), {"paid": True}, format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertTrue(response.data["paid"])
        self.assertEqual(response.data["stored_total_price"], "742.00")
        self.assertEqual(Booking.objects.get(id=booking["id"]).total_price, Decimal("742.00"))

    def test_booking_under_later_blockage_accepts_payment(self) -> None:
        booking = self._create()
        self.client.force_authenticate(self.staff)
        blocked = self.client.post(
            reverse("blockage-list"),
            {"start_date": self._day(1), "end_date": self._day(3), "room_ids": ["14"]},
            format="json",
        )
        self.assertEqual(blocked.status_code, status.HTTP_201_CREATED, blocked.data)

        response = self.client.patch(
            reverse("booking-detail", args=[booking["id"]]),
            {"paid": True, "notes": "Zaplaceno převodem"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertTrue(Booking.objects.get(id=booking["id"]).paid)


class HoldAPITests(ReservationAPITestCase):
    def _hold(self, session_id: str = "session-a", **overrides):
        payload = {
            "session_id": session_id,
            "rooms": ["14"],
            "start_date": self._day(0),
            "end_date": self._day(2),
        }
        payload.update(overrides)
        response = self.client.post(reverse("hold-list"), payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return response.data

    def test_guest_can_hold_rooms(self) -> None:
        hold = self._hold()

        self.assertTrue(hold["proposal_id"].startswith("PROP"))
        self.assertEqual(ProposedHold.objects.count(), 1)

        response = self.client.get(reverse("availability-list"), {"room": "14", "date": self._day(0)})
        self.assertEqual(response.data["status"], "proposed")
        self.assertNotIn("proposal_id", response.data)

    def test_grid_ignores_own_session_holds(self) -> None:
        self._hold()
        query = {"start": self._day(0), "end": self._day(1), "rooms": "14"}

        others = self.client.get(reverse("availability-grid"), query)
        own = self.client.get(reverse("availability-grid"), {**query, "session": "session-a"})

        self.assertEqual(others.data, {"14": {self._day(0): "proposed"}})
        self.assertEqual(own.data, {"14": {self._day(0): "free"}})

    def test_held_rooms_reject_other_sessions(self) -> None:
        hold = self._hold()

        response = self.client.post(self.list_url, self._payload(session_id="session-b"), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["proposal_id"], hold["proposal_id"])
        self.assertFalse(Booking.objects.exists())

    def test_booking_from_holding_session_releases_hold(self) -> None:
        self._hold()

        self._create(session_id="session-a")

        self.assertFalse(ProposedHold.objects.exists())

    def test_release_hold_by_id_and_by_session(self) -> None:
        first = self._hold()
        self._hold(rooms=["12"])
        self._hold(rooms=["13"])

        response = self.client.delete(reverse("hold-detail", args=[first["proposal_id"]]))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

        response = self.client.post(reverse("hold-release"), {"session_id": "session-a"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data, {"released": 2})
        self.assertFalse(ProposedHold.objects.exists())

    def test_unknown_hold_is_not_found(self) -> None:
        response = self.client.delete(reverse("hold-detail", args=["PROPMISSING0"]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND, response.data)


class ChristmasAPITests(ReservationAPITestCase):
    def setUp(self) -> None:
        super().setUp()
        # Late enough that the access code window is still open
        self.christmas = date(timezone.localdate().year + 1, 12, 23)
        self.client.force_authenticate(self.staff)
        response = self.client.put(reverse("christmas-settings"), {
            "christmas_periods": [{"start": str(self.christmas), "end": str(self.christmas + timedelta(days=10))}],
            "christmas_access_codes": ["VANOCE"],
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.client.force_authenticate(None)

    def _christmas_payload(self, **overrides) -> dict:
        payload = self._payload(
            start_date=str(self.christmas), end_date=str(self.christmas + timedelta(days=2)),
        )
        payload.update(overrides)
        return payload

    def test_christmas_stay_needs_access_code(self) -> None:
        response = self.client.post(self.list_url, self._christmas_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["field"], "christmas_code")

    def test_christmas_stay_with_access_code(self) -> None:
        response = self.client.post(self.list_url, self._christmas_payload(christmas_code="VANOCE"), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)

    def test_utia_employees_are_limited_to_two_rooms(self) -> None:
        response = self.client.post(
            self.list_url,
            self._christmas_payload(rooms=["12", "13", "14"], christmas_code="VANOCE"),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["field"], "rooms")

    def test_staff_read_christmas_settings(self) -> None:
        self.client.force_authenticate(self.staff)
        response = self.client.get(reverse("christmas-settings"))
        self.assertEqual(response.data["christmas_access_codes"], ["VANOCE"])
        self.assertEqual(response.data["christmas_periods"][0]["start"], str(self.christmas))

    def test_guests_cannot_read_christmas_settings(self) -> None:
        response = self.client.get(reverse("christmas-settings"))
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_malformed_period_is_rejected(self) -> None:
        self.client.force_authenticate(self.staff)
        response = self.client.put(reverse("christmas-settings"), {
            "christmas_periods": [{"start": "2030-12-23", "end": "2030-12-01"}],
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
