"""Integration tests for booking API endpoints."""

from __future__ import annotations

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking, WaitlistEntry
from apps.payments.models import Payment
from apps.rooms.models import InventoryRecord, RoomType, SpecialDay

User = get_user_model()


class BookingAPITests(APITestCase):
    """Covers creation, rule rejections, cancellation and staff overrides."""

    def setUp(self) -> None:
        self.guest = User.objects.create_user(username="guest", email="guest@example.com", password="GuestPass123")
        self.other = User.objects.create_user(username="other", email="other@example.com", password="OtherPass123")
        self.staff = User.objects.create_user(username="frontdesk", password="StaffPass123", is_staff=True)
        self.room_type = RoomType.objects.create(name="Deluxe King", base_price=10000, total_rooms=2)
        self.start = timezone.localdate() + timedelta(days=10)
        self.client.force_authenticate(self.guest)
        self.list_url = reverse("booking-list")

    def _payload(self, start=None, nights: int = 2, rooms: int = 1) -> dict:
        start = start or self.start
        return {
            "room_type": self.room_type.pk,
            "start_date": str(start),
            "end_date": str(start + timedelta(days=nights)),
            "rooms": rooms,
        }

    def _confirm(self, booking_id: int) -> None:
        Payment.objects.create(
            booking_id=booking_id,
            amount=1,
            status=Payment.Status.SUCCEEDED,
            paid_at=timezone.now(),
        )
        response = self.client.post(reverse("booking-confirm", args=[booking_id]), format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)

    def test_guest_can_create_provisional_booking(self) -> None:
        response = self.client.post(self.list_url, self._payload(rooms=2), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], Booking.Status.PROVISIONAL)
        self.assertEqual(response.data["total_price"], 40000)
        self.assertEqual(response.data["price"]["adjusted_total"], 40000)
        self.assertEqual(response.data["nights"], 2)
        self.assertEqual(InventoryRecord.objects.count(), 0)

    def test_insufficient_notice_is_a_rule_violation(self) -> None:
        response = self.client.post(
            self.list_url, self._payload(start=timezone.localdate() + timedelta(days=1)), format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY, response.data)
        self.assertEqual(response.data["code"], "RULE_VIOLATION")

    def test_checkout_before_arrival_is_rejected(self) -> None:
        payload = self._payload()
        payload["end_date"] = payload["start_date"]

        response = self.client.post(self.list_url, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)

    def test_blocked_night_is_rejected(self) -> None:
        SpecialDay.objects.create(
            date=self.start + timedelta(days=1),
            rule_type=SpecialDay.RuleType.BLOCKED,
            description="Private event",
        )

        response = self.client.post(self.list_url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY, response.data)
        self.assertFalse(Booking.objects.exists())

    def test_sold_out_stay_returns_conflict_with_dates(self) -> None:
        first = self.client.post(self.list_url, self._payload(rooms=2), format="json")
        self._confirm(first.data["id"])

        response = self.client.post(self.list_url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["code"], "NO_AVAILABILITY")
        self.assertEqual(len(response.data["details"]["blocking_dates"]), 2)

    def test_back_to_back_stays_do_not_conflict(self) -> None:
        first = self.client.post(self.list_url, self._payload(rooms=2), format="json")
        self._confirm(first.data["id"])

        response = self.client.post(
            self.list_url, self._payload(start=self.start + timedelta(days=2)), format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)

    def test_confirm_without_payment_is_rejected(self) -> None:
        created = self.client.post(self.list_url, self._payload(), format="json")

        response = self.client.post(reverse("booking-confirm", args=[created.data["id"]]), format="json")

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY, response.data)

    def test_guest_can_cancel_confirmed_booking(self) -> None:
        created = self.client.post(self.list_url, self._payload(), format="json")
        self._confirm(created.data["id"])

        response = self.client.post(
            reverse("booking-cancel", args=[created.data["id"]]), {"reason": "Plans changed"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], Booking.Status.CANCELLED)
        self.assertEqual(response.data["cancellation_source"], "guest")
        self.assertEqual(
            set(InventoryRecord.objects.values_list("available_rooms", flat=True)), {self.room_type.total_rooms}
        )

    def test_cancelling_twice_is_a_conflict(self) -> None:
        created = self.client.post(self.list_url, self._payload(), format="json")
        cancel_url = reverse("booking-cancel", args=[created.data["id"]])
        self.client.post(cancel_url, {}, format="json")

        response = self.client.post(cancel_url, {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["code"], "CONFLICT")

    def test_guests_only_see_their_own_bookings(self) -> None:
        created = self.client.post(self.list_url, self._payload(), format="json")
        self.client.force_authenticate(self.other)

        listing = self.client.get(self.list_url)
        detail = self.client.get(reverse("booking-detail", args=[created.data["id"]]))

        self.assertEqual(listing.data["count"], 0)
        self.assertEqual(detail.status_code, status.HTTP_404_NOT_FOUND)

    def test_override_requires_staff(self) -> None:
        created = self.client.post(self.list_url, self._payload(), format="json")
        url = reverse("booking-override", args=[created.data["id"]])

        response = self.client.post(url, {"action": "FORCE_CONFIRM", "reason": "Paid cash"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_can_force_confirm(self) -> None:
        created = self.client.post(self.list_url, self._payload(), format="json")
        self.client.force_authenticate(self.staff)

        response = self.client.post(
            reverse("booking-override", args=[created.data["id"]]),
            {"action": "FORCE_CONFIRM", "reason": "Paid cash at reception"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], Booking.Status.CONFIRMED)

    def test_anonymous_users_cannot_book(self) -> None:
        self.client.force_authenticate(None)

        response = self.client.post(self.list_url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class WaitlistAPITests(APITestCase):
    def setUp(self) -> None:
        self.guest = User.objects.create_user(username="guest", email="guest@example.com", password="GuestPass123")
        self.room_type = RoomType.objects.create(name="Suite", base_price=30000, total_rooms=1)
        self.start = timezone.localdate() + timedelta(days=15)
        self.client.force_authenticate(self.guest)

    def test_guest_can_join_and_leave_the_waitlist(self) -> None:
        response = self.client.post(
            reverse("waitlist-list"),
            {
                "room_type": self.room_type.pk,
                "start_date": str(self.start),
                "end_date": str(self.start + timedelta(days=2)),
                "rooms": 1,
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], WaitlistEntry.Status.PENDING)

        delete = self.client.delete(reverse("waitlist-detail", args=[response.data["id"]]))

        self.assertEqual(delete.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(WaitlistEntry.objects.get().status, WaitlistEntry.Status.EXPIRED)

    def test_waitlist_rejects_more_rooms_than_exist(self) -> None:
        response = self.client.post(
            reverse("waitlist-list"),
            {
                "room_type": self.room_type.pk,
                "start_date": str(self.start),
                "end_date": str(self.start + timedelta(days=2)),
                "rooms": 2,
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
