"""API tests for the room catalog, availability and price quotes."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.rooms.models import InventoryRecord, RoomType, SpecialDay

User = get_user_model()


class RoomTypeAPITests(APITestCase):
    def setUp(self) -> None:
        self.guest = User.objects.create_user(username="guest", password="GuestPass123")
        self.staff = User.objects.create_user(username="manager", password="StaffPass123", is_staff=True)
        self.room_type = RoomType.objects.create(name="Deluxe King", base_price=10000, total_rooms=5)
        self.hidden = RoomType.objects.create(name="Closed Wing", base_price=8000, total_rooms=3, is_active=False)
        self.start = timezone.localdate() + timedelta(days=20)

    def _stay(self, nights: int = 3, rooms: int = 1) -> dict:
        return {
            "start": str(self.start),
            "end": str(self.start + timedelta(days=nights)),
            "rooms": rooms,
        }

    def test_anonymous_users_see_only_active_room_types(self) -> None:
        response = self.client.get(reverse("room-type-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        names = [item["name"] for item in response.data["results"]]
        self.assertEqual(names, ["Deluxe King"])

    def test_staff_see_inactive_room_types(self) -> None:
        self.client.force_authenticate(self.staff)

        response = self.client.get(reverse("room-type-list"))

        self.assertEqual(response.data["count"], 2)

    def test_guests_cannot_change_the_catalog(self) -> None:
        self.client.force_authenticate(self.guest)

        response = self.client.post(
            reverse("room-type-list"),
            {"name": "Twin", "base_price": 9000, "total_rooms": 4},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_create_room_type_with_supported_currency(self) -> None:
        self.client.force_authenticate(self.staff)

        created = self.client.post(
            reverse("room-type-list"),
            {"name": "Twin", "base_price": 9000, "total_rooms": 4, "currency": "eur"},
            format="json",
        )
        rejected = self.client.post(
            reverse("room-type-list"),
            {"name": "Loft", "base_price": 9000, "total_rooms": 4, "currency": "XYZ"},
            format="json",
        )

        self.assertEqual(created.status_code, status.HTTP_201_CREATED, created.data)
        self.assertEqual(created.data["currency"], "EUR")
        self.assertEqual(rejected.status_code, status.HTTP_400_BAD_REQUEST)

    def test_availability_reports_blocking_and_blocked_nights(self) -> None:
        InventoryRecord.objects.create(room_type=self.room_type, date=self.start, available_rooms=1)
        SpecialDay.objects.create(
            date=self.start + timedelta(days=2),
            room_type=self.room_type,
            rule_type=SpecialDay.RuleType.BLOCKED,
        )

        response = self.client.get(
            reverse("room-type-availability", args=[self.room_type.pk]), self._stay(rooms=2)
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertFalse(response.data["is_available"])
        self.assertEqual(response.data["min_availability"], 0)
        self.assertIn(str(self.start), response.data["blocking_dates"])
        self.assertEqual(response.data["blocked_dates"], [str(self.start + timedelta(days=2))])

    def test_missing_inventory_rows_count_as_full_capacity(self) -> None:
        response = self.client.get(
            reverse("room-type-availability", args=[self.room_type.pk]), self._stay(rooms=5)
        )

        self.assertTrue(response.data["is_available"])
        self.assertEqual(response.data["min_availability"], 5)
        self.assertEqual(response.data["blocking_dates"], [])

    def test_shrinking_a_room_type_caps_existing_inventory(self) -> None:
        InventoryRecord.objects.create(room_type=self.room_type, date=self.start, available_rooms=4)
        self.client.force_authenticate(self.staff)

        patched = self.client.patch(
            reverse("room-type-detail", args=[self.room_type.pk]), {"total_rooms": 3}, format="json"
        )
        availability = self.client.get(
            reverse("room-type-availability", args=[self.room_type.pk]), self._stay(rooms=3)
        )
        calendar = self.client.get(
            reverse("room-type-calendar", args=[self.room_type.pk]),
            {"start": str(self.start), "end": str(self.start + timedelta(days=1))},
        )

        self.assertEqual(patched.status_code, status.HTTP_200_OK, patched.data)
        self.assertEqual(availability.status_code, status.HTTP_200_OK, availability.data)
        self.assertTrue(availability.data["is_available"])
        self.assertEqual(availability.data["min_availability"], 3)
        self.assertEqual(calendar.data["days"][0]["available_rooms"], 3)

    def test_availability_rejects_reversed_dates(self) -> None:
        response = self.client.get(
            reverse("room-type-availability", args=[self.room_type.pk]),
            {"start": str(self.start), "end": str(self.start)},
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_price_quote_applies_special_rates(self) -> None:
        SpecialDay.objects.create(
            date=self.start + timedelta(days=1),
            rule_type=SpecialDay.RuleType.SPECIAL_RATE,
            rate_type=SpecialDay.RateType.MULTIPLIER,
            rate_value=Decimal("1.5"),
            description="Festival",
        )

        response = self.client.get(
            reverse("room-type-price", args=[self.room_type.pk]), self._stay(nights=3, rooms=2)
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["base_price"], 60000)
        self.assertEqual(response.data["adjusted_total"], 70000)
        self.assertTrue(response.data["has_special_rates"])
        self.assertEqual([night["price"] for night in response.data["nights"]], [10000, 15000, 10000])

    def test_room_type_rule_beats_global_rule(self) -> None:
        night = self.start
        SpecialDay.objects.create(
            date=night,
            rule_type=SpecialDay.RuleType.SPECIAL_RATE,
            rate_type=SpecialDay.RateType.MULTIPLIER,
            rate_value=Decimal("2"),
        )
        SpecialDay.objects.create(
            date=night,
            room_type=self.room_type,
            rule_type=SpecialDay.RuleType.SPECIAL_RATE,
            rate_type=SpecialDay.RateType.FIXED,
            rate_value=Decimal("12000"),
        )

        response = self.client.get(
            reverse("room-type-price", args=[self.room_type.pk]), self._stay(nights=1)
        )

        self.assertEqual(response.data["adjusted_total"], 12000)

    def test_price_of_blocked_stay_is_a_rule_violation(self) -> None:
        SpecialDay.objects.create(date=self.start, rule_type=SpecialDay.RuleType.BLOCKED)

        response = self.client.get(reverse("room-type-price", args=[self.room_type.pk]), self._stay())

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(response.data["code"], "RULE_VIOLATION")

    def test_calendar_is_staff_only(self) -> None:
        url = reverse("room-type-calendar", args=[self.room_type.pk])
        params = {"start": str(self.start), "end": str(self.start + timedelta(days=2))}
        InventoryRecord.objects.create(room_type=self.room_type, date=self.start, available_rooms=3)

        self.client.force_authenticate(self.guest)
        forbidden = self.client.get(url, params)
        self.client.force_authenticate(self.staff)
        response = self.client.get(url, params)

        self.assertEqual(forbidden.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [day["available_rooms"] for day in response.data["days"]],
            [3, self.room_type.total_rooms],
        )


class SpecialDayAPITests(APITestCase):
    def setUp(self) -> None:
        self.staff = User.objects.create_user(username="manager", password="StaffPass123", is_staff=True)
        self.guest = User.objects.create_user(username="guest", password="GuestPass123")
        self.date = timezone.localdate() + timedelta(days=30)

    def test_guests_cannot_manage_special_days(self) -> None:
        self.client.force_authenticate(self.guest)

        response = self.client.get(reverse("special-day-list"))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_special_rate_needs_a_rate(self) -> None:
        self.client.force_authenticate(self.staff)

        response = self.client.post(
            reverse("special-day-list"),
            {"date": str(self.date), "rule_type": "special_rate"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("rate_value", response.data)

    def test_blocked_day_drops_rate_fields(self) -> None:
        self.client.force_authenticate(self.staff)

        response = self.client.post(
            reverse("special-day-list"),
            {
                "date": str(self.date),
                "rule_type": "blocked",
                "rate_type": "multiplier",
                "rate_value": "1.2",
                "description": "Renovation",
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        special_day = SpecialDay.objects.get()
        self.assertEqual(special_day.rate_type, "")
        self.assertIsNone(special_day.rate_value)
