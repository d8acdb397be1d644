"""
Concurrent confirmations against a database with real row locks.

Skipped on the default in-memory SQLite database. To run against
PostgreSQL, install the ``postgres`` extra and point the test settings at
a server whose user may create the test database:

    pip install -e ".[test,postgres]"
    TEST_DB_ENGINE=django.db.backends.postgresql TEST_DB_NAME=hotel \\
    TEST_DB_USER=hotel TEST_DB_PASSWORD=hotel TEST_DB_HOST=localhost \\
        pytest apps/bookings/tests/test_concurrency.py
"""

from __future__ import annotations

import threading
import unittest
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db import connection, connections
from django.test import TransactionTestCase
from django.utils import timezone

from apps.bookings.application.command_handlers import ConfirmBookingCommand, ConfirmBookingHandler
from apps.bookings.models import Booking
from apps.payments.models import Payment
from apps.rooms.models import InventoryRecord, RoomType
from shared.domain.errors import NoAvailability


@unittest.skipUnless(connection.vendor == "postgresql", "row locking needs PostgreSQL")
class ConcurrentConfirmationTests(TransactionTestCase):
    def setUp(self) -> None:
        guest = get_user_model().objects.create_user(username="guest", password="pass12345")
        self.room_type = RoomType.objects.create(name="Twin", base_price=8000, total_rooms=5)
        start = timezone.localdate() + timedelta(days=20)
        self.bookings = []
        for _ in range(12):
            booking = Booking.objects.create(
                guest=guest,
                room_type=self.room_type,
                start_date=start,
                end_date=start + timedelta(days=2),
                rooms_booked=1,
                total_price=16000,
                hold_expires_at=timezone.now() + timedelta(minutes=15),
            )
            Payment.objects.create(
                booking=booking, amount=16000, status=Payment.Status.SUCCEEDED, paid_at=timezone.now()
            )
            self.bookings.append(booking)

    def test_parallel_confirmations_confirm_exactly_capacity(self) -> None:
        barrier = threading.Barrier(len(self.bookings))
        outcomes: list[str] = []
        lock = threading.Lock()

        def confirm(booking_id: int) -> None:
            barrier.wait()
            try:
                ConfirmBookingHandler().handle(ConfirmBookingCommand(booking_id=booking_id))
                result = "confirmed"
            except NoAvailability:
                result = "sold_out"
            finally:
                connections.close_all()
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=confirm, args=(b.pk,)) for b in self.bookings]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(outcomes.count("confirmed"), 5)
        self.assertEqual(outcomes.count("sold_out"), 7)
        self.assertEqual(
            set(InventoryRecord.objects.filter(room_type=self.room_type).values_list("available_rooms", flat=True)),
            {0},
        )
        self.assertEqual(Booking.objects.filter(status=Booking.Status.CONFIRMED).count(), 5)
