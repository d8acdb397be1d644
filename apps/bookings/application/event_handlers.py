"""Booking-side subscribers to booking domain events."""

from __future__ import annotations

import logging

from django.db.models import Q  # type: ignore

from apps.bookings.domain.events import BookingCancelled, BookingCreated
from apps.bookings.models import WaitlistEntry

logger = logging.getLogger(__name__)


def notify_waitlist_on_release(event: BookingCancelled) -> None:
    if not event.released_inventory:
        return
    from apps.bookings.tasks import notify_waitlist

    notify_waitlist.delay(event.room_type_id, event.start_date.isoformat(), event.end_date.isoformat())


def convert_waitlist_on_booking(event: BookingCreated) -> None:
    """A guest who books the stay they were waiting for leaves the waitlist."""
    converted = WaitlistEntry.objects.filter(
        Q(start_date__lt=event.end_date) & Q(end_date__gt=event.start_date),
        guest_id=event.guest_id,
        room_type_id=event.room_type_id,
        status__in=[WaitlistEntry.Status.PENDING, WaitlistEntry.Status.NOTIFIED],
    ).update(status=WaitlistEntry.Status.CONVERTED)
    if converted:
        logger.info("Converted %d waitlist entries for guest %s", converted, event.guest_id)


def register(bus) -> None:
    bus.register_event_handler(BookingCancelled, notify_waitlist_on_release)
    bus.register_event_handler(BookingCreated, convert_waitlist_on_booking)
