"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task  # type: ignore
from django.db.models import Q  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.errors import DomainError

from .models import Booking, WaitlistEntry

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (Celery Beat)
# ============================================================================

@shared_task(name="bookings.expire_provisional_bookings")
def expire_provisional_bookings() -> dict[str, int]:
    """
    Expire provisional bookings whose payment hold has run out.

    Bookings flagged ``requires_refund`` are left for staff. Each booking is
    expired in its own transaction; a failure on one is logged and the sweep
    continues.

    Returns:
        dict: {"expired": number of bookings expired}
    """
    from .application.command_handlers import ExpireBookingCommand, ExpireBookingHandler

    handler = ExpireBookingHandler()
    candidates = Booking.objects.filter(
        status=Booking.Status.PROVISIONAL,
        requires_refund=False,
        hold_expires_at__lte=timezone.now(),
    ).values_list("pk", flat=True)

    expired_count = 0
    for booking_id in list(candidates):
        try:
            if handler.handle(ExpireBookingCommand(booking_id=booking_id)) is not None:
                expired_count += 1
        except DomainError as exc:
            logger.warning("Could not expire booking %s: %s", booking_id, exc)

    if expired_count:
        logger.info("Expired %d provisional bookings", expired_count)
    return {"expired": expired_count}


@shared_task(name="bookings.send_upcoming_stay_reminders")
def send_upcoming_stay_reminders() -> dict[str, int]:
    """Remind guests of confirmed stays starting tomorrow."""
    from apps.notifications.tasks import dispatch_notification

    tomorrow = timezone.localdate() + timedelta(days=1)
    upcoming = Booking.objects.filter(
        status=Booking.Status.CONFIRMED,
        start_date=tomorrow,
    ).select_related("room_type")

    sent = 0
    for booking in upcoming:
        dispatch_notification.delay(
            booking.guest_id,
            "booking_reminder",
            "email",
            {
                "booking_code": booking.booking_code,
                "room_type": booking.room_type.name,
                "start_date": booking.start_date.isoformat(),
            },
        )
        sent += 1
    return {"sent": sent}


# ============================================================================
# WAITLIST
# ============================================================================

@shared_task(name="bookings.notify_waitlist")
def notify_waitlist(room_type_id: int, start_date: str, end_date: str) -> dict[str, int]:
    """
    Tell waiting guests that rooms freed up for an overlapping stay.

    Only entries whose whole stay is now available are notified.
    """
    from apps.notifications.tasks import dispatch_notification

    from .services import check_availability

    entries = WaitlistEntry.objects.filter(
        Q(start_date__lt=end_date) & Q(end_date__gt=start_date),
        room_type_id=room_type_id,
        status=WaitlistEntry.Status.PENDING,
    ).order_by("created_at")

    notified = 0
    for entry in entries:
        try:
            availability = check_availability(entry.room_type_id, entry.start_date, entry.end_date, entry.rooms)
        except DomainError as exc:
            logger.info("Skipping waitlist entry %s: %s", entry.pk, exc)
            continue
        if not availability.is_available:
            continue
        entry.status = WaitlistEntry.Status.NOTIFIED
        entry.notified_at = timezone.now()
        entry.save(update_fields=["status", "notified_at"])
        dispatch_notification.delay(
            entry.guest_id,
            "waitlist_available",
            "email",
            {
                "room_type_id": entry.room_type_id,
                "start_date": entry.start_date.isoformat(),
                "end_date": entry.end_date.isoformat(),
                "rooms": entry.rooms,
            },
        )
        notified += 1

    if notified:
        logger.info("Notified %d waitlist entries for room type %s", notified, room_type_id)
    return {"notified": notified}


@shared_task(name="bookings.expire_waitlist_entries")
def expire_waitlist_entries() -> dict[str, int]:
    """Close waitlist entries whose arrival date has passed."""
    count = WaitlistEntry.objects.filter(
        status__in=[WaitlistEntry.Status.PENDING, WaitlistEntry.Status.NOTIFIED],
        start_date__lt=timezone.localdate(),
    ).update(status=WaitlistEntry.Status.EXPIRED)
    return {"expired": count}
