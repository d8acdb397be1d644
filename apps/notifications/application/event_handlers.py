"""Turn booking and payment events into notification tasks."""

from __future__ import annotations

import logging

from apps.bookings.domain.events import (
    BookingCancelled,
    BookingConfirmationConflict,
    BookingConfirmed,
    BookingCreated,
    BookingExpired,
)
from apps.bookings.models import Booking
from apps.payments.domain.events import PaymentFailureRecorded

logger = logging.getLogger(__name__)

GUEST_CHANNEL = "email"


def _booking_data(booking_id: int) -> dict:
    booking = Booking.objects.select_related("room_type").filter(pk=booking_id).first()
    if booking is None:
        return {"booking_id": booking_id}
    return {
        "booking_id": booking.pk,
        "booking_code": booking.booking_code,
        "room_type": booking.room_type.name,
        "start_date": booking.start_date.isoformat(),
        "end_date": booking.end_date.isoformat(),
        "total_price": booking.total_price,
        "currency": booking.currency,
        "hold_expires_at": booking.hold_expires_at.isoformat() if booking.hold_expires_at else "",
    }


def _notify_guest(guest_id: int, notification_type: str, data: dict) -> None:
    from apps.notifications.tasks import dispatch_notification

    dispatch_notification.delay(guest_id, notification_type, GUEST_CHANNEL, data)
    dispatch_notification.delay(guest_id, notification_type, "in_app", data)


def on_booking_created(event: BookingCreated) -> None:
    _notify_guest(event.guest_id, "booking_created", _booking_data(event.booking_id))


def on_booking_confirmed(event: BookingConfirmed) -> None:
    _notify_guest(event.guest_id, "booking_confirmed", _booking_data(event.booking_id))


def on_booking_cancelled(event: BookingCancelled) -> None:
    data = _booking_data(event.booking_id)
    data["reason"] = event.reason
    _notify_guest(event.guest_id, "booking_cancelled", data)


def on_booking_expired(event: BookingExpired) -> None:
    _notify_guest(event.guest_id, "booking_expired", _booking_data(event.booking_id))


def on_payment_failed(event: PaymentFailureRecorded) -> None:
    data = _booking_data(event.booking_id)
    data["reason"] = event.reason or "the payment was declined"
    _notify_guest(event.guest_id, "payment_failed", data)


def on_confirmation_conflict(event: BookingConfirmationConflict) -> None:
    from apps.notifications.tasks import alert_staff_task
    from apps.notifications.templates import render

    data = _booking_data(event.booking_id)
    data["payment_id"] = event.payment_id
    data["blocking_dates"] = ", ".join(d.isoformat() for d in event.blocking_dates) or "unknown dates"
    subject, message = render("booking_conflict", data)
    alert_staff_task.delay(subject, message)


def register(bus) -> None:
    bus.register_event_handler(BookingCreated, on_booking_created)
    bus.register_event_handler(BookingConfirmed, on_booking_confirmed)
    bus.register_event_handler(BookingCancelled, on_booking_cancelled)
    bus.register_event_handler(BookingExpired, on_booking_expired)
    bus.register_event_handler(PaymentFailureRecorded, on_payment_failed)
    bus.register_event_handler(BookingConfirmationConflict, on_confirmation_conflict)
