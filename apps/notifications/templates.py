"""Plain-text message templates keyed by notification type."""

from __future__ import annotations

from typing import Any, Mapping, Tuple

TEMPLATES = {
    "booking_created": (
        "Booking {booking_code} received",
        "Your booking {booking_code} for {room_type} ({start_date} to {end_date}) "
        "is held until {hold_expires_at}. Total: {total_price} {currency}.",
    ),
    "booking_confirmed": (
        "Booking {booking_code} confirmed",
        "Your stay in {room_type} from {start_date} to {end_date} is confirmed.",
    ),
    "booking_cancelled": (
        "Booking {booking_code} cancelled",
        "Your booking {booking_code} was cancelled. {reason}",
    ),
    "booking_expired": (
        "Booking {booking_code} expired",
        "The payment hold for booking {booking_code} ran out and the booking was released.",
    ),
    "booking_reminder": (
        "Your stay starts tomorrow",
        "Reminder: your stay in {room_type} (booking {booking_code}) starts on {start_date}.",
    ),
    "payment_failed": (
        "Payment failed for booking {booking_code}",
        "We could not take the payment for booking {booking_code}: {reason}",
    ),
    "waitlist_available": (
        "Rooms available",
        "Rooms are available again for {start_date} to {end_date}. Book now before they go.",
    ),
    "booking_conflict": (
        "Payment captured without inventory: booking {booking_code}",
        "Payment {payment_id} succeeded for booking {booking_code} but no rooms were left "
        "on {blocking_dates}. A refund has been requested.",
    ),
}


class _Defaults(dict):
    def __missing__(self, key: str) -> str:
        return ""


def render(notification_type: str, data: Mapping[str, Any]) -> Tuple[str, str]:
    """Return (title, message); unknown types use ``title``/``message`` from data."""
    values = _Defaults(data)
    if notification_type not in TEMPLATES:
        return str(data.get("title", notification_type)), str(data.get("message", ""))
    title, message = TEMPLATES[notification_type]
    return title.format_map(values), message.format_map(values).strip()
