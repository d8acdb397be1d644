"""
Booking lifecycle

Status values and the legal transitions between them:

    PROVISIONAL -> CONFIRMED   payment succeeded, inventory decremented
    PROVISIONAL -> CANCELLED   guest or staff cancelled before payment
    PROVISIONAL -> EXPIRED     hold ran out without payment
    CONFIRMED   -> CANCELLED   cancellation after payment, inventory released

CANCELLED and EXPIRED are terminal.
"""

from enum import Enum
from typing import Dict, FrozenSet

from shared.domain.errors import InvalidTransition


class BookingStatus(str, Enum):
    PROVISIONAL = 'provisional'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    EXPIRED = 'expired'


class CancellationSource(str, Enum):
    GUEST = 'guest'
    STAFF = 'staff'
    PAYMENT_PROVIDER = 'payment_provider'
    SYSTEM = 'system'


ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PROVISIONAL: frozenset({
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
        BookingStatus.EXPIRED,
    }),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.EXPIRED: frozenset(),
}


def can_transition(current, target) -> bool:
    return BookingStatus(target) in ALLOWED_TRANSITIONS[BookingStatus(current)]


def ensure_transition(current, target) -> None:
    """Raise InvalidTransition unless current -> target is a legal move"""
    current, target = BookingStatus(current), BookingStatus(target)
    if not can_transition(current, target):
        raise InvalidTransition(
            f"Cannot move booking from {current.value} to {target.value}.",
            details={'from': current.value, 'to': target.value},
        )