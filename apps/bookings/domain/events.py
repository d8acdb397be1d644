"""
Booking Domain Events

Published on the message bus after the transaction that produced them
commits. Subscribers live in the notifications and bookings apps.
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class BookingCreated(DomainEvent):
    """A provisional booking was placed and awaits payment"""
    booking_id: int
    guest_id: int
    room_type_id: int
    start_date: date
    end_date: date
    rooms_booked: int
    total_price: int
    deposit_amount: Optional[int] = None


@dataclass(kw_only=True)
class BookingConfirmed(DomainEvent):
    """
    Payment succeeded and the room-nights were taken from inventory

    Triggers: confirmation notification to the guest
    """
    booking_id: int
    guest_id: int
    payment_id: Optional[int] = None
    override: bool = False


@dataclass(kw_only=True)
class BookingCancelled(DomainEvent):
    """
    Triggers: cancellation notice, waitlist notification when inventory
    was released
    """
    booking_id: int
    guest_id: int
    room_type_id: int
    start_date: date
    end_date: date
    previous_status: str
    source: str
    reason: str = ''
    released_inventory: bool = False


@dataclass(kw_only=True)
class BookingExpired(DomainEvent):
    booking_id: int
    guest_id: int


@dataclass(kw_only=True)
class BookingConfirmationConflict(DomainEvent):
    """
    A payment succeeded but inventory could no longer cover the stay

    Triggers: critical log, staff alert, refund escalation
    """
    booking_id: int
    payment_id: int
    guest_id: int
    blocking_dates: List[date]


@dataclass(kw_only=True)
class InventoryAdjusted(DomainEvent):
    room_type_id: int
    start_date: date
    end_date: date
    rooms: int
    direction: str
