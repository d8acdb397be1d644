"""Payment domain events."""

from dataclasses import dataclass

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class PaymentFailureRecorded(DomainEvent):
    """Triggers: payment failure notice to the guest"""
    payment_id: int
    booking_id: int
    guest_id: int
    reason: str = ''


@dataclass(kw_only=True)
class RefundRequested(DomainEvent):
    """A captured payment must be returned to the guest"""
    payment_id: int
    booking_id: int
    amount: int
    reason: str = ''
