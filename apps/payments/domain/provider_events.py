"""
Payment provider events

Provider webhooks are parsed into one of three event shapes. Every event
carries the provider's event id (its idempotency key) and the local
payment and booking it refers to.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class ProviderEventType(str, Enum):
    PAYMENT_SUCCEEDED = 'payment_succeeded'
    PAYMENT_FAILED = 'payment_failed'
    REFUNDED = 'refunded'


@dataclass(frozen=True)
class PaymentSucceeded:
    event_id: str
    payment_id: int
    booking_id: int
    provider_payment_id: Optional[str] = None
    amount: Optional[int] = None

    type = ProviderEventType.PAYMENT_SUCCEEDED


@dataclass(frozen=True)
class PaymentFailed:
    event_id: str
    payment_id: int
    booking_id: int
    provider_payment_id: Optional[str] = None
    failure_message: str = ''

    type = ProviderEventType.PAYMENT_FAILED


@dataclass(frozen=True)
class PaymentRefunded:
    event_id: str
    payment_id: int
    booking_id: int
    provider_payment_id: Optional[str] = None
    amount: Optional[int] = None

    type = ProviderEventType.REFUNDED


ProviderEvent = Union[PaymentSucceeded, PaymentFailed, PaymentRefunded]


class WebhookOutcome(str, Enum):
    PROCESSED = 'processed'
    AWAITING_PAYMENT = 'awaiting_payment'
    IDEMPOTENT_NOOP = 'idempotent_noop'
    CONFLICT = 'conflict'
    IGNORED = 'ignored'
