"""Payment-side subscribers to domain events."""

from __future__ import annotations

from apps.payments.domain.events import RefundRequested


def request_refund_on_conflict(event: RefundRequested) -> None:
    from apps.payments.tasks import request_refund

    request_refund.delay(event.payment_id, event.reason)


def register(bus) -> None:
    bus.register_event_handler(RefundRequested, request_refund_on_conflict)
