"""
Payment Confirmation Handler

Applies provider events to payments and bookings. Deliveries are
at-least-once and may arrive concurrently, so every event is processed
under a row lock on its payment and the payment's own status decides
whether there is anything left to do:

- succeeded, payment already SUCCEEDED -> IDEMPOTENT_NOOP
- succeeded -> payment SUCCEEDED, booking confirmed (inventory decremented)
  in the same transaction; if inventory ran out meanwhile the booking is
  flagged for refund and staff are alerted (CONFLICT)
- failed -> payment FAILED, booking stays PROVISIONAL
- refunded -> payment REFUNDED, booking cancelled (inventory released)
"""

from __future__ import annotations

import logging
from typing import Callable

from shared.application.retry import retry_on_transient_error
from shared.application.uow import DjangoUnitOfWork
from shared.domain.errors import NoAvailability
from apps.bookings.application.command_handlers import (
    CancelBookingCommand,
    CancelBookingHandler,
    ConfirmBookingCommand,
    ConfirmBookingHandler,
)
from apps.bookings.domain.entities import CancellationSource
from apps.bookings.domain.events import BookingConfirmationConflict
from apps.bookings.models import Booking
from apps.bookings.services import _lock_queryset_if_possible
from apps.payments.domain.events import PaymentFailureRecorded, RefundRequested
from apps.payments.domain.provider_events import (
    PaymentFailed,
    PaymentRefunded,
    PaymentSucceeded,
    ProviderEvent,
    WebhookOutcome,
)
from apps.payments.models import Payment, PaymentEvent

logger = logging.getLogger(__name__)


class PaymentConfirmationHandler:

    def __init__(self, bus=None, confirm_handler=None, cancel_handler=None):
        self.bus = bus
        self.confirm_handler = confirm_handler or ConfirmBookingHandler(bus=bus)
        self.cancel_handler = cancel_handler or CancelBookingHandler(bus=bus)
        self._dispatch: dict[type, Callable] = {
            PaymentSucceeded: self._handle_succeeded,
            PaymentFailed: self._handle_failed,
            PaymentRefunded: self._handle_refunded,
        }

    @retry_on_transient_error
    def handle(self, event: ProviderEvent, payload: dict | None = None) -> WebhookOutcome:
        with DjangoUnitOfWork(self.bus) as uow:
            payment = _lock_queryset_if_possible(
                Payment.objects.filter(pk=event.payment_id, booking_id=event.booking_id)
            ).first()

            if payment is None:
                logger.warning(
                    "Payment event %s references unknown payment %s / booking %s",
                    event.event_id, event.payment_id, event.booking_id,
                )
                outcome = WebhookOutcome.IGNORED
            else:
                outcome = self._dispatch[type(event)](uow, payment, event)

            self._record(event, payment, outcome, payload)

        logger.info("Payment event %s (%s) -> %s", event.event_id, event.type.value, outcome.value)
        return outcome

    def _handle_succeeded(self, uow, payment: Payment, event: PaymentSucceeded) -> WebhookOutcome:
        if payment.status == Payment.Status.SUCCEEDED:
            logger.info("Payment %s already succeeded, duplicate event %s", payment.pk, event.event_id)
            return WebhookOutcome.IDEMPOTENT_NOOP
        if payment.status == Payment.Status.REFUNDED:
            logger.warning("Ignoring success for refunded payment %s", payment.pk)
            return WebhookOutcome.IGNORED

        if event.amount is not None and event.amount != payment.amount:
            logger.warning(
                "Payment %s captured %s %s, expected %s (event %s)",
                payment.pk, event.amount, payment.currency, payment.amount, event.event_id,
            )
        payment.mark_succeeded(event.provider_payment_id, captured_amount=event.amount)
        booking = _lock_queryset_if_possible(Booking.objects.filter(pk=payment.booking_id)).get()

        if payment.purpose == Payment.Purpose.DEPOSIT and not booking.is_deposit_paid:
            booking.is_deposit_paid = True
            booking.save(update_fields=["is_deposit_paid", "updated_at"])

        if booking.status == Booking.Status.CONFIRMED:
            return WebhookOutcome.PROCESSED
        if booking.status != Booking.Status.PROVISIONAL:
            return self._escalate(
                uow, booking, payment, blocking_dates=[],
                reason=f"Payment captured for a {booking.status} booking",
            )

        if not self._fully_paid(booking):
            logger.info("Booking %s paid in part, awaiting remaining payment", booking.booking_code)
            return WebhookOutcome.AWAITING_PAYMENT

        try:
            self.confirm_handler.handle(ConfirmBookingCommand(booking_id=booking.pk, payment_id=payment.pk))
        except NoAvailability as exc:
            booking.refresh_from_db()
            return self._escalate(
                uow, booking, payment, blocking_dates=exc.blocking_dates,
                reason="Inventory exhausted before payment confirmation",
            )
        return WebhookOutcome.PROCESSED

    def _handle_failed(self, uow, payment: Payment, event: PaymentFailed) -> WebhookOutcome:
        if payment.status == Payment.Status.FAILED:
            return WebhookOutcome.IDEMPOTENT_NOOP
        if payment.status != Payment.Status.PENDING:
            logger.warning("Ignoring failure for %s payment %s", payment.status, payment.pk)
            return WebhookOutcome.IGNORED

        payment.mark_failed(event.failure_message, event.provider_payment_id)
        guest_id = Booking.objects.filter(pk=payment.booking_id).values_list("guest_id", flat=True).get()
        uow.add_event(PaymentFailureRecorded(
            aggregate_id=payment.pk,
            payment_id=payment.pk,
            booking_id=payment.booking_id,
            guest_id=guest_id,
            reason=payment.failure_reason,
        ))
        return WebhookOutcome.PROCESSED

    def _handle_refunded(self, uow, payment: Payment, event: PaymentRefunded) -> WebhookOutcome:
        if payment.status == Payment.Status.REFUNDED:
            return WebhookOutcome.IDEMPOTENT_NOOP

        payment.mark_refunded(event.amount)
        booking = _lock_queryset_if_possible(Booking.objects.filter(pk=payment.booking_id)).get()
        if booking.requires_refund:
            booking.requires_refund = False
            booking.save(update_fields=["requires_refund", "updated_at"])
        if booking.status in (Booking.Status.PROVISIONAL, Booking.Status.CONFIRMED):
            self.cancel_handler.handle(CancelBookingCommand(
                booking_id=booking.pk,
                reason="Payment refunded",
                source=CancellationSource.PAYMENT_PROVIDER,
            ))
        return WebhookOutcome.PROCESSED

    @staticmethod
    def _fully_paid(booking: Booking) -> bool:
        balance_paid = booking.deposit_covers_total or Payment.objects.filter(
            booking=booking,
            purpose=Payment.Purpose.BOOKING,
            status=Payment.Status.SUCCEEDED,
        ).exists()
        deposit_ok = not booking.requires_deposit or booking.is_deposit_paid
        return balance_paid and deposit_ok

    def _escalate(self, uow, booking: Booking, payment: Payment, *, blocking_dates, reason: str) -> WebhookOutcome:
        booking.requires_refund = True
        booking.conflict_reason = reason[:255]
        booking.save(update_fields=["requires_refund", "conflict_reason", "updated_at"])
        logger.critical(
            "Booking %s could not be confirmed after payment %s succeeded: %s (nights: %s)",
            booking.booking_code, payment.pk, reason,
            ", ".join(night.isoformat() for night in blocking_dates) or "-",
        )
        uow.add_event(BookingConfirmationConflict(
            aggregate_id=booking.pk,
            booking_id=booking.pk,
            payment_id=payment.pk,
            guest_id=booking.guest_id,
            blocking_dates=list(blocking_dates),
        ))
        uow.add_event(RefundRequested(
            aggregate_id=payment.pk,
            payment_id=payment.pk,
            booking_id=booking.pk,
            amount=payment.amount,
            reason=reason,
        ))
        return WebhookOutcome.CONFLICT

    @staticmethod
    def _record(event: ProviderEvent, payment: Payment | None, outcome: WebhookOutcome, payload: dict | None):
        record, created = PaymentEvent.objects.get_or_create(
            event_id=event.event_id,
            defaults={
                "payment": payment,
                "event_type": event.type.value,
                "payload": payload or {},
                "outcome": outcome.value,
            },
        )
        if not created:
            record.received_count += 1
            record.save(update_fields=["received_count", "updated_at"])


def handle_payment_event(event: ProviderEvent, payload: dict | None = None) -> WebhookOutcome:
    """Entry point used by the webhook view and tasks."""
    return PaymentConfirmationHandler().handle(event, payload)


