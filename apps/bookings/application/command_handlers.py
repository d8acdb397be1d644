"""
Booking Command Handlers

Use cases of the booking lifecycle. Each handler runs its state change in
one DjangoUnitOfWork so that the status update, any inventory adjustment
and the resulting domain events commit or roll back together.

Commands:
- CreateProvisionalBookingCommand: validate, price and hold a stay (no inventory effect)
- ConfirmBookingCommand: take inventory and confirm a paid booking
- CancelBookingCommand: cancel, releasing inventory when it was held
- ExpireBookingCommand: expire an unpaid hold
- OverrideBookingCommand: staff force-confirm / force-cancel
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional
import logging

import structlog
from django.conf import settings
from django.utils import timezone

from shared.application.retry import retry_on_transient_error
from shared.application.uow import DjangoUnitOfWork
from shared.domain.errors import NoAvailability, NotFound, RuleViolation
from apps.bookings import services
from apps.bookings.domain.entities import BookingStatus, CancellationSource, ensure_transition
from apps.bookings.domain.events import (
    BookingCancelled,
    BookingConfirmed,
    BookingCreated,
    BookingExpired,
)
from apps.bookings.domain.inventory import InventoryDirection
from apps.bookings.domain.pricing import PriceBreakdown, PricingEngine
from apps.bookings.domain.rules import GuestType
from apps.bookings.models import Booking

logger = logging.getLogger(__name__)
audit_logger = structlog.get_logger("audit")


# ===== Commands =====

@dataclass
class CreateProvisionalBookingCommand:
    guest_id: int
    room_type_id: int
    start_date: date
    end_date: date
    rooms: int = 1
    guest_type: Optional[GuestType] = None


@dataclass
class ConfirmBookingCommand:
    """
    Confirm a provisional booking.

    Without ``override`` the booking must have a succeeded booking payment
    (and a paid deposit when one is required).
    """
    booking_id: int
    payment_id: Optional[int] = None
    override: bool = False


@dataclass
class CancelBookingCommand:
    booking_id: int
    reason: str = ''
    source: CancellationSource = CancellationSource.GUEST


@dataclass
class ExpireBookingCommand:
    booking_id: int


class OverrideAction(str, Enum):
    FORCE_CONFIRM = 'FORCE_CONFIRM'
    FORCE_CANCEL = 'FORCE_CANCEL'


@dataclass
class OverrideBookingCommand:
    booking_id: int
    action: OverrideAction
    actor_id: int
    reason: str = ''


@dataclass
class ProvisionalBooking:
    booking: Booking
    price: PriceBreakdown
    warnings: List[str] = field(default_factory=list)


def _load_locked(booking_id: int) -> Booking:
    queryset = services._lock_queryset_if_possible(Booking.objects.filter(pk=booking_id))
    booking = queryset.first()
    if booking is None:
        raise NotFound(f"Booking {booking_id} not found.")
    return booking


# ===== Command Handlers =====

class CreateProvisionalBookingHandler:
    """
    Phase 1 of the two-phase booking.

    Rule validation, an advisory availability read and pricing happen
    before anything is written. The resulting PROVISIONAL booking carries
    the price, any group deposit and a hold expiry; inventory is untouched
    until payment confirmation re-checks it under lock.
    """

    def __init__(self, bus=None, now: Callable[[], datetime] = timezone.now):
        self.bus = bus
        self.now = now

    def handle(self, command: CreateProvisionalBookingCommand) -> ProvisionalBooking:
        from django.contrib.auth import get_user_model

        guest = get_user_model().objects.get(pk=command.guest_id)
        room_type = services.get_room_type(command.room_type_id)
        dates = services.stay_range(command.start_date, command.end_date)
        guest_type = GuestType(command.guest_type) if command.guest_type else services.guest_type_for(guest)
        now = self.now()
        today = timezone.localdate(now)

        special_days = services.load_special_days(room_type.pk, dates)
        validator = services.build_rule_validator()
        warnings = validator.validate(
            dates, command.rooms, room_type.total_rooms, guest_type, today, special_days
        )

        availability = services.check_availability(room_type.pk, dates.start_date, dates.end_date, command.rooms)
        if not availability.is_available:
            raise NoAvailability(
                "Not enough rooms for the requested dates.",
                blocking_dates=availability.blocking_dates,
            )

        price = PricingEngine(room_type.base_price, room_type.currency, special_days).price(dates, command.rooms)
        deposit = validator.deposit_for(command.rooms, price.adjusted_total)

        with DjangoUnitOfWork(self.bus) as uow:
            booking = Booking.objects.create(
                guest=guest,
                room_type=room_type,
                start_date=dates.start_date,
                end_date=dates.end_date,
                rooms_booked=command.rooms,
                guest_type=guest_type.value,
                status=Booking.Status.PROVISIONAL,
                total_price=price.adjusted_total,
                currency=price.currency,
                deposit_amount=deposit,
                hold_expires_at=now + timedelta(minutes=settings.BOOKING_HOLD_MINUTES),
            )
            uow.add_event(BookingCreated(
                aggregate_id=booking.pk,
                booking_id=booking.pk,
                guest_id=guest.pk,
                room_type_id=room_type.pk,
                start_date=booking.start_date,
                end_date=booking.end_date,
                rooms_booked=booking.rooms_booked,
                total_price=booking.total_price,
                deposit_amount=deposit,
            ))

        logger.info(
            "Provisional booking %s created: room type %s, %s, %d room(s), total %d",
            booking.booking_code, room_type.pk, dates, command.rooms, booking.total_price,
        )
        return ProvisionalBooking(booking=booking, price=price, warnings=warnings)


class ConfirmBookingHandler:
    """
    Phase 2: decrement inventory and confirm in one transaction.

    NoAvailability leaves the booking PROVISIONAL and propagates; the
    caller decides how to escalate (HTTP 409, refund flow).
    """

    def __init__(self, bus=None, adjust_inventory=None, now: Callable[[], datetime] = timezone.now):
        self.bus = bus
        self.adjust_inventory = adjust_inventory or services.adjust_inventory
        self.now = now

    @retry_on_transient_error
    def handle(self, command: ConfirmBookingCommand) -> Booking:
        with DjangoUnitOfWork(self.bus) as uow:
            booking = _load_locked(command.booking_id)
            ensure_transition(booking.status, BookingStatus.CONFIRMED)
            if not command.override:
                self._ensure_paid(booking)

            ledger = self.adjust_inventory(
                booking.room_type_id,
                booking.start_date,
                booking.end_date,
                booking.rooms_booked,
                InventoryDirection.DECREMENT,
            )
            uow.collect_events(ledger)

            booking.status = Booking.Status.CONFIRMED
            booking.confirmed_at = self.now()
            booking.hold_expires_at = None
            booking.requires_refund = False
            booking.conflict_reason = ''
            booking.save(update_fields=[
                "status", "confirmed_at", "hold_expires_at",
                "requires_refund", "conflict_reason", "updated_at",
            ])
            uow.add_event(BookingConfirmed(
                aggregate_id=booking.pk,
                booking_id=booking.pk,
                guest_id=booking.guest_id,
                payment_id=command.payment_id,
                override=command.override,
            ))

        logger.info("Booking %s confirmed", booking.booking_code)
        return booking

    @staticmethod
    def _ensure_paid(booking: Booking) -> None:
        from apps.payments.models import Payment

        paid = booking.deposit_covers_total or Payment.objects.filter(
            booking=booking,
            purpose=Payment.Purpose.BOOKING,
            status=Payment.Status.SUCCEEDED,
        ).exists()
        if not paid:
            raise RuleViolation(
                "Booking cannot be confirmed without a successful payment.",
                details={"booking_id": booking.pk},
            )
        if booking.requires_deposit and not booking.is_deposit_paid:
            raise RuleViolation(
                "Booking cannot be confirmed before its deposit is paid.",
                details={"booking_id": booking.pk, "deposit_amount": booking.deposit_amount},
            )


class CancelBookingHandler:
    """
    Cancel a booking.

    A CONFIRMED booking returns its room-nights to inventory in the same
    transaction as the status change; a PROVISIONAL one never held any.
    """

    def __init__(self, bus=None, adjust_inventory=None, now: Callable[[], datetime] = timezone.now):
        self.bus = bus
        self.adjust_inventory = adjust_inventory or services.adjust_inventory
        self.now = now

    @retry_on_transient_error
    def handle(self, command: CancelBookingCommand) -> Booking:
        with DjangoUnitOfWork(self.bus) as uow:
            booking = _load_locked(command.booking_id)
            previous_status = booking.status
            ensure_transition(previous_status, BookingStatus.CANCELLED)

            released = previous_status == Booking.Status.CONFIRMED
            if released:
                ledger = self.adjust_inventory(
                    booking.room_type_id,
                    booking.start_date,
                    booking.end_date,
                    booking.rooms_booked,
                    InventoryDirection.INCREMENT,
                )
                uow.collect_events(ledger)

            booking.status = Booking.Status.CANCELLED
            booking.cancelled_at = self.now()
            booking.cancellation_source = CancellationSource(command.source).value
            booking.cancellation_reason = command.reason[:255]
            booking.hold_expires_at = None
            booking.save(update_fields=[
                "status", "cancelled_at", "cancellation_source",
                "cancellation_reason", "hold_expires_at", "updated_at",
            ])
            uow.add_event(BookingCancelled(
                aggregate_id=booking.pk,
                booking_id=booking.pk,
                guest_id=booking.guest_id,
                room_type_id=booking.room_type_id,
                start_date=booking.start_date,
                end_date=booking.end_date,
                previous_status=previous_status,
                source=booking.cancellation_source,
                reason=booking.cancellation_reason,
                released_inventory=released,
            ))

        logger.info(
            "Booking %s cancelled by %s (was %s)",
            booking.booking_code, booking.cancellation_source, previous_status,
        )
        return booking


class ExpireBookingHandler:
    """Expire a PROVISIONAL booking whose hold has run out. No inventory effect."""

    def __init__(self, bus=None, now: Callable[[], datetime] = timezone.now):
        self.bus = bus
        self.now = now

    @retry_on_transient_error
    def handle(self, command: ExpireBookingCommand) -> Optional[Booking]:
        with DjangoUnitOfWork(self.bus) as uow:
            booking = _load_locked(command.booking_id)
            # Re-checked under lock: a payment may have confirmed it meanwhile.
            if booking.requires_refund or not booking.hold_expired(self.now()):
                return None
            ensure_transition(booking.status, BookingStatus.EXPIRED)

            booking.status = Booking.Status.EXPIRED
            booking.cancellation_source = CancellationSource.SYSTEM.value
            booking.cancellation_reason = "Payment hold expired"
            booking.save(update_fields=["status", "cancellation_source", "cancellation_reason", "updated_at"])
            uow.add_event(BookingExpired(
                aggregate_id=booking.pk,
                booking_id=booking.pk,
                guest_id=booking.guest_id,
            ))

        logger.info("Booking %s expired", booking.booking_code)
        return booking


class OverrideBookingHandler:
    """Staff override of the payment requirement, written to the audit log."""

    def __init__(self, confirm_handler=None, cancel_handler=None, bus=None):
        self.confirm_handler = confirm_handler or ConfirmBookingHandler(bus=bus)
        self.cancel_handler = cancel_handler or CancelBookingHandler(bus=bus)

    def handle(self, command: OverrideBookingCommand) -> Booking:
        previous = Booking.objects.filter(pk=command.booking_id).values_list("status", flat=True).first()
        if previous is None:
            raise NotFound(f"Booking {command.booking_id} not found.")

        action = OverrideAction(command.action)
        if action == OverrideAction.FORCE_CONFIRM:
            booking = self.confirm_handler.handle(
                ConfirmBookingCommand(booking_id=command.booking_id, override=True)
            )
        else:
            booking = self.cancel_handler.handle(
                CancelBookingCommand(
                    booking_id=command.booking_id,
                    reason=command.reason,
                    source=CancellationSource.STAFF,
                )
            )

        audit_logger.info(
            "booking.override",
            booking_id=booking.pk,
            booking_code=booking.booking_code,
            action=action.value,
            actor_id=command.actor_id,
            reason=command.reason,
            previous_status=previous,
            new_status=booking.status,
        )
        return booking


def register(bus) -> None:
    """Wire the booking commands to their handlers on ``bus``."""
    handlers = {
        CreateProvisionalBookingCommand: CreateProvisionalBookingHandler(bus=bus).handle,
        ConfirmBookingCommand: ConfirmBookingHandler(bus=bus).handle,
        CancelBookingCommand: CancelBookingHandler(bus=bus).handle,
        ExpireBookingCommand: ExpireBookingHandler(bus=bus).handle,
        OverrideBookingCommand: OverrideBookingHandler(bus=bus).handle,
    }
    for command_type, handler in handlers.items():
        if not bus.has_command_handler(command_type):
            bus.register_command_handler(command_type, handler)
