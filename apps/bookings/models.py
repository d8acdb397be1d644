"""Booking domain models."""

from __future__ import annotations

import secrets

from django.conf import settings  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .domain.entities import BookingStatus, CancellationSource
from .domain.rules import DepositTerms, DepositType, GuestType


class Booking(models.Model):
    """
    A guest's reservation of one or more rooms of a room type.

    Status is changed only by the command handlers in
    ``apps.bookings.application``; a PROVISIONAL booking does not hold
    inventory, a CONFIRMED one does.
    """

    class Status(models.TextChoices):
        PROVISIONAL = BookingStatus.PROVISIONAL.value, _("Provisional")
        CONFIRMED = BookingStatus.CONFIRMED.value, _("Confirmed")
        CANCELLED = BookingStatus.CANCELLED.value, _("Cancelled")
        EXPIRED = BookingStatus.EXPIRED.value, _("Expired")

    class GuestTypeChoices(models.TextChoices):
        REGULAR = GuestType.REGULAR.value, _("Regular")
        VIP = GuestType.VIP.value, _("VIP")
        CORPORATE = GuestType.CORPORATE.value, _("Corporate")

    class CancellationSourceChoices(models.TextChoices):
        GUEST = CancellationSource.GUEST.value, _("Guest")
        STAFF = CancellationSource.STAFF.value, _("Staff")
        PAYMENT_PROVIDER = CancellationSource.PAYMENT_PROVIDER.value, _("Payment provider")
        SYSTEM = CancellationSource.SYSTEM.value, _("System")

    guest = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    room_type = models.ForeignKey(
        "rooms.RoomType",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    booking_code = models.CharField(max_length=12, unique=True, editable=False)
    start_date = models.DateField()
    end_date = models.DateField(help_text=_("Checkout date, exclusive."))
    rooms_booked = models.PositiveIntegerField(default=1)
    guest_type = models.CharField(
        max_length=16,
        choices=GuestTypeChoices.choices,
        default=GuestTypeChoices.REGULAR,
    )
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PROVISIONAL,
    )
    total_price = models.PositiveIntegerField(help_text=_("Minor currency units."))
    currency = models.CharField(max_length=3, default="USD")
    deposit_amount = models.PositiveIntegerField(null=True, blank=True)
    is_deposit_paid = models.BooleanField(default=False)
    hold_expires_at = models.DateTimeField(null=True, blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_source = models.CharField(
        max_length=20,
        choices=CancellationSourceChoices.choices,
        blank=True,
    )
    cancellation_reason = models.CharField(max_length=255, blank=True)
    requires_refund = models.BooleanField(
        default=False,
        help_text=_("Payment captured but the booking could not be confirmed."),
    )
    conflict_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="booking_valid_dates",
            ),
            models.CheckConstraint(
                condition=models.Q(rooms_booked__gte=1),
                name="booking_rooms_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["room_type", "start_date", "end_date"], name="booking_room_type_dates_idx"),
            models.Index(fields=["status", "hold_expires_at"], name="booking_status_hold_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.booking_code} ({self.status})"

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and not self.booking_code:
            self.booking_code = self.generate_booking_code()
        super().save(*args, **kwargs)

    @staticmethod
    def generate_booking_code() -> str:
        return secrets.token_hex(4).upper()

    @property
    def nights(self) -> int:
        return (self.end_date - self.start_date).days

    @property
    def requires_deposit(self) -> bool:
        return bool(self.deposit_amount)

    @property
    def balance_due(self) -> int:
        """What is left to pay after the deposit; zero when the deposit covers the stay."""
        return max(self.total_price - (self.deposit_amount or 0), 0)

    @property
    def deposit_covers_total(self) -> bool:
        return self.requires_deposit and self.balance_due == 0

    def hold_expired(self, now=None) -> bool:
        now = now or timezone.now()
        return bool(
            self.status == self.Status.PROVISIONAL
            and self.hold_expires_at
            and now >= self.hold_expires_at
        )


class BookingRule(models.Model):
    """Booking window per guest type; missing rows fall back to the defaults."""

    guest_type = models.CharField(
        max_length=16,
        choices=Booking.GuestTypeChoices.choices,
        unique=True,
    )
    max_days_advance = models.PositiveIntegerField()
    min_days_notice = models.PositiveIntegerField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking rule")
        verbose_name_plural = _("Booking rules")
        constraints = [
            models.CheckConstraint(
                condition=models.Q(max_days_advance__gte=models.F("min_days_notice")),
                name="booking_rule_window_valid",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.guest_type}: {self.min_days_notice}-{self.max_days_advance} days"


class DepositPolicy(models.Model):
    """Deposit owed by group bookings whose size falls in [min_rooms, max_rooms]."""

    class DepositTypeChoices(models.TextChoices):
        PERCENT = DepositType.PERCENT.value, _("Percentage of total")
        FIXED = DepositType.FIXED.value, _("Fixed amount")

    name = models.CharField(max_length=120)
    min_rooms = models.PositiveIntegerField()
    max_rooms = models.PositiveIntegerField()
    deposit_type = models.CharField(max_length=10, choices=DepositTypeChoices.choices)
    value = models.DecimalField(max_digits=12, decimal_places=2)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Deposit policy")
        verbose_name_plural = _("Deposit policies")
        ordering = ["min_rooms"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(max_rooms__gte=models.F("min_rooms")),
                name="deposit_policy_range_valid",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.min_rooms}-{self.max_rooms} rooms)"

    def to_terms(self) -> DepositTerms:
        return DepositTerms(
            min_rooms=self.min_rooms,
            max_rooms=self.max_rooms,
            deposit_type=DepositType(self.deposit_type),
            value=self.value,
        )

    def clean(self) -> None:
        if self.max_rooms < self.min_rooms:
            raise ValidationError(_("Maximum rooms must not be below minimum rooms."))
        if self.deposit_type == self.DepositTypeChoices.PERCENT and not (0 < self.value <= 100):
            raise ValidationError(_("Percentage deposits must be between 0 and 100."))
        if not self.is_active:
            return
        terms = self.to_terms()
        active = DepositPolicy.objects.filter(is_active=True).exclude(pk=self.pk)
        if any(terms.overlaps(other.to_terms()) for other in active):
            raise ValidationError(_("Active deposit policies must not have overlapping room ranges."))


class WaitlistEntry(models.Model):
    """Guest waiting for a sold-out stay to free up."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Waiting")
        NOTIFIED = "notified", _("Notified")
        CONVERTED = "converted", _("Converted to booking")
        EXPIRED = "expired", _("Expired")

    guest = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="waitlist_entries",
    )
    room_type = models.ForeignKey(
        "rooms.RoomType",
        on_delete=models.CASCADE,
        related_name="waitlist_entries",
    )
    start_date = models.DateField()
    end_date = models.DateField()
    rooms = models.PositiveIntegerField(default=1)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    notified_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Waitlist entry")
        verbose_name_plural = _("Waitlist entries")
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="waitlist_valid_dates",
            ),
        ]

    def __str__(self) -> str:
        return f"Waitlist {self.guest_id} {self.room_type_id} {self.start_date}-{self.end_date}"
