"""Payment models."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Payment(models.Model):
    """A single payment attempt for a booking or its deposit."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        SUCCEEDED = "succeeded", _("Succeeded")
        FAILED = "failed", _("Failed")
        REFUNDED = "refunded", _("Refunded")

    class Purpose(models.TextChoices):
        BOOKING = "booking", _("Booking balance")
        DEPOSIT = "deposit", _("Group deposit")

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.CASCADE,
        related_name="payments",
    )
    purpose = models.CharField(max_length=16, choices=Purpose.choices, default=Purpose.BOOKING)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    amount = models.PositiveIntegerField(help_text=_("Minor currency units."))
    currency = models.CharField(max_length=3, default="USD")
    provider = models.CharField(max_length=50, default="stripe")
    provider_payment_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    failure_reason = models.CharField(max_length=500, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Payment")
        verbose_name_plural = _("Payments")
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["booking", "purpose", "status"], name="payment_booking_purpose_idx")]

    def __str__(self) -> str:
        return f"Payment {self.pk} for booking {self.booking_id} ({self.status})"

    def mark_succeeded(self, provider_payment_id: str | None = None, captured_amount: int | None = None) -> None:
        self.status = self.Status.SUCCEEDED
        if provider_payment_id:
            self.provider_payment_id = provider_payment_id
        if captured_amount is not None and captured_amount != self.amount:
            self.metadata["captured_amount"] = captured_amount
        self.paid_at = timezone.now()
        self.failure_reason = ""
        self.save(update_fields=["status", "provider_payment_id", "metadata", "paid_at", "failure_reason", "updated_at"])

    def mark_failed(self, reason: str | None = None, provider_payment_id: str | None = None) -> None:
        self.status = self.Status.FAILED
        if provider_payment_id:
            self.provider_payment_id = provider_payment_id
        self.failure_reason = (reason or "")[:500]
        self.save(update_fields=["status", "provider_payment_id", "failure_reason", "updated_at"])

    def mark_refunded(self, amount: int | None = None) -> None:
        self.status = self.Status.REFUNDED
        if amount is not None:
            self.metadata["refund_amount"] = amount
        self.refunded_at = timezone.now()
        self.save(update_fields=["status", "metadata", "refunded_at", "updated_at"])


class PaymentEvent(models.Model):
    """History of provider webhook deliveries, one row per provider event id."""

    event_id = models.CharField(max_length=255, unique=True)
    payment = models.ForeignKey(
        Payment,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="events",
    )
    event_type = models.CharField(max_length=50)
    payload = models.JSONField()
    outcome = models.CharField(max_length=32, blank=True)
    received_count = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Payment event")
        verbose_name_plural = _("Payment events")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.event_type} {self.event_id} ({self.outcome or 'received'})"
