"""Serializers for payments and provider webhooks."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.bookings.models import Booking

from .domain.provider_events import (
    PaymentFailed,
    PaymentRefunded,
    PaymentSucceeded,
    ProviderEvent,
    ProviderEventType,
)
from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            "id",
            "booking",
            "purpose",
            "status",
            "amount",
            "currency",
            "provider",
            "provider_payment_id",
            "failure_reason",
            "paid_at",
            "refunded_at",
            "created_at",
        ]
        read_only_fields = fields


class PaymentCreateSerializer(serializers.Serializer):
    """
    Opens a PENDING payment for the guest's own provisional booking.

    The amount is derived from the booking: the deposit for a deposit
    payment, the rest of the total for the booking payment. A booking whose
    deposit covers the whole total takes no booking payment.
    """

    booking = serializers.PrimaryKeyRelatedField(queryset=Booking.objects.all())
    purpose = serializers.ChoiceField(choices=Payment.Purpose.choices, default=Payment.Purpose.BOOKING)

    def validate(self, attrs):  # type: ignore
        request = self.context["request"]
        booking: Booking = attrs["booking"]
        if booking.guest_id != request.user.pk:
            raise serializers.ValidationError({"booking": "Booking not found."})
        if booking.status != Booking.Status.PROVISIONAL:
            raise serializers.ValidationError({"booking": "Only provisional bookings can be paid."})
        purpose = attrs["purpose"]
        if purpose == Payment.Purpose.DEPOSIT:
            if not booking.requires_deposit:
                raise serializers.ValidationError({"purpose": "This booking has no deposit."})
            if booking.is_deposit_paid:
                raise serializers.ValidationError({"purpose": "Deposit already paid."})
        elif booking.deposit_covers_total:
            raise serializers.ValidationError({"purpose": "The deposit covers this booking; pay the deposit instead."})
        already_paid = Payment.objects.filter(
            booking=booking, purpose=purpose, status=Payment.Status.SUCCEEDED
        ).exists()
        if already_paid:
            raise serializers.ValidationError({"purpose": "This payment has already been made."})
        return attrs

    def create(self, validated_data):  # type: ignore
        booking: Booking = validated_data["booking"]
        purpose = validated_data["purpose"]
        if purpose == Payment.Purpose.DEPOSIT:
            amount = booking.deposit_amount
        else:
            amount = booking.balance_due
        return Payment.objects.create(
            booking=booking,
            purpose=purpose,
            amount=amount,
            currency=booking.currency,
            metadata={"booking_code": booking.booking_code},
        )


class WebhookMetadataSerializer(serializers.Serializer):
    payment_id = serializers.IntegerField()
    booking_id = serializers.IntegerField()


class WebhookDataSerializer(serializers.Serializer):
    provider_payment_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    amount = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    failure_message = serializers.CharField(required=False, allow_blank=True, default="")
    metadata = WebhookMetadataSerializer()


class WebhookEventSerializer(serializers.Serializer):
    """
    Provider delivery:
        {"id": "evt_1", "type": "payment_succeeded",
         "data": {"provider_payment_id": "pi_1", "amount": 30000,
                  "metadata": {"payment_id": 7, "booking_id": 3}}}
    """

    id = serializers.CharField(max_length=255)
    type = serializers.ChoiceField(choices=[t.value for t in ProviderEventType])
    data = WebhookDataSerializer()

    def to_event(self) -> ProviderEvent:
        event_type = ProviderEventType(self.validated_data["type"])
        data = self.validated_data["data"]
        common = {
            "event_id": self.validated_data["id"],
            "payment_id": data["metadata"]["payment_id"],
            "booking_id": data["metadata"]["booking_id"],
            "provider_payment_id": data.get("provider_payment_id") or None,
        }
        if event_type == ProviderEventType.PAYMENT_SUCCEEDED:
            return PaymentSucceeded(amount=data.get("amount"), **common)
        if event_type == ProviderEventType.PAYMENT_FAILED:
            return PaymentFailed(failure_message=data.get("failure_message", ""), **common)
        return PaymentRefunded(amount=data.get("amount"), **common)
