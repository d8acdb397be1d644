"""Admin registration for payments."""

from __future__ import annotations

from django.contrib import admin

from .models import Payment, PaymentEvent


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "booking", "purpose", "status", "amount", "currency", "provider", "paid_at")
    list_filter = ("status", "purpose", "provider")
    search_fields = ("provider_payment_id", "booking__booking_code")
    readonly_fields = ("paid_at", "refunded_at", "created_at", "updated_at")


@admin.register(PaymentEvent)
class PaymentEventAdmin(admin.ModelAdmin):
    list_display = ("event_id", "event_type", "payment", "outcome", "received_count", "created_at")
    list_filter = ("event_type", "outcome")
    search_fields = ("event_id",)
    readonly_fields = ("payload",)
