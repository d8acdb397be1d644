"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking, BookingRule, DepositPolicy, WaitlistEntry


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_code",
        "room_type",
        "guest",
        "status",
        "start_date",
        "end_date",
        "rooms_booked",
        "total_price",
        "requires_refund",
        "created_at",
    )
    list_filter = ("status", "guest_type", "requires_refund", "start_date")
    search_fields = ("booking_code", "guest__email", "guest__username")
    # Status and pricing change only through the booking commands.
    readonly_fields = (
        "booking_code",
        "status",
        "total_price",
        "deposit_amount",
        "is_deposit_paid",
        "confirmed_at",
        "cancelled_at",
        "created_at",
        "updated_at",
    )


@admin.register(BookingRule)
class BookingRuleAdmin(admin.ModelAdmin):
    list_display = ("guest_type", "min_days_notice", "max_days_advance", "updated_at")


@admin.register(DepositPolicy)
class DepositPolicyAdmin(admin.ModelAdmin):
    list_display = ("name", "min_rooms", "max_rooms", "deposit_type", "value", "is_active")
    list_filter = ("is_active", "deposit_type")


@admin.register(WaitlistEntry)
class WaitlistEntryAdmin(admin.ModelAdmin):
    list_display = ("guest", "room_type", "start_date", "end_date", "rooms", "status", "created_at")
    list_filter = ("status",)
