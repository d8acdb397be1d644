"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.rooms.models import RoomType

from .application.command_handlers import OverrideAction
from .models import Booking, WaitlistEntry


class StayQuerySerializer(serializers.Serializer):
    """Query parameters shared by availability and price lookups."""

    start = serializers.DateField()
    end = serializers.DateField()
    rooms = serializers.IntegerField(min_value=1, default=1)

    def validate(self, attrs):  # type: ignore
        if attrs["end"] <= attrs["start"]:
            raise serializers.ValidationError({"end": "Checkout must be after arrival."})
        return attrs


class BookingCreateSerializer(serializers.Serializer):
    room_type = serializers.PrimaryKeyRelatedField(queryset=RoomType.objects.filter(is_active=True))
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    rooms = serializers.IntegerField(min_value=1, default=1)

    def validate(self, attrs):  # type: ignore
        if attrs["end_date"] <= attrs["start_date"]:
            raise serializers.ValidationError({"end_date": "Checkout must be after arrival."})
        return attrs


class BookingSerializer(serializers.ModelSerializer):
    guest_id = serializers.ReadOnlyField(source="guest.id")
    room_type_name = serializers.ReadOnlyField(source="room_type.name")
    nights = serializers.ReadOnlyField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_code",
            "guest_id",
            "room_type",
            "room_type_name",
            "start_date",
            "end_date",
            "nights",
            "rooms_booked",
            "guest_type",
            "status",
            "total_price",
            "currency",
            "deposit_amount",
            "is_deposit_paid",
            "hold_expires_at",
            "confirmed_at",
            "cancelled_at",
            "cancellation_source",
            "cancellation_reason",
            "requires_refund",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class OverrideSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=[action.value for action in OverrideAction])
    reason = serializers.CharField(max_length=255)


class WaitlistEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = WaitlistEntry
        fields = ["id", "room_type", "start_date", "end_date", "rooms", "status", "notified_at", "created_at"]
        read_only_fields = ["id", "status", "notified_at", "created_at"]

    def validate(self, attrs):  # type: ignore
        if attrs["end_date"] <= attrs["start_date"]:
            raise serializers.ValidationError({"end_date": "Checkout must be after arrival."})
        if attrs.get("rooms", 1) > attrs["room_type"].total_rooms:
            raise serializers.ValidationError({"rooms": "More rooms than this room type has."})
        return attrs
