"""Serializers for room types and the special-day calendar."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from shared.domain.value_objects import SUPPORTED_CURRENCIES

from .models import RoomType, SpecialDay


class RoomTypeSerializer(serializers.ModelSerializer):
    class Meta:
        model = RoomType
        fields = [
            "id",
            "name",
            "description",
            "base_price",
            "currency",
            "total_rooms",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_currency(self, value: str) -> str:
        value = value.upper()
        if value not in SUPPORTED_CURRENCIES:
            raise serializers.ValidationError(f"Unsupported currency {value}.")
        return value


class SpecialDaySerializer(serializers.ModelSerializer):
    class Meta:
        model = SpecialDay
        fields = [
            "id",
            "date",
            "room_type",
            "rule_type",
            "rate_type",
            "rate_value",
            "description",
            "is_active",
            "created_at",
        ]
        read_only_fields = ["id", "created_at"]

    def validate(self, attrs):  # type: ignore
        rule_type = attrs.get("rule_type", getattr(self.instance, "rule_type", None))
        rate_type = attrs.get("rate_type", getattr(self.instance, "rate_type", ""))
        rate_value = attrs.get("rate_value", getattr(self.instance, "rate_value", None))
        if rule_type == SpecialDay.RuleType.SPECIAL_RATE:
            if not rate_type or rate_value is None:
                raise serializers.ValidationError(
                    {"rate_value": "Special rate days need a rate type and a rate value."}
                )
            if rate_value <= 0:
                raise serializers.ValidationError({"rate_value": "Rate value must be positive."})
        elif rule_type == SpecialDay.RuleType.BLOCKED:
            attrs["rate_type"] = ""
            attrs["rate_value"] = None
        return attrs


class CalendarQuerySerializer(serializers.Serializer):
    start = serializers.DateField()
    end = serializers.DateField()

    def validate(self, attrs):  # type: ignore
        if attrs["end"] <= attrs["start"]:
            raise serializers.ValidationError({"end": "End must be after start."})
        return attrs
