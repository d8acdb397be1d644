"""Serializers for notifications."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ["id", "type", "channel", "title", "message", "status", "is_read", "sent_at", "created_at"]
        read_only_fields = fields


class BroadcastSerializer(serializers.Serializer):
    """Staff message to every active guest or to the listed users."""

    title = serializers.CharField(max_length=255)
    message = serializers.CharField()
    channel = serializers.ChoiceField(choices=Notification.Channel.choices, default=Notification.Channel.IN_APP)
    user_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False, allow_empty=False)
