"""API views for notifications."""

from __future__ import annotations

from django.contrib.auth import get_user_model  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .models import Notification
from .serializers import BroadcastSerializer, NotificationSerializer
from .tasks import broadcast as broadcast_task


class NotificationViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """The authenticated user's in-app inbox."""

    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["is_read", "type"]

    def get_queryset(self):  # type: ignore
        return Notification.objects.filter(
            user=self.request.user,
            channel=Notification.Channel.IN_APP,
        )

    @action(detail=True, methods=["post"])
    def mark_read(self, request, pk=None):  # type: ignore
        notification = self.get_object()
        notification.is_read = True
        notification.save(update_fields=["is_read"])
        return Response({"status": "read"}, status=status.HTTP_200_OK)

    @action(detail=False, methods=["post"])
    def mark_all_read(self, request):  # type: ignore
        updated = self.get_queryset().filter(is_read=False).update(is_read=True)
        return Response({"updated": updated}, status=status.HTTP_200_OK)

    @action(detail=False, methods=["post"], permission_classes=[permissions.IsAdminUser])
    def broadcast(self, request):  # type: ignore
        serializer = BroadcastSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        users = get_user_model().objects.filter(is_active=True)
        if "user_ids" in data:
            users = users.filter(pk__in=data["user_ids"])
        user_ids = list(users.values_list("pk", flat=True))

        broadcast_task.delay(user_ids, data["title"], data["message"], data["channel"])
        return Response({"queued": len(user_ids)}, status=status.HTTP_202_ACCEPTED)
