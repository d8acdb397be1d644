"""API views for the booking domain."""

from __future__ import annotations

from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from shared.application.message_bus import message_bus
from shared.infrastructure.throttling import StrictTokenBucketThrottle

from .application.command_handlers import (
    CancelBookingCommand,
    ConfirmBookingCommand,
    CreateProvisionalBookingCommand,
    OverrideAction,
    OverrideBookingCommand,
)
from .domain.entities import CancellationSource
from .models import Booking, WaitlistEntry
from .serializers import (
    BookingCreateSerializer,
    BookingSerializer,
    CancelSerializer,
    OverrideSerializer,
    WaitlistEntrySerializer,
)


class IsBookingOwnerOrStaff(permissions.BasePermission):
    """Guests see their own bookings, staff see all."""

    def has_object_permission(self, request, view, obj):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if user.is_staff:
            return True
        return getattr(obj, "guest_id", None) == user.id


class BookingViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Create, inspect and drive bookings through their lifecycle."""

    queryset = Booking.objects.select_related("room_type", "guest").all()
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated, IsBookingOwnerOrStaff]
    filterset_fields = ["status", "room_type"]
    throttle_scope = "bookings"

    def get_throttles(self):  # type: ignore
        if self.action == "create":
            return [StrictTokenBucketThrottle()]
        return super().get_throttles()

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        user = self.request.user
        if user.is_staff:
            return qs
        return qs.filter(guest=user)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = message_bus.handle_command(CreateProvisionalBookingCommand(
            guest_id=request.user.pk,
            room_type_id=data["room_type"].pk,
            start_date=data["start_date"],
            end_date=data["end_date"],
            rooms=data["rooms"],
        ))
        payload = BookingSerializer(result.booking, context=self.get_serializer_context()).data
        payload["price"] = result.price.to_dict()
        payload["warnings"] = result.warnings
        return Response(payload, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        source = CancellationSource.GUEST if booking.guest_id == request.user.pk else CancellationSource.STAFF
        booking = message_bus.handle_command(CancelBookingCommand(
            booking_id=booking.pk,
            reason=serializer.validated_data["reason"],
            source=source,
        ))
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):  # type: ignore
        """Confirm a booking whose payment has already succeeded."""
        booking: Booking = self.get_object()
        booking = message_bus.handle_command(ConfirmBookingCommand(booking_id=booking.pk))
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], permission_classes=[permissions.IsAdminUser])
    def override(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()
        serializer = OverrideSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = message_bus.handle_command(OverrideBookingCommand(
            booking_id=booking.pk,
            action=OverrideAction(serializer.validated_data["action"]),
            actor_id=request.user.pk,
            reason=serializer.validated_data["reason"],
        ))
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)


class WaitlistViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """Guests join the waitlist for sold-out stays and leave it again."""

    serializer_class = WaitlistEntrySerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        return WaitlistEntry.objects.filter(guest=self.request.user)

    def perform_create(self, serializer):  # type: ignore
        serializer.save(guest=self.request.user)

    def perform_destroy(self, instance):  # type: ignore
        instance.status = WaitlistEntry.Status.EXPIRED
        instance.save(update_fields=["status"])
