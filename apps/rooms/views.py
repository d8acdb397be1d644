"""API views for room types, availability, pricing and special days."""

from __future__ import annotations

import logging

from rest_framework import permissions, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings import services
from apps.bookings.serializers import StayQuerySerializer

from .models import RoomType, SpecialDay
from .serializers import CalendarQuerySerializer, RoomTypeSerializer, SpecialDaySerializer

logger = logging.getLogger(__name__)


class IsStaffOrReadOnly(permissions.BasePermission):
    def has_permission(self, request, view):  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_staff)


class RoomTypeViewSet(viewsets.ModelViewSet):
    """
    Room-type catalog.

    Anyone may browse active room types and ask for availability or a
    price quote; staff manage the catalog and read the inventory calendar.
    """

    serializer_class = RoomTypeSerializer
    permission_classes = [IsStaffOrReadOnly]
    filterset_fields = ["is_active", "currency"]
    search_fields = ["name", "description"]
    ordering_fields = ["name", "base_price", "total_rooms"]

    def get_queryset(self):  # type: ignore
        qs = RoomType.objects.all()
        if not self.request.user.is_staff:
            qs = qs.filter(is_active=True)
        return qs

    @action(detail=True, methods=["get"])
    def availability(self, request, pk=None):  # type: ignore
        room_type = self.get_object()
        query = StayQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        result = services.check_availability(
            room_type.pk,
            query.validated_data["start"],
            query.validated_data["end"],
            query.validated_data["rooms"],
        )
        return Response(result.to_dict())

    @action(detail=True, methods=["get"])
    def price(self, request, pk=None):  # type: ignore
        room_type = self.get_object()
        query = StayQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        breakdown = services.price_stay(
            room_type.pk,
            query.validated_data["start"],
            query.validated_data["end"],
            query.validated_data["rooms"],
        )
        return Response(breakdown.to_dict())

    @action(detail=True, methods=["get"], permission_classes=[permissions.IsAdminUser])
    def calendar(self, request, pk=None):  # type: ignore
        room_type = self.get_object()
        query = CalendarQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        days = services.inventory_calendar(
            room_type.pk, query.validated_data["start"], query.validated_data["end"]
        )
        return Response({"room_type": room_type.pk, "days": days})

    def perform_update(self, serializer):  # type: ignore
        previous_total = serializer.instance.total_rooms
        room_type = serializer.save()
        if room_type.total_rooms != previous_total:
            # Stored counts above the new total are read as the total.
            logger.warning(
                "Room type %s total_rooms changed %s -> %s",
                room_type.pk, previous_total, room_type.total_rooms,
            )


class SpecialDayViewSet(viewsets.ModelViewSet):
    """Staff-managed blocked nights and special rates."""

    queryset = SpecialDay.objects.select_related("room_type").all()
    serializer_class = SpecialDaySerializer
    permission_classes = [permissions.IsAdminUser]
    filterset_fields = ["room_type", "rule_type", "is_active", "date"]
    ordering_fields = ["date"]
