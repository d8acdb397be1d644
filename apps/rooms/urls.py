"""URL routing for the rooms domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import RoomTypeViewSet, SpecialDayViewSet

router = DefaultRouter()
router.register(r"room-types", RoomTypeViewSet, basename="room-type")
router.register(r"special-days", SpecialDayViewSet, basename="special-day")

urlpatterns = [
    path("", include(router.urls)),
]
