"""Inventory, availability and pricing services backed by the ORM."""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Optional

from django.conf import settings  # type: ignore
from django.db import transaction  # type: ignore
from django.db.models import Q  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore
from django.utils import timezone  # type: ignore

from apps.rooms.models import InventoryRecord, RoomType, SpecialDay
from shared.domain.errors import NotFound, ValidationFailed
from shared.domain.value_objects import DateRange

from .domain.inventory import AvailabilityResult, InventoryDirection, InventoryLedger
from .domain.pricing import (
    PriceBreakdown,
    PricingEngine,
    RateType,
    RuleType,
    SpecialDayRule,
    index_rules,
)
from .domain.rules import BookingRuleValidator, BookingWindow, GuestType

logger = logging.getLogger(__name__)

CORPORATE_GROUP = "corporate"


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def stay_range(start, end) -> DateRange:
    try:
        return DateRange(start, end)
    except ValueError as exc:
        raise ValidationFailed("Checkout must be after arrival.", details={"start": str(start), "end": str(end)}) from exc


def get_room_type(room_type_id: int, *, active_only: bool = True) -> RoomType:
    queryset = RoomType.objects.all()
    if active_only:
        queryset = queryset.filter(is_active=True)
    try:
        return queryset.get(pk=room_type_id)
    except RoomType.DoesNotExist as exc:
        raise NotFound(f"Room type {room_type_id} not found.") from exc


def load_special_days(room_type_id: int, dates: DateRange) -> Dict[date, SpecialDayRule]:
    """Applicable active special-day rule per night of the stay."""
    rows = SpecialDay.objects.filter(
        Q(room_type_id=room_type_id) | Q(room_type__isnull=True),
        is_active=True,
        date__gte=dates.start_date,
        date__lt=dates.end_date,
    )
    rules = [
        SpecialDayRule(
            date=row.date,
            rule_type=RuleType(row.rule_type),
            room_type_id=row.room_type_id,
            rate_type=RateType(row.rate_type) if row.rate_type else None,
            rate_value=row.rate_value,
            description=row.description,
        )
        for row in rows
    ]
    return index_rules(rules, room_type_id)


def _blocked_nights(rules: Dict[date, SpecialDayRule]) -> frozenset:
    return frozenset(night for night, rule in rules.items() if rule.is_blocked)


def _stored_remaining(room_type: RoomType, dates: DateRange) -> Dict[date, int]:
    """Stored per-night counts, capped at the room type's current total."""
    rows = InventoryRecord.objects.filter(
        room_type=room_type,
        date__gte=dates.start_date,
        date__lt=dates.end_date,
    ).values_list("date", "available_rooms")
    return {night: min(available, room_type.total_rooms) for night, available in rows}


def check_availability(room_type_id: int, start, end, rooms: int) -> AvailabilityResult:
    """
    Read-only availability snapshot.

    Advisory only: nothing is reserved, the answer can be stale by the
    time a booking is confirmed.
    """
    room_type = get_room_type(room_type_id)
    dates = stay_range(start, end)
    remaining = _stored_remaining(room_type, dates)
    ledger = InventoryLedger(
        room_type_id=room_type.pk,
        total_rooms=room_type.total_rooms,
        dates=dates,
        remaining=remaining,
        blocked=_blocked_nights(load_special_days(room_type.pk, dates)),
    )
    return ledger.availability(rooms)


def price_stay(room_type_id: int, start, end, rooms: int) -> PriceBreakdown:
    room_type = get_room_type(room_type_id)
    dates = stay_range(start, end)
    engine = PricingEngine(
        base_price=room_type.base_price,
        currency=room_type.currency,
        rules=load_special_days(room_type.pk, dates),
    )
    return engine.price(dates, rooms)


def adjust_inventory(
    room_type_id: int,
    start,
    end,
    rooms: int,
    direction: InventoryDirection,
) -> InventoryLedger:
    """
    Apply one ledger adjustment under row locks.

    Must run inside the caller's transaction so that the status change
    driving the adjustment commits or rolls back with it. Missing nights
    are created at full capacity first, then every night of the stay is
    locked in date order before the ledger checks and writes.
    """
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("adjust_inventory must run inside transaction.atomic()")

    room_type = RoomType.objects.get(pk=room_type_id)
    dates = stay_range(start, end)

    InventoryRecord.objects.bulk_create(
        [
            InventoryRecord(room_type=room_type, date=night, available_rooms=room_type.total_rooms)
            for night in dates.nights()
        ],
        ignore_conflicts=True,
    )
    records = list(
        _lock_queryset_if_possible(
            InventoryRecord.objects.filter(
                room_type=room_type,
                date__gte=dates.start_date,
                date__lt=dates.end_date,
            ).order_by("date")
        )
    )

    ledger = InventoryLedger(
        room_type_id=room_type.pk,
        total_rooms=room_type.total_rooms,
        dates=dates,
        remaining={record.date: min(record.available_rooms, room_type.total_rooms) for record in records},
    )
    ledger.apply(rooms, InventoryDirection(direction))

    now = timezone.now()
    for record in records:
        record.available_rooms = ledger.remaining_on(record.date)
        record.updated_at = now
    InventoryRecord.objects.bulk_update(records, ["available_rooms", "updated_at"])

    logger.info(
        "Inventory %s: room type %s, %s, %d room(s)",
        InventoryDirection(direction).value, room_type.pk, dates, rooms,
    )
    return ledger


def inventory_calendar(room_type_id: int, start, end) -> list[dict]:
    """Per-night remaining rooms and special-day rules for staff views."""
    room_type = get_room_type(room_type_id, active_only=False)
    dates = stay_range(start, end)
    remaining = _stored_remaining(room_type, dates)
    rules = load_special_days(room_type.pk, dates)
    return [
        {
            "date": night.isoformat(),
            "available_rooms": remaining.get(night, room_type.total_rooms),
            "total_rooms": room_type.total_rooms,
            "rule_type": rules[night].rule_type.value if night in rules else None,
        }
        for night in dates.nights()
    ]


def guest_type_for(user) -> GuestType:
    """Staff book as VIP, members of the corporate group as CORPORATE."""
    if getattr(user, "is_staff", False):
        return GuestType.VIP
    if user.groups.filter(name=CORPORATE_GROUP).exists():
        return GuestType.CORPORATE
    return GuestType.REGULAR


def build_rule_validator(max_nights: Optional[int] = None) -> BookingRuleValidator:
    from .models import BookingRule, DepositPolicy

    windows = {
        GuestType(rule.guest_type): BookingWindow(rule.max_days_advance, rule.min_days_notice)
        for rule in BookingRule.objects.all()
    }
    deposit_terms = [policy.to_terms() for policy in DepositPolicy.objects.filter(is_active=True)]
    return BookingRuleValidator(
        windows=windows,
        deposit_terms=deposit_terms,
        max_nights=max_nights or getattr(settings, "BOOKING_MAX_NIGHTS", 365),
    )
