"""Room catalog and per-night inventory models."""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class RoomType(models.Model):
    """A sellable class of identical rooms ("Deluxe King", "Twin")."""

    name = models.CharField(max_length=120, unique=True)
    description = models.TextField(blank=True)
    base_price = models.PositiveIntegerField(
        help_text=_("Nightly price per room in minor currency units."),
    )
    currency = models.CharField(max_length=3, default="USD")
    total_rooms = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Room type")
        verbose_name_plural = _("Room types")
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_rooms__gte=1),
                name="room_type_has_rooms",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.total_rooms})"


class InventoryRecord(models.Model):
    """
    Remaining sellable rooms of a room type for one night.

    Rows are created lazily the first time a night is adjusted; a missing
    row means the full ``total_rooms`` is available. Only the inventory
    ledger service writes here.
    """

    room_type = models.ForeignKey(
        RoomType,
        on_delete=models.CASCADE,
        related_name="inventory",
    )
    date = models.DateField()
    available_rooms = models.PositiveIntegerField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Inventory record")
        verbose_name_plural = _("Inventory records")
        ordering = ["room_type", "date"]
        constraints = [
            models.UniqueConstraint(
                fields=["room_type", "date"],
                name="inventory_unique_room_type_date",
            ),
            models.CheckConstraint(
                condition=models.Q(available_rooms__gte=0),
                name="inventory_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.room_type_id}@{self.date}: {self.available_rooms}"


class SpecialDay(models.Model):
    """
    Date-scoped rule: a blocked night or a special nightly rate.

    ``room_type`` empty means the rule applies to every room type. A
    room-type rule for the same date takes precedence over the global one.
    """

    class RuleType(models.TextChoices):
        BLOCKED = "blocked", _("Blocked")
        SPECIAL_RATE = "special_rate", _("Special rate")

    class RateType(models.TextChoices):
        MULTIPLIER = "multiplier", _("Multiplier of base price")
        FIXED = "fixed", _("Fixed nightly price")

    date = models.DateField()
    room_type = models.ForeignKey(
        RoomType,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="special_days",
    )
    rule_type = models.CharField(max_length=20, choices=RuleType.choices)
    rate_type = models.CharField(max_length=20, choices=RateType.choices, blank=True)
    rate_value = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        null=True,
        blank=True,
        help_text=_("Multiplier (e.g. 1.5) or fixed price in minor units."),
    )
    description = models.CharField(max_length=255, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Special day")
        verbose_name_plural = _("Special days")
        ordering = ["date"]
        constraints = [
            models.UniqueConstraint(
                fields=["date", "room_type"],
                name="special_day_unique_per_room_type",
            ),
            models.UniqueConstraint(
                fields=["date"],
                condition=models.Q(room_type__isnull=True),
                name="special_day_unique_global",
            ),
        ]
        indexes = [models.Index(fields=["date", "is_active"], name="special_day_date_active_idx")]

    def __str__(self) -> str:
        scope = self.room_type_id or "all"
        return f"{self.date} [{scope}] {self.rule_type}"

    def clean(self) -> None:
        if self.rule_type == self.RuleType.SPECIAL_RATE:
            if not self.rate_type or self.rate_value is None:
                raise ValidationError(_("Special rate days need a rate type and a rate value."))
            if self.rate_value <= Decimal("0"):
                raise ValidationError(_("Rate value must be positive."))
        elif self.rule_type == self.RuleType.BLOCKED:
            self.rate_type = ""
            self.rate_value = None
