import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="RoomType",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120, unique=True)),
                ("description", models.TextField(blank=True)),
                (
                    "base_price",
                    models.PositiveIntegerField(help_text="Nightly price per room in minor currency units."),
                ),
                ("currency", models.CharField(default="USD", max_length=3)),
                (
                    "total_rooms",
                    models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)]),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Room type",
                "verbose_name_plural": "Room types",
                "ordering": ["name"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(total_rooms__gte=1),
                        name="room_type_has_rooms",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="InventoryRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("available_rooms", models.PositiveIntegerField()),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "room_type",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="inventory",
                        to="rooms.roomtype",
                    ),
                ),
            ],
            options={
                "verbose_name": "Inventory record",
                "verbose_name_plural": "Inventory records",
                "ordering": ["room_type", "date"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("room_type", "date"),
                        name="inventory_unique_room_type_date",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(available_rooms__gte=0),
                        name="inventory_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SpecialDay",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                (
                    "rule_type",
                    models.CharField(
                        choices=[("blocked", "Blocked"), ("special_rate", "Special rate")],
                        max_length=20,
                    ),
                ),
                (
                    "rate_type",
                    models.CharField(
                        blank=True,
                        choices=[("multiplier", "Multiplier of base price"), ("fixed", "Fixed nightly price")],
                        max_length=20,
                    ),
                ),
                (
                    "rate_value",
                    models.DecimalField(
                        blank=True,
                        decimal_places=4,
                        help_text="Multiplier (e.g. 1.5) or fixed price in minor units.",
                        max_digits=12,
                        null=True,
                    ),
                ),
                ("description", models.CharField(blank=True, max_length=255)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "room_type",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="special_days",
                        to="rooms.roomtype",
                    ),
                ),
            ],
            options={
                "verbose_name": "Special day",
                "verbose_name_plural": "Special days",
                "ordering": ["date"],
                "indexes": [models.Index(fields=["date", "is_active"], name="special_day_date_active_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("date", "room_type"),
                        name="special_day_unique_per_room_type",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(room_type__isnull=True),
                        fields=("date",),
                        name="special_day_unique_global",
                    ),
                ],
            },
        ),
    ]
