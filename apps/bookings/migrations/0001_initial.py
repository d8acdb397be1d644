import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("rooms", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("booking_code", models.CharField(editable=False, max_length=12, unique=True)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField(help_text="Checkout date, exclusive.")),
                ("rooms_booked", models.PositiveIntegerField(default=1)),
                (
                    "guest_type",
                    models.CharField(
                        choices=[("REGULAR", "Regular"), ("VIP", "VIP"), ("CORPORATE", "Corporate")],
                        default="REGULAR",
                        max_length=16,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("provisional", "Provisional"),
                            ("confirmed", "Confirmed"),
                            ("cancelled", "Cancelled"),
                            ("expired", "Expired"),
                        ],
                        default="provisional",
                        max_length=16,
                    ),
                ),
                ("total_price", models.PositiveIntegerField(help_text="Minor currency units.")),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("deposit_amount", models.PositiveIntegerField(blank=True, null=True)),
                ("is_deposit_paid", models.BooleanField(default=False)),
                ("hold_expires_at", models.DateTimeField(blank=True, null=True)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "cancellation_source",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("guest", "Guest"),
                            ("staff", "Staff"),
                            ("payment_provider", "Payment provider"),
                            ("system", "System"),
                        ],
                        max_length=20,
                    ),
                ),
                ("cancellation_reason", models.CharField(blank=True, max_length=255)),
                (
                    "requires_refund",
                    models.BooleanField(
                        default=False,
                        help_text="Payment captured but the booking could not be confirmed.",
                    ),
                ),
                ("conflict_reason", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "guest",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "room_type",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="rooms.roomtype",
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["room_type", "start_date", "end_date"], name="booking_room_type_dates_idx"),
                    models.Index(fields=["status", "hold_expires_at"], name="booking_status_hold_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(end_date__gt=models.F("start_date")),
                        name="booking_valid_dates",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(rooms_booked__gte=1),
                        name="booking_rooms_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BookingRule",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "guest_type",
                    models.CharField(
                        choices=[("REGULAR", "Regular"), ("VIP", "VIP"), ("CORPORATE", "Corporate")],
                        max_length=16,
                        unique=True,
                    ),
                ),
                ("max_days_advance", models.PositiveIntegerField()),
                ("min_days_notice", models.PositiveIntegerField()),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Booking rule",
                "verbose_name_plural": "Booking rules",
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(max_days_advance__gte=models.F("min_days_notice")),
                        name="booking_rule_window_valid",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="DepositPolicy",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("min_rooms", models.PositiveIntegerField()),
                ("max_rooms", models.PositiveIntegerField()),
                (
                    "deposit_type",
                    models.CharField(
                        choices=[("percent", "Percentage of total"), ("fixed", "Fixed amount")],
                        max_length=10,
                    ),
                ),
                ("value", models.DecimalField(decimal_places=2, max_digits=12)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Deposit policy",
                "verbose_name_plural": "Deposit policies",
                "ordering": ["min_rooms"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(max_rooms__gte=models.F("min_rooms")),
                        name="deposit_policy_range_valid",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="WaitlistEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("rooms", models.PositiveIntegerField(default=1)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Waiting"),
                            ("notified", "Notified"),
                            ("converted", "Converted to booking"),
                            ("expired", "Expired"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("notified_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "guest",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="waitlist_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "room_type",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="waitlist_entries",
                        to="rooms.roomtype",
                    ),
                ),
            ],
            options={
                "verbose_name": "Waitlist entry",
                "verbose_name_plural": "Waitlist entries",
                "ordering": ["created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(end_date__gt=models.F("start_date")),
                        name="waitlist_valid_dates",
                    ),
                ],
            },
        ),
    ]
