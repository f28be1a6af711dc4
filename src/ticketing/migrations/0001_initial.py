import uuid

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import simple_history.models
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("name", models.CharField(max_length=255)),
                ("start", models.DateTimeField(db_index=True)),
                ("end", models.DateTimeField(db_index=True)),
                ("organizer_id", models.CharField(db_index=True, max_length=255)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                (
                    "max_capacity",
                    models.PositiveIntegerField(
                        blank=True, help_text="Maximum number of admitted tickets. Null means unlimited.", null=True
                    ),
                ),
                (
                    "ticket_price",
                    models.DecimalField(
                        decimal_places=2,
                        default=0,
                        help_text="Unit price for events sold without tiers.",
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                ("currency", models.CharField(default="EUR", help_text="ISO 4217 currency code", max_length=3)),
            ],
            options={
                "ordering": ["start"],
                "indexes": [models.Index(fields=["is_active", "end"], name="event_active_end_idx")],
            },
        ),
        migrations.CreateModel(
            name="TicketTier",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("name", models.CharField(db_index=True, max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        default=0,
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                ("currency", models.CharField(default="EUR", help_text="ISO 4217 currency code", max_length=3)),
                (
                    "total_quantity",
                    models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)]),
                ),
                ("quantity_sold", models.PositiveIntegerField(default=0, editable=False)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                (
                    "sales_start_at",
                    models.DateTimeField(
                        blank=True, db_index=True, help_text="When ticket sales begin for this tier", null=True
                    ),
                ),
                (
                    "sales_end_at",
                    models.DateTimeField(
                        blank=True, db_index=True, help_text="When ticket sales end for this tier", null=True
                    ),
                ),
                (
                    "max_tickets_per_user",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Null means unlimited.",
                        null=True,
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                ("display_order", models.PositiveIntegerField(db_index=True, default=0)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ticket_tiers",
                        to="ticketing.event",
                    ),
                ),
            ],
            options={
                "ordering": ["event", "display_order", "price", "name"],
                "indexes": [models.Index(fields=["event", "display_order"], name="tier_event_order_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("event", "name"), name="unique_tier_event_name"),
                    models.CheckConstraint(
                        condition=models.Q(("total_quantity__gte", 1)), name="tier_total_quantity_positive"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("quantity_sold__lte", models.F("total_quantity"))),
                        name="tier_sold_within_total",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Ticket",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("ticket_number", models.CharField(editable=False, max_length=64, unique=True)),
                ("purchaser_id", models.CharField(db_index=True, max_length=255)),
                ("purchaser_name", models.CharField(max_length=255)),
                ("purchaser_email", models.EmailField(max_length=254)),
                (
                    "price_paid",
                    models.DecimalField(
                        decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(0)]
                    ),
                ),
                ("purchase_date", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("used", "Used"),
                            ("cancelled", "Cancelled"),
                            ("expired", "Expired"),
                        ],
                        db_index=True,
                        default="active",
                        max_length=20,
                    ),
                ),
                ("credential_payload", models.TextField(blank=True, default="", editable=False)),
                ("credential_image", models.TextField(blank=True, default="", editable=False)),
                ("credential_hash", models.CharField(blank=True, default="", editable=False, max_length=64)),
                ("used_at", models.DateTimeField(blank=True, editable=False, null=True)),
                ("scanned_by", models.CharField(blank=True, default="", editable=False, max_length=255)),
                ("cancelled_at", models.DateTimeField(blank=True, editable=False, null=True)),
                ("cancelled_by", models.CharField(blank=True, default="", editable=False, max_length=255)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="tickets", to="ticketing.event"
                    ),
                ),
                (
                    "tier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tickets",
                        to="ticketing.tickettier",
                    ),
                ),
            ],
            options={
                "ordering": ["-purchase_date"],
                "indexes": [
                    models.Index(fields=["event", "status"], name="ticket_event_status_idx"),
                    models.Index(fields=["tier", "purchaser_id", "status"], name="ticket_tier_purchaser_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="HistoricalTicket",
            fields=[
                ("id", models.UUIDField(db_index=True, default=uuid.uuid4, editable=False)),
                ("created_at", models.DateTimeField(blank=True, db_index=True, editable=False)),
                ("updated_at", models.DateTimeField(blank=True, db_index=True, editable=False)),
                ("ticket_number", models.CharField(db_index=True, editable=False, max_length=64)),
                ("purchaser_id", models.CharField(db_index=True, max_length=255)),
                ("purchaser_name", models.CharField(max_length=255)),
                ("purchaser_email", models.EmailField(max_length=254)),
                (
                    "price_paid",
                    models.DecimalField(
                        decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(0)]
                    ),
                ),
                ("purchase_date", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("used", "Used"),
                            ("cancelled", "Cancelled"),
                            ("expired", "Expired"),
                        ],
                        db_index=True,
                        default="active",
                        max_length=20,
                    ),
                ),
                ("credential_payload", models.TextField(blank=True, default="", editable=False)),
                ("credential_hash", models.CharField(blank=True, default="", editable=False, max_length=64)),
                ("used_at", models.DateTimeField(blank=True, editable=False, null=True)),
                ("scanned_by", models.CharField(blank=True, default="", editable=False, max_length=255)),
                ("cancelled_at", models.DateTimeField(blank=True, editable=False, null=True)),
                ("cancelled_by", models.CharField(blank=True, default="", editable=False, max_length=255)),
                ("history_id", models.AutoField(primary_key=True, serialize=False)),
                ("history_date", models.DateTimeField(db_index=True)),
                ("history_change_reason", models.CharField(max_length=100, null=True)),
                (
                    "history_type",
                    models.CharField(choices=[("+", "Created"), ("~", "Changed"), ("-", "Deleted")], max_length=1),
                ),
                (
                    "event",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to="ticketing.event",
                    ),
                ),
                (
                    "history_user",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "tier",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to="ticketing.tickettier",
                    ),
                ),
            ],
            options={
                "verbose_name": "historical ticket",
                "verbose_name_plural": "historical tickets",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
    ]
