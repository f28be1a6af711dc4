import typing as t
from datetime import datetime

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from common.models import TimeStampedModel


class TicketTierQuerySet(models.QuerySet["TicketTier"]):
    def for_event(self, event_id: t.Any) -> t.Self:
        return self.filter(event_id=event_id)

    def on_sale(self, now: datetime | None = None) -> t.Self:
        """Active tiers whose sale window contains `now`."""
        now = now or timezone.now()
        return self.filter(
            Q(sales_start_at__isnull=True) | Q(sales_start_at__lte=now),
            Q(sales_end_at__isnull=True) | Q(sales_end_at__gte=now),
            is_active=True,
        )

    def available(self, now: datetime | None = None) -> t.Self:
        """Tiers that can be purchased right now."""
        return self.on_sale(now).filter(quantity_sold__lt=F("total_quantity"))


class TicketTier(TimeStampedModel):
    """A priced inventory pool of tickets for one event.

    `quantity_sold` is owned by the inventory ledger: it is only ever changed
    through `inventory_service.reserve` and `inventory_service.release`.
    """

    event = models.ForeignKey("ticketing.Event", on_delete=models.CASCADE, related_name="ticket_tiers")
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    currency = models.CharField(max_length=3, default=settings.DEFAULT_CURRENCY, help_text="ISO 4217 currency code")
    total_quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    quantity_sold = models.PositiveIntegerField(default=0, editable=False)
    is_active = models.BooleanField(default=True, db_index=True)
    sales_start_at = models.DateTimeField(
        null=True, blank=True, db_index=True, help_text="When ticket sales begin for this tier"
    )
    sales_end_at = models.DateTimeField(
        null=True, blank=True, db_index=True, help_text="When ticket sales end for this tier"
    )
    max_tickets_per_user = models.PositiveIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1)], help_text="Null means unlimited."
    )
    display_order = models.PositiveIntegerField(default=0, db_index=True)

    objects = TicketTierQuerySet.as_manager()

    class Meta:
        ordering = ["event", "display_order", "price", "name"]
        constraints = [
            models.UniqueConstraint(fields=["event", "name"], name="unique_tier_event_name"),
            models.CheckConstraint(condition=Q(total_quantity__gte=1), name="tier_total_quantity_positive"),
            models.CheckConstraint(
                condition=Q(quantity_sold__lte=F("total_quantity")), name="tier_sold_within_total"
            ),
        ]
        indexes = [models.Index(fields=["event", "display_order"], name="tier_event_order_idx")]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.name} for event {self.event.name}"

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Never write a possibly stale quantity_sold back when updating an existing row."""
        if not self._state.adding and kwargs.get("update_fields") is None:
            kwargs["update_fields"] = [
                f.name for f in self._meta.concrete_fields if not f.primary_key and f.name != "quantity_sold"
            ]
        super().save(*args, **kwargs)

    def clean(self) -> None:
        """Validate the sales window."""
        super().clean()
        if self.sales_start_at and self.sales_end_at and self.sales_start_at >= self.sales_end_at:
            raise DjangoValidationError({"sales_end_at": "Sale start date must be before sale end date."})

    @property
    def available_quantity(self) -> int:
        return self.total_quantity - self.quantity_sold

    @property
    def is_sold_out(self) -> bool:
        return self.quantity_sold >= self.total_quantity

    def is_on_sale(self, now: datetime | None = None) -> bool:
        """Check the activity flag and the sale window."""
        now = now or timezone.now()
        return (
            self.is_active
            and (self.sales_start_at is None or self.sales_start_at <= now)
            and (self.sales_end_at is None or self.sales_end_at >= now)
        )

    def is_available(self, now: datetime | None = None) -> bool:
        return self.is_on_sale(now) and self.available_quantity > 0
