import typing as t

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from simple_history.models import HistoricalRecords

from common.models import TimeStampedModel


class TicketQuerySet(models.QuerySet["Ticket"]):
    """Custom queryset for Ticket with common selection patterns."""

    def with_event(self) -> t.Self:
        return self.select_related("event")

    def full(self) -> t.Self:
        return self.select_related("event", "tier")

    def admitted(self) -> t.Self:
        """Tickets holding a place: active or already used."""
        return self.filter(status__in=Ticket.ADMITTED_STATUSES)

    def for_purchaser(self, purchaser_id: str) -> t.Self:
        return self.filter(purchaser_id=purchaser_id)


class Ticket(TimeStampedModel):
    """One admission to one event.

    Tickets are never deleted; they only move through their status machine:

        active -> used        (redeemed at the door)
        active -> cancelled   (holder or organizer cancels)
        active -> expired     (event ended while the ticket was unused)

    Used, cancelled and expired are terminal. Every transition is kept in `history`.
    """

    class TicketStatus(models.TextChoices):
        ACTIVE = "active", "Active"
        USED = "used", "Used"
        CANCELLED = "cancelled", "Cancelled"
        EXPIRED = "expired", "Expired"

    ADMITTED_STATUSES: t.ClassVar[tuple[str, ...]] = (TicketStatus.ACTIVE, TicketStatus.USED)

    ticket_number = models.CharField(max_length=64, unique=True, editable=False)
    event = models.ForeignKey("ticketing.Event", on_delete=models.PROTECT, related_name="tickets")
    tier = models.ForeignKey(
        "ticketing.TicketTier", on_delete=models.PROTECT, null=True, blank=True, related_name="tickets"
    )
    purchaser_id = models.CharField(max_length=255, db_index=True)
    purchaser_name = models.CharField(max_length=255)
    purchaser_email = models.EmailField()
    price_paid = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    purchase_date = models.DateTimeField(default=timezone.now, db_index=True)
    status = models.CharField(max_length=20, choices=TicketStatus.choices, default=TicketStatus.ACTIVE, db_index=True)

    # Filled in right after the row exists, since the credential embeds the ticket id.
    credential_payload = models.TextField(blank=True, default="", editable=False)
    credential_image = models.TextField(blank=True, default="", editable=False)
    credential_hash = models.CharField(max_length=64, blank=True, default="", editable=False)

    used_at = models.DateTimeField(null=True, blank=True, editable=False)
    scanned_by = models.CharField(max_length=255, blank=True, default="", editable=False)
    cancelled_at = models.DateTimeField(null=True, blank=True, editable=False)
    cancelled_by = models.CharField(max_length=255, blank=True, default="", editable=False)

    history = HistoricalRecords(excluded_fields=["credential_image"])

    objects = TicketQuerySet.as_manager()

    class Meta:
        ordering = ["-purchase_date"]
        indexes = [
            models.Index(fields=["event", "status"], name="ticket_event_status_idx"),
            models.Index(fields=["tier", "purchaser_id", "status"], name="ticket_tier_purchaser_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Ticket {self.ticket_number} for {self.purchaser_name}"

    def clean(self) -> None:
        """A tier ticket must belong to the tier's event."""
        super().clean()
        if self.tier_id and self.event_id and self.tier.event_id != self.event_id:
            raise DjangoValidationError({"tier": "Ticket tier must belong to the ticket's event."})

    @property
    def has_credential(self) -> bool:
        return bool(self.credential_payload)
