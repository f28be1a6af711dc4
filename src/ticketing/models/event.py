import typing as t
from datetime import datetime

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from common.models import TimeStampedModel


class EventQuerySet(models.QuerySet["Event"]):
    def active(self) -> t.Self:
        """Events open for business."""
        return self.filter(is_active=True)

    def ended(self, now: datetime | None = None) -> t.Self:
        """Events whose window closed before `now`."""
        return self.filter(end__lt=now or timezone.now())

    def organized_by(self, organizer_id: str) -> t.Self:
        return self.filter(organizer_id=organizer_id)


class Event(TimeStampedModel):
    """An event tickets are sold for.

    The event itself is owned by the catalog side of the platform; the ticketing core
    only reads it, except for deletion which is refused once tickets exist.
    """

    name = models.CharField(max_length=255)
    start = models.DateTimeField(db_index=True)
    end = models.DateTimeField(db_index=True)
    organizer_id = models.CharField(max_length=255, db_index=True)
    is_active = models.BooleanField(default=True, db_index=True)
    max_capacity = models.PositiveIntegerField(
        null=True, blank=True, help_text="Maximum number of admitted tickets. Null means unlimited."
    )
    ticket_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0)],
        help_text="Unit price for events sold without tiers.",
    )
    currency = models.CharField(max_length=3, default=settings.DEFAULT_CURRENCY, help_text="ISO 4217 currency code")

    objects = EventQuerySet.as_manager()

    class Meta:
        ordering = ["start"]
        indexes = [models.Index(fields=["is_active", "end"], name="event_active_end_idx")]

    def __str__(self) -> str:  # pragma: no cover
        return self.name

    def clean(self) -> None:
        """Validate the event window."""
        super().clean()
        if self.start and self.end and self.end <= self.start:
            raise DjangoValidationError({"end": "Event end must be after its start."})

    def has_ended(self, now: datetime | None = None) -> bool:
        """Whether the event is over. The end instant itself still belongs to the event."""
        return (now or timezone.now()) > self.end

    def is_organized_by(self, requester_id: str) -> bool:
        return self.organizer_id == requester_id
