"""Ticket tier management for event organizers."""

import typing as t
from uuid import UUID

import structlog
from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone

from ticketing.exceptions import (
    ForbiddenError,
    InsufficientInventoryError,
    NotFoundError,
    TierInUseError,
    TierNameTakenError,
)
from ticketing.models import Event, TicketTier
from ticketing.service import update_db_instance

logger = structlog.get_logger(__name__)

EDITABLE_FIELDS = frozenset(
    {
        "name",
        "description",
        "price",
        "currency",
        "total_quantity",
        "is_active",
        "sales_start_at",
        "sales_end_at",
        "max_tickets_per_user",
        "display_order",
    }
)


def _check_fields(fields: dict[str, t.Any]) -> None:
    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields cannot be set on a ticket tier: {', '.join(sorted(unknown))}")


def _get_organized_event(event_id: UUID | str, requester_id: str) -> Event:
    event = Event.objects.filter(pk=event_id).first()
    if event is None:
        raise NotFoundError("Event not found.")
    if not event.is_organized_by(requester_id):
        raise ForbiddenError()
    return event


def _lock_organized_tier(tier_id: UUID | str, requester_id: str) -> TicketTier:
    tier = TicketTier.objects.select_for_update().select_related("event").filter(pk=tier_id).first()
    if tier is None:
        raise NotFoundError("Ticket tier not found.")
    if not tier.event.is_organized_by(requester_id):
        raise ForbiddenError()
    return tier


def _name_taken(event_id: UUID, name: str, exclude_id: UUID | None = None) -> bool:
    qs = TicketTier.objects.filter(event_id=event_id, name=name)
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    return qs.exists()


@transaction.atomic
def create_tier(event_id: UUID | str, requester_id: str, **fields: t.Any) -> TicketTier:
    """Create a tier for an event the requester organizes.

    Raises:
        NotFoundError: If the event does not exist.
        ForbiddenError: If the requester does not organize the event.
        TierNameTakenError: If the event already has a tier with that name.
        ValueError: If fields outside the editable set are given.
        django.core.exceptions.ValidationError: If the values are invalid, e.g. the sale window.
    """
    _check_fields(fields)
    event = _get_organized_event(event_id, requester_id)
    if _name_taken(event.id, fields.get("name", "")):
        raise TierNameTakenError()

    fields.setdefault("currency", event.currency)
    try:
        with transaction.atomic():
            tier = TicketTier.objects.create(event=event, **fields)
    except IntegrityError as e:
        # Lost a race against a tier with the same name.
        raise TierNameTakenError() from e

    logger.info("ticket_tier_created", tier_id=str(tier.id), event_id=str(event.id), requested_by=requester_id)
    return tier


@transaction.atomic
def update_tier(tier_id: UUID | str, requester_id: str, **fields: t.Any) -> TicketTier:
    """Update a tier. Sold units stay untouched and the total can never drop below them.

    Raises:
        NotFoundError: If the tier does not exist.
        ForbiddenError: If the requester does not organize the event.
        TierNameTakenError: If the new name is already used within the event.
        InsufficientInventoryError: If `total_quantity` would drop below `quantity_sold`.
        ValueError: If fields outside the editable set are given, `quantity_sold` included.
    """
    _check_fields(fields)
    tier = _lock_organized_tier(tier_id, requester_id)

    if "name" in fields and _name_taken(tier.event_id, fields["name"], exclude_id=tier.id):
        raise TierNameTakenError()

    total = fields.get("total_quantity")
    if total is not None and total < tier.quantity_sold:
        raise InsufficientInventoryError(
            available=tier.available_quantity,
            message=f"Cannot reduce total quantity below sold quantity ({tier.quantity_sold}).",
        )

    tier = update_db_instance(tier, **fields)
    logger.info("ticket_tier_updated", tier_id=str(tier.id), fields=sorted(fields), requested_by=requester_id)
    return tier


@transaction.atomic
def delete_tier(tier_id: UUID | str, requester_id: str) -> None:
    """Delete a tier nothing was sold from.

    Raises:
        TierInUseError: If any ticket was sold from the tier. Deactivate it instead.
    """
    tier = _lock_organized_tier(tier_id, requester_id)
    if tier.quantity_sold > 0 or tier.tickets.exists():
        raise TierInUseError()
    tier.delete()
    logger.info("ticket_tier_deleted", tier_id=str(tier_id), requested_by=requester_id)


def list_tiers(event_id: UUID | str) -> QuerySet[TicketTier]:
    return TicketTier.objects.for_event(event_id).order_by("display_order", "price", "name")


def list_available_tiers(event_id: UUID | str) -> QuerySet[TicketTier]:
    """Tiers that are active, on sale and not sold out."""
    return list_tiers(event_id).available(timezone.now())
