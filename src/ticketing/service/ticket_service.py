"""Ticket lookups and the non-scan status transitions: cancel, re-issue, expire."""

from datetime import datetime
from uuid import UUID

import structlog
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from ticketing.exceptions import (
    AlreadyCancelledError,
    AlreadyUsedError,
    ForbiddenError,
    NotFoundError,
    TicketExpiredError,
)
from ticketing.models import Event, Ticket
from ticketing.service import inventory_service
from ticketing.service.credential_service import CredentialCodec, get_codec

logger = structlog.get_logger(__name__)


def get_ticket(ticket_id: UUID | str) -> Ticket:
    ticket = Ticket.objects.full().filter(pk=ticket_id).first()
    if ticket is None:
        raise NotFoundError("Ticket not found.")
    return ticket


def list_tickets_for_purchaser(purchaser_id: str) -> QuerySet[Ticket]:
    """All tickets of a purchaser, newest first."""
    return Ticket.objects.full().for_purchaser(purchaser_id).order_by("-purchase_date")


def list_tickets_for_event(event_id: UUID | str, organizer_id: str) -> QuerySet[Ticket]:
    """All tickets of an event. Only its organizer may list them."""
    event = Event.objects.filter(pk=event_id).first()
    if event is None:
        raise NotFoundError("Event not found.")
    if not event.is_organized_by(organizer_id):
        raise ForbiddenError()
    return Ticket.objects.full().filter(event=event).order_by("-purchase_date")


def _assert_active(ticket: Ticket) -> None:
    """Raise the transition error matching a terminal status."""
    match ticket.status:
        case Ticket.TicketStatus.USED:
            raise AlreadyUsedError()
        case Ticket.TicketStatus.CANCELLED:
            raise AlreadyCancelledError()
        case Ticket.TicketStatus.EXPIRED:
            raise TicketExpiredError()


def _lock_for_requester(ticket_id: UUID | str, requester_id: str) -> Ticket:
    """Lock a ticket row the requester may act on: its purchaser or the event organizer."""
    ticket = Ticket.objects.select_for_update().filter(pk=ticket_id).first()
    if ticket is None:
        raise NotFoundError("Ticket not found.")
    if ticket.purchaser_id != requester_id and not ticket.event.is_organized_by(requester_id):
        raise ForbiddenError("You are not authorized to act on this ticket.")
    return ticket


@transaction.atomic
def cancel_ticket(ticket_id: UUID | str, requester_id: str) -> Ticket:
    """Cancel an active ticket and give its tier unit back.

    Args:
        ticket_id: The ticket to cancel.
        requester_id: The purchaser of the ticket or the organizer of its event.

    Returns:
        The cancelled ticket.

    Raises:
        NotFoundError: If the ticket does not exist.
        ForbiddenError: If the requester is neither purchaser nor organizer.
        AlreadyUsedError, AlreadyCancelledError, TicketExpiredError: If the ticket is not active.
    """
    ticket = _lock_for_requester(ticket_id, requester_id)
    _assert_active(ticket)

    ticket.status = Ticket.TicketStatus.CANCELLED
    ticket.cancelled_at = timezone.now()
    ticket.cancelled_by = requester_id
    ticket._change_reason = "cancelled"  # type: ignore[attr-defined]
    ticket.save(update_fields=["status", "cancelled_at", "cancelled_by", "updated_at"])

    if ticket.tier_id is not None:
        inventory_service.release(ticket.tier_id, 1)

    logger.info(
        "ticket_cancelled",
        ticket_id=str(ticket.id),
        event_id=str(ticket.event_id),
        tier_id=str(ticket.tier_id) if ticket.tier_id else None,
        cancelled_by=requester_id,
    )
    return ticket


@transaction.atomic
def reissue_credential(ticket_id: UUID | str, requester_id: str, codec: CredentialCodec | None = None) -> Ticket:
    """Mint a fresh credential for an active ticket, replacing the previous one.

    Credentials go stale after their maximum age, so holders of tickets bought
    well before the event need a new one to get in.
    """
    ticket = _lock_for_requester(ticket_id, requester_id)
    _assert_active(ticket)

    credential = (codec or get_codec()).mint(ticket.id, ticket.event_id, ticket.purchaser_id)
    ticket.credential_payload = credential.payload
    ticket.credential_image = credential.image
    ticket.credential_hash = credential.integrity_tag
    ticket._change_reason = "credential_reissued"  # type: ignore[attr-defined]
    ticket.save(update_fields=["credential_payload", "credential_image", "credential_hash", "updated_at"])

    logger.info("ticket_credential_reissued", ticket_id=str(ticket.id), requested_by=requester_id)
    return ticket


def expire_tickets_for_ended_events(now: datetime | None = None) -> int:
    """Move every active ticket of an ended event to expired.

    Each ticket is locked and re-checked on its own, so a ticket redeemed or
    cancelled concurrently is left alone.

    Returns:
        The number of tickets expired.
    """
    now = now or timezone.now()
    candidate_ids = list(
        Ticket.objects.filter(
            status=Ticket.TicketStatus.ACTIVE,
            event__in=Event.objects.ended(now),
        ).values_list("id", flat=True)
    )

    expired = 0
    for ticket_id in candidate_ids:
        with transaction.atomic():
            ticket = Ticket.objects.select_for_update().filter(pk=ticket_id, status=Ticket.TicketStatus.ACTIVE).first()
            if ticket is None:
                continue
            ticket.status = Ticket.TicketStatus.EXPIRED
            ticket._change_reason = "expired"  # type: ignore[attr-defined]
            ticket.save(update_fields=["status", "updated_at"])
            expired += 1

    logger.info("ended_event_tickets_expired", count=expired, candidates=len(candidate_ids))
    return expired
