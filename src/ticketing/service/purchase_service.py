"""Ticket issuance: reserve inventory, create tickets, mint their credentials."""

from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from ticketing.exceptions import (
    EventEndedError,
    EventUnavailableError,
    InsufficientCapacityError,
    NotFoundError,
    PurchaseLimitExceededError,
)
from ticketing.models import Event, Ticket, TicketTier
from ticketing.service import inventory_service
from ticketing.service.credential_service import CredentialCodec, get_codec, new_ticket_number

logger = structlog.get_logger(__name__)


@dataclass
class PurchaseResult:
    tickets: list[Ticket] = field(default_factory=list)
    total_amount: Decimal = Decimal("0")
    currency: str = ""


class PurchaseService:
    """Issues tickets for an event, optionally from a specific tier.

    Tier purchases reserve inventory first. Everything after the reservation runs
    in one transaction; if any of it fails the reservation is released again, so
    a purchase either yields all requested tickets or none.
    """

    def __init__(self, event_id: UUID | str, tier_id: UUID | str | None = None, codec: CredentialCodec | None = None):
        """Initialize the purchase service.

        Args:
            event_id: The event tickets are purchased for.
            tier_id: The tier to purchase from. None uses the event's own price, without inventory.
            codec: The credential codec. Defaults to the one configured in settings.
        """
        self.event_id = event_id
        self.tier_id = tier_id
        self.codec = codec or get_codec()

    def purchase(
        self,
        purchaser_id: str,
        purchaser_name: str,
        purchaser_email: str,
        quantity: int = 1,
    ) -> PurchaseResult:
        """Purchase `quantity` tickets.

        Raises:
            ValueError: If quantity is lower than 1.
            NotFoundError: If the event or tier does not exist.
            EventUnavailableError: If the event is not active.
            EventEndedError: If the event is over.
            TierUnavailableError: If the tier is inactive or not on sale.
            InsufficientInventoryError: If the tier cannot cover the quantity.
            InsufficientCapacityError: If the event cannot seat the quantity.
            PurchaseLimitExceededError: If the purchaser would exceed the tier's per-user limit.
        """
        if quantity < 1:
            raise ValueError("Quantity must be at least 1.")

        event = self._get_open_event()
        tier = self._get_tier(event) if self.tier_id is not None else None

        logger.info(
            "ticket_purchase_started",
            event_id=str(event.id),
            tier_id=str(tier.id) if tier else None,
            purchaser_id=purchaser_id,
            quantity=quantity,
        )

        if tier is not None:
            tier = inventory_service.reserve(tier.pk, quantity)

        try:
            tickets = self._issue(event, tier, purchaser_id, purchaser_name, purchaser_email, quantity)
        except Exception:
            if tier is not None:
                inventory_service.release(tier.pk, quantity)
            logger.warning(
                "ticket_purchase_failed",
                event_id=str(event.id),
                tier_id=str(tier.id) if tier else None,
                purchaser_id=purchaser_id,
                quantity=quantity,
                exc_info=True,
            )
            raise

        unit_price = tier.price if tier else event.ticket_price
        result = PurchaseResult(
            tickets=tickets,
            total_amount=Decimal(unit_price) * quantity,
            currency=tier.currency if tier else event.currency,
        )
        logger.info(
            "ticket_purchase_completed",
            event_id=str(event.id),
            tier_id=str(tier.id) if tier else None,
            purchaser_id=purchaser_id,
            ticket_ids=[str(ticket.id) for ticket in tickets],
            total_amount=str(result.total_amount),
            currency=result.currency,
        )
        return result

    def _get_open_event(self) -> Event:
        event = Event.objects.filter(pk=self.event_id).first()
        if event is None:
            raise NotFoundError("Event not found.")
        if not event.is_active:
            raise EventUnavailableError()
        if event.has_ended(timezone.now()):
            raise EventEndedError()
        return event

    def _get_tier(self, event: Event) -> TicketTier:
        tier = TicketTier.objects.filter(pk=self.tier_id, event=event).first()
        if tier is None:
            raise NotFoundError("Ticket tier not found for this event.")
        return tier

    def _assert_event_capacity(self, event: Event, quantity: int) -> None:
        """Active and used tickets count against the event capacity. Caller holds the event lock."""
        if event.max_capacity is None:
            return
        admitted = Ticket.objects.filter(event=event).admitted().count()
        if admitted + quantity > event.max_capacity:
            raise InsufficientCapacityError()

    def _assert_purchase_limit(self, tier: TicketTier | None, purchaser_id: str, quantity: int) -> None:
        if tier is None or tier.max_tickets_per_user is None:
            return
        existing = Ticket.objects.filter(tier=tier).for_purchaser(purchaser_id).admitted().count()
        if existing + quantity > tier.max_tickets_per_user:
            remaining = max(0, tier.max_tickets_per_user - existing)
            if remaining == 0:
                raise PurchaseLimitExceededError()
            raise PurchaseLimitExceededError(f"You can only purchase {remaining} more ticket(s) for this tier.")

    @transaction.atomic
    def _issue(
        self,
        event: Event,
        tier: TicketTier | None,
        purchaser_id: str,
        purchaser_name: str,
        purchaser_email: str,
        quantity: int,
    ) -> list[Ticket]:
        locked_event = Event.objects.select_for_update().get(pk=event.pk)
        self._assert_event_capacity(locked_event, quantity)
        self._assert_purchase_limit(tier, purchaser_id, quantity)

        price = tier.price if tier else locked_event.ticket_price
        tickets = []
        for _ in range(quantity):
            ticket = Ticket(
                ticket_number=new_ticket_number(locked_event.id),
                event=locked_event,
                tier=tier,
                purchaser_id=purchaser_id,
                purchaser_name=purchaser_name,
                purchaser_email=purchaser_email,
                price_paid=price,
                status=Ticket.TicketStatus.ACTIVE,
            )
            ticket._change_reason = "purchased"  # type: ignore[attr-defined]
            ticket.save()

            # The credential embeds the ticket id, so it is written once the row exists.
            credential = self.codec.mint(ticket.id, locked_event.id, purchaser_id)
            ticket.credential_payload = credential.payload
            ticket.credential_image = credential.image
            ticket.credential_hash = credential.integrity_tag
            ticket._change_reason = "credential_issued"  # type: ignore[attr-defined]
            ticket.save(update_fields=["credential_payload", "credential_image", "credential_hash", "updated_at"])
            tickets.append(ticket)
        return tickets


def purchase_tickets(
    event_id: UUID | str,
    purchaser_id: str,
    purchaser_name: str,
    purchaser_email: str,
    *,
    tier_id: UUID | str | None = None,
    quantity: int = 1,
) -> PurchaseResult:
    """Purchase tickets with the configured codec."""
    return PurchaseService(event_id, tier_id=tier_id).purchase(
        purchaser_id, purchaser_name, purchaser_email, quantity=quantity
    )
