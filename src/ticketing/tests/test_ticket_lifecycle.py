"""End-to-end walk through a ticket's life: buy, enter, try again, cancel."""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from ticketing.exceptions import AlreadyUsedError, ErrorCode, InsufficientInventoryError
from ticketing.models import Event, Ticket
from ticketing.schema import PurchaseResultSchema
from ticketing.service import ticket_service, tier_service
from ticketing.service.purchase_service import purchase_tickets
from ticketing.service.redemption import scan_ticket

pytestmark = pytest.mark.django_db


def test_ticket_lifecycle(organizer_id: str) -> None:
    now = timezone.now()
    event = Event.objects.create(
        name="Warehouse Night",
        start=now - timedelta(minutes=30),
        end=now + timedelta(hours=5),
        organizer_id=organizer_id,
        max_capacity=3,
    )
    tier = tier_service.create_tier(
        event.id, organizer_id, name="Early", price=Decimal("12.50"), total_quantity=2, max_tickets_per_user=2
    )

    # Alice buys both early tickets.
    result = purchase_tickets(event.id, "alice", "Alice Example", "alice@example.com", tier_id=tier.id, quantity=2)
    serialized = PurchaseResultSchema.model_validate(result)
    assert serialized.total_amount == Decimal("25.00")
    first, second = result.tickets

    # The tier is now sold out for Bob.
    with pytest.raises(InsufficientInventoryError):
        purchase_tickets(event.id, "bob", "Bob Example", "bob@example.com", tier_id=tier.id)

    # Alice enters with the first ticket; a second attempt with it is refused.
    entry = scan_ticket(first.credential_payload, "door-1", event_id=event.id)
    assert entry.success is True
    replay = scan_ticket(first.credential_payload, "door-2", event_id=event.id)
    assert replay.error == ErrorCode.ALREADY_USED

    # A used ticket cannot be cancelled, but the unused one can, freeing a unit for Bob.
    with pytest.raises(AlreadyUsedError):
        ticket_service.cancel_ticket(first.id, "alice")
    ticket_service.cancel_ticket(second.id, "alice")
    bobs = purchase_tickets(event.id, "bob", "Bob Example", "bob@example.com", tier_id=tier.id).tickets[0]

    # Alice's cancelled ticket is refused at the door.
    assert scan_ticket(second.credential_payload, "door-1").error == ErrorCode.ALREADY_CANCELLED
    assert scan_ticket(bobs.credential_payload, "door-1").success is True

    tier.refresh_from_db()
    assert tier.quantity_sold == 2
    admitted = Ticket.objects.filter(event=event, status=Ticket.TicketStatus.USED)
    assert sorted(admitted.values_list("purchaser_id", flat=True)) == ["alice", "bob"]
    assert Ticket.objects.filter(event=event, status=Ticket.TicketStatus.CANCELLED).count() == 1
