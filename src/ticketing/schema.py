from datetime import datetime
from decimal import Decimal
from uuid import UUID

from ninja import Schema

from ticketing.exceptions import ErrorCode
from ticketing.models import Ticket, TicketTier


class TicketTierSchema(Schema):
    id: UUID
    event_id: UUID
    name: str
    description: str = ""
    price: Decimal
    currency: str
    total_quantity: int
    available_quantity: int
    is_active: bool
    sales_start_at: datetime | None = None
    sales_end_at: datetime | None = None
    max_tickets_per_user: int | None = None

    @staticmethod
    def resolve_available_quantity(obj: TicketTier) -> int:
        return obj.available_quantity


class TicketSchema(Schema):
    """A ticket as handed to its holder, credential included."""

    id: UUID
    ticket_number: str
    event_id: UUID
    tier_id: UUID | None = None
    purchaser_id: str
    purchaser_name: str
    purchaser_email: str
    price_paid: Decimal
    purchase_date: datetime
    status: Ticket.TicketStatus
    credential_payload: str
    credential_image: str
    used_at: datetime | None = None
    cancelled_at: datetime | None = None


class PurchaseResultSchema(Schema):
    tickets: list[TicketSchema]
    total_amount: Decimal
    currency: str


class ScannedTicketSchema(Schema):
    """What a door scanner is shown about a ticket."""

    id: UUID
    ticket_number: str
    event_name: str
    purchaser_name: str
    status: Ticket.TicketStatus
    used_at: datetime | None = None

    @staticmethod
    def resolve_event_name(obj: Ticket) -> str:
        return obj.event.name


class ScanResultSchema(Schema):
    """Outcome of a scan. Expected failures are reported here, never raised."""

    success: bool
    message: str
    ticket: ScannedTicketSchema | None = None
    error: ErrorCode | None = None
