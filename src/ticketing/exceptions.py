"""Error taxonomy for the ticketing core.

Purchases, cancellations and admin operations raise these. Scans never raise
for expected outcomes; they report the same codes inside a result object.
"""

import typing as t
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable, user-safe error codes."""

    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    # temporal or activation constraints
    UNAVAILABLE = "UNAVAILABLE"
    EVENT_UNAVAILABLE = "EVENT_UNAVAILABLE"
    EVENT_ENDED = "EVENT_ENDED"
    EVENT_MISMATCH = "EVENT_MISMATCH"
    # quotas
    INSUFFICIENT_INVENTORY = "INSUFFICIENT_INVENTORY"
    INSUFFICIENT_CAPACITY = "INSUFFICIENT_CAPACITY"
    PURCHASE_LIMIT_EXCEEDED = "PURCHASE_LIMIT_EXCEEDED"
    # credential integrity
    MALFORMED = "MALFORMED"
    TAMPERED = "TAMPERED"
    EXPIRED = "EXPIRED"
    # invalid state transitions
    ALREADY_USED = "ALREADY_USED"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"
    TICKET_EXPIRED = "TICKET_EXPIRED"
    # admin constraints
    TIER_IN_USE = "TIER_IN_USE"
    TIER_NAME_TAKEN = "TIER_NAME_TAKEN"
    EVENT_HAS_TICKETS = "EVENT_HAS_TICKETS"


class TicketingError(Exception):
    """Base class for ticketing failures, carrying a code and a user-safe message."""

    code: t.ClassVar[ErrorCode]
    default_message: t.ClassVar[str] = "Ticketing operation failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(TicketingError):
    """Raised when an event, tier or ticket does not exist."""

    code = ErrorCode.NOT_FOUND
    default_message = "Not found."


class ForbiddenError(TicketingError):
    """Raised when the requester may not act on the resource."""

    code = ErrorCode.FORBIDDEN
    default_message = "You don't have permission to perform this action."


class EventUnavailableError(TicketingError):
    """Raised when tickets are requested for an inactive event."""

    code = ErrorCode.EVENT_UNAVAILABLE
    default_message = "Event is not active."


class EventEndedError(TicketingError):
    """Raised when tickets are requested for an event that is over."""

    code = ErrorCode.EVENT_ENDED
    default_message = "Cannot purchase tickets for past events."


class TierUnavailableError(TicketingError):
    """Raised when a tier is inactive or outside its sale window."""

    code = ErrorCode.UNAVAILABLE
    default_message = "Ticket tier is not available for purchase."


class InsufficientInventoryError(TicketingError):
    """Raised when a tier cannot cover the requested quantity."""

    code = ErrorCode.INSUFFICIENT_INVENTORY

    def __init__(self, available: int, message: str | None = None) -> None:
        self.available = available
        super().__init__(message or f"Only {available} ticket(s) available in this tier.")


class InsufficientCapacityError(TicketingError):
    """Raised when the event cannot seat the requested quantity."""

    code = ErrorCode.INSUFFICIENT_CAPACITY
    default_message = "Not enough tickets available."


class PurchaseLimitExceededError(TicketingError):
    """Raised when a purchaser would exceed a tier's per-user limit."""

    code = ErrorCode.PURCHASE_LIMIT_EXCEEDED
    default_message = "You have reached the maximum number of tickets for this tier."


class AlreadyUsedError(TicketingError):
    """Raised when a used ticket is asked to transition again."""

    code = ErrorCode.ALREADY_USED
    default_message = "Ticket has already been used."


class AlreadyCancelledError(TicketingError):
    """Raised when a cancelled ticket is asked to transition again."""

    code = ErrorCode.ALREADY_CANCELLED
    default_message = "Ticket is already cancelled."


class TicketExpiredError(TicketingError):
    """Raised when an expired ticket is asked to transition again."""

    code = ErrorCode.TICKET_EXPIRED
    default_message = "Ticket has expired."


class TierInUseError(TicketingError):
    """Raised when deleting a tier that has sold tickets."""

    code = ErrorCode.TIER_IN_USE
    default_message = "Cannot delete ticket tier with sold tickets. Consider deactivating instead."


class TierNameTakenError(TicketingError):
    """Raised when a tier name is already used within the event."""

    code = ErrorCode.TIER_NAME_TAKEN
    default_message = "A ticket tier with this name already exists for this event."


class EventHasTicketsError(TicketingError):
    """Raised when deleting an event that has issued tickets."""

    code = ErrorCode.EVENT_HAS_TICKETS
    default_message = "Cannot delete an event with issued tickets. Consider deactivating instead."
