"""Scan gate classes for ticket redemption.

Each gate performs one check on a scan attempt. The RedemptionService runs them
in order and stops at the first gate that returns a result. Gates never write.
"""

from __future__ import annotations

import abc
import hmac
import typing as t

from django.utils.translation import gettext as _

from ticketing.exceptions import ErrorCode
from ticketing.models import Ticket
from ticketing.schema import ScanResultSchema

from .enums import ScanMessages

if t.TYPE_CHECKING:
    from .service import ScanAttempt


def rejected(message: str, error: ErrorCode, ticket: Ticket | None = None) -> ScanResultSchema:
    return ScanResultSchema(
        success=False,
        message=message,
        error=error,
        # Validated from the model instance so the snapshot resolvers can read it.
        ticket=ticket,  # type: ignore[arg-type]
    )


class BaseScanGate(abc.ABC):
    """Abstract Base Class for a composable scan check."""

    def __init__(self, attempt: ScanAttempt) -> None:
        self.attempt = attempt

    @abc.abstractmethod
    def check(self) -> ScanResultSchema | None:
        """Perform the check.

        Returns:
            ScanResultSchema if this gate rejects the scan, None to continue to next gate.
        """


class CredentialGate(BaseScanGate):
    """Gate #1: The credential must be well formed, authentic and fresh. No database access."""

    def check(self) -> ScanResultSchema | None:
        verification = self.attempt.verification
        if not verification.valid:
            return rejected(_(ScanMessages.INVALID_QR_CODE), verification.error or ErrorCode.MALFORMED)
        return None


class TicketExistsGate(BaseScanGate):
    """Gate #2: The credential must refer to a stored ticket."""

    def check(self) -> ScanResultSchema | None:
        if self.attempt.ticket is None:
            return rejected(_(ScanMessages.TICKET_NOT_FOUND), ErrorCode.NOT_FOUND)
        return None


class CredentialBindingGate(BaseScanGate):
    """Gate #3: Only the credential currently stored on the ticket admits.

    Re-issuing a credential replaces the stored tag, which revokes the previous one
    even though its signature is still genuine.
    """

    def check(self) -> ScanResultSchema | None:
        ticket = t.cast(Ticket, self.attempt.ticket)
        presented = self.attempt.verification.integrity_tag or ""
        if not ticket.credential_hash or not hmac.compare_digest(presented, ticket.credential_hash):
            return rejected(_(ScanMessages.INVALID_QR_CODE), ErrorCode.TAMPERED)
        return None


class EventMatchGate(BaseScanGate):
    """Gate #4: When the scanner is bound to an event, the ticket must be for it."""

    def check(self) -> ScanResultSchema | None:
        expected = self.attempt.event_id
        ticket = t.cast(Ticket, self.attempt.ticket)
        if expected is not None and str(ticket.event_id) != str(expected):
            return rejected(_(ScanMessages.WRONG_EVENT), ErrorCode.EVENT_MISMATCH)
        return None


class AlreadyUsedGate(BaseScanGate):
    """Gate #5: A used ticket is refused, showing when it was first scanned."""

    def check(self) -> ScanResultSchema | None:
        ticket = t.cast(Ticket, self.attempt.ticket)
        if ticket.status == Ticket.TicketStatus.USED:
            used_at = ticket.used_at.isoformat() if ticket.used_at else ""
            return rejected(_(ScanMessages.ALREADY_USED).format(used_at=used_at), ErrorCode.ALREADY_USED, ticket)
        return None


class TerminalStatusGate(BaseScanGate):
    """Gate #6: Cancelled and expired tickets are refused."""

    def check(self) -> ScanResultSchema | None:
        ticket = t.cast(Ticket, self.attempt.ticket)
        if ticket.status == Ticket.TicketStatus.CANCELLED:
            return rejected(_(ScanMessages.CANCELLED), ErrorCode.ALREADY_CANCELLED)
        if ticket.status == Ticket.TicketStatus.EXPIRED:
            return rejected(_(ScanMessages.EXPIRED), ErrorCode.TICKET_EXPIRED)
        return None


class EventWindowGate(BaseScanGate):
    """Gate #7: Nobody gets in once the event is over."""

    def check(self) -> ScanResultSchema | None:
        ticket = t.cast(Ticket, self.attempt.ticket)
        if ticket.event.has_ended(self.attempt.now):
            return rejected(_(ScanMessages.EVENT_ENDED), ErrorCode.EVENT_ENDED)
        return None


SCAN_GATES: list[type[BaseScanGate]] = [
    CredentialGate,
    TicketExistsGate,
    CredentialBindingGate,
    EventMatchGate,
    AlreadyUsedGate,
    TerminalStatusGate,
    EventWindowGate,
]

# Re-checked on the locked row right before redeeming.
STATUS_GATES: list[type[BaseScanGate]] = [CredentialBindingGate, AlreadyUsedGate, TerminalStatusGate]
