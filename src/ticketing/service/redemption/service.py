"""RedemptionService: turns a scanned credential into an admission, at most once."""

import typing as t
from datetime import datetime
from functools import cached_property
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone
from django.utils.translation import gettext as _

from ticketing.models import Ticket
from ticketing.schema import ScanResultSchema
from ticketing.service.credential_service import CredentialCodec, VerificationResult, get_codec

from .enums import ScanMessages
from .gates import SCAN_GATES, STATUS_GATES, BaseScanGate

logger = structlog.get_logger(__name__)


class ScanAttempt:
    """State of a single scan, shared by the gates.

    The verification and the ticket are computed on first access, so a rejected
    credential never reaches the database.
    """

    def __init__(
        self,
        payload: str,
        scanned_by: str,
        codec: CredentialCodec,
        event_id: UUID | str | None = None,
    ) -> None:
        self.payload = payload
        self.scanned_by = scanned_by
        self.event_id = event_id
        self.codec = codec
        self.now: datetime = timezone.now()

    @cached_property
    def verification(self) -> VerificationResult:
        return self.codec.verify(self.payload)

    @cached_property
    def ticket(self) -> Ticket | None:
        record = self.verification.record
        if record is None:
            return None
        return Ticket.objects.with_event().filter(pk=record.ticket_id).first()

    def run_gates(self, gates: list[type[BaseScanGate]]) -> ScanResultSchema | None:
        for gate in gates:
            if result := gate(self).check():
                return result
        return None


class RedemptionService:
    """Validates scanned credentials and redeems the tickets they belong to."""

    def __init__(self, codec: CredentialCodec | None = None) -> None:
        self.codec = codec or get_codec()

    def scan(self, payload: str, scanned_by: str, event_id: UUID | str | None = None) -> ScanResultSchema:
        """Scan a credential at the door.

        Checks run in a fixed order and the first failing one decides the outcome.
        A ticket that passes every check is marked used. Expected failures are
        returned, not raised.

        Args:
            payload: The scanned credential.
            scanned_by: Who is scanning.
            event_id: The event the scanner admits to, if it is bound to one.

        Returns:
            ScanResultSchema describing the outcome.
        """
        attempt = ScanAttempt(payload, scanned_by, self.codec, event_id=event_id)
        if result := attempt.run_gates(SCAN_GATES):
            self._log_rejection(attempt, result)
            return result
        result = self._redeem(attempt)
        if not result.success:
            self._log_rejection(attempt, result)
        return result

    @transaction.atomic
    def _redeem(self, attempt: ScanAttempt) -> ScanResultSchema:
        ticket = t.cast(Ticket, attempt.ticket)
        locked = Ticket.objects.select_for_update().get(pk=ticket.pk)
        locked.event = ticket.event
        # Another scanner may have won the race since the unlocked checks.
        attempt.ticket = locked
        if result := attempt.run_gates(STATUS_GATES):
            return result

        locked.status = Ticket.TicketStatus.USED
        locked.used_at = attempt.now
        locked.scanned_by = attempt.scanned_by
        locked._change_reason = "redeemed"  # type: ignore[attr-defined]
        locked.save(update_fields=["status", "used_at", "scanned_by", "updated_at"])

        logger.info(
            "ticket_redeemed",
            ticket_id=str(locked.id),
            event_id=str(locked.event_id),
            scanned_by=attempt.scanned_by,
        )
        return ScanResultSchema(
            success=True,
            message=_(ScanMessages.VALIDATED),
            ticket=locked,  # type: ignore[arg-type]
        )

    @staticmethod
    def _log_rejection(attempt: ScanAttempt, result: ScanResultSchema) -> None:
        ticket_id = None
        if attempt.verification.valid and attempt.verification.record is not None:
            ticket_id = attempt.verification.record.ticket_id
        logger.info(
            "ticket_scan_rejected",
            error=result.error,
            ticket_id=ticket_id,
            scanned_by=attempt.scanned_by,
            event_id=str(attempt.event_id) if attempt.event_id else None,
        )


def scan_ticket(payload: str, scanned_by: str, event_id: UUID | str | None = None) -> ScanResultSchema:
    """Scan a credential with the configured codec."""
    return RedemptionService().scan(payload, scanned_by, event_id=event_id)
