"""Ticket credentials: tamper-evident payloads rendered as QR codes.

Wire format (ASCII, fits comfortably in a QR code):

    TKT1.<base64url(record)>.<base64url(tag)>

where `record` is the canonical JSON of
`{"event_id", "purchaser_id", "ticket_id", "timestamp"}` (sorted keys, no
whitespace, timestamp in epoch milliseconds) and `tag` is
HMAC-SHA256(secret, record). The secret is never part of the payload.

Verification authenticates the record bytes before parsing them, so a forged
or edited credential is rejected without its content ever being interpreted,
and every kind of edit produces the same answer.
"""

import base64
import secrets
import string
import time
import typing as t
from dataclasses import dataclass
from datetime import timedelta
from io import BytesIO
from uuid import UUID

import orjson
import qrcode
from django.conf import settings

from common.signing import NonCanonicalEncodingError, b64url_decode, b64url_encode, generate_tag, verify_tag
from ticketing.exceptions import ErrorCode

PAYLOAD_PREFIX = "TKT1"
REQUIRED_FIELDS = ("ticket_id", "event_id", "purchaser_id", "timestamp")
TICKET_NUMBER_ALPHABET = string.digits + string.ascii_uppercase


@dataclass(frozen=True)
class CredentialRecord:
    """The authenticated content of a credential."""

    ticket_id: str
    event_id: str
    purchaser_id: str
    timestamp: int  # epoch milliseconds

    def canonical(self) -> bytes:
        """Deterministic serialization the integrity tag is computed over."""
        return orjson.dumps(
            {
                "event_id": self.event_id,
                "purchaser_id": self.purchaser_id,
                "ticket_id": self.ticket_id,
                "timestamp": self.timestamp,
            },
            option=orjson.OPT_SORT_KEYS,
        )

    @classmethod
    def parse(cls, raw: bytes) -> t.Self:
        """Build a record from its serialized form.

        Raises:
            ValueError: If the bytes are not an object with every required field of the right type.
        """
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise ValueError("Record is not valid JSON") from e
        if not isinstance(data, dict) or any(field not in data for field in REQUIRED_FIELDS):
            raise ValueError("Record is missing required fields")
        ids = (data["ticket_id"], data["event_id"], data["purchaser_id"])
        if not all(isinstance(value, str) and value for value in ids):
            raise ValueError("Record identifiers must be non-empty strings")
        timestamp = data["timestamp"]
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise ValueError("Record timestamp must be an integer")
        return cls(ticket_id=ids[0], event_id=ids[1], purchaser_id=ids[2], timestamp=timestamp)


@dataclass(frozen=True)
class MintedCredential:
    payload: str
    image: str  # data URL of a PNG QR code
    integrity_tag: str  # base64url, as embedded in the payload
    record: CredentialRecord


@dataclass(frozen=True)
class VerificationResult:
    valid: bool
    record: CredentialRecord | None = None
    error: ErrorCode | None = None
    integrity_tag: str | None = None  # base64url, as presented

    @classmethod
    def failure(cls, error: ErrorCode) -> t.Self:
        return cls(valid=False, error=error)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class CredentialCodec:
    """Mints and verifies ticket credentials."""

    def __init__(self, *, max_age: timedelta | None = None) -> None:
        self._max_age = max_age

    @property
    def max_age(self) -> timedelta:
        """Credential lifetime; follows settings unless fixed at construction."""
        return self._max_age or timedelta(hours=settings.TICKET_CREDENTIAL_MAX_AGE_HOURS)

    def mint(self, ticket_id: UUID | str, event_id: UUID | str, purchaser_id: str) -> MintedCredential:
        """Create a signed credential for a ticket and render it as a QR code.

        Args:
            ticket_id: The durable id of an already persisted ticket.
            event_id: The event the ticket admits to.
            purchaser_id: The ticket holder.

        Returns:
            The payload, its rendered image and its integrity tag.
        """
        record = CredentialRecord(
            ticket_id=str(ticket_id),
            event_id=str(event_id),
            purchaser_id=str(purchaser_id),
            timestamp=_now_ms(),
        )
        payload, tag = self.encode(record)
        return MintedCredential(payload=payload, image=render_image(payload), integrity_tag=tag, record=record)

    @staticmethod
    def encode(record: CredentialRecord) -> tuple[str, str]:
        """Serialize and sign a record. Returns the payload and its base64url tag."""
        canonical = record.canonical()
        tag = b64url_encode(generate_tag(canonical))
        return f"{PAYLOAD_PREFIX}.{b64url_encode(canonical)}.{tag}", tag

    def verify(self, payload: t.Any) -> VerificationResult:
        """Check a presented credential.

        Order: envelope framing (MALFORMED), integrity (TAMPERED),
        record fields (MALFORMED), freshness (EXPIRED). A segment that decodes
        but is not the canonical encoding of its bytes was edited, so it counts
        as TAMPERED.
        """
        if not isinstance(payload, str):
            return VerificationResult.failure(ErrorCode.MALFORMED)
        parts = payload.strip().split(".")
        if len(parts) != 3 or parts[0] != PAYLOAD_PREFIX:
            return VerificationResult.failure(ErrorCode.MALFORMED)
        try:
            raw_record = b64url_decode(parts[1])
            tag = b64url_decode(parts[2])
        except NonCanonicalEncodingError:
            return VerificationResult.failure(ErrorCode.TAMPERED)
        except ValueError:
            return VerificationResult.failure(ErrorCode.MALFORMED)

        if not verify_tag(raw_record, tag):
            return VerificationResult.failure(ErrorCode.TAMPERED)

        try:
            record = CredentialRecord.parse(raw_record)
        except ValueError:
            return VerificationResult.failure(ErrorCode.MALFORMED)

        age_ms = _now_ms() - record.timestamp
        if age_ms > self.max_age.total_seconds() * 1000:
            return VerificationResult.failure(ErrorCode.EXPIRED)

        return VerificationResult(valid=True, record=record, integrity_tag=parts[2])


def render_image(payload: str) -> str:
    """Render a payload as a PNG QR code data URL."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=settings.TICKET_QR_BOX_SIZE,
        border=settings.TICKET_QR_BORDER,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffered = BytesIO()
    img.save(buffered, "PNG")
    return "data:image/png;base64," + base64.b64encode(buffered.getvalue()).decode("ascii")


def _to_base36(value: int) -> str:
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(TICKET_NUMBER_ALPHABET[rem])
    return "".join(reversed(digits)) or "0"


def new_ticket_number(event_id: UUID | str) -> str:
    """Generate a human-shareable ticket number: EVENTPRE-TIME-RANDOM.

    Independent of the credential. Nanosecond time plus 8 random base-36 characters
    keeps concurrent calls apart; the column is unique as well.
    """
    prefix = "".join(c for c in str(event_id).upper() if c.isalnum())[:8] or "TICKET"
    random_part = "".join(secrets.choice(TICKET_NUMBER_ALPHABET) for _ in range(8))
    return f"{prefix}-{_to_base36(time.time_ns())}-{random_part}"


def get_codec() -> CredentialCodec:
    """The codec configured from settings."""
    return CredentialCodec()
