"""Tests for credential minting and verification."""

import base64
import re
import time
import typing as t
import uuid
from datetime import timedelta

import orjson
import pytest

from common.signing import b64url_decode, b64url_encode, generate_tag
from ticketing.exceptions import ErrorCode
from ticketing.service.credential_service import (
    PAYLOAD_PREFIX,
    CredentialCodec,
    CredentialRecord,
    new_ticket_number,
    render_image,
)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _flip_char(segment: str, index: int) -> str:
    replacement = "A" if segment[index] != "A" else "B"
    return segment[:index] + replacement + segment[index + 1 :]


def _record(**overrides: t.Any) -> CredentialRecord:
    data: dict[str, t.Any] = {
        "ticket_id": str(uuid.uuid4()),
        "event_id": str(uuid.uuid4()),
        "purchaser_id": "user-1",
        "timestamp": _now_ms(),
    }
    data.update(overrides)
    return CredentialRecord(**data)


class TestMint:
    def test_payload_has_three_segments_with_prefix(self, codec: CredentialCodec) -> None:
        credential = codec.mint(uuid.uuid4(), uuid.uuid4(), "user-1")

        parts = credential.payload.split(".")
        assert len(parts) == 3
        assert parts[0] == PAYLOAD_PREFIX
        assert parts[2] == credential.integrity_tag
        assert credential.payload.isascii()

    def test_record_binds_the_given_identifiers(self, codec: CredentialCodec) -> None:
        ticket_id, event_id = uuid.uuid4(), uuid.uuid4()
        credential = codec.mint(ticket_id, event_id, "user-1")

        assert credential.record.ticket_id == str(ticket_id)
        assert credential.record.event_id == str(event_id)
        assert credential.record.purchaser_id == "user-1"

    def test_secret_is_not_embedded(self, codec: CredentialCodec, credential_secret: str) -> None:
        credential = codec.mint(uuid.uuid4(), uuid.uuid4(), "user-1")

        raw_record = b64url_decode(credential.payload.split(".")[1])
        assert credential_secret.encode() not in raw_record
        assert credential_secret not in credential.payload

    def test_image_is_png_data_url(self, codec: CredentialCodec) -> None:
        credential = codec.mint(uuid.uuid4(), uuid.uuid4(), "user-1")

        prefix = "data:image/png;base64,"
        assert credential.image.startswith(prefix)
        assert base64.b64decode(credential.image[len(prefix) :]).startswith(b"\x89PNG")

    def test_different_tickets_get_different_credentials(self, codec: CredentialCodec) -> None:
        event_id = uuid.uuid4()
        first = codec.mint(uuid.uuid4(), event_id, "user-1")
        second = codec.mint(uuid.uuid4(), event_id, "user-1")

        assert first.payload != second.payload
        assert first.integrity_tag != second.integrity_tag
        assert first.image != second.image


class TestVerify:
    def test_freshly_minted_credential_is_valid(self, codec: CredentialCodec) -> None:
        credential = codec.mint(uuid.uuid4(), uuid.uuid4(), "user-1")

        result = codec.verify(credential.payload)

        assert result.valid is True
        assert result.error is None
        assert result.record == credential.record

    def test_surrounding_whitespace_is_tolerated(self, codec: CredentialCodec) -> None:
        credential = codec.mint(uuid.uuid4(), uuid.uuid4(), "user-1")

        assert codec.verify(f"  {credential.payload}\n").valid is True

    @pytest.mark.parametrize("index", [0, 5, 20, 40])
    def test_edited_record_is_tampered(self, codec: CredentialCodec, index: int) -> None:
        prefix, record, tag = codec.mint(uuid.uuid4(), uuid.uuid4(), "user-1").payload.split(".")

        result = codec.verify(f"{prefix}.{_flip_char(record, index)}.{tag}")

        assert result.valid is False
        assert result.error == ErrorCode.TAMPERED
        assert result.record is None

    def test_edited_tag_is_tampered(self, codec: CredentialCodec) -> None:
        prefix, record, tag = codec.mint(uuid.uuid4(), uuid.uuid4(), "user-1").payload.split(".")

        result = codec.verify(f"{prefix}.{record}.{_flip_char(tag, 10)}")

        assert result.error == ErrorCode.TAMPERED

    @pytest.mark.parametrize("segment", [1, 2])
    def test_edited_last_character_is_tampered(self, codec: CredentialCodec, segment: int) -> None:
        parts = codec.mint(uuid.uuid4(), uuid.uuid4(), "user-1").payload.split(".")
        original = parts[segment]

        for replacement in "ABCDQRgh_-09":
            if replacement == original[-1]:
                continue
            parts[segment] = original[:-1] + replacement
            result = codec.verify(".".join(parts))
            assert result.valid is False
            assert result.error == ErrorCode.TAMPERED, replacement

    def test_valid_result_carries_the_presented_tag(self, codec: CredentialCodec) -> None:
        credential = codec.mint(uuid.uuid4(), uuid.uuid4(), "user-1")

        assert codec.verify(credential.payload).integrity_tag == credential.integrity_tag

    def test_record_swapped_between_credentials_is_tampered(self, codec: CredentialCodec) -> None:
        _, record_a, _ = codec.mint(uuid.uuid4(), uuid.uuid4(), "user-a").payload.split(".")
        prefix, _, tag_b = codec.mint(uuid.uuid4(), uuid.uuid4(), "user-b").payload.split(".")

        assert codec.verify(f"{prefix}.{record_a}.{tag_b}").error == ErrorCode.TAMPERED

    def test_credential_signed_with_other_secret_is_tampered(self, codec: CredentialCodec, settings: t.Any) -> None:
        settings.TICKET_CREDENTIAL_SECRET = "some-other-secret"
        forged = codec.mint(uuid.uuid4(), uuid.uuid4(), "user-1").payload
        settings.TICKET_CREDENTIAL_SECRET = "test-credential-secret"

        assert codec.verify(forged).error == ErrorCode.TAMPERED

    def test_unsigned_forgery_is_tampered(self, codec: CredentialCodec) -> None:
        record = _record().canonical()
        forged = f"{PAYLOAD_PREFIX}.{b64url_encode(record)}.{b64url_encode(b'x' * 32)}"

        assert codec.verify(forged).error == ErrorCode.TAMPERED

    @pytest.mark.parametrize(
        "payload",
        [
            "",
            "garbage",
            "not.a.credential",
            "TKT1.onlytwo",
            "TKT1.a.b.c",
            "TKT2.eyJ9.eyJ9",
            "TKT1.$$$.abc",
            "{'ticket_id': '1'}",
        ],
    )
    def test_malformed_payloads(self, codec: CredentialCodec, payload: str) -> None:
        result = codec.verify(payload)

        assert result.valid is False
        assert result.error == ErrorCode.MALFORMED

    @pytest.mark.parametrize("payload", [None, 123, b"TKT1.a.b", ["TKT1"]])
    def test_non_string_payloads_are_malformed(self, codec: CredentialCodec, payload: t.Any) -> None:
        assert codec.verify(payload).error == ErrorCode.MALFORMED

    @pytest.mark.parametrize(
        "raw",
        [
            b"not json",
            b"[]",
            orjson.dumps({"ticket_id": "t", "event_id": "e", "purchaser_id": "p"}),
            orjson.dumps({"ticket_id": "t", "event_id": "e", "purchaser_id": "p", "timestamp": "now"}),
            orjson.dumps({"ticket_id": 1, "event_id": "e", "purchaser_id": "p", "timestamp": 1}),
            orjson.dumps({"ticket_id": "", "event_id": "e", "purchaser_id": "p", "timestamp": 1}),
        ],
    )
    def test_signed_but_invalid_record_is_malformed(self, codec: CredentialCodec, raw: bytes) -> None:
        payload = f"{PAYLOAD_PREFIX}.{b64url_encode(raw)}.{b64url_encode(generate_tag(raw))}"

        assert codec.verify(payload).error == ErrorCode.MALFORMED

    def test_stale_credential_is_expired(self, codec: CredentialCodec) -> None:
        stale = _record(timestamp=_now_ms() - int(timedelta(hours=25).total_seconds() * 1000))
        payload, _ = CredentialCodec.encode(stale)

        result = codec.verify(payload)

        assert result.valid is False
        assert result.error == ErrorCode.EXPIRED

    def test_credential_within_max_age_is_valid(self, codec: CredentialCodec) -> None:
        recent = _record(timestamp=_now_ms() - int(timedelta(hours=23).total_seconds() * 1000))
        payload, _ = CredentialCodec.encode(recent)

        assert codec.verify(payload).valid is True

    def test_max_age_follows_settings(self, codec: CredentialCodec, settings: t.Any) -> None:
        settings.TICKET_CREDENTIAL_MAX_AGE_HOURS = 1
        payload, _ = CredentialCodec.encode(_record(timestamp=_now_ms() - 2 * 3600 * 1000))

        assert codec.verify(payload).error == ErrorCode.EXPIRED

    def test_max_age_can_be_fixed_per_codec(self) -> None:
        codec = CredentialCodec(max_age=timedelta(minutes=1))
        payload, _ = CredentialCodec.encode(_record(timestamp=_now_ms() - 5 * 60 * 1000))

        assert codec.max_age == timedelta(minutes=1)
        assert codec.verify(payload).error == ErrorCode.EXPIRED

    def test_tampering_is_reported_before_expiry(self, codec: CredentialCodec) -> None:
        stale = _record(timestamp=0)
        payload, _ = CredentialCodec.encode(stale)
        prefix, record, tag = payload.split(".")

        assert codec.verify(f"{prefix}.{_flip_char(record, 3)}.{tag}").error == ErrorCode.TAMPERED


class TestRenderImage:
    def test_same_payload_renders_same_image(self) -> None:
        assert render_image("TKT1.abc.def") == render_image("TKT1.abc.def")

    def test_box_size_follows_settings(self, settings: t.Any) -> None:
        settings.TICKET_QR_BOX_SIZE = 2
        small = render_image("TKT1.abc.def")
        settings.TICKET_QR_BOX_SIZE = 10
        large = render_image("TKT1.abc.def")

        assert len(small) < len(large)


class TestNewTicketNumber:
    def test_format(self) -> None:
        event_id = uuid.UUID("1234abcd-0000-0000-0000-000000000000")

        number = new_ticket_number(event_id)

        assert re.fullmatch(r"1234ABCD-[0-9A-Z]+-[0-9A-Z]{8}", number)

    def test_prefix_skips_separators(self) -> None:
        assert new_ticket_number("ab-cd-ef-gh-ij").startswith("ABCDEFGH-")

    def test_numbers_are_unique(self) -> None:
        event_id = uuid.uuid4()

        numbers = {new_ticket_number(event_id) for _ in range(2000)}

        assert len(numbers) == 2000
