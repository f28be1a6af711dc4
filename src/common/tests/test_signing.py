"""Tests for the HMAC signing module."""

import typing as t

import pytest

from common.signing import TAG_LENGTH, NonCanonicalEncodingError, b64url_decode, b64url_encode, generate_tag, verify_tag


class TestGenerateTag:
    """Tests for generate_tag function."""

    def test_generates_tag_of_correct_length(self) -> None:
        assert len(generate_tag(b"payload")) == TAG_LENGTH

    def test_same_inputs_produce_same_tag(self) -> None:
        assert generate_tag(b"payload") == generate_tag(b"payload")

    def test_different_messages_produce_different_tags(self) -> None:
        assert generate_tag(b"payload-1") != generate_tag(b"payload-2")

    def test_tag_depends_on_secret(self, settings: t.Any) -> None:
        settings.TICKET_CREDENTIAL_SECRET = "first-secret"
        first = generate_tag(b"payload")
        settings.TICKET_CREDENTIAL_SECRET = "second-secret"
        second = generate_tag(b"payload")

        assert first != second

    def test_falls_back_to_secret_key(self, settings: t.Any) -> None:
        settings.TICKET_CREDENTIAL_SECRET = ""
        settings.SECRET_KEY = "some-secret-key"
        fallback = generate_tag(b"payload")
        settings.SECRET_KEY = "another-secret-key"

        assert generate_tag(b"payload") != fallback


class TestVerifyTag:
    """Tests for verify_tag function."""

    def test_valid_tag_verifies(self) -> None:
        assert verify_tag(b"payload", generate_tag(b"payload")) is True

    def test_tag_for_other_message_fails(self) -> None:
        assert verify_tag(b"payload", generate_tag(b"other")) is False

    def test_truncated_tag_fails(self) -> None:
        assert verify_tag(b"payload", generate_tag(b"payload")[:16]) is False

    def test_tag_from_other_secret_fails(self, settings: t.Any) -> None:
        settings.TICKET_CREDENTIAL_SECRET = "first-secret"
        tag = generate_tag(b"payload")
        settings.TICKET_CREDENTIAL_SECRET = "second-secret"

        assert verify_tag(b"payload", tag) is False


class TestBase64Url:
    """Tests for the unpadded base64url helpers."""

    def test_encoding_is_unpadded_and_url_safe(self) -> None:
        encoded = b64url_encode(b"\xfb\xff\xfe")
        assert "=" not in encoded
        assert "+" not in encoded and "/" not in encoded

    def test_decode_reverses_encode(self) -> None:
        data = bytes(range(256))
        assert b64url_decode(b64url_encode(data)) == data

    @pytest.mark.parametrize("value", ["", "abc$", "ab+/", "a", "ab=="])
    def test_invalid_values_are_rejected(self, value: str) -> None:
        with pytest.raises(ValueError) as exc_info:
            b64url_decode(value)

        assert not isinstance(exc_info.value, NonCanonicalEncodingError)

    def test_non_canonical_encoding_is_rejected(self) -> None:
        # "QQ" is the canonical form of b"A"; "QR" decodes to the same byte.
        assert b64url_decode("QQ") == b"A"
        with pytest.raises(NonCanonicalEncodingError):
            b64url_decode("QR")
