"""HMAC primitives for tamper-evident tokens.

Ticket credentials carry a keyed integrity tag so that a scanner can tell a
genuine credential from a forged or edited one without a database lookup.

Security:
    - The signing key is provisioned out-of-band via TICKET_CREDENTIAL_SECRET.
      When it is not configured, a key is derived from Django's SECRET_KEY with
      a domain-specific prefix so it stays isolated from other SECRET_KEY uses.
    - Tags are full-length HMAC-SHA256 digests (256 bits). Credentials are
      long-lived bearer tokens, so unlike short-lived URLs they are not truncated.
    - Uses hmac.compare_digest() to prevent timing attacks.
    - The key never leaves the process: it is not part of any token.
"""

import base64
import binascii
import hashlib
import hmac
from functools import lru_cache

from django.conf import settings

__all__ = [
    "TAG_LENGTH",
    "generate_tag",
    "verify_tag",
    "b64url_encode",
    "b64url_decode",
    "NonCanonicalEncodingError",
]

# HMAC-SHA256 digest size in bytes
TAG_LENGTH = 32

# Domain separator for key derivation
_KEY_DOMAIN = "turnstile:ticket-credential:v1"


class NonCanonicalEncodingError(ValueError):
    """A well-formed base64url segment that is not the canonical encoding of its bytes.

    Genuine tokens are always canonical, so such a segment has been edited.
    """


@lru_cache(maxsize=8)
def _derive_key(secret: str, domain: str) -> bytes:
    """Derive a domain-separated signing key: hash(domain || secret)."""
    return hashlib.sha256(f"{domain}:{secret}".encode()).digest()


def _get_signing_key() -> bytes:
    """Get the credential signing key.

    Settings are read on every call so tests can override them; the derivation
    itself is cached per secret.
    """
    secret = getattr(settings, "TICKET_CREDENTIAL_SECRET", "") or settings.SECRET_KEY
    return _derive_key(secret, _KEY_DOMAIN)


def generate_tag(message: bytes) -> bytes:
    """Generate the HMAC-SHA256 tag of a message.

    Args:
        message: The exact bytes to authenticate.

    Returns:
        The raw digest (TAG_LENGTH bytes).
    """
    return hmac.new(_get_signing_key(), message, hashlib.sha256).digest()


def verify_tag(message: bytes, tag: bytes) -> bool:
    """Check a tag against a message in constant time."""
    return hmac.compare_digest(generate_tag(message), tag)


def b64url_encode(data: bytes) -> str:
    """URL-safe base64 without padding, suitable for QR payloads."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(value: str) -> bytes:
    """Decode unpadded URL-safe base64.

    Only the canonical encoding of a byte string is accepted, so two different
    strings never decode to the same bytes.

    Raises:
        NonCanonicalEncodingError: If the value decodes but is not the canonical encoding.
        ValueError: If the value is not valid base64url.
    """
    if not value or any(c not in _B64URL_ALPHABET for c in value):
        raise ValueError("Invalid base64url segment")
    try:
        data = base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))
    except (binascii.Error, ValueError) as e:
        raise ValueError("Invalid base64url segment") from e
    if b64url_encode(data) != value:
        raise NonCanonicalEncodingError("Non-canonical base64url segment")
    return data


_B64URL_ALPHABET = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")
