"""Shopify webhook HMAC verification."""

import base64
import enum
import hashlib
import hmac
from dataclasses import dataclass

HMAC_HEADER = "X-Shopify-Hmac-Sha256"
SHOP_DOMAIN_HEADER = "X-Shopify-Shop-Domain"
TOPIC_HEADER = "X-Shopify-Topic"


class VerificationFailure(str, enum.Enum):
    """Why a webhook failed verification. Operator logs only."""

    MISSING_SECRET = "missing_secret"
    MISSING_HEADER = "missing_header"
    MISSING_BODY = "missing_body"
    LENGTH_MISMATCH = "length_mismatch"
    DIGEST_MISMATCH = "digest_mismatch"


@dataclass(frozen=True, slots=True)
class VerificationResult:
    """Outcome of a signature check."""

    valid: bool
    failure: VerificationFailure | None = None


def compute_webhook_signature(data: bytes, secret: str) -> str:
    """Compute the base64-encoded HMAC-SHA256 of a raw webhook body."""
    return base64.b64encode(
        hmac.new(
            secret.encode("utf-8"),
            data,
            hashlib.sha256,
        ).digest()
    ).decode("ascii")


def check_webhook(data: bytes | None, hmac_header: str | None, secret: str) -> VerificationResult:
    """Check a webhook signature, reporting the reason on failure.

    Preconditions are checked in order: secret, header, body. ``data`` may be
    an empty byte string (Shopify signs empty bodies too), only ``None`` means
    the body was never captured.
    """
    if not secret:
        return VerificationResult(False, VerificationFailure.MISSING_SECRET)
    if not hmac_header:
        return VerificationResult(False, VerificationFailure.MISSING_HEADER)
    if data is None:
        return VerificationResult(False, VerificationFailure.MISSING_BODY)

    computed = compute_webhook_signature(data, secret).encode("ascii")
    # Header values are latin-1 on the wire; anything outside it cannot match anyway.
    received = hmac_header.encode("utf-8", errors="replace")

    # Digest length is public (always 44 chars); only the content comparison is timed.
    if len(computed) != len(received):
        return VerificationResult(False, VerificationFailure.LENGTH_MISMATCH)
    if not hmac.compare_digest(computed, received):
        return VerificationResult(False, VerificationFailure.DIGEST_MISMATCH)
    return VerificationResult(True)


def verify_webhook(data: bytes, hmac_header: str, secret: str) -> bool:
    """Verify a Shopify webhook's HMAC-SHA256 signature.

    Args:
        data: The raw request body bytes.
        hmac_header: The X-Shopify-Hmac-Sha256 header value.
        secret: The Shopify client secret.

    Returns:
        True if the signature is valid.
    """
    return check_webhook(data, hmac_header, secret).valid


class WebhookVerifier:
    """Signature verifier bound to one client secret.

    Built once at startup from settings and shared by every request; it holds
    no mutable state.
    """

    def __init__(self, secret: str) -> None:
        self._secret = secret

    @property
    def configured(self) -> bool:
        return bool(self._secret)

    def __repr__(self) -> str:
        return f"WebhookVerifier(configured={self.configured})"

    def verify(self, data: bytes | None, hmac_header: str | None) -> VerificationResult:
        return check_webhook(data, hmac_header, self._secret)
