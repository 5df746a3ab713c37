"""
app/core/auth.py — Provider signature verification
Razorpay authenticates its calls with HMAC-SHA256 hex digests:
  • webhooks:  HMAC(webhook_secret, raw_body)
  • checkout:  HMAC(key_secret, "<order_id>|<payment_id>")
All comparisons are constant-time (secrets.compare_digest).
"""
from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Optional, Union

from app.core.exceptions import AuthenticationError

SecretLike = Union[str, bytes]


def _as_bytes(value: SecretLike) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")


def compute_signature(body: bytes, secret: SecretLike) -> str:
    """Hex-encoded HMAC-SHA256 of ``body`` keyed by ``secret``."""
    return hmac.new(_as_bytes(secret), body, hashlib.sha256).hexdigest()


def signatures_match(provided: Optional[str], expected: str) -> bool:
    if not provided:
        return False
    return secrets.compare_digest(
        provided.encode("utf-8"),
        expected.encode("utf-8"),
    )


# ──────────────────────────────────────────────────────────────────────────────
# Webhook: X-Razorpay-Signature over the raw request body
# ──────────────────────────────────────────────────────────────────────────────

def verify_webhook_signature(
    body: bytes,
    provided_signature: Optional[str],
    secret: SecretLike,
) -> None:
    """Raise AuthenticationError unless the signature matches the raw body."""
    expected = compute_signature(body, secret)
    if not signatures_match(provided_signature, expected):
        raise AuthenticationError("Invalid webhook signature")


# ──────────────────────────────────────────────────────────────────────────────
# Checkout: signature returned to the browser after a successful payment
# ──────────────────────────────────────────────────────────────────────────────

def verify_checkout_signature(
    order_id: str,
    payment_id: str,
    provided_signature: Optional[str],
    secret: SecretLike,
) -> None:
    message = f"{order_id}|{payment_id}".encode("utf-8")
    expected = compute_signature(message, secret)
    if not signatures_match(provided_signature, expected):
        raise AuthenticationError("Invalid payment signature")
