"""
app/core/exceptions.py — Domain error taxonomy
Routes translate these to HTTP responses; services raise them.
"""
from __future__ import annotations

from typing import Optional


class EduEliteError(Exception):
    """Base class for all service-level errors."""


class AuthenticationError(EduEliteError):
    """Signature missing or does not match the expected HMAC."""


class MalformedPayloadError(EduEliteError):
    """Request body could not be parsed into the expected envelope."""

    def __init__(self, message: str, body_excerpt: Optional[str] = None) -> None:
        super().__init__(message)
        self.body_excerpt = body_excerpt


class StorageError(EduEliteError):
    """Payment store lookup or update failed."""


class PaymentNotFoundError(EduEliteError):
    """No payment record exists for the given provider order id."""

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Payment record not found for order {order_id!r}")
        self.order_id = order_id


class RateLimiterInternalError(EduEliteError):
    """
    Bookkeeping fault inside the rate limiter.
    Never reaches callers: converted to a DEGRADED (allowed) result.
    """
