"""
app/models.py — All Pydantic data schemas
Payment records, Razorpay webhook envelope, rate-limit results and the
request/response bodies of the public API.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ──────────────────────────────────────────────────────────────────────────────
# Enumerations
# ──────────────────────────────────────────────────────────────────────────────

class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class RateLimitDecision(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"
    DEGRADED = "degraded"  # limiter fault; request let through (fail-open)


class WebhookEventType(str, Enum):
    PAYMENT_CAPTURED = "payment.captured"
    PAYMENT_FAILED = "payment.failed"


# Event → terminal status. Anything not listed is acknowledged without change.
WEBHOOK_TRANSITIONS: dict[str, PaymentStatus] = {
    WebhookEventType.PAYMENT_CAPTURED.value: PaymentStatus.SUCCESS,
    WebhookEventType.PAYMENT_FAILED.value: PaymentStatus.FAILED,
}


# ──────────────────────────────────────────────────────────────────────────────
# Payment record (owned by the storage collaborator)
# ──────────────────────────────────────────────────────────────────────────────

class PaymentRecord(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    razorpay_id: str  # provider order id, the stable external key
    course_id: Optional[str] = None
    amount: int = 0  # smallest currency unit (paise)
    status: PaymentStatus = PaymentStatus.PENDING
    updated_at: datetime = Field(default_factory=_utc_now)


# ──────────────────────────────────────────────────────────────────────────────
# Razorpay webhook envelope
# {event, payload: {payment: {entity: {order_id, ...}}}}
# ──────────────────────────────────────────────────────────────────────────────

class PaymentEntity(BaseModel):
    model_config = ConfigDict(extra="allow")

    order_id: Optional[str] = None
    id: Optional[str] = None
    status: Optional[str] = None


class PaymentWrapper(BaseModel):
    model_config = ConfigDict(extra="allow")

    entity: PaymentEntity = Field(default_factory=PaymentEntity)


class WebhookPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    payment: Optional[PaymentWrapper] = None


class WebhookEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    event: str
    payload: WebhookPayload = Field(default_factory=WebhookPayload)

    @property
    def order_id(self) -> Optional[str]:
        if self.payload.payment is None:
            return None
        return self.payload.payment.entity.order_id


class WebhookOutcome(BaseModel):
    event: str
    order_id: Optional[str] = None
    status_applied: Optional[PaymentStatus] = None
    acknowledged: bool = True


# ──────────────────────────────────────────────────────────────────────────────
# Rate limiting
# ──────────────────────────────────────────────────────────────────────────────

class RateLimitResult(BaseModel):
    decision: RateLimitDecision
    remaining: int
    limit: int
    reset: int  # Unix seconds; now + window, not the oldest entry's expiry

    @property
    def success(self) -> bool:
        return self.decision != RateLimitDecision.DENIED

    @property
    def degraded(self) -> bool:
        return self.decision == RateLimitDecision.DEGRADED

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
        }


# ──────────────────────────────────────────────────────────────────────────────
# API request / response bodies
# ──────────────────────────────────────────────────────────────────────────────

class ChatRequest(BaseModel):
    message: Optional[Any] = None
    session_id: Optional[str] = Field(default=None, alias="sessionId")

    model_config = ConfigDict(populate_by_name=True)


class ChatResponse(BaseModel):
    success: bool = True
    response: str
    session_id: str = Field(alias="sessionId")
    timestamp: str

    model_config = ConfigDict(populate_by_name=True)


class ContactRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    subject: Optional[str] = None
    category: str = "general"
    message: Optional[str] = None

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> str:
        return str(v or "general").strip().lower()


class ContactResponse(BaseModel):
    success: bool = True
    message: str
    priority: str
    received_at: str


class PaymentVerifyRequest(BaseModel):
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None


class PaymentVerifyResponse(BaseModel):
    success: bool = True
    payment_id: str
    order_id: str
    course_id: Optional[str] = None
    status: PaymentStatus
    message: str = "Payment verified successfully!"
