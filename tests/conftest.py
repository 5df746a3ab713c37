"""
tests/conftest.py — Shared pytest fixtures
"""
from __future__ import annotations

import json
import os
from typing import Any, Optional

# Settings are read once at import time; pin test values before app imports.
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("RAZORPAY_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "key_test_secret")
os.environ.setdefault("PAYMENT_STORE_PATH", "")

import pytest
from fastapi.testclient import TestClient

from app.clients.payment_store import InMemoryPaymentStore
from app.core.auth import compute_signature
from app.core.rate_limiter import SlidingWindowRateLimiter
from app.models import PaymentRecord

WEBHOOK_SECRET = os.environ["RAZORPAY_WEBHOOK_SECRET"]


class FakeClock:
    """Millisecond wall clock under test control."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += int(seconds * 1000)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock) -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(clock=clock)


@pytest.fixture
def payment_store() -> InMemoryPaymentStore:
    return InMemoryPaymentStore([
        PaymentRecord(razorpay_id="order_abc", course_id="course_python", amount=49900),
        PaymentRecord(razorpay_id="order_xyz", course_id="course_math", amount=99900),
    ])


@pytest.fixture
def sign():
    """Sign a raw webhook body with the configured webhook secret."""
    def _sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
        return compute_signature(body, secret)
    return _sign


@pytest.fixture
def client(limiter, payment_store):
    from app.main import app
    from app.routers.deps import get_payment_store, get_request_limiter

    app.dependency_overrides[get_request_limiter] = lambda: limiter
    app.dependency_overrides[get_payment_store] = lambda: payment_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def webhook_body():
    """Build a minimal Razorpay-shaped webhook body, serialized compactly."""
    def _build(event: str, order_id: Optional[str] = "order_abc") -> bytes:
        entity: dict[str, Any] = {"id": "pay_123", "status": "captured"}
        if order_id is not None:
            entity["order_id"] = order_id
        return json.dumps(
            {"event": event, "payload": {"payment": {"entity": entity}}},
            separators=(",", ":"),
        ).encode("utf-8")
    return _build
