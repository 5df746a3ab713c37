"""
app/routers/deps.py — Request-scoped access to process-wide collaborators
The limiter and payment store live on ``app.state``; tests swap them via
``app.dependency_overrides``.
"""
from __future__ import annotations

from fastapi import Request

from app.clients.payment_store import PaymentStore
from app.core.rate_limiter import SlidingWindowRateLimiter
from app.utils.client_ip import get_client_ip


def get_request_limiter(request: Request) -> SlidingWindowRateLimiter:
    return request.app.state.request_limiter


def get_payment_store(request: Request) -> PaymentStore:
    return request.app.state.payment_store


def client_ip(request: Request) -> str:
    fallback = request.client.host if request.client else None
    return get_client_ip(request.headers, fallback=fallback)
