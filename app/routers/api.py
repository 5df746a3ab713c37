"""
app/routers/api.py — Public API endpoints
Endpoints: /api/chat, /api/contact
Both are keyed by client IP through the sliding-window presets.
"""

import math
import time
import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.core.logging import log_chat_message, log_contact_submission
from app.core.rate_limiter import (
    SlidingWindowRateLimiter,
    chatbot_rate_limit,
    contact_form_rate_limit,
)
from app.models import (
    ChatRequest,
    ChatResponse,
    ContactRequest,
    ContactResponse,
    RateLimitResult,
)
from app.routers.deps import client_ip, get_request_limiter
from app.services.contact import get_priority, is_valid_email, missing_fields
from app.utils.timezone import format_ist, utc_now

router = APIRouter()
settings = get_settings()


def _seconds_until_reset(result: RateLimitResult, now_ms: int) -> int:
    return max(0, math.ceil((result.reset * 1000 - now_ms) / 1000))


def _support_reply() -> str:
    return (
        "Thanks for your question! Our assistant is being upgraded right now. "
        f"Please reach our support team at {settings.support_email} "
        f"or {settings.support_phone} (Mon-Fri, 9 AM - 6 PM IST)."
    )


# ──────────────────────────────────────────────────────────────────────────────
# POST /api/chat: chatbot preset (30 / minute / IP)
# ──────────────────────────────────────────────────────────────────────────────

@router.post("/chat")
async def chat(
    body: ChatRequest,
    ip: str = Depends(client_ip),
    limiter: SlidingWindowRateLimiter = Depends(get_request_limiter),
) -> JSONResponse:
    message = body.message
    if not message or not isinstance(message, str):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message is required",
        )
    if len(message) > settings.chat_max_message_chars:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Message too long. Please keep it under {settings.chat_max_message_chars} characters.",
        )

    result = chatbot_rate_limit(limiter, ip)
    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "error": f"Too many requests. Please wait {_seconds_until_reset(result, limiter.now_ms())} seconds.",
                "retryAfter": result.reset,
            },
            headers=result.headers(),
        )

    session_id = body.session_id or uuid.uuid4().hex
    reply = _support_reply()
    log_chat_message(session_id, len(message), len(reply), int(time.time() * 1000))

    response = ChatResponse(
        response=reply,
        session_id=session_id,
        timestamp=utc_now().isoformat(),
    )
    return JSONResponse(
        content=response.model_dump(by_alias=True),
        headers=result.headers(),
    )


# ──────────────────────────────────────────────────────────────────────────────
# POST /api/contact: contact-form preset (5 / hour / IP)
# ──────────────────────────────────────────────────────────────────────────────

@router.post("/contact")
async def contact(
    body: ContactRequest,
    ip: str = Depends(client_ip),
    limiter: SlidingWindowRateLimiter = Depends(get_request_limiter),
) -> JSONResponse:
    missing = missing_fields(body.name, body.email, body.subject, body.message)
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="All fields are required",
        )
    if not is_valid_email(body.email or ""):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid email address",
        )

    result = contact_form_rate_limit(limiter, ip)
    if not result.success:
        minutes = math.ceil(_seconds_until_reset(result, limiter.now_ms()) / 60)
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "error": f"Too many requests. Please try again in {minutes} minutes.",
                "retryAfter": result.reset,
            },
            headers=result.headers(),
        )

    priority = get_priority(body.category)
    log_contact_submission(body.email or "", body.category, priority, int(time.time() * 1000))

    payload: dict[str, Any] = ContactResponse(
        message="Message sent successfully! We typically respond within 24 hours.",
        priority=priority,
        received_at=format_ist(),
    ).model_dump()
    return JSONResponse(content=payload, headers=result.headers())
