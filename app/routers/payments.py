"""
app/routers/payments.py — Razorpay-facing endpoints
Endpoints: /api/payments/webhook, /api/payments/verify

Webhook contract: 200 for every authenticated, parseable delivery (unknown
events included), 400 for bad signature or body, 500 when storage fails so
the provider retries. Error bodies never echo payment state.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from app.clients.payment_store import PaymentStore
from app.config import get_settings
from app.core.exceptions import (
    AuthenticationError,
    MalformedPayloadError,
    PaymentNotFoundError,
    StorageError,
)
from app.core.logging import log_error
from app.core.rate_limiter import route_limiter
from app.models import PaymentVerifyRequest, PaymentVerifyResponse
from app.routers.deps import get_payment_store
from app.services import payment_verification
from app.services.webhook_reconciler import handle_webhook

router = APIRouter()
settings = get_settings()

SIGNATURE_HEADER = "X-Razorpay-Signature"


# ──────────────────────────────────────────────────────────────────────────────
# POST /api/payments/webhook
# ──────────────────────────────────────────────────────────────────────────────

@router.post("/webhook")
@route_limiter.limit(settings.webhook_route_limit)
async def payment_webhook(
    request: Request,
    store: PaymentStore = Depends(get_payment_store),
) -> JSONResponse:
    # Raw bytes: the signature covers the exact body, not re-serialized JSON
    raw_body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER, "")

    # An empty key would let anyone forge a valid signature
    if not settings.razorpay_webhook_secret:
        logger.critical("RAZORPAY_WEBHOOK_SECRET is not set; refusing webhook.")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Webhook processing failed"},
        )

    try:
        handle_webhook(raw_body, signature, settings.razorpay_webhook_secret, store)
    except AuthenticationError:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid signature"},
        )
    except MalformedPayloadError:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Malformed payload"},
        )
    except StorageError as exc:
        log_error("payments", "webhook", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Webhook processing failed"},
        )

    return JSONResponse(status_code=status.HTTP_200_OK, content={"success": True})


# ──────────────────────────────────────────────────────────────────────────────
# POST /api/payments/verify: checkout callback
# ──────────────────────────────────────────────────────────────────────────────

@router.post("/verify", response_model=PaymentVerifyResponse)
async def verify_payment(
    body: PaymentVerifyRequest,
    store: PaymentStore = Depends(get_payment_store),
) -> PaymentVerifyResponse:
    if not (body.razorpay_order_id and body.razorpay_payment_id and body.razorpay_signature):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing payment details",
        )
    if not settings.razorpay_key_secret:
        logger.critical("RAZORPAY_KEY_SECRET is not set; refusing checkout verification.")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to verify payment",
        )

    try:
        record = payment_verification.verify_payment(
            order_id=body.razorpay_order_id,
            payment_id=body.razorpay_payment_id,
            signature=body.razorpay_signature,
            secret=settings.razorpay_key_secret,
            store=store,
        )
    except AuthenticationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid payment signature",
        )
    except PaymentNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Payment record not found",
        )
    except StorageError as exc:
        log_error("payments", "verify", exc, {"order_id": body.razorpay_order_id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to verify payment",
        )

    return PaymentVerifyResponse(
        payment_id=record.id,
        order_id=record.razorpay_id,
        course_id=record.course_id,
        status=record.status,
    )
