"""
app/services/webhook_reconciler.py — Razorpay webhook → payment status
Flow: verify signature → parse envelope → dispatch on event type.
  payment.captured → success
  payment.failed   → failed
  anything else    → acknowledged, no state change

Signature and parse failures never touch storage. Storage failures surface
as StorageError so the route answers 5xx and the provider retries; retries
are safe because the update is an overwrite keyed by the provider order id.
"""
from __future__ import annotations

import json
from typing import Union

from pydantic import ValidationError

from app.clients.payment_store import PaymentStore
from app.config import get_settings
from app.core.auth import verify_webhook_signature
from app.core.exceptions import AuthenticationError, MalformedPayloadError, StorageError
from app.core.logging import log_webhook_event, log_webhook_rejected
from app.models import WEBHOOK_TRANSITIONS, WebhookEnvelope, WebhookOutcome

settings = get_settings()


def _excerpt(raw_body: bytes) -> str:
    limit = settings.malformed_body_log_bytes
    return raw_body[:limit].decode("utf-8", errors="replace")


def parse_envelope(raw_body: bytes) -> WebhookEnvelope:
    """
    Decode the raw body into a WebhookEnvelope or raise MalformedPayloadError.
    Only ``event`` is required up front; the payment payload is validated for
    handled events alone, so unknown events with any payload shape still parse.
    """
    try:
        data = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedPayloadError(f"Body is not valid JSON: {exc}", _excerpt(raw_body)) from exc

    if not isinstance(data, dict):
        raise MalformedPayloadError("Body must be a JSON object", _excerpt(raw_body))

    event = data.get("event")
    if not isinstance(event, str):
        raise MalformedPayloadError("Missing or non-string event", _excerpt(raw_body))

    if event not in WEBHOOK_TRANSITIONS:
        return WebhookEnvelope(event=event)

    try:
        return WebhookEnvelope(**data)
    except ValidationError as exc:
        raise MalformedPayloadError(f"Invalid webhook envelope: {exc}", _excerpt(raw_body)) from exc


def handle_webhook(
    raw_body: bytes,
    provided_signature: str,
    secret: Union[str, bytes],
    store: PaymentStore,
) -> WebhookOutcome:
    """
    Authenticate and apply one webhook delivery.
    Raises AuthenticationError, MalformedPayloadError or StorageError;
    every other path returns an acknowledged WebhookOutcome.
    """
    try:
        verify_webhook_signature(raw_body, provided_signature, secret)
    except AuthenticationError:
        log_webhook_rejected("invalid_signature")
        raise

    try:
        envelope = parse_envelope(raw_body)
    except MalformedPayloadError as exc:
        log_webhook_rejected("malformed_payload", exc.body_excerpt)
        raise

    target_status = WEBHOOK_TRANSITIONS.get(envelope.event)
    if target_status is None:
        log_webhook_event(envelope.event, envelope.order_id, None)
        return WebhookOutcome(event=envelope.event, order_id=envelope.order_id)

    order_id = envelope.order_id
    if not order_id:
        exc = MalformedPayloadError(
            f"{envelope.event} without payload.payment.entity.order_id",
            _excerpt(raw_body),
        )
        log_webhook_rejected("missing_order_id", exc.body_excerpt)
        raise exc

    try:
        store.update_payment_status(order_id, target_status)
    except StorageError:
        raise
    except Exception as exc:
        raise StorageError(f"Failed to update payment {order_id}: {exc}") from exc

    log_webhook_event(envelope.event, order_id, target_status.value)
    return WebhookOutcome(
        event=envelope.event,
        order_id=order_id,
        status_applied=target_status,
    )
