"""
app/core/logging.py — loguru structured JSON logging setup
Every mandatory event (rate-limit rejections, webhook outcomes, chat and
contact tracking, errors) goes through one of the helpers below so that
the stdout stream stays machine-parseable.
"""
from __future__ import annotations

import json
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure loguru for structured JSON output to stdout.
    The hosting platform captures stdout and displays it in its dashboard.
    """
    # Remove default loguru handler
    logger.remove()

    logger.add(
        sys.stdout,
        level=log_level.upper(),
        format="{message}",  # Raw message (we format as JSON ourselves)
        serialize=True,       # loguru built-in JSON serialization
        backtrace=True,
        diagnose=False,       # Disable in production for safety
        colorize=False,
    )


def _build_log_record(
    component: str,
    operation: str,
    extra: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Build a base structured log record."""
    record: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "component": component,
        "operation": operation,
    }
    if extra:
        record.update(extra)
    return record


def _ms_to_iso(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).isoformat()


# ──────────────────────────────────────────────────────────────────────────────
# Mandatory log event helpers
# ──────────────────────────────────────────────────────────────────────────────

def log_rate_limit_decision(
    identifier: str,
    decision: str,
    count: int,
    limit: int,
) -> None:
    """Logged on DENIED and DEGRADED only; ALLOWED is the hot path."""
    record = _build_log_record("rate_limiter", "check_and_record", {
        "identifier": identifier,
        "decision": decision,
        "count": count,
        "limit": limit,
    })
    logger.warning(json.dumps(record))


def log_webhook_event(
    event: str,
    order_id: Optional[str],
    status_applied: Optional[str],
) -> None:
    """Every acknowledged webhook, including unhandled event types."""
    record = _build_log_record("webhook_reconciler", "handle_webhook", {
        "event": event,
        "order_id": order_id,
        "status_applied": status_applied,
    })
    logger.info(json.dumps(record))


def log_webhook_rejected(reason: str, body_excerpt: Optional[str] = None) -> None:
    """Signature failures and malformed bodies. Excerpt is pre-truncated by caller."""
    record = _build_log_record("webhook_reconciler", "reject", {
        "reason": reason,
        "body_excerpt": body_excerpt,
    })
    logger.warning(json.dumps(record))


def log_chat_message(
    session_id: str,
    message_length: int,
    response_length: int,
    timestamp_ms: int,
) -> None:
    """Chat analytics. Only lengths are recorded, never message content."""
    record = _build_log_record("chat", "chat_message", {
        "session_id": session_id[:8],
        "message_length": message_length,
        "response_length": response_length,
        "time": _ms_to_iso(timestamp_ms),
    })
    logger.info(json.dumps(record))


def log_contact_submission(
    email: str,
    category: str,
    priority: str,
    timestamp_ms: int,
) -> None:
    record = _build_log_record("contact", "contact_submission", {
        "email": email,
        "category": category,
        "priority": priority,
        "time": _ms_to_iso(timestamp_ms),
    })
    logger.info(json.dumps(record))


def log_error(
    component: str,
    operation: str,
    error: Exception,
    context: Optional[dict[str, Any]] = None,
) -> None:
    """Every error must be logged with full context."""
    tb = traceback.format_exc()
    record = _build_log_record(component, operation, {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "stack_trace": tb[:2000] if tb else "",
        "context": context or {},
    })
    logger.error(json.dumps(record))
