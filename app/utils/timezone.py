"""
app/utils/timezone.py — IST timezone handling
Support hours and contact timestamps are quoted in IST (Asia/Kolkata).
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

import pytz

IST = pytz.timezone("Asia/Kolkata")
UTC = pytz.utc


def utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def ist_now() -> datetime:
    """Return current IST datetime (timezone-aware)."""
    return datetime.now(IST)


def utc_to_ist(dt: datetime) -> datetime:
    """Convert a UTC datetime to IST."""
    if dt.tzinfo is None:
        dt = UTC.localize(dt)
    return dt.astimezone(IST)


def ms_to_ist(timestamp_ms: int) -> datetime:
    """Convert epoch milliseconds to an IST datetime."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC).astimezone(IST)


def format_ist(dt: Optional[datetime] = None) -> str:
    """Human-readable IST timestamp, e.g. 'Monday, 19 October 2026, 09:30 AM IST'."""
    dt = utc_to_ist(dt) if dt is not None else ist_now()
    return dt.strftime("%A, %d %B %Y, %I:%M %p IST")
