"""
app/core/rate_limiter.py — In-process sliding-window rate limiting
Two layers:
  • SlidingWindowRateLimiter: per-identifier timestamp windows used by the
    chat and contact endpoints (presets below).
  • route_limiter: slowapi decorator limits on provider-facing routes.

Scaling boundary: all state lives in this process. With N instances behind
a load balancer the effective limit per identifier is limit × N.
"""
from __future__ import annotations

import math
import time
from typing import Callable, Optional

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import get_settings
from app.core.exceptions import RateLimiterInternalError
from app.core.logging import log_error, log_rate_limit_decision
from app.models import RateLimitDecision, RateLimitResult

settings = get_settings()

# Route-level limiter: imported by main.py and routers
route_limiter = Limiter(key_func=get_remote_address)

Clock = Callable[[], int]


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


def _reset_at(now_ms: int, window_seconds: int) -> int:
    return math.ceil((now_ms + window_seconds * 1000) / 1000)


class SlidingWindowRateLimiter:
    """
    Sliding window of accepted-or-attempted request timestamps (ms) per
    identifier. The table is owned by the instance; the application keeps
    one instance on ``app.state`` for the lifetime of the process.

    Entries are created lazily and never evicted, so memory grows with the
    number of distinct identifiers seen.

    Failure policy: fail-open. A bookkeeping fault yields a DEGRADED result
    that callers treat as allowed; it is logged, never raised.
    """

    def __init__(
        self,
        store: Optional[dict[str, list[int]]] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store: dict[str, list[int]] = store if store is not None else {}
        self._clock: Clock = clock or _wall_clock_ms

    def check_and_record(
        self,
        identifier: str,
        limit: int,
        window_seconds: int,
    ) -> RateLimitResult:
        if not identifier:
            raise ValueError("identifier must be a non-empty string")
        if limit <= 0 or window_seconds <= 0:
            raise ValueError("limit and window_seconds must be positive")

        now: Optional[int] = None
        try:
            now = self._clock()
            count = self._record(identifier, now, window_seconds)
        except Exception as exc:
            if now is None:
                now = _wall_clock_ms()
            log_error(
                "rate_limiter",
                "check_and_record",
                exc,
                {
                    "identifier": identifier,
                    "limit": limit,
                    "error_class": RateLimiterInternalError.__name__,
                },
            )
            log_rate_limit_decision(identifier, RateLimitDecision.DEGRADED.value, 0, limit)
            return RateLimitResult(
                decision=RateLimitDecision.DEGRADED,
                remaining=limit,
                limit=limit,
                reset=_reset_at(now, window_seconds),
            )

        if count <= limit:
            decision = RateLimitDecision.ALLOWED
        else:
            decision = RateLimitDecision.DENIED
            log_rate_limit_decision(identifier, decision.value, count, limit)

        return RateLimitResult(
            decision=decision,
            remaining=max(0, limit - count),
            limit=limit,
            reset=_reset_at(now, window_seconds),
        )

    def _record(self, identifier: str, now: int, window_seconds: int) -> int:
        """Prune, append ``now`` (even if it will be rejected), return the count."""
        window_start = now - window_seconds * 1000
        timestamps = [t for t in self._store.get(identifier, []) if t > window_start]
        timestamps.append(now)
        self._store[identifier] = timestamps
        return len(timestamps)

    def now_ms(self) -> int:
        """Current time on the clock this limiter measures windows against."""
        return self._clock()

    def tracked_identifiers(self) -> list[str]:
        return list(self._store.keys())

    def reset(self, identifier: Optional[str] = None) -> None:
        """Forget one identifier, or everything when called without one."""
        if identifier is None:
            self._store.clear()
        else:
            self._store.pop(identifier, None)


# ── Presets: named configurations on the primitive above ────────────────────

def chatbot_rate_limit(
    limiter: SlidingWindowRateLimiter, client_ip: str
) -> RateLimitResult:
    """30 requests per minute per IP by default."""
    return limiter.check_and_record(
        f"chat:{client_ip}",
        settings.chat_rate_limit,
        settings.chat_rate_window_seconds,
    )


def contact_form_rate_limit(
    limiter: SlidingWindowRateLimiter, client_ip: str
) -> RateLimitResult:
    """5 submissions per hour per IP by default."""
    return limiter.check_and_record(
        f"contact:{client_ip}",
        settings.contact_rate_limit,
        settings.contact_rate_window_seconds,
    )
