"""
app/main.py — FastAPI application entry point
Includes: lifespan management, CORS, rate limiting, security headers,
          startup validation, ping keep-alive endpoint.
Process-wide collaborators (sliding-window limiter, payment store) are
created here and owned by app.state.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.clients.payment_store import build_payment_store
from app.config import get_settings
from app.core.logging import setup_logging
from app.core.rate_limiter import SlidingWindowRateLimiter, route_limiter
from app.routers import api, payments

settings = get_settings()

VERSION = "1.0.0"


# ──────────────────────────────────────────────────────────────────────────────
# Application Lifespan
# ──────────────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    FastAPI lifespan: startup → yield → shutdown.
    Startup: initialize logging and validate provider secrets.
    """
    setup_logging(settings.log_level)
    logger.info("EduElite API starting up...")

    _validate_env()

    logger.info("Startup complete.")
    yield
    logger.info("Shutting down EduElite API.")


def _validate_env() -> None:
    """Warn loudly about missing secrets; affected endpoints reject until set."""
    required = [
        ("razorpay_webhook_secret", "RAZORPAY_WEBHOOK_SECRET"),
        ("razorpay_key_secret", "RAZORPAY_KEY_SECRET"),
    ]
    missing = []
    for attr, env_name in required:
        val = getattr(settings, attr, None)
        if not val or val in ("change-me-immediately", "your-secret-here"):
            missing.append(env_name)

    if missing:
        msg = f"Missing or placeholder env vars: {', '.join(missing)}"
        logger.critical(msg)
        logger.warning("App will start but payment endpoints will reject requests until credentials are set.")


# ──────────────────────────────────────────────────────────────────────────────
# FastAPI App
# ──────────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="EduElite API",
    description=(
        "Backend services for the EduElite learning platform: "
        "chat and contact endpoints with per-IP rate limiting, "
        "and Razorpay payment reconciliation."
    ),
    version=VERSION,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# ── Process-wide collaborators ────────────────────────────────────────────────
app.state.request_limiter = SlidingWindowRateLimiter()
app.state.payment_store = build_payment_store(settings.payment_store_path)

# ── Route rate limiting (slowapi) ─────────────────────────────────────────────
app.state.limiter = route_limiter
app.add_exception_handler(
    RateLimitExceeded,
    lambda req, exc: JSONResponse(
        status_code=429,
        content={"error": "Rate limit exceeded. Slow down."},
    ),
)
app.add_middleware(SlowAPIMiddleware)

# ── CORS ──────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "development" else [],
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
)


# ── Security headers middleware ───────────────────────────────────────────────
@app.middleware("http")
async def add_security_headers(request: Request, call_next) -> Response:
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if settings.environment == "production":
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
    return response


# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(api.router, prefix="/api", tags=["api"])
app.include_router(payments.router, prefix="/api/payments", tags=["payments"])


# ── Ping keep-alive endpoint ──────────────────────────────────────────────────
@app.get("/api/ping", tags=["health"])
async def ping():
    """Liveness probe. Does NOT touch the payment store or the limiter."""
    return {"status": "ok", "version": VERSION}
