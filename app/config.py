"""
app/config.py — Pydantic BaseSettings configuration
Covers: environment, provider secrets, payment store location,
        rate-limit presets for chat and contact endpoints.
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ────────────────────────────────────────────────────────────
    environment: str = "development"
    log_level: str = "INFO"
    port: int = 8000

    # ── Razorpay secrets ───────────────────────────────────────────────────────
    # Webhook bodies are signed with the webhook secret; checkout callbacks
    # are signed with the API key secret.
    razorpay_webhook_secret: str = ""
    razorpay_key_secret: str = ""

    # ── Payment storage ───────────────────────────────────────────────────────
    # Empty → in-memory store (lost on restart)
    payment_store_path: str = ""

    # ── Rate limit presets (sliding window, per client IP) ────────────────────
    chat_rate_limit: int = 30
    chat_rate_window_seconds: int = 60
    contact_rate_limit: int = 5
    contact_rate_window_seconds: int = 3600

    # slowapi limit on the webhook route itself (provider retries are bursty)
    webhook_route_limit: str = "60/minute"

    # ── Input limits ──────────────────────────────────────────────────────────
    chat_max_message_chars: int = 1000
    malformed_body_log_bytes: int = 200

    # ── Support contact surfaced in chat/contact replies ─────────────────────
    support_email: str = "support@eduelite.com"
    support_phone: str = "+91 98104 93309"

    @field_validator("environment")
    @classmethod
    def validate_env(cls, v: str) -> str:
        allowed = {"development", "production", "testing"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("chat_rate_limit", "chat_rate_window_seconds",
                     "contact_rate_limit", "contact_rate_window_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("rate limit values must be positive")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache()
def get_settings() -> Settings:
    """Return cached Settings instance. Use this everywhere."""
    return Settings()
