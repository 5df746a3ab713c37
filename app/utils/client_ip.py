"""
app/utils/client_ip.py — Client IP resolution behind proxies
Used as the rate-limit key for public endpoints.
"""
from __future__ import annotations

from typing import Mapping, Optional


def get_client_ip(headers: Mapping[str, str], fallback: Optional[str] = None) -> str:
    """
    First hop of X-Forwarded-For, then X-Real-IP, then CF-Connecting-IP.
    ``headers`` must be case-insensitive (Starlette Headers is).
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    cf_ip = headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip.strip()

    return fallback or "unknown"
