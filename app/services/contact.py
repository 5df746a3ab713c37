"""
app/services/contact.py — Contact form triage
Validation and priority mapping for support enquiries.
"""
from __future__ import annotations

import re

# Category → triage priority. Unknown categories are normal.
CATEGORY_PRIORITIES: dict[str, str] = {
    "bug": "high",
    "technical": "high",
    "billing": "medium",
    "feature": "medium",
    "partnership": "medium",
    "teaching": "medium",
    "general": "normal",
    "feedback": "normal",
}

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def get_priority(category: str) -> str:
    return CATEGORY_PRIORITIES.get((category or "").strip().lower(), "normal")


def is_valid_email(email: str) -> bool:
    return bool(email) and bool(_EMAIL_RE.match(email))


def missing_fields(name: str | None, email: str | None, subject: str | None, message: str | None) -> list[str]:
    """Names of required fields that are empty or whitespace."""
    fields = {"name": name, "email": email, "subject": subject, "message": message}
    return [key for key, value in fields.items() if not (value and value.strip())]
