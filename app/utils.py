import hashlib
from datetime import datetime, timezone
from typing import Optional

DEFAULT_COUNTRY_CODE = "+966"


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the database columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_phone(phone: str, country_code: Optional[str] = None, default_country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """Prefix the raw number with its country code.

    Every endpoint that accepts a phone goes through here so that lookups and
    stored sessions always see the same string.
    """
    return f"{(country_code or default_country_code).strip()}{phone.strip()}"


def hash_phone_number(phone: str) -> str:
    """Hash phone number for logs (one-way hash)"""
    return hashlib.sha256(phone.encode()).hexdigest()


def mask_phone(phone: str) -> str:
    if len(phone) <= 4:
        return "****"
    return f"{'*' * (len(phone) - 4)}{phone[-4:]}"
