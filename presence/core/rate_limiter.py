# core/rate_limiter.py
"""
Per-client limits for the public job API.

Only the /api/v1 routes are limited; QStash callbacks are authenticated by
signature and must not be throttled, or QStash retries pile up.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings


def per_minute(limit: str) -> str:
    """slowapi limit string for a RATE_LIMIT_MIN value ("10" -> "10/minute")."""
    return f"{int(str(limit).strip())}/minute"


limiter = Limiter(key_func=get_remote_address)
limit_param = per_minute(settings.RATE_LIMIT_MIN)
