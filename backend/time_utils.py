"""
Time utilities for PMOS.

Single source of truth for "now", so daily pages agree on what today is.
"""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """
    Get current UTC time.

    Returns:
        timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utc_now().date()
