"""Date and time helpers for shop-local scheduling."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def resolve_timezone(name: str | None) -> ZoneInfo:
    """Return the IANA zone for name, falling back to UTC for unknown names."""
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r; falling back to UTC", name)
        return ZoneInfo("UTC")


def is_valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def shop_local_now(timezone_name: str | None, now: datetime | None = None) -> datetime:
    """Return the current wall-clock time in the shop's timezone."""
    current = now or utc_now()
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(resolve_timezone(timezone_name))


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD, also accepting a full ISO timestamp."""
    cleaned = value.strip()
    if "T" in cleaned:
        cleaned = cleaned.split("T", 1)[0]
    return date.fromisoformat(cleaned)


def format_long_date(value: date) -> str:
    """Format like 'Monday, October 19, 2026'."""
    return f"{value.strftime('%A')}, {value.strftime('%B')} {value.day}, {value.year}"


def format_short_date(value: date) -> str:
    """Format like 'Monday, Oct 19'."""
    return f"{value.strftime('%A')}, {value.strftime('%b')} {value.day}"
