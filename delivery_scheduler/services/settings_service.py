"""Shop settings helpers."""

import re
from datetime import time
from typing import Any

from sqlalchemy.orm import Session

from delivery_scheduler.core.config import settings
from delivery_scheduler.core.exceptions import ValidationError
from delivery_scheduler.models.shop import ShopSettings
from delivery_scheduler.utils.time import is_valid_timezone

MAX_DAYS_IN_ADVANCE_LIMIT: int = 365
HHMM_PATTERN = re.compile(r"\d{2}:\d{2}")


def parse_hhmm_time(value: str) -> time:
    """Parse time from HH:MM format string."""
    if not HHMM_PATTERN.fullmatch(value):
        raise ValueError(f"Expected HH:MM, got {value!r}")
    hours, minutes = value.split(":")
    return time(hour=int(hours), minute=int(minutes))


def is_before_cutoff(now_time: time, cutoff_time: time) -> bool:
    """Return True when same-day delivery can still be booked."""
    return now_time < cutoff_time


def get_shop_settings(db: Session, shop_name: str) -> ShopSettings:
    """Read shop settings, creating defaults on first access."""
    shop_settings: ShopSettings | None = (
        db.query(ShopSettings).filter(ShopSettings.shop_name == shop_name).first()
    )
    if shop_settings is not None:
        return shop_settings

    shop_settings = ShopSettings(
        shop_name=shop_name,
        cutoff_time=settings.default_cutoff_time,
        max_days_in_advance=settings.default_max_days_in_advance,
        enable_same_day_delivery=False,
        timezone=settings.default_timezone,
    )
    db.add(shop_settings)
    db.commit()
    db.refresh(shop_settings)
    return shop_settings


def find_shop_settings(db: Session, shop_name: str) -> ShopSettings | None:
    """Return stored settings without creating them."""
    return db.query(ShopSettings).filter(ShopSettings.shop_name == shop_name).first()


def update_shop_settings(
    db: Session,
    shop_name: str,
    *,
    cutoff_time: str | None = None,
    max_days_in_advance: int | None = None,
    enable_same_day_delivery: bool | None = None,
    timezone: str | None = None,
    business_hours: dict[str, Any] | None = None,
) -> ShopSettings:
    """Validate and persist a partial settings update."""
    shop_settings: ShopSettings = get_shop_settings(db, shop_name)

    if cutoff_time is not None:
        try:
            shop_settings.cutoff_time = parse_hhmm_time(cutoff_time)
        except ValueError as exc:
            raise ValidationError("Cutoff time must use HH:MM format") from exc

    if max_days_in_advance is not None:
        if not 1 <= max_days_in_advance <= MAX_DAYS_IN_ADVANCE_LIMIT:
            raise ValidationError(f"Max days in advance must be between 1 and {MAX_DAYS_IN_ADVANCE_LIMIT}")
        shop_settings.max_days_in_advance = max_days_in_advance

    if enable_same_day_delivery is not None:
        shop_settings.enable_same_day_delivery = enable_same_day_delivery

    if timezone is not None:
        if not is_valid_timezone(timezone):
            raise ValidationError(f"Unknown timezone '{timezone}'")
        shop_settings.timezone = timezone

    if business_hours is not None:
        shop_settings.business_hours = business_hours

    db.commit()
    db.refresh(shop_settings)
    return shop_settings


def get_effective_settings(db: Session, shop_name: str) -> ShopSettings:
    """Stored settings, or unsaved defaults for a shop that never configured any."""
    shop_settings: ShopSettings | None = find_shop_settings(db, shop_name)
    if shop_settings is not None:
        return shop_settings
    return ShopSettings(
        shop_name=shop_name,
        cutoff_time=settings.default_cutoff_time,
        max_days_in_advance=settings.default_max_days_in_advance,
        enable_same_day_delivery=False,
        timezone=settings.default_timezone,
    )
