"""Shop and settings API schemas."""

from datetime import datetime, time
from typing import Any

from pydantic import BaseModel, ConfigDict, field_serializer


class ShopResponse(BaseModel):
    """Serialized shop record."""

    id: int
    name: str
    shopify_id: str
    shop_owner_name: str | None = None
    email: str | None = None
    contact_email: str | None = None
    localization: str | None = None
    timezone: str | None = None
    shopify_domain: str | None = None
    shopify_plan: dict[str, Any] | None = None
    is_premium: bool
    status: bool
    onboarding_completed: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ShopSettingsResponse(BaseModel):
    shop_name: str
    cutoff_time: time
    max_days_in_advance: int
    enable_same_day_delivery: bool
    timezone: str
    business_hours: dict[str, Any] | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("cutoff_time")
    def _serialize_cutoff(self, value: time) -> str:
        return value.strftime("%H:%M")


class ShopSettingsUpdate(BaseModel):
    """Partial settings update; omitted fields keep their value."""

    cutoff_time: str | None = None
    max_days_in_advance: int | None = None
    enable_same_day_delivery: bool | None = None
    timezone: str | None = None
    business_hours: dict[str, Any] | None = None
