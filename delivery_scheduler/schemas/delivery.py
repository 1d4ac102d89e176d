"""Zone, slot and blackout API schemas."""

from datetime import date, time
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class ZoneCreate(BaseModel):
    """Create a delivery zone keyed by country code."""

    name: str
    shipping_rate: Decimal
    description: str | None = None
    priority: int = 0


class ZoneUpdate(BaseModel):
    name: str | None = None
    shipping_rate: Decimal | None = None
    description: str | None = None
    priority: int | None = None


class ZoneResponse(BaseModel):
    id: int
    name: str
    shipping_rate: Decimal
    is_active: bool
    priority: int
    description: str | None = None

    model_config = ConfigDict(from_attributes=True)


class SlotPayload(BaseModel):
    """Create or replace a recurring daily slot."""

    start_time: time
    end_time: time
    capacity: int
    zone_id: int
    price_adjustment: Decimal | None = None
    notes: str | None = None


class SlotResponse(BaseModel):
    """Slot with bookings for the requested day."""

    id: int
    zone_id: int
    zone_name: str
    start_time: time
    end_time: time
    capacity: int
    is_active: bool
    price_adjustment: Decimal
    notes: str | None = None
    current_bookings: int = 0
    available_capacity: int = 0

    @field_serializer("start_time", "end_time")
    def _serialize_time(self, value: time) -> str:
        return value.strftime("%H:%M")


class BlackoutPayload(BaseModel):
    blackout_date: date = Field(alias="date")
    reason: str | None = None
    is_recurring: bool = False
    zone_id: int | None = None

    model_config = ConfigDict(populate_by_name=True)


class BlackoutResponse(BaseModel):
    id: int
    blackout_date: date = Field(alias="date")
    reason: str | None = None
    is_recurring: bool
    zone_id: int | None = None
    zone_name: str | None = None

    model_config = ConfigDict(populate_by_name=True)
