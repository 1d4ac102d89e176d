"""camelCase payloads exchanged with the checkout extension."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StorefrontZone(CamelModel):
    id: int
    name: str
    shipping_rate: float


class StorefrontSlot(CamelModel):
    id: int
    start_time: str
    end_time: str
    capacity: int
    current_orders: int
    date: str
    zone_id: int
    is_active: bool


class DeliveryEstimate(CamelModel):
    shipping_rate: float
    available_slots: list[StorefrontSlot]
    zone: str


class AvailabilityZone(CamelModel):
    id: int
    name: str
    base_rate: float
    is_active: bool = True


class AvailabilitySlot(CamelModel):
    id: int
    start_time: str
    end_time: str
    capacity: int
    current_orders: int
    is_available: bool
    price: float = 0


class AvailabilityData(CamelModel):
    zone: AvailabilityZone
    slots: list[AvailabilitySlot]
    blackout_dates: list[str]
    cutoff_time: str


class AvailabilityResponse(CamelModel):
    success: bool = True
    data: AvailabilityData


class StorefrontShopSettings(CamelModel):
    shop_name: str
    cutoff_time: str
    max_days_in_advance: int
    enable_same_day_delivery: bool
    timezone: str


class DateOption(CamelModel):
    value: str
    label: str


class AvailableDates(CamelModel):
    zone: StorefrontZone
    dates: list[DateOption]


class ReserveSlotRequest(CamelModel):
    slot_id: int | str | None = None
    delivery_date: str | None = None


class ReleaseSlotRequest(CamelModel):
    slot_id: int | str | None = None
    order_id: int | str | None = None
