"""Order and dashboard API schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict

from delivery_scheduler.schemas.delivery import SlotResponse


class OrderResponse(BaseModel):
    """Serialized order with its booked slot."""

    id: int
    shopify_order_id: str
    customer_email: str
    delivery_slot_id: int
    delivery_date: date
    status: str
    total_amount: Decimal
    shipping_address: dict[str, Any]
    delivery_notes: str | None = None
    tracking_number: str | None = None
    time_slot: str | None = None
    zone_name: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderStatusUpdate(BaseModel):
    new_status: str


class DashboardStatsResponse(BaseModel):
    total_orders: int
    confirmed_orders: int
    delivered_orders: int
    cancelled_orders: int
    pending_orders: int
    total_revenue: Decimal
    avg_daily_orders: float
    avg_daily_revenue: Decimal
    slot_utilization: int
    period_days: int
    total_capacity: int
    total_bookings: int
    start_date: date
    end_date: date

    model_config = ConfigDict(from_attributes=True)


class DashboardResponse(BaseModel):
    orders_in_range: list[OrderResponse]
    upcoming_deliveries: list[OrderResponse]
    stats: DashboardStatsResponse
    today_slots: list[SlotResponse]
