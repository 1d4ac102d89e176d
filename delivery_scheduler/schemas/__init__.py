"""Schema exports."""

from delivery_scheduler.schemas.delivery import (
    BlackoutPayload,
    BlackoutResponse,
    SlotPayload,
    SlotResponse,
    ZoneCreate,
    ZoneResponse,
    ZoneUpdate,
)
from delivery_scheduler.schemas.order import (
    DashboardResponse,
    DashboardStatsResponse,
    OrderResponse,
    OrderStatusUpdate,
)
from delivery_scheduler.schemas.shop import ShopResponse, ShopSettingsResponse, ShopSettingsUpdate
from delivery_scheduler.schemas.webhook import OrderWebhookPayload

__all__ = [
    "BlackoutPayload",
    "BlackoutResponse",
    "SlotPayload",
    "SlotResponse",
    "ZoneCreate",
    "ZoneResponse",
    "ZoneUpdate",
    "DashboardResponse",
    "DashboardStatsResponse",
    "OrderResponse",
    "OrderStatusUpdate",
    "ShopResponse",
    "ShopSettingsResponse",
    "ShopSettingsUpdate",
    "OrderWebhookPayload",
]
