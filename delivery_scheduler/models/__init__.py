"""Application models package."""

from delivery_scheduler.models.delivery import BlackoutDate, DeliverySlot, DeliveryZone
from delivery_scheduler.models.order import ORDER_STATUSES, Order
from delivery_scheduler.models.shop import Shop, ShopSettings
from delivery_scheduler.models.shopify_session import ShopifySession

__all__ = [
    "Shop", "ShopSettings", "DeliveryZone", "DeliverySlot", "BlackoutDate", "Order", "ORDER_STATUSES",
    "ShopifySession",
]
