"""API v1 router composition."""

from fastapi import APIRouter

from delivery_scheduler.api.v1.endpoints import blackout_dates, dashboard, orders, settings, shop, slots, zones

api_router: APIRouter = APIRouter()
api_router.include_router(zones.router, prefix="/zones", tags=["zones"])
api_router.include_router(slots.router, prefix="/slots", tags=["slots"])
api_router.include_router(blackout_dates.router, prefix="/blackout-dates", tags=["blackout-dates"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(shop.router, prefix="/shop", tags=["shop"])
