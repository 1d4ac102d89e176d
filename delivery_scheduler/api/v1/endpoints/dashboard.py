"""Merchant dashboard endpoint."""

from dataclasses import asdict
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from delivery_scheduler.api.deps import get_now
from delivery_scheduler.api.errors import to_http_exception
from delivery_scheduler.api.v1.serializers import serialize_order, serialize_slot
from delivery_scheduler.core.exceptions import DeliverySchedulerError
from delivery_scheduler.core.security import get_current_shop
from delivery_scheduler.db.session import get_db
from delivery_scheduler.models.shop import Shop
from delivery_scheduler.schemas.order import DashboardResponse, DashboardStatsResponse
from delivery_scheduler.services import order_service, settings_service
from delivery_scheduler.utils.time import shop_local_now

router: APIRouter = APIRouter()


@router.get("", response_model=DashboardResponse)
def read_dashboard(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
    now: datetime = Depends(get_now),
) -> DashboardResponse:
    """Orders, upcoming deliveries and statistics for a delivery date range (last 30 days by default)."""
    shop_settings = settings_service.get_shop_settings(db, shop.name)
    today: date = shop_local_now(shop_settings.timezone, now).date()
    try:
        dashboard = order_service.get_dashboard(db, shop.name, today=today, start=start_date, end=end_date)
    except DeliverySchedulerError as exc:
        raise to_http_exception(exc) from exc

    return DashboardResponse(
        orders_in_range=[serialize_order(order) for order in dashboard.orders_in_range],
        upcoming_deliveries=[serialize_order(order) for order in dashboard.upcoming_deliveries],
        stats=DashboardStatsResponse(**asdict(dashboard.stats)),
        today_slots=[serialize_slot(item) for item in dashboard.today_slots],
    )
