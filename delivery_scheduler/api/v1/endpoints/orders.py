"""Order endpoints."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from delivery_scheduler.api.errors import to_http_exception
from delivery_scheduler.api.v1.serializers import serialize_order
from delivery_scheduler.core.exceptions import DeliverySchedulerError
from delivery_scheduler.core.security import get_current_shop
from delivery_scheduler.db.session import get_db
from delivery_scheduler.models.shop import Shop
from delivery_scheduler.schemas.order import OrderResponse, OrderStatusUpdate
from delivery_scheduler.services import order_service

router: APIRouter = APIRouter()


@router.get("", response_model=list[OrderResponse])
def list_orders(
    status: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
) -> list[OrderResponse]:
    try:
        orders = order_service.list_orders(db, shop.name, status=status, start=start_date, end=end_date)
    except DeliverySchedulerError as exc:
        raise to_http_exception(exc) from exc
    return [serialize_order(order) for order in orders]


@router.post("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
) -> OrderResponse:
    """Move an order through PENDING, CONFIRMED, DELIVERED or CANCELLED."""
    try:
        order = order_service.update_order_status(db, shop.name, order_id, payload.new_status)
    except DeliverySchedulerError as exc:
        raise to_http_exception(exc) from exc
    return serialize_order(order)
