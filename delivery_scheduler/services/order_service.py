"""Order queries, status changes and the merchant dashboard."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.orm import Session, joinedload

from delivery_scheduler.core.exceptions import NotFoundError, ValidationError
from delivery_scheduler.models.delivery import DeliverySlot
from delivery_scheduler.models.order import Order
from delivery_scheduler.services.delivery_service import SlotAvailability, get_all_slots
from delivery_scheduler.services.order_status import (
    ACTIVE_STATUSES,
    can_transition,
    is_known_status,
    normalize_status,
    set_status,
)
from delivery_scheduler.utils.time import utc_now

logger = logging.getLogger(__name__)

DEFAULT_DASHBOARD_DAYS: int = 30
RECENT_ORDERS_LIMIT: int = 50
UPCOMING_DELIVERIES_LIMIT: int = 10


@dataclass
class DashboardStats:
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


@dataclass
class Dashboard:
    orders_in_range: list[Order]
    upcoming_deliveries: list[Order]
    stats: DashboardStats
    today_slots: list[SlotAvailability] = field(default_factory=list)


def _orders_query(db: Session, shop_name: str):
    return (
        db.query(Order)
        .options(joinedload(Order.delivery_slot).joinedload(DeliverySlot.zone))
        .filter(Order.shop_name == shop_name)
    )


def list_orders(
    db: Session,
    shop_name: str,
    *,
    status: str | None = None,
    start: date | None = None,
    end: date | None = None,
) -> list[Order]:
    """Return the shop's orders, newest first, optionally filtered by status and delivery date."""
    query = _orders_query(db, shop_name)
    if status:
        normalized: str = normalize_status(status)
        if not is_known_status(normalized):
            raise ValidationError(f"Unknown order status '{status}'")
        query = query.filter(Order.status == normalized)
    if start is not None:
        query = query.filter(Order.delivery_date >= start)
    if end is not None:
        query = query.filter(Order.delivery_date <= end)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def get_order_for_shop(db: Session, shop_name: str, order_id: int) -> Order:
    order: Order | None = _orders_query(db, shop_name).filter(Order.id == order_id).first()
    if order is None:
        raise NotFoundError("Order not found", details={"order_id": order_id})
    return order


def update_order_status(
    db: Session,
    shop_name: str,
    order_id: int,
    new_status: str,
    now: datetime | None = None,
) -> Order:
    """Move an order to a new status when the transition is allowed."""
    order: Order = get_order_for_shop(db, shop_name, order_id)
    target: str = normalize_status(new_status)
    if not is_known_status(target):
        raise ValidationError(f"Unknown order status '{new_status}'")
    if not can_transition(order.status, target):
        raise ValidationError(f"Invalid status transition from {order.status} to {target}")

    set_status(order, target, now or utc_now())
    db.commit()
    db.refresh(order)
    logger.info("Order %s moved to %s for %s", order.shopify_order_id, target, shop_name)
    return order


def release_delivery_slot(
    db: Session,
    shopify_order_id: str,
    slot_id: int | None = None,
    now: datetime | None = None,
    *,
    shop_name: str | None = None,
) -> Order:
    """Cancel the order holding a slot so its capacity is freed."""
    query = db.query(Order).filter(Order.shopify_order_id == str(shopify_order_id))
    if shop_name is not None:
        query = query.filter(Order.shop_name == shop_name)
    if slot_id is not None:
        query = query.filter(Order.delivery_slot_id == slot_id)
    order: Order | None = query.first()
    if order is None:
        raise NotFoundError("Order not found", details={"order_id": shopify_order_id})

    if order.status != "CANCELLED":
        set_status(order, "CANCELLED", now or utc_now())
        db.commit()
        db.refresh(order)
        logger.info("Released slot %s held by order %s", order.delivery_slot_id, shopify_order_id)
    return order


def default_dashboard_range(today: date) -> tuple[date, date]:
    """Last thirty days including today."""
    return today - timedelta(days=DEFAULT_DASHBOARD_DAYS - 1), today


def _count(orders: list[Order], status: str) -> int:
    return sum(1 for order in orders if order.status == status)


def get_dashboard(
    db: Session,
    shop_name: str,
    *,
    today: date,
    start: date | None = None,
    end: date | None = None,
) -> Dashboard:
    """Collect dashboard orders and statistics for a delivery date range."""
    if start is None or end is None:
        start, end = default_dashboard_range(today)
    if end < start:
        raise ValidationError("End date must not be before start date")

    orders_in_range: list[Order] = list_orders(db, shop_name, start=start, end=end)
    upcoming: list[Order] = (
        _orders_query(db, shop_name)
        .filter(Order.status.in_(ACTIVE_STATUSES), Order.delivery_date >= today)
        .order_by(Order.delivery_date.asc(), Order.created_at.asc())
        .limit(UPCOMING_DELIVERIES_LIMIT)
        .all()
    )
    today_slots: list[SlotAvailability] = get_all_slots(db, shop_name, active_only=True, on=today)

    total_orders: int = len(orders_in_range)
    total_revenue: Decimal = sum((order.total_amount for order in orders_in_range), Decimal("0.00"))
    period_days: int = (end - start).days + 1
    total_capacity: int = sum(item.slot.capacity for item in today_slots)
    total_bookings: int = sum(item.current_bookings for item in today_slots)

    stats = DashboardStats(
        total_orders=total_orders,
        confirmed_orders=_count(orders_in_range, "CONFIRMED"),
        delivered_orders=_count(orders_in_range, "DELIVERED"),
        cancelled_orders=_count(orders_in_range, "CANCELLED"),
        pending_orders=_count(orders_in_range, "PENDING"),
        total_revenue=total_revenue,
        avg_daily_orders=round(total_orders / period_days, 1),
        avg_daily_revenue=(total_revenue / period_days).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        slot_utilization=round(total_bookings / total_capacity * 100) if total_capacity > 0 else 0,
        period_days=period_days,
        total_capacity=total_capacity,
        total_bookings=total_bookings,
        start_date=start,
        end_date=end,
    )
    return Dashboard(
        orders_in_range=orders_in_range[:RECENT_ORDERS_LIMIT],
        upcoming_deliveries=upcoming,
        stats=stats,
        today_slots=today_slots[:UPCOMING_DELIVERIES_LIMIT],
    )
