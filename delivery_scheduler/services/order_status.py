"""Order status transition helpers."""

from __future__ import annotations

from datetime import datetime

from delivery_scheduler.models.order import ORDER_STATUSES, Order

ACTIVE_STATUSES: tuple[str, ...] = ("PENDING", "CONFIRMED")

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "PENDING": {"CONFIRMED", "CANCELLED"},
    "CONFIRMED": {"DELIVERED", "CANCELLED"},
    "DELIVERED": set(),
    "CANCELLED": set(),
}


def normalize_status(value: str) -> str:
    return value.strip().upper()


def is_known_status(value: str) -> bool:
    return normalize_status(value) in ORDER_STATUSES


def can_transition(current: str, new: str) -> bool:
    """Return whether order can move from current to new status."""
    return new in ALLOWED_TRANSITIONS.get(current, set())


def set_status(order: Order, new_status: str, now: datetime) -> None:
    order.status = new_status
    order.updated_at = now
