"""Delivery slot management and availability computation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from delivery_scheduler.core.exceptions import NotFoundError, ValidationError
from delivery_scheduler.models.delivery import BlackoutDate, DeliverySlot, DeliveryZone
from delivery_scheduler.models.order import Order
from delivery_scheduler.models.shop import ShopSettings
from delivery_scheduler.services.settings_service import is_before_cutoff
from delivery_scheduler.utils.time import format_short_date, shop_local_now

logger = logging.getLogger(__name__)

SLOT_NOT_FOUND_MESSAGE: str = "Slot not found"


@dataclass
class SlotAvailability:
    """Slot annotated with bookings for one delivery date."""

    slot: DeliverySlot
    current_bookings: int

    @property
    def available_capacity(self) -> int:
        return self.slot.capacity - self.current_bookings


@dataclass
class AvailableDate:
    value: date
    label: str


def get_slot_for_shop(db: Session, shop_name: str, slot_id: int) -> DeliverySlot:
    slot: DeliverySlot | None = (
        db.query(DeliverySlot)
        .filter(DeliverySlot.id == slot_id, DeliverySlot.shop_name == shop_name)
        .first()
    )
    if slot is None:
        raise NotFoundError(SLOT_NOT_FOUND_MESSAGE, details={"slot_id": slot_id})
    return slot


def _validate_slot_window(start_time: time, end_time: time, capacity: int) -> None:
    if end_time <= start_time:
        raise ValidationError("End time must be after start time")
    if capacity <= 0:
        raise ValidationError("Capacity must be greater than 0")


def _active_zone_for_shop(db: Session, shop_name: str, zone_id: int) -> DeliveryZone:
    zone: DeliveryZone | None = (
        db.query(DeliveryZone)
        .filter(
            DeliveryZone.id == zone_id,
            DeliveryZone.shop_name == shop_name,
            DeliveryZone.is_active.is_(True),
        )
        .first()
    )
    if zone is None:
        raise ValidationError("Invalid delivery zone for this shop")
    return zone


def find_overlapping_slot(
    db: Session,
    shop_name: str,
    zone_id: int,
    start_time: time,
    end_time: time,
    exclude_slot_id: int | None = None,
) -> DeliverySlot | None:
    """Return an active slot in the zone whose window intersects [start, end)."""
    query = db.query(DeliverySlot).filter(
        DeliverySlot.shop_name == shop_name,
        DeliverySlot.zone_id == zone_id,
        DeliverySlot.is_active.is_(True),
        DeliverySlot.start_time < end_time,
        DeliverySlot.end_time > start_time,
    )
    if exclude_slot_id is not None:
        query = query.filter(DeliverySlot.id != exclude_slot_id)
    return query.first()


def _commit_slot(db: Session, slot: DeliverySlot) -> DeliverySlot:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValidationError("A slot with this time range already exists in this zone") from exc
    db.refresh(slot)
    return slot


def create_slot(
    db: Session,
    shop_name: str,
    *,
    start_time: time,
    end_time: time,
    capacity: int,
    zone_id: int,
    price_adjustment: Decimal | None = None,
    notes: str | None = None,
) -> DeliverySlot:
    """Create a recurring daily slot that does not overlap another active slot in its zone."""
    _active_zone_for_shop(db, shop_name, zone_id)
    _validate_slot_window(start_time, end_time, capacity)
    if find_overlapping_slot(db, shop_name, zone_id, start_time, end_time) is not None:
        raise ValidationError("Time slot overlaps with existing slot")

    slot = DeliverySlot(
        shop_name=shop_name,
        zone_id=zone_id,
        start_time=start_time,
        end_time=end_time,
        capacity=capacity,
        price_adjustment=price_adjustment or Decimal("0.00"),
        notes=notes,
        is_active=True,
    )
    db.add(slot)
    _commit_slot(db, slot)
    logger.info("Created slot %s (%s) in zone %s for %s", slot.id, slot.time_range, zone_id, shop_name)
    return slot


def update_slot(
    db: Session,
    shop_name: str,
    slot_id: int,
    *,
    start_time: time,
    end_time: time,
    capacity: int,
    zone_id: int,
    price_adjustment: Decimal | None = None,
    notes: str | None = None,
) -> DeliverySlot:
    """Replace a slot's window, capacity and zone."""
    slot: DeliverySlot = get_slot_for_shop(db, shop_name, slot_id)
    _active_zone_for_shop(db, shop_name, zone_id)
    _validate_slot_window(start_time, end_time, capacity)
    if slot.is_active and find_overlapping_slot(
        db, shop_name, zone_id, start_time, end_time, exclude_slot_id=slot.id
    ) is not None:
        raise ValidationError("Time slot overlaps with existing slot")

    slot.start_time = start_time
    slot.end_time = end_time
    slot.capacity = capacity
    slot.zone_id = zone_id
    if price_adjustment is not None:
        slot.price_adjustment = price_adjustment
    if notes is not None:
        slot.notes = notes
    return _commit_slot(db, slot)


def toggle_slot(db: Session, shop_name: str, slot_id: int) -> DeliverySlot:
    """Flip a slot between active and inactive."""
    slot: DeliverySlot = get_slot_for_shop(db, shop_name, slot_id)
    if not slot.is_active and find_overlapping_slot(
        db, shop_name, slot.zone_id, slot.start_time, slot.end_time, exclude_slot_id=slot.id
    ) is not None:
        raise ValidationError("Time slot overlaps with existing slot")
    slot.is_active = not slot.is_active
    db.commit()
    db.refresh(slot)
    return slot


def count_active_orders(db: Session, slot_id: int) -> int:
    return (
        db.query(Order)
        .filter(Order.delivery_slot_id == slot_id, Order.status != "CANCELLED")
        .count()
    )


def delete_slot(db: Session, shop_name: str, slot_id: int) -> None:
    """Delete a slot that no live order references."""
    slot: DeliverySlot = get_slot_for_shop(db, shop_name, slot_id)
    order_count: int = count_active_orders(db, slot.id)
    if order_count > 0:
        raise ValidationError(
            f"Cannot delete slot with {order_count} active orders. "
            "Please cancel or complete these orders first."
        )
    cancelled_orders: int = db.query(Order).filter(Order.delivery_slot_id == slot.id).count()
    if cancelled_orders > 0:
        # Cancelled orders keep their history; the slot is retired instead.
        slot.is_active = False
        db.commit()
        logger.info("Deactivated slot %s with cancelled order history for %s", slot_id, shop_name)
        return
    db.delete(slot)
    db.commit()
    logger.info("Deleted slot %s for %s", slot_id, shop_name)


def get_slot_bookings_for_date(db: Session, slot_id: int, on: date) -> int:
    """Count non-cancelled orders booked into the slot for the date."""
    return (
        db.query(Order)
        .filter(
            Order.delivery_slot_id == slot_id,
            Order.delivery_date == on,
            Order.status != "CANCELLED",
        )
        .count()
    )


def _bookings_by_slot(db: Session, slot_ids: list[int], on: date) -> dict[int, int]:
    if not slot_ids:
        return {}
    rows = (
        db.query(Order.delivery_slot_id, func.count(Order.id))
        .filter(
            Order.delivery_slot_id.in_(slot_ids),
            Order.delivery_date == on,
            Order.status != "CANCELLED",
        )
        .group_by(Order.delivery_slot_id)
        .all()
    )
    return {slot_id: count for slot_id, count in rows}


def _blackout_zone_filter(zone_id: int | None):
    if zone_id is None:
        return BlackoutDate.zone_id.is_(None)
    return or_(BlackoutDate.zone_id == zone_id, BlackoutDate.zone_id.is_(None))


def is_date_blacked_out(db: Session, shop_name: str, on: date, zone_id: int | None = None) -> bool:
    """Return True when a one-off or yearly blackout covers the date for the zone."""
    zone_filter = _blackout_zone_filter(zone_id)
    exact_match: BlackoutDate | None = (
        db.query(BlackoutDate)
        .filter(BlackoutDate.shop_name == shop_name, BlackoutDate.blackout_date == on, zone_filter)
        .first()
    )
    if exact_match is not None:
        return True

    recurring: list[BlackoutDate] = (
        db.query(BlackoutDate)
        .filter(BlackoutDate.shop_name == shop_name, BlackoutDate.is_recurring.is_(True), zone_filter)
        .all()
    )
    return any(
        blackout.blackout_date.month == on.month and blackout.blackout_date.day == on.day
        for blackout in recurring
    )


def get_available_slots(db: Session, shop_name: str, on: date, zone_id: int) -> list[SlotAvailability]:
    """Return the zone's active slots that still have capacity on the date."""
    if is_date_blacked_out(db, shop_name, on, zone_id):
        return []

    slots: list[DeliverySlot] = (
        db.query(DeliverySlot)
        .options(joinedload(DeliverySlot.zone))
        .filter(
            DeliverySlot.shop_name == shop_name,
            DeliverySlot.zone_id == zone_id,
            DeliverySlot.is_active.is_(True),
        )
        .order_by(DeliverySlot.start_time.asc())
        .all()
    )
    bookings: dict[int, int] = _bookings_by_slot(db, [slot.id for slot in slots], on)
    annotated = [SlotAvailability(slot=slot, current_bookings=bookings.get(slot.id, 0)) for slot in slots]
    return [item for item in annotated if item.available_capacity > 0]


def is_slot_available_for_date(db: Session, slot_id: int, on: date, *, shop_name: str | None = None) -> bool:
    """Check that the slot exists, is active, is not blacked out and has room.

    When ``shop_name`` is given, slots of other shops count as missing.
    """
    query = db.query(DeliverySlot).filter(DeliverySlot.id == slot_id)
    if shop_name is not None:
        query = query.filter(DeliverySlot.shop_name == shop_name)
    slot: DeliverySlot | None = query.first()
    if slot is None or not slot.is_active:
        return False
    if is_date_blacked_out(db, slot.shop_name, on, slot.zone_id):
        return False
    return get_slot_bookings_for_date(db, slot.id, on) < slot.capacity


def get_all_slots(
    db: Session,
    shop_name: str,
    *,
    on: date,
    active_only: bool = True,
) -> list[SlotAvailability]:
    """Return slots for the admin listing with bookings for one date."""
    query = db.query(DeliverySlot).options(joinedload(DeliverySlot.zone)).filter(DeliverySlot.shop_name == shop_name)
    if active_only:
        query = query.filter(DeliverySlot.is_active.is_(True))
    slots: list[DeliverySlot] = query.order_by(DeliverySlot.zone_id.asc(), DeliverySlot.start_time.asc()).all()

    bookings: dict[int, int] = _bookings_by_slot(db, [slot.id for slot in slots], on)
    return [SlotAvailability(slot=slot, current_bookings=bookings.get(slot.id, 0)) for slot in slots]


def _yearly_occurrence(original: date, year: int) -> date | None:
    try:
        return original.replace(year=year)
    except ValueError:
        # 29 February in a non-leap year.
        return None


def get_blackout_dates_as_strings(
    db: Session,
    shop_name: str,
    today: date,
    zone_id: int | None = None,
) -> list[str]:
    """Return upcoming blackout dates as sorted ISO strings for the checkout calendar."""
    query = db.query(BlackoutDate).filter(
        BlackoutDate.shop_name == shop_name,
        or_(
            BlackoutDate.is_recurring.is_(True),
            BlackoutDate.blackout_date >= today,
        ),
    )
    if zone_id is not None:
        query = query.filter(_blackout_zone_filter(zone_id))

    dates: set[date] = set()
    for blackout in query.order_by(BlackoutDate.blackout_date.asc()).all():
        if not blackout.is_recurring:
            dates.add(blackout.blackout_date)
            continue
        this_year = _yearly_occurrence(blackout.blackout_date, today.year)
        next_year = _yearly_occurrence(blackout.blackout_date, today.year + 1)
        if this_year is not None and this_year >= today:
            dates.add(this_year)
        if next_year is not None:
            dates.add(next_year)
    return sorted(value.isoformat() for value in dates)


def first_bookable_date(shop_settings: ShopSettings, now: datetime) -> date:
    """Today when same-day delivery is on and the cutoff has not passed, otherwise tomorrow."""
    local_now: datetime = shop_local_now(shop_settings.timezone, now)
    today: date = local_now.date()
    if shop_settings.enable_same_day_delivery and is_before_cutoff(local_now.time(), shop_settings.cutoff_time):
        return today
    return today + timedelta(days=1)


def last_bookable_date(shop_settings: ShopSettings, now: datetime) -> date:
    local_today: date = shop_local_now(shop_settings.timezone, now).date()
    return local_today + timedelta(days=shop_settings.max_days_in_advance)


def _date_label(value: date, today: date) -> str:
    label: str = format_short_date(value)
    if value == today:
        return f"Today - {label}"
    if value == today + timedelta(days=1):
        return f"Tomorrow - {label}"
    return label


def get_available_dates(
    db: Session,
    shop_name: str,
    zone_id: int,
    shop_settings: ShopSettings,
    now: datetime,
) -> list[AvailableDate]:
    """Return the bookable dates for a zone with at least one free slot."""
    today: date = shop_local_now(shop_settings.timezone, now).date()
    start: date = first_bookable_date(shop_settings, now)

    available: list[AvailableDate] = []
    for offset in range(shop_settings.max_days_in_advance):
        candidate: date = start + timedelta(days=offset)
        if not get_available_slots(db, shop_name, candidate, zone_id):
            continue
        available.append(AvailableDate(value=candidate, label=_date_label(candidate, today)))
    return available
