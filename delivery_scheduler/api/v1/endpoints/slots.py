"""Delivery slot endpoints."""

from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from delivery_scheduler.api.deps import get_now
from delivery_scheduler.api.errors import to_http_exception
from delivery_scheduler.api.v1.serializers import serialize_slot
from delivery_scheduler.core.exceptions import DeliverySchedulerError
from delivery_scheduler.core.security import get_current_shop
from delivery_scheduler.db.session import get_db
from delivery_scheduler.models.delivery import DeliverySlot
from delivery_scheduler.models.shop import Shop
from delivery_scheduler.schemas.delivery import SlotPayload, SlotResponse
from delivery_scheduler.services import delivery_service, settings_service
from delivery_scheduler.services.delivery_service import SlotAvailability
from delivery_scheduler.utils.time import shop_local_now

router: APIRouter = APIRouter()


def _shop_today(db: Session, shop_name: str, now: datetime) -> date:
    shop_settings = settings_service.get_effective_settings(db, shop_name)
    return shop_local_now(shop_settings.timezone, now).date()


def _with_bookings(db: Session, slot: DeliverySlot, on: date) -> SlotResponse:
    bookings: int = delivery_service.get_slot_bookings_for_date(db, slot.id, on)
    return serialize_slot(SlotAvailability(slot=slot, current_bookings=bookings))


@router.get("", response_model=list[SlotResponse])
def list_slots(
    include_inactive: bool = Query(default=False),
    on: date | None = Query(default=None),
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
    now: datetime = Depends(get_now),
) -> list[SlotResponse]:
    """List slots with bookings for the given day (the shop's local today by default)."""
    target: date = on or _shop_today(db, shop.name, now)
    slots = delivery_service.get_all_slots(db, shop.name, active_only=not include_inactive, on=target)
    return [serialize_slot(item) for item in slots]


@router.post("", response_model=SlotResponse, status_code=status.HTTP_201_CREATED)
def create_slot(
    payload: SlotPayload,
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
    now: datetime = Depends(get_now),
) -> SlotResponse:
    try:
        slot = delivery_service.create_slot(
            db,
            shop.name,
            start_time=payload.start_time,
            end_time=payload.end_time,
            capacity=payload.capacity,
            zone_id=payload.zone_id,
            price_adjustment=payload.price_adjustment,
            notes=payload.notes,
        )
    except DeliverySchedulerError as exc:
        raise to_http_exception(exc) from exc
    return _with_bookings(db, slot, _shop_today(db, shop.name, now))


@router.put("/{slot_id}", response_model=SlotResponse)
def update_slot(
    slot_id: int,
    payload: SlotPayload,
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
    now: datetime = Depends(get_now),
) -> SlotResponse:
    try:
        slot = delivery_service.update_slot(
            db,
            shop.name,
            slot_id,
            start_time=payload.start_time,
            end_time=payload.end_time,
            capacity=payload.capacity,
            zone_id=payload.zone_id,
            price_adjustment=payload.price_adjustment,
            notes=payload.notes,
        )
    except DeliverySchedulerError as exc:
        raise to_http_exception(exc) from exc
    return _with_bookings(db, slot, _shop_today(db, shop.name, now))


@router.post("/{slot_id}/toggle", response_model=SlotResponse)
def toggle_slot(
    slot_id: int,
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
    now: datetime = Depends(get_now),
) -> SlotResponse:
    try:
        slot = delivery_service.toggle_slot(db, shop.name, slot_id)
    except DeliverySchedulerError as exc:
        raise to_http_exception(exc) from exc
    return _with_bookings(db, slot, _shop_today(db, shop.name, now))


@router.delete("/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_slot(
    slot_id: int,
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
) -> Response:
    try:
        delivery_service.delete_slot(db, shop.name, slot_id)
    except DeliverySchedulerError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
