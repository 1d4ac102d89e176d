"""Delivery zone endpoints."""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from delivery_scheduler.api.errors import to_http_exception
from delivery_scheduler.core.exceptions import DeliverySchedulerError
from delivery_scheduler.core.security import get_current_shop
from delivery_scheduler.db.session import get_db
from delivery_scheduler.models.delivery import DeliveryZone
from delivery_scheduler.models.shop import Shop
from delivery_scheduler.schemas.delivery import ZoneCreate, ZoneResponse, ZoneUpdate
from delivery_scheduler.services import zone_service

router: APIRouter = APIRouter()


@router.get("", response_model=list[ZoneResponse])
def list_zones(
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
) -> list[DeliveryZone]:
    return zone_service.list_zones(db, shop.name)


@router.post("", response_model=ZoneResponse, status_code=status.HTTP_201_CREATED)
def create_zone(
    payload: ZoneCreate,
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
) -> DeliveryZone:
    try:
        return zone_service.create_zone(
            db,
            shop.name,
            name=payload.name,
            shipping_rate=payload.shipping_rate,
            description=payload.description,
            priority=payload.priority,
        )
    except DeliverySchedulerError as exc:
        raise to_http_exception(exc) from exc


@router.put("/{zone_id}", response_model=ZoneResponse)
def update_zone(
    zone_id: int,
    payload: ZoneUpdate,
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
) -> DeliveryZone:
    try:
        return zone_service.update_zone(
            db,
            shop.name,
            zone_id,
            name=payload.name,
            shipping_rate=payload.shipping_rate,
            description=payload.description,
            priority=payload.priority,
        )
    except DeliverySchedulerError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{zone_id}/toggle", response_model=ZoneResponse)
def toggle_zone(
    zone_id: int,
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
) -> DeliveryZone:
    try:
        return zone_service.toggle_zone(db, shop.name, zone_id)
    except DeliverySchedulerError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{zone_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_zone(
    zone_id: int,
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
) -> Response:
    try:
        zone_service.delete_zone(db, shop.name, zone_id)
    except DeliverySchedulerError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
