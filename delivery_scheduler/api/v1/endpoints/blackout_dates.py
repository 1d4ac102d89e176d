"""Blackout date endpoints."""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from delivery_scheduler.api.errors import to_http_exception
from delivery_scheduler.api.v1.serializers import serialize_blackout
from delivery_scheduler.core.exceptions import DeliverySchedulerError
from delivery_scheduler.core.security import get_current_shop
from delivery_scheduler.db.session import get_db
from delivery_scheduler.models.shop import Shop
from delivery_scheduler.schemas.delivery import BlackoutPayload, BlackoutResponse
from delivery_scheduler.services import blackout_service

router: APIRouter = APIRouter()


@router.get("", response_model=list[BlackoutResponse])
def list_blackout_dates(
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
) -> list[BlackoutResponse]:
    return [serialize_blackout(blackout) for blackout in blackout_service.list_blackout_dates(db, shop.name)]


@router.post("", response_model=BlackoutResponse, status_code=status.HTTP_201_CREATED)
def create_blackout_date(
    payload: BlackoutPayload,
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
) -> BlackoutResponse:
    try:
        blackout = blackout_service.create_blackout_date(
            db,
            shop.name,
            blackout_date=payload.blackout_date,
            reason=payload.reason,
            is_recurring=payload.is_recurring,
            zone_id=payload.zone_id,
        )
    except DeliverySchedulerError as exc:
        raise to_http_exception(exc) from exc
    return serialize_blackout(blackout)


@router.put("/{blackout_id}", response_model=BlackoutResponse)
def update_blackout_date(
    blackout_id: int,
    payload: BlackoutPayload,
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
) -> BlackoutResponse:
    try:
        blackout = blackout_service.update_blackout_date(
            db,
            shop.name,
            blackout_id,
            blackout_date=payload.blackout_date,
            reason=payload.reason,
            is_recurring=payload.is_recurring,
            zone_id=payload.zone_id,
        )
    except DeliverySchedulerError as exc:
        raise to_http_exception(exc) from exc
    return serialize_blackout(blackout)


@router.delete("/{blackout_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_blackout_date(
    blackout_id: int,
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
) -> Response:
    try:
        blackout_service.delete_blackout_date(db, shop.name, blackout_id)
    except DeliverySchedulerError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
