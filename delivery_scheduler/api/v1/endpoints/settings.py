"""Shop settings endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from delivery_scheduler.api.errors import to_http_exception
from delivery_scheduler.core.exceptions import DeliverySchedulerError
from delivery_scheduler.core.security import get_current_shop
from delivery_scheduler.db.session import get_db
from delivery_scheduler.models.shop import Shop, ShopSettings
from delivery_scheduler.schemas.shop import ShopSettingsResponse, ShopSettingsUpdate
from delivery_scheduler.services import settings_service

router: APIRouter = APIRouter()


@router.get("", response_model=ShopSettingsResponse)
def read_settings(
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
) -> ShopSettings:
    return settings_service.get_shop_settings(db, shop.name)


@router.put("", response_model=ShopSettingsResponse)
def update_settings(
    payload: ShopSettingsUpdate,
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
) -> ShopSettings:
    try:
        return settings_service.update_shop_settings(db, shop.name, **payload.model_dump(exclude_unset=True))
    except DeliverySchedulerError as exc:
        raise to_http_exception(exc) from exc
