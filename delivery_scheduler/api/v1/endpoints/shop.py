"""Shop record endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from delivery_scheduler.api.deps import get_shopify_client_factory
from delivery_scheduler.api.errors import to_http_exception
from delivery_scheduler.core.exceptions import DeliverySchedulerError
from delivery_scheduler.core.security import get_current_shop
from delivery_scheduler.db.session import get_db
from delivery_scheduler.models.shop import Shop
from delivery_scheduler.schemas.shop import ShopResponse
from delivery_scheduler.services import shop_service
from delivery_scheduler.services.webhook_service import ClientFactory

router: APIRouter = APIRouter()


@router.get("", response_model=ShopResponse)
def read_shop(shop: Shop = Depends(get_current_shop)) -> Shop:
    return shop


@router.post("/sync", response_model=ShopResponse)
def sync_shop(
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
    client_factory: ClientFactory = Depends(get_shopify_client_factory),
) -> Shop:
    """Refresh the shop record from the Admin API."""
    stored_session = shop_service.get_offline_session(db, shop.name)
    if stored_session is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No offline session for this shop")

    try:
        data = shop_service.fetch_shop_from_shopify(client_factory(shop.name, stored_session.access_token))
        return shop_service.upsert_shop(db, data)
    except DeliverySchedulerError as exc:
        raise to_http_exception(exc) from exc
