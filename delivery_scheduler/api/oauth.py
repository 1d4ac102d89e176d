"""Shopify OAuth install flow."""

import logging
import secrets
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from delivery_scheduler.api.deps import get_shopify_client_factory
from delivery_scheduler.core.config import settings
from delivery_scheduler.core.exceptions import ShopifyApiError
from delivery_scheduler.core.security import is_valid_shop_domain, verify_oauth_hmac
from delivery_scheduler.db.session import get_db
from delivery_scheduler.models.shopify_session import ShopifySession
from delivery_scheduler.services import settings_service, shop_service
from delivery_scheduler.services.shopify_client import exchange_oauth_code
from delivery_scheduler.services.webhook_service import ClientFactory

logger = logging.getLogger(__name__)

router: APIRouter = APIRouter()


def authorize_url(shop: str, state: str) -> str:
    query = urlencode(
        {
            "client_id": settings.shopify_api_key,
            "scope": settings.shopify_scopes,
            "redirect_uri": f"{settings.shopify_app_url.rstrip('/')}/auth/callback",
            "state": state,
        }
    )
    return f"https://{shop}/admin/oauth/authorize?{query}"


@router.get("/auth")
def begin_install(shop: str, db: Session = Depends(get_db)) -> RedirectResponse:
    """Store a nonce and send the merchant to Shopify's consent screen."""
    if not is_valid_shop_domain(shop):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid shop domain")

    state: str = secrets.token_urlsafe(24)
    stored = db.get(ShopifySession, shop_service.offline_session_id(shop))
    if stored is None:
        shop_service.store_offline_session(db, shop, access_token="", scope=None, state=state)
    else:
        stored.state = state
        db.commit()
    return RedirectResponse(authorize_url(shop, state), status_code=status.HTTP_302_FOUND)


@router.get("/auth/callback")
def complete_install(
    request: Request,
    db: Session = Depends(get_db),
    client_factory: ClientFactory = Depends(get_shopify_client_factory),
) -> RedirectResponse:
    """Verify the redirect, store the offline token and sync the shop record."""
    params = dict(request.query_params)
    shop = params.get("shop", "")
    if not is_valid_shop_domain(shop) or not verify_oauth_hmac(params):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid OAuth callback")

    stored = db.get(ShopifySession, shop_service.offline_session_id(shop))
    if stored is None or not secrets.compare_digest(stored.state, params.get("state", "")):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid OAuth state")

    try:
        token = exchange_oauth_code(shop, params.get("code", ""))
        shop_service.store_offline_session(db, shop, token["access_token"], token.get("scope"), state=stored.state)
        data = shop_service.fetch_shop_from_shopify(client_factory(shop, token["access_token"]))
    except ShopifyApiError as exc:
        logger.error("[SHOPIFY] Install for %s failed: %s", shop, exc.message)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Shopify install failed") from exc

    shop_service.upsert_shop(db, data)
    settings_service.get_shop_settings(db, shop)
    logger.info("[BOOTSTRAP] Installed app for %s", shop)
    return RedirectResponse(f"https://{shop}/admin/apps/{settings.shopify_api_key}", status_code=status.HTTP_302_FOUND)
