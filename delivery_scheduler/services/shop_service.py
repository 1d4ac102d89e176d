"""Shop records and stored Shopify sessions."""

import logging
from typing import Any

from sqlalchemy.orm import Session

from delivery_scheduler.models.shop import Shop
from delivery_scheduler.models.shopify_session import ShopifySession
from delivery_scheduler.services.shopify_client import ShopifyAdminClient
from delivery_scheduler.utils.time import utc_now

logger = logging.getLogger(__name__)

SHOP_GID_PREFIX: str = "gid://shopify/Shop/"


def offline_session_id(shop_name: str) -> str:
    return f"offline_{shop_name}"


def normalize_shop_payload(shop: dict[str, Any]) -> dict[str, Any]:
    """Map the Admin API ``shop`` object onto Shop columns."""
    primary_domain: dict[str, Any] = shop.get("primaryDomain") or {}
    localization: dict[str, Any] = primary_domain.get("localization") or {}
    return {
        "shopify_id": str(shop.get("id", "")).replace(SHOP_GID_PREFIX, ""),
        "name": shop["myshopifyDomain"],
        "shop_owner_name": shop.get("shopOwnerName"),
        "email": shop.get("email"),
        "contact_email": shop.get("contactEmail"),
        "localization": localization.get("defaultLocale") or "en",
        "timezone": shop.get("ianaTimezone") or "UTC",
        "shopify_domain": shop.get("url") or primary_domain.get("url"),
        "shopify_plan": shop.get("plan"),
    }


def fetch_shop_from_shopify(client: ShopifyAdminClient) -> dict[str, Any]:
    return normalize_shop_payload(client.fetch_shop())


def get_shop_by_name(db: Session, shop_name: str) -> Shop | None:
    return db.query(Shop).filter(Shop.name == shop_name).first()


def upsert_shop(db: Session, data: dict[str, Any]) -> Shop:
    """Insert or refresh a shop keyed by its myshopify domain.

    Subscription, premium and onboarding state of an existing row are kept.
    """
    shop: Shop | None = get_shop_by_name(db, data["name"])
    if shop is None:
        shop = Shop(
            name=data["name"],
            shopify_id=data.get("shopify_id") or data["name"],
            is_premium=False,
            onboarding_completed=False,
            subscription_id=None,
        )
        db.add(shop)
        logger.info("Registering new shop %s", data["name"])

    for field_name in (
        "shopify_id",
        "shop_owner_name",
        "email",
        "contact_email",
        "localization",
        "timezone",
        "shopify_domain",
        "shopify_plan",
    ):
        if field_name in data and data[field_name] is not None:
            setattr(shop, field_name, data[field_name])
    shop.status = True
    shop.deleted_at = None

    db.commit()
    db.refresh(shop)
    return shop


def store_offline_session(db: Session, shop_name: str, access_token: str, scope: str | None, state: str = "") -> ShopifySession:
    session_id: str = offline_session_id(shop_name)
    stored: ShopifySession | None = db.get(ShopifySession, session_id)
    if stored is None:
        stored = ShopifySession(id=session_id, shop=shop_name, is_online=False, state=state)
        db.add(stored)
    stored.access_token = access_token
    stored.scope = scope
    stored.state = state
    db.commit()
    db.refresh(stored)
    return stored


def get_offline_session(db: Session, shop_name: str) -> ShopifySession | None:
    """Return the shop's offline session when it holds a usable token."""
    stored: ShopifySession | None = db.get(ShopifySession, offline_session_id(shop_name))
    if stored is None or not stored.access_token:
        return None
    return stored


def deactivate_shop(db: Session, shop_name: str) -> bool:
    """Mark the shop uninstalled and drop its sessions."""
    deleted_sessions: int = db.query(ShopifySession).filter(ShopifySession.shop == shop_name).delete()
    shop: Shop | None = get_shop_by_name(db, shop_name)
    if shop is not None:
        shop.status = False
        shop.deleted_at = utc_now()
    db.commit()
    logger.info("Deactivated shop %s (%s sessions removed)", shop_name, deleted_sessions)
    return shop is not None
