"""Shopify request verification: webhook HMAC, OAuth HMAC and admin session tokens."""

import base64
import hashlib
import hmac
import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlparse

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from delivery_scheduler.core.config import settings
from delivery_scheduler.db.session import get_db
from delivery_scheduler.models.shop import Shop
from delivery_scheduler.services.shop_service import get_shop_by_name
from delivery_scheduler.utils.time import utc_now

SESSION_TOKEN_ALGORITHM: str = "HS256"
SHOP_DOMAIN_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9\-]*\.myshopify\.com$")

bearer_scheme: HTTPBearer = HTTPBearer(auto_error=False)


def is_valid_shop_domain(shop: str | None) -> bool:
    return bool(shop) and SHOP_DOMAIN_PATTERN.match(shop) is not None


def verify_webhook_hmac(body: bytes, received_hmac: str | None, secret: str | None = None) -> bool:
    """Check the base64 HMAC-SHA256 Shopify sends in ``X-Shopify-Hmac-Sha256``."""
    if not received_hmac:
        return False
    digest = hmac.new((secret or settings.shopify_api_secret).encode("utf-8"), body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode("utf-8")
    return hmac.compare_digest(expected, received_hmac)


def verify_oauth_hmac(params: Mapping[str, str], secret: str | None = None) -> bool:
    """Check the hex HMAC over the sorted query string of an OAuth redirect."""
    received = params.get("hmac")
    if not received:
        return False
    message = "&".join(f"{key}={value}" for key, value in sorted(params.items()) if key != "hmac")
    expected = hmac.new((secret or settings.shopify_api_secret).encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, received)


def create_session_token(shop: str, *, expires_in: int = 60, issued_at: int | None = None) -> str:
    """Mint a session token the way App Bridge does; used by local tooling and tests."""
    now = issued_at or int(utc_now().timestamp())
    claims: dict[str, Any] = {
        "iss": f"https://{shop}/admin",
        "dest": f"https://{shop}",
        "aud": settings.shopify_api_key,
        "sub": "1",
        "iat": now,
        "nbf": now,
        "exp": now + expires_in,
    }
    return jwt.encode(claims, settings.shopify_api_secret, algorithm=SESSION_TOKEN_ALGORITHM)


def decode_session_token(token: str) -> str:
    """Validate an App Bridge session token and return the shop domain it was issued for."""
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.shopify_api_secret,
            algorithms=[SESSION_TOKEN_ALGORITHM],
            audience=settings.shopify_api_key or None,
            options={"verify_aud": bool(settings.shopify_api_key)},
        )
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from exc

    shop: str | None = urlparse(str(payload.get("dest", ""))).hostname
    if not is_valid_shop_domain(shop):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token",
        )
    return shop


def get_current_shop(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Shop:
    """Resolve the installed shop from the Authorization header."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    shop_name: str = decode_session_token(credentials.credentials)
    shop: Shop | None = get_shop_by_name(db, shop_name)
    if shop is None or not shop.status:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Shop not found",
        )
    return shop
