"""FastAPI entrypoint for the Shopify delivery scheduler."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from delivery_scheduler.api import oauth, storefront, webhooks
from delivery_scheduler.api.v1.api import api_router
from delivery_scheduler.core.config import settings
from delivery_scheduler.db import session as db_session
from delivery_scheduler.db.base import Base
from delivery_scheduler.db.seed import ensure_dev_shop

logger = logging.getLogger(__name__)

STOREFRONT_PREFIX: str = "/apps/delivery-scheduler"

app = FastAPI(title=settings.app_name, debug=settings.debug)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.storefront_allowed_origin],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)
app.include_router(api_router, prefix="/api/v1")
app.include_router(storefront.router, prefix=STOREFRONT_PREFIX, tags=["storefront"])
app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
app.include_router(oauth.router, tags=["oauth"])


@app.on_event("startup")
def startup() -> None:
    if settings.shopify_api_secret == "dev-only-shopify-secret":
        logger.warning("SHOPIFY_API_SECRET not set; using development fallback secret.")
    Base.metadata.create_all(bind=db_session.engine)
    with db_session.SessionLocal() as session:
        try:
            ensure_dev_shop(session)
        except Exception:
            logger.exception("[BOOTSTRAP] Seed/bootstrap failed; continuing startup.")


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
