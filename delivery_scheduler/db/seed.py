"""Database seeding helpers."""

import logging

from sqlalchemy.orm import Session

from delivery_scheduler.core.config import settings
from delivery_scheduler.services.settings_service import get_shop_settings
from delivery_scheduler.services.shop_service import get_shop_by_name, upsert_shop

logger = logging.getLogger(__name__)


def ensure_dev_shop(session: Session) -> None:
    """Ensure the configured development shop and its settings exist in development only."""
    if settings.app_env != "dev" or not settings.dev_shop_domain:
        return

    if get_shop_by_name(session, settings.dev_shop_domain) is None:
        upsert_shop(
            session,
            {
                "name": settings.dev_shop_domain,
                "shopify_id": settings.dev_shop_domain,
                "localization": "en",
                "timezone": settings.default_timezone,
            },
        )
        logger.info("[BOOTSTRAP] Seeded development shop %s", settings.dev_shop_domain)

    get_shop_settings(session, settings.dev_shop_domain)
