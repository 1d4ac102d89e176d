"""Application configuration."""

from datetime import time
from os import getenv

from pydantic import BaseModel


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "Delivery Scheduler"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    database_url: str = getenv("DATABASE_URL", "sqlite:///./delivery_scheduler.db")

    shopify_api_key: str = getenv("SHOPIFY_API_KEY", "")
    shopify_api_secret: str = getenv("SHOPIFY_API_SECRET", "dev-only-shopify-secret")
    shopify_scopes: str = getenv("SHOPIFY_SCOPES", "read_orders,write_orders")
    shopify_api_version: str = getenv("SHOPIFY_API_VERSION", "2025-07")
    shopify_app_url: str = getenv("SHOPIFY_APP_URL", "http://localhost:8000")
    shopify_request_timeout: float = float(getenv("SHOPIFY_REQUEST_TIMEOUT", "10"))
    storefront_allowed_origin: str = getenv("STOREFRONT_ALLOWED_ORIGIN", "https://extensions.shopifycdn.com")

    email_enabled: bool = getenv("EMAIL_ENABLED", "1") == "1"
    email_host: str = getenv("EMAIL_HOST", "")
    email_port: int = int(getenv("EMAIL_PORT", "587"))
    email_user: str = getenv("EMAIL_USER", "")
    email_pass: str = getenv("EMAIL_PASS", "")
    from_email: str = getenv("FROM_EMAIL", "noreply@yourstore.com")

    default_cutoff_time: time = time.fromisoformat(getenv("DEFAULT_CUTOFF_TIME", "14:00"))
    default_max_days_in_advance: int = int(getenv("DEFAULT_MAX_DAYS_IN_ADVANCE", "30"))
    default_timezone: str = getenv("DEFAULT_TIMEZONE", "UTC")
    dev_shop_domain: str = getenv("DEV_SHOP_DOMAIN", "")


settings: Settings = Settings()
