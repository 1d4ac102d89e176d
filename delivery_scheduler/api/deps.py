"""Overridable dependencies for outbound integrations and the clock."""

from datetime import datetime

from delivery_scheduler.services.email_service import EmailService
from delivery_scheduler.services.shopify_client import ShopifyAdminClient
from delivery_scheduler.services.webhook_service import ClientFactory
from delivery_scheduler.utils.time import utc_now


def get_shopify_client_factory() -> ClientFactory:
    return ShopifyAdminClient


def get_email_service() -> EmailService:
    return EmailService()


def get_now() -> datetime:
    return utc_now()
