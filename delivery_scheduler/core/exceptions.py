"""Domain exceptions raised by services and translated at the HTTP edge."""

from typing import Any


class DeliverySchedulerError(Exception):
    """Base exception for delivery scheduler errors."""

    def __init__(self, message: str = "", details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(DeliverySchedulerError):
    """Raised when a shop-scoped record does not exist or belongs to another shop."""


class ValidationError(DeliverySchedulerError):
    """Raised when input violates a business rule."""


class ShopifyApiError(DeliverySchedulerError):
    """Raised when the Shopify Admin API rejects or fails a request."""

    def __init__(self, message: str = "", status_code: int | None = None, details: dict[str, Any] | None = None):
        self.status_code = status_code
        super().__init__(message, details)


class EmailDeliveryError(DeliverySchedulerError):
    """Raised when an SMTP send fails."""
