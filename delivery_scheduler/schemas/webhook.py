"""Shopify webhook payload schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class NoteAttribute(BaseModel):
    """Checkout attribute attached to an order."""

    name: str
    value: str | None = None


class Metafield(BaseModel):
    namespace: str
    key: str
    value: str | None = None


class WebhookCustomer(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None

    model_config = ConfigDict(extra="ignore")


class OrderWebhookPayload(BaseModel):
    """Subset of the Shopify order payload used by orders/create and orders/cancelled."""

    id: int | str
    name: str | None = None
    email: str | None = None
    total_price: str | None = "0"
    shipping_address: dict[str, Any] | None = None
    note_attributes: list[NoteAttribute] = Field(default_factory=list)
    metafields: list[Metafield] = Field(default_factory=list)
    cancel_reason: str | None = None
    customer: WebhookCustomer | None = None

    model_config = ConfigDict(extra="ignore")

    def attribute(self, *names: str) -> str | None:
        """Return the first non-empty note attribute value among names."""
        for attribute in self.note_attributes:
            if attribute.name in names and attribute.value:
                return attribute.value
        return None

    def contact_email(self) -> str | None:
        if self.email:
            return self.email
        if self.customer is not None:
            return self.customer.email
        return None
