"""Minimal Shopify Admin GraphQL and OAuth client."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from delivery_scheduler.core.config import settings
from delivery_scheduler.core.exceptions import ShopifyApiError

logger = logging.getLogger(__name__)

ORDER_UPDATE_MUTATION: str = """
mutation orderUpdate($input: OrderInput!) {
  orderUpdate(input: $input) {
    order { id note tags }
    userErrors { field message }
  }
}
"""

SHOP_QUERY: str = """
query shopInfo {
  shop {
    id
    name
    email
    contactEmail
    myshopifyDomain
    ianaTimezone
    url
    primaryDomain { url localization { defaultLocale } }
    plan { displayName partnerDevelopment shopifyPlus }
    shopOwnerName
  }
}
"""


def order_gid(order_id: str | int) -> str:
    """Return the Admin API global id for a numeric order id."""
    value = str(order_id)
    if value.startswith("gid://"):
        return value
    return f"gid://shopify/Order/{value}"


def _json_body(response: httpx.Response, shop: str) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError as exc:
        logger.error("[SHOPIFY] %s returned a non-JSON response (HTTP %s)", shop, response.status_code)
        raise ShopifyApiError(
            "Shopify returned a non-JSON response",
            status_code=response.status_code,
            details={"body": response.text[:500]},
        ) from exc
    if not isinstance(body, dict):
        raise ShopifyApiError("Shopify returned an unexpected response", status_code=response.status_code)
    return body


class ShopifyAdminClient:
    """Admin API client bound to one shop and its offline access token."""

    def __init__(
        self,
        shop: str,
        access_token: str,
        api_version: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.shop = shop
        self.access_token = access_token
        self.api_version = api_version or settings.shopify_api_version
        self.timeout = timeout or settings.shopify_request_timeout
        self._transport = transport

    @property
    def graphql_url(self) -> str:
        return f"https://{self.shop}/admin/api/{self.api_version}/graphql.json"

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self._transport)

    def graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run a GraphQL document and return its ``data`` object."""
        headers = {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self.access_token,
        }
        payload: dict[str, Any] = {"query": query, "variables": variables or {}}
        try:
            with self._client() as client:
                response = client.post(self.graphql_url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("[SHOPIFY] Request to %s failed: %s", self.shop, exc)
            raise ShopifyApiError(f"Shopify request failed: {exc}") from exc

        if response.status_code >= 400:
            logger.error("[SHOPIFY] %s returned HTTP %s", self.shop, response.status_code)
            raise ShopifyApiError(
                "Shopify API returned an error response",
                status_code=response.status_code,
                details={"body": response.text[:500]},
            )

        body: dict[str, Any] = _json_body(response, self.shop)
        if body.get("errors"):
            raise ShopifyApiError("Shopify GraphQL errors", status_code=response.status_code, details={"errors": body["errors"]})
        return body.get("data") or {}

    def update_order(self, order_id: str | int, *, note: str | None = None, tags: list[str] | None = None) -> dict[str, Any]:
        """Set the order note and tags in a single ``orderUpdate`` mutation."""
        order_input: dict[str, Any] = {"id": order_gid(order_id)}
        if note is not None:
            order_input["note"] = note
        if tags is not None:
            order_input["tags"] = tags

        data = self.graphql(ORDER_UPDATE_MUTATION, {"input": order_input})
        result: dict[str, Any] = data.get("orderUpdate") or {}
        user_errors: list[dict[str, Any]] = result.get("userErrors") or []
        if user_errors:
            raise ShopifyApiError(
                "; ".join(error.get("message", "") for error in user_errors),
                details={"user_errors": user_errors},
            )
        return result.get("order") or {}

    def fetch_shop(self) -> dict[str, Any]:
        data = self.graphql(SHOP_QUERY)
        shop: dict[str, Any] | None = data.get("shop")
        if not shop:
            raise ShopifyApiError("Shop query returned no data")
        return shop


def exchange_oauth_code(
    shop: str,
    code: str,
    *,
    transport: httpx.BaseTransport | None = None,
) -> dict[str, Any]:
    """Trade an OAuth authorization code for an offline access token."""
    url = f"https://{shop}/admin/oauth/access_token"
    payload = {
        "client_id": settings.shopify_api_key,
        "client_secret": settings.shopify_api_secret,
        "code": code,
    }
    try:
        with httpx.Client(timeout=settings.shopify_request_timeout, transport=transport) as client:
            response = client.post(url, json=payload)
    except httpx.HTTPError as exc:
        raise ShopifyApiError(f"Token exchange failed: {exc}") from exc

    if response.status_code >= 400:
        raise ShopifyApiError("Token exchange rejected", status_code=response.status_code)
    body: dict[str, Any] = _json_body(response, shop)
    if "access_token" not in body:
        raise ShopifyApiError("Token exchange response has no access token")
    return body
