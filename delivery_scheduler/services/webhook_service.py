"""Shopify webhook processing: books, cancels and reconciles delivery orders."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from delivery_scheduler.core.exceptions import DeliverySchedulerError, NotFoundError, ShopifyApiError, ValidationError
from delivery_scheduler.models.delivery import DeliverySlot
from delivery_scheduler.models.order import Order
from delivery_scheduler.schemas.webhook import OrderWebhookPayload
from delivery_scheduler.services import delivery_service, shop_service
from delivery_scheduler.services.email_service import (
    DeliveryBookingFailureParams,
    DeliveryCancellationParams,
    DeliveryConfirmationParams,
    EmailService,
    send_in_background,
)
from delivery_scheduler.services.order_status import set_status
from delivery_scheduler.services.shopify_client import ShopifyAdminClient
from delivery_scheduler.utils.time import format_long_date, parse_iso_date, utc_now

logger = logging.getLogger(__name__)

SELECTION_NAMESPACE: str = "delivery_scheduler"
SELECTION_KEY: str = "selection"
NOTE_DIVIDER: str = "-------------------"

ORDER_TOPICS: frozenset[str] = frozenset({"ORDERS_CREATE", "orders/create"})
CANCEL_TOPICS: frozenset[str] = frozenset({"ORDERS_CANCELLED", "orders/cancelled"})
UNINSTALL_TOPICS: frozenset[str] = frozenset({"APP_UNINSTALLED", "app/uninstalled"})

Schedule = Callable[..., Any]
ClientFactory = Callable[[str, str], ShopifyAdminClient]


@dataclass
class WebhookResult:
    success: bool
    message: str | None = None
    error: str | None = None


@dataclass
class DeliverySelection:
    slot_id: int
    delivery_date: date
    delivery_info: dict[str, Any] | None = None


def _parse_json(value: str | None, source: str) -> dict[str, Any] | None:
    if not value:
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        logger.warning("[WEBHOOK] Could not parse %s as JSON", source)
        return None
    return parsed if isinstance(parsed, dict) else None


def _to_selection(slot_id: Any, delivery_date: Any, info: dict[str, Any] | None) -> DeliverySelection:
    try:
        parsed_slot_id = int(slot_id)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Delivery slot not found", details={"slot_id": slot_id}) from exc
    try:
        parsed_date = parse_iso_date(str(delivery_date))
    except ValueError as exc:
        raise ValidationError("Selected delivery date is not available", details={"date": delivery_date}) from exc
    return DeliverySelection(slot_id=parsed_slot_id, delivery_date=parsed_date, delivery_info=info)


def extract_delivery_selection(order: OrderWebhookPayload) -> DeliverySelection | None:
    """Find the customer's slot choice: metafield first, then note attributes, then the legacy format."""
    for metafield in order.metafields:
        if metafield.namespace == SELECTION_NAMESPACE and metafield.key == SELECTION_KEY:
            selection = _parse_json(metafield.value, "selection metafield")
            if selection and selection.get("slotId") and selection.get("deliveryDate"):
                return _to_selection(selection["slotId"], selection["deliveryDate"], selection.get("deliveryInfo"))

    slot_id = order.attribute("delivery_slot_id")
    delivery_date = order.attribute("delivery_date")
    if slot_id and delivery_date:
        info = _parse_json(order.attribute("delivery_info", "delivery_metadata"), "delivery_info attribute")
        return _to_selection(slot_id, delivery_date, info)

    legacy_info = _parse_json(order.attribute("delivery_info"), "legacy delivery_info attribute")
    if slot_id and legacy_info and legacy_info.get("date"):
        return _to_selection(slot_id, legacy_info["date"], legacy_info)

    return None


def _customer_name(first_name: str | None, last_name: str | None, fallback: str) -> str:
    full_name = f"{(first_name or '').strip()} {(last_name or '').strip()}".strip()
    return full_name or fallback


def _display_name(attribute_name: str) -> str:
    return attribute_name.replace("_", " ").title()


def build_order_notes(
    order: OrderWebhookPayload,
    *,
    delivery_date: date,
    time_slot: str,
    zone_name: str,
    slot_id: int,
    now: datetime,
) -> str:
    """Compose the merchant-facing order note for a booked delivery."""
    lines: list[str] = [
        "SCHEDULED DELIVERY CONFIRMED",
        NOTE_DIVIDER,
        f"Date: {format_long_date(delivery_date)}",
        f"Time: {time_slot}",
        f"Zone: {zone_name}",
        f"Slot ID: {slot_id}",
        "",
    ]

    if order.note_attributes:
        lines.extend(["ORDER DETAILS & CUSTOMER ATTRIBUTES", NOTE_DIVIDER])
    for attribute in order.note_attributes:
        value = attribute.value or ""
        if attribute.name == "delivery_info" and (info := _parse_json(value, "delivery_info attribute")):
            lines.append("Delivery Selection Details:")
            for label, key in (("Method", "method"), ("Title", "title"), ("Rate", "rate"),
                               ("Date", "date"), ("Time Slot", "timeSlot"), ("Zone", "zone")):
                lines.append(f"   - {label}: {info.get(key) or 'N/A'}")
        elif attribute.name == "delivery_zone" and (zone := _parse_json(value, "delivery_zone attribute")):
            lines.append("Delivery Zone Details:")
            lines.append(f"   - Name: {zone.get('name') or 'N/A'}")
            lines.append(f"   - Shipping Rate: {zone.get('shippingRate') or 'N/A'}")
            lines.append(f"   - Zone ID: {zone.get('id') or 'N/A'}")
        elif attribute.name == "custom_shipping_rate":
            lines.append(f"Custom Shipping Rate: ${value}")
        elif attribute.name == "delivery_date":
            lines.append(f"Requested Delivery Date: {value}")
        elif attribute.name == "delivery_slot_id":
            lines.append(f"Delivery Slot ID: {value}")
        else:
            lines.append(f"{_display_name(attribute.name)}: {value}")

    lines.extend([
        "",
        NOTE_DIVIDER,
        "Generated automatically by Delivery Scheduler",
        f"Updated: {now.strftime('%Y-%m-%d %H:%M UTC')}",
        "For delivery changes, contact customer service",
    ])
    return "\n".join(lines)


def build_order_tags(zone_name: str, delivery_date: date, custom_shipping_rate: str | None) -> list[str]:
    tags = ["scheduled_delivery", f"delivery_zone:{zone_name}", f"delivery_date:{delivery_date.isoformat()}"]
    if custom_shipping_rate:
        tags.append(f"custom_shipping_rate:{custom_shipping_rate}")
    return tags


def _parse_amount(value: str | None) -> Decimal:
    try:
        return Decimal(value or "0")
    except InvalidOperation:
        return Decimal("0.00")


class WebHookService:
    """Route Shopify webhook topics to order handlers."""

    def __init__(
        self,
        db: Session,
        *,
        email_service: EmailService | None = None,
        schedule: Schedule | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.db = db
        self.email_service = email_service or EmailService()
        self.schedule = schedule
        self.client_factory = client_factory or ShopifyAdminClient

    def _queue_email(self, send, params, description: str) -> None:
        if self.schedule is None:
            logger.info("[EMAIL] No scheduler available, dropping %s", description)
            return
        self.schedule(send_in_background, send, params, description)

    def process_webhook(self, topic: str, shop: str, payload: dict[str, Any]) -> WebhookResult:
        logger.info("[WEBHOOK] Processing %s for %s", topic, shop)
        if topic in ORDER_TOPICS:
            return self.handle_order_created(shop, OrderWebhookPayload.model_validate(payload))
        if topic in CANCEL_TOPICS:
            return self.handle_order_cancelled(shop, OrderWebhookPayload.model_validate(payload))
        if topic in UNINSTALL_TOPICS:
            shop_service.deactivate_shop(self.db, shop)
            return WebhookResult(success=True, message="Shop deactivated")

        logger.warning("[WEBHOOK] Unhandled topic %s", topic)
        return WebhookResult(success=True, message=f"Topic {topic} acknowledged but not processed")

    def _book_slot(self, shop: str, order: OrderWebhookPayload, selection: DeliverySelection) -> DeliverySlot:
        slot: DeliverySlot | None = (
            self.db.query(DeliverySlot)
            .options(joinedload(DeliverySlot.zone))
            .filter(DeliverySlot.id == selection.slot_id, DeliverySlot.shop_name == shop)
            .first()
        )
        if slot is None:
            raise NotFoundError("Delivery slot not found", details={"slot_id": selection.slot_id})
        if not slot.is_active:
            raise ValidationError("Selected delivery slot is no longer active")
        if not delivery_service.is_slot_available_for_date(self.db, slot.id, selection.delivery_date):
            raise ValidationError("Selected delivery slot is not available for the requested date")

        self.db.add(
            Order(
                shop_name=shop,
                shopify_order_id=str(order.id),
                customer_email=order.contact_email() or "",
                delivery_slot_id=slot.id,
                delivery_date=selection.delivery_date,
                total_amount=_parse_amount(order.total_price),
                shipping_address=order.shipping_address or {},
                status="CONFIRMED",
                delivery_notes=json.dumps({
                    "deliveryDate": selection.delivery_date.isoformat(),
                    "timeSlot": slot.time_range,
                    "zone": slot.zone.name,
                }),
            )
        )
        self.db.commit()
        return slot

    def handle_order_created(self, shop: str, order: OrderWebhookPayload) -> WebhookResult:
        order_id = str(order.id)
        try:
            selection = extract_delivery_selection(order)
        except ValidationError as exc:
            return self._booking_failed(order, exc.message)
        if selection is None:
            logger.info("[WEBHOOK] Order %s has no delivery slot", order_id)
            return WebhookResult(success=True, message="No delivery slot specified")

        if self.db.query(Order).filter(Order.shopify_order_id == order_id).first() is not None:
            logger.info("[WEBHOOK] Order %s already booked, skipping", order_id)
            return WebhookResult(success=True, message="Order already processed")

        try:
            slot = self._book_slot(shop, order, selection)
        except DeliverySchedulerError as exc:
            self.db.rollback()
            return self._booking_failed(order, exc.message)
        except IntegrityError:
            self.db.rollback()
            logger.info("[WEBHOOK] Order %s was booked concurrently", order_id)
            return WebhookResult(success=True, message="Order already processed")

        logger.info("[WEBHOOK] Order %s booked into slot %s on %s", order_id, slot.id, selection.delivery_date)
        self._update_shopify_order(shop, order, slot, selection)

        shipping_address = order.shipping_address or {}
        if order.contact_email():
            self._queue_email(
                self.email_service.send_delivery_confirmation,
                DeliveryConfirmationParams(
                    customer_email=order.contact_email(),
                    customer_name=_customer_name(
                        shipping_address.get("first_name"), shipping_address.get("last_name"), "Customer"
                    ),
                    order_id=order_id,
                    delivery_date=selection.delivery_date,
                    time_slot=slot.time_range,
                    shipping_address=shipping_address,
                ),
                f"confirmation for order {order_id}",
            )
        return WebhookResult(success=True, message="Order processed successfully")

    def _booking_failed(self, order: OrderWebhookPayload, reason: str) -> WebhookResult:
        logger.warning("[WEBHOOK] Could not book order %s: %s", order.id, reason)
        if order.contact_email():
            self._queue_email(
                self.email_service.send_delivery_booking_failure,
                DeliveryBookingFailureParams(customer_email=order.contact_email(), order_id=str(order.id), reason=reason),
                f"booking failure for order {order.id}",
            )
        # Business failures are acknowledged so Shopify does not retry them.
        return WebhookResult(success=True, message="Order processed", error=reason)

    def _update_shopify_order(
        self,
        shop: str,
        order: OrderWebhookPayload,
        slot: DeliverySlot,
        selection: DeliverySelection,
    ) -> None:
        stored_session = shop_service.get_offline_session(self.db, shop)
        if stored_session is None:
            logger.warning("[SHOPIFY] No offline session for %s; order %s not annotated", shop, order.id)
            return

        custom_rate = order.attribute("custom_shipping_rate")
        note = build_order_notes(
            order,
            delivery_date=selection.delivery_date,
            time_slot=slot.time_range,
            zone_name=slot.zone.name,
            slot_id=slot.id,
            now=utc_now(),
        )
        if custom_rate:
            note += f"\n\nShipping Update: Custom delivery fee of {custom_rate} applied via webhook."

        client = self.client_factory(shop, stored_session.access_token)
        try:
            client.update_order(order.id, note=note, tags=build_order_tags(slot.zone.name, selection.delivery_date, custom_rate))
        except ShopifyApiError as exc:
            logger.error(
                "[SHOPIFY] Failed to update order %s: %s (delivery %s %s)",
                order.id,
                exc.message,
                selection.delivery_date,
                slot.time_range,
            )

    def handle_order_cancelled(self, shop: str, order: OrderWebhookPayload) -> WebhookResult:
        order_id = str(order.id)
        db_order: Order | None = (
            self.db.query(Order)
            .options(joinedload(Order.delivery_slot).joinedload(DeliverySlot.zone))
            .filter(Order.shopify_order_id == order_id, Order.shop_name == shop)
            .first()
        )
        if db_order is None:
            return WebhookResult(success=True, message="Order not found in local database, no action needed")
        if db_order.status == "CANCELLED":
            return WebhookResult(success=True, message="Order cancellation processed successfully")

        set_status(db_order, "CANCELLED", utc_now())
        self.db.commit()
        logger.info("[WEBHOOK] Order %s cancelled, slot %s released", order_id, db_order.delivery_slot_id)

        info = _parse_json(order.attribute("delivery_info"), "delivery_info attribute") or {}
        zone_info = _parse_json(order.attribute("delivery_zone"), "delivery_zone attribute") or {}
        try:
            delivery_date = parse_iso_date(info["date"]) if info.get("date") else db_order.delivery_date
        except ValueError:
            delivery_date = db_order.delivery_date
        slot = db_order.delivery_slot

        recipient = order.contact_email() or db_order.customer_email
        if recipient:
            customer = order.customer
            self._queue_email(
                self.email_service.send_delivery_cancellation,
                DeliveryCancellationParams(
                    customer_email=recipient,
                    customer_name=_customer_name(
                        customer.first_name if customer else None,
                        customer.last_name if customer else None,
                        "Valued Customer",
                    ),
                    order_id=order_id,
                    order_number=order.name or f"#{order_id}",
                    delivery_date=delivery_date,
                    time_slot=info.get("timeSlot") or (slot.time_range if slot else "N/A"),
                    zone_name=zone_info.get("name") or info.get("zone") or (slot.zone.name if slot else "N/A"),
                    cancel_reason=order.cancel_reason,
                ),
                f"cancellation for order {order_id}",
            )
        return WebhookResult(success=True, message="Order cancellation processed successfully")
