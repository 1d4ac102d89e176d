"""Transactional delivery emails rendered from Jinja2 templates and sent over SMTP."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, field
from datetime import date
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any

import aiosmtplib
from jinja2 import Environment, FileSystemLoader, select_autoescape

from delivery_scheduler.core.config import Settings, settings
from delivery_scheduler.core.exceptions import EmailDeliveryError
from delivery_scheduler.utils.time import format_long_date

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "emails"

CANCEL_REASONS: dict[str, str] = {
    "customer": "Requested by customer",
    "inventory": "Out of stock",
    "fraud": "Fraud detection",
    "declined": "Payment declined",
    "other": "Other reason",
}


def format_cancel_reason(reason: str | None) -> str:
    if not reason:
        return ""
    return CANCEL_REASONS.get(reason, reason[:1].upper() + reason[1:])


@dataclass
class DeliveryConfirmationParams:
    customer_email: str
    customer_name: str
    order_id: str
    delivery_date: date
    time_slot: str
    shipping_address: dict[str, Any] = field(default_factory=dict)


@dataclass
class DeliveryBookingFailureParams:
    customer_email: str
    order_id: str
    reason: str


@dataclass
class DeliveryCancellationParams:
    customer_email: str
    customer_name: str
    order_id: str
    order_number: str
    delivery_date: date
    time_slot: str
    zone_name: str
    cancel_reason: str | None = None
    refund_amount: str | None = None
    currency: str | None = None


@dataclass
class RenderedEmail:
    to: str
    subject: str
    html: str
    text: str


class EmailService:
    """Render and send delivery notifications."""

    def __init__(self, config: Settings | None = None, templates_dir: Path = TEMPLATES_DIR):
        self.config = config or settings
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    @property
    def enabled(self) -> bool:
        return self.config.email_enabled and bool(self.config.email_host)

    def _render(self, name: str, context: dict[str, Any]) -> tuple[str, str]:
        html = self.env.get_template(f"{name}.html").render(**context)
        text = self.env.get_template(f"{name}.txt").render(**context).strip()
        return html, text

    def render_confirmation(self, params: DeliveryConfirmationParams) -> RenderedEmail:
        context = asdict(params) | {"formatted_date": format_long_date(params.delivery_date)}
        html, text = self._render("delivery_confirmation", context)
        return RenderedEmail(
            to=params.customer_email,
            subject=f"Delivery Scheduled for Order #{params.order_id}",
            html=html,
            text=text,
        )

    def render_booking_failure(self, params: DeliveryBookingFailureParams) -> RenderedEmail:
        html, text = self._render("booking_failure", asdict(params))
        return RenderedEmail(
            to=params.customer_email,
            subject=f"Delivery Booking Issue - Order #{params.order_id}",
            html=html,
            text=text,
        )

    def render_cancellation(self, params: DeliveryCancellationParams) -> RenderedEmail:
        context = asdict(params) | {
            "formatted_date": format_long_date(params.delivery_date),
            "formatted_reason": format_cancel_reason(params.cancel_reason),
        }
        html, text = self._render("delivery_cancellation", context)
        return RenderedEmail(
            to=params.customer_email,
            subject=f"Delivery Cancelled - Order #{params.order_id}",
            html=html,
            text=text,
        )

    def _build_message(self, email: RenderedEmail) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["Subject"] = email.subject
        message["From"] = self.config.from_email
        message["To"] = email.to
        message.attach(MIMEText(email.text, "plain"))
        message.attach(MIMEText(email.html, "html"))
        return message

    async def send(self, email: RenderedEmail) -> bool:
        """Send a rendered email; returns False when SMTP is not configured."""
        if not self.enabled:
            logger.info("[EMAIL] SMTP disabled, skipping '%s' to %s", email.subject, email.to)
            return False
        try:
            await aiosmtplib.send(
                self._build_message(email),
                hostname=self.config.email_host,
                port=self.config.email_port,
                username=self.config.email_user or None,
                password=self.config.email_pass or None,
                start_tls=self.config.email_port == 587,
                timeout=10.0,
            )
        except aiosmtplib.SMTPException as exc:
            raise EmailDeliveryError(f"SMTP error sending to {email.to}: {exc}") from exc
        except TimeoutError as exc:
            raise EmailDeliveryError(f"Timeout sending to {email.to}") from exc
        logger.info("[EMAIL] Sent '%s' to %s", email.subject, email.to)
        return True

    async def send_delivery_confirmation(self, params: DeliveryConfirmationParams) -> bool:
        return await self.send(self.render_confirmation(params))

    async def send_delivery_booking_failure(self, params: DeliveryBookingFailureParams) -> bool:
        return await self.send(self.render_booking_failure(params))

    async def send_delivery_cancellation(self, params: DeliveryCancellationParams) -> bool:
        return await self.send(self.render_cancellation(params))


async def send_in_background(send: Callable[[Any], Awaitable[bool]], params: Any, description: str) -> None:
    """Await one send and log its failure instead of raising."""
    try:
        await send(params)
    except EmailDeliveryError as exc:
        logger.error("[EMAIL] Failed to send %s: %s", description, exc.message)
