"""Shopify webhook receiver."""

import json
import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from delivery_scheduler.api.deps import get_email_service, get_shopify_client_factory
from delivery_scheduler.core.security import verify_webhook_hmac
from delivery_scheduler.db.session import get_db
from delivery_scheduler.services import shop_service
from delivery_scheduler.services.email_service import EmailService
from delivery_scheduler.services.webhook_service import ClientFactory, WebHookService

logger = logging.getLogger(__name__)

router: APIRouter = APIRouter()


async def get_raw_body(request: Request) -> bytes:
    return await request.body()


@router.get("", response_class=PlainTextResponse)
def webhook_status() -> str:
    return "Webhook endpoint is active"


@router.post("", response_class=PlainTextResponse)
def receive_webhook(
    background_tasks: BackgroundTasks,
    body: bytes = Depends(get_raw_body),
    x_shopify_topic: str = Header(default=""),
    x_shopify_shop_domain: str = Header(default=""),
    x_shopify_hmac_sha256: str | None = Header(default=None),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
    client_factory: ClientFactory = Depends(get_shopify_client_factory),
) -> PlainTextResponse:
    """Verify, then route one webhook delivery to its handler."""
    if not verify_webhook_hmac(body, x_shopify_hmac_sha256):
        logger.warning("[WEBHOOK] Rejected %s for %s: bad HMAC", x_shopify_topic, x_shopify_shop_domain)
        return PlainTextResponse("Unauthorized", status_code=status.HTTP_401_UNAUTHORIZED)

    logger.info("[WEBHOOK] Received %s for %s", x_shopify_topic, x_shopify_shop_domain)
    if shop_service.get_offline_session(db, x_shopify_shop_domain) is None:
        return PlainTextResponse("Unauthorized", status_code=status.HTTP_401_UNAUTHORIZED)

    try:
        payload: dict[str, Any] = json.loads(body or b"{}")
    except json.JSONDecodeError:
        return PlainTextResponse("Invalid payload", status_code=status.HTTP_400_BAD_REQUEST)

    service = WebHookService(
        db,
        email_service=email_service,
        schedule=background_tasks.add_task,
        client_factory=client_factory,
    )
    try:
        result = service.process_webhook(x_shopify_topic, x_shopify_shop_domain, payload)
    except Exception:
        db.rollback()
        logger.exception("[WEBHOOK] Processing %s for %s failed", x_shopify_topic, x_shopify_shop_domain)
        return PlainTextResponse("Failed to process webhook", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if not result.success:
        logger.error("[WEBHOOK] Processing failed: %s", result.error)
        return PlainTextResponse("Failed to process webhook", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    if result.error:
        logger.info("[WEBHOOK] %s acknowledged with error: %s", x_shopify_topic, result.error)
    return PlainTextResponse("Webhook processed successfully", status_code=status.HTTP_200_OK)
