"""Shopify webhook receiver tests."""

import base64
import hashlib
import hmac
import json
from datetime import date, time
from decimal import Decimal
from pathlib import Path
from typing import Any

import httpx
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from delivery_scheduler.api.deps import get_email_service, get_shopify_client_factory
from delivery_scheduler.core.config import settings
from delivery_scheduler.core.exceptions import ShopifyApiError
from delivery_scheduler.db import session as db_session
from delivery_scheduler.db.base import Base
from delivery_scheduler.main import app
from delivery_scheduler.models.delivery import DeliverySlot, DeliveryZone
from delivery_scheduler.models.order import Order
from delivery_scheduler.models.shop import Shop
from delivery_scheduler.models.shopify_session import ShopifySession
from delivery_scheduler.services import delivery_service, shop_service
from delivery_scheduler.services.email_service import EmailService, RenderedEmail
from delivery_scheduler.services.shopify_client import ShopifyAdminClient
from delivery_scheduler.services.webhook_service import WebHookService

SHOP = "webhooks.myshopify.com"
DELIVERY_DAY = "2026-10-20"


class RecordingEmailService(EmailService):
    def __init__(self) -> None:
        super().__init__()
        self.sent: list[RenderedEmail] = []

    async def send(self, email: RenderedEmail) -> bool:
        self.sent.append(email)
        return True


class FakeShopifyClient:
    def __init__(self, calls: list[dict[str, Any]]) -> None:
        self.calls = calls

    def update_order(self, order_id, *, note=None, tags=None) -> dict[str, Any]:
        self.calls.append({"order_id": order_id, "note": note, "tags": tags})
        return {}


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def _setup(tmp_path: Path, monkeypatch, capacity: int = 2):
    engine = _build_test_engine(tmp_path / "webhooks.db")
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)

    email_service = RecordingEmailService()
    shopify_calls: list[dict[str, Any]] = []
    monkeypatch.setitem(app.dependency_overrides, get_email_service, lambda: email_service)
    monkeypatch.setitem(
        app.dependency_overrides,
        get_shopify_client_factory,
        lambda: (lambda shop, token: FakeShopifyClient(shopify_calls)),
    )

    with testing_session_local() as db:
        db.add(Shop(name=SHOP, shopify_id="5001"))
        zone = DeliveryZone(shop_name=SHOP, name="US", shipping_rate=Decimal("9.99"))
        db.add(zone)
        db.flush()
        slot = DeliverySlot(shop_name=SHOP, zone_id=zone.id, start_time=time(9, 0), end_time=time(12, 0), capacity=capacity)
        db.add(slot)
        db.commit()
        slot_id = slot.id
        shop_service.store_offline_session(db, SHOP, "shpat_test", "read_orders,write_orders")

    return testing_session_local, slot_id, email_service, shopify_calls


def _order_payload(slot_id: int, order_id: int = 7001, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": order_id,
        "name": "#1001",
        "email": "ada@example.com",
        "total_price": "42.50",
        "shipping_address": {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "address1": "1 Main St",
            "city": "Springfield",
            "province": "IL",
            "zip": "62701",
            "country": "US",
        },
        "note_attributes": [
            {"name": "delivery_slot_id", "value": str(slot_id)},
            {"name": "delivery_date", "value": DELIVERY_DAY},
            {"name": "custom_shipping_rate", "value": "12.00"},
        ],
    }
    payload.update(overrides)
    return payload


def _post(client: TestClient, topic: str, payload: Any, *, secret: str | None = None, shop: str = SHOP):
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
    digest = hmac.new((secret or settings.shopify_api_secret).encode("utf-8"), body, hashlib.sha256).digest()
    return client.post(
        "/webhooks",
        content=body,
        headers={
            "Content-Type": "application/json",
            "X-Shopify-Topic": topic,
            "X-Shopify-Shop-Domain": shop,
            "X-Shopify-Hmac-Sha256": base64.b64encode(digest).decode("utf-8"),
        },
    )


def test_webhook_status_endpoint(tmp_path: Path, monkeypatch) -> None:
    _setup(tmp_path, monkeypatch)

    with TestClient(app) as client:
        response = client.get("/webhooks")

    assert response.status_code == 200
    assert response.text == "Webhook endpoint is active"


def test_bad_hmac_is_rejected(tmp_path: Path, monkeypatch) -> None:
    session_local, slot_id, _, _ = _setup(tmp_path, monkeypatch)

    with TestClient(app) as client:
        response = _post(client, "orders/create", _order_payload(slot_id), secret="not-the-secret")

    assert response.status_code == 401
    assert response.text == "Unauthorized"
    with session_local() as db:
        assert db.query(Order).count() == 0


def test_shop_without_session_is_rejected(tmp_path: Path, monkeypatch) -> None:
    _, slot_id, _, _ = _setup(tmp_path, monkeypatch)

    with TestClient(app) as client:
        response = _post(client, "orders/create", _order_payload(slot_id), shop="stranger.myshopify.com")

    assert response.status_code == 401


def test_invalid_json_is_a_bad_request(tmp_path: Path, monkeypatch) -> None:
    _setup(tmp_path, monkeypatch)

    with TestClient(app) as client:
        response = _post(client, "orders/create", b"{not json")

    assert response.status_code == 400


def test_order_create_books_slot_once(tmp_path: Path, monkeypatch) -> None:
    session_local, slot_id, email_service, shopify_calls = _setup(tmp_path, monkeypatch)

    with TestClient(app) as client:
        first = _post(client, "orders/create", _order_payload(slot_id))
        assert first.status_code == 200
        assert first.text == "Webhook processed successfully"

        replay = _post(client, "ORDERS_CREATE", _order_payload(slot_id))
        assert replay.status_code == 200

    with session_local() as db:
        orders = db.query(Order).all()
        assert len(orders) == 1
        assert orders[0].shopify_order_id == "7001"
        assert orders[0].status == "CONFIRMED"
        assert orders[0].delivery_date == date(2026, 10, 20)
        assert orders[0].total_amount == Decimal("42.50")
        assert orders[0].customer_email == "ada@example.com"
        assert json.loads(orders[0].delivery_notes)["timeSlot"] == "09:00 - 12:00"

    assert len(shopify_calls) == 1
    assert shopify_calls[0]["order_id"] == 7001
    assert shopify_calls[0]["tags"] == [
        "scheduled_delivery",
        "delivery_zone:US",
        "delivery_date:2026-10-20",
        "custom_shipping_rate:12.00",
    ]
    assert "SCHEDULED DELIVERY CONFIRMED" in shopify_calls[0]["note"]
    assert "Custom delivery fee of 12.00" in shopify_calls[0]["note"]

    assert [email.subject for email in email_service.sent] == ["Delivery Scheduled for Order #7001"]
    assert email_service.sent[0].to == "ada@example.com"
    assert "Hi Ada Lovelace" in email_service.sent[0].text


def test_full_slot_is_acknowledged_and_customer_notified(tmp_path: Path, monkeypatch) -> None:
    session_local, slot_id, email_service, shopify_calls = _setup(tmp_path, monkeypatch, capacity=1)

    with TestClient(app) as client:
        assert _post(client, "orders/create", _order_payload(slot_id, order_id=7001)).status_code == 200
        rejected = _post(client, "orders/create", _order_payload(slot_id, order_id=7002, email="late@example.com"))

    assert rejected.status_code == 200
    with session_local() as db:
        assert [order.shopify_order_id for order in db.query(Order).all()] == ["7001"]
    assert len(shopify_calls) == 1
    assert email_service.sent[-1].subject == "Delivery Booking Issue - Order #7002"
    assert email_service.sent[-1].to == "late@example.com"
    assert "not available for the requested date" in email_service.sent[-1].text


def test_unknown_slot_is_acknowledged(tmp_path: Path, monkeypatch) -> None:
    session_local, slot_id, email_service, _ = _setup(tmp_path, monkeypatch)

    with TestClient(app) as client:
        response = _post(client, "orders/create", _order_payload(slot_id + 100))

    assert response.status_code == 200
    assert email_service.sent[0].subject == "Delivery Booking Issue - Order #7001"
    with session_local() as db:
        assert db.query(Order).count() == 0


def test_order_without_delivery_selection_is_ignored(tmp_path: Path, monkeypatch) -> None:
    session_local, slot_id, email_service, shopify_calls = _setup(tmp_path, monkeypatch)

    with TestClient(app) as client:
        response = _post(client, "orders/create", _order_payload(slot_id, note_attributes=[]))

    assert response.status_code == 200
    assert email_service.sent == []
    assert shopify_calls == []
    with session_local() as db:
        assert db.query(Order).count() == 0


def test_order_cancel_frees_capacity(tmp_path: Path, monkeypatch) -> None:
    session_local, slot_id, email_service, _ = _setup(tmp_path, monkeypatch, capacity=1)

    with TestClient(app) as client:
        assert _post(client, "orders/create", _order_payload(slot_id)).status_code == 200
        with session_local() as db:
            assert delivery_service.is_slot_available_for_date(db, slot_id, date(2026, 10, 20)) is False

        cancelled = _post(
            client,
            "orders/cancelled",
            {
                "id": 7001,
                "name": "#1001",
                "email": "ada@example.com",
                "cancel_reason": "customer",
                "customer": {"first_name": "Ada", "last_name": "Lovelace"},
            },
        )
        assert cancelled.status_code == 200

    with session_local() as db:
        assert db.query(Order).one().status == "CANCELLED"
        assert delivery_service.is_slot_available_for_date(db, slot_id, date(2026, 10, 20)) is True

    cancellation = email_service.sent[-1]
    assert cancellation.subject == "Delivery Cancelled - Order #7001"
    assert "Tuesday, October 20, 2026" in cancellation.text
    assert "09:00 - 12:00" in cancellation.text
    assert "Requested by customer" in cancellation.text


def test_cancel_for_unknown_order_is_a_no_op(tmp_path: Path, monkeypatch) -> None:
    _, _, email_service, _ = _setup(tmp_path, monkeypatch)

    with TestClient(app) as client:
        response = _post(client, "orders/cancelled", {"id": 99999, "email": "x@example.com"})

    assert response.status_code == 200
    assert email_service.sent == []


def test_app_uninstalled_deactivates_shop(tmp_path: Path, monkeypatch) -> None:
    session_local, _, _, _ = _setup(tmp_path, monkeypatch)

    with TestClient(app) as client:
        response = _post(client, "app/uninstalled", {"id": 5001, "myshopify_domain": SHOP})

    assert response.status_code == 200
    with session_local() as db:
        shop = db.query(Shop).filter(Shop.name == SHOP).one()
        assert shop.status is False
        assert shop.deleted_at is not None
        assert db.query(ShopifySession).count() == 0


def test_processing_error_returns_500(tmp_path: Path, monkeypatch) -> None:
    _, slot_id, _, _ = _setup(tmp_path, monkeypatch)

    def _boom(self, topic, shop, payload):
        raise RuntimeError("unexpected")

    monkeypatch.setattr(WebHookService, "process_webhook", _boom)
    with TestClient(app) as client:
        response = _post(client, "orders/create", _order_payload(slot_id))

    assert response.status_code == 500
    assert response.text == "Failed to process webhook"


class FailingShopifyClient:
    def update_order(self, order_id, *, note=None, tags=None) -> dict[str, Any]:
        raise ShopifyApiError("Order is archived", details={"user_errors": [{"message": "Order is archived"}]})


def _assert_booked_once_with_confirmation(session_local, email_service) -> None:
    with session_local() as db:
        orders = db.query(Order).all()
        assert len(orders) == 1
        assert orders[0].status == "CONFIRMED"
    assert [email.subject for email in email_service.sent] == ["Delivery Scheduled for Order #7001"]


def test_failed_order_update_is_not_fatal(tmp_path: Path, monkeypatch) -> None:
    session_local, slot_id, email_service, _ = _setup(tmp_path, monkeypatch)
    monkeypatch.setitem(
        app.dependency_overrides,
        get_shopify_client_factory,
        lambda: (lambda shop, token: FailingShopifyClient()),
    )

    with TestClient(app) as client:
        response = _post(client, "orders/create", _order_payload(slot_id))

    assert response.status_code == 200
    assert response.text == "Webhook processed successfully"
    _assert_booked_once_with_confirmation(session_local, email_service)


def test_non_json_shopify_response_still_confirms_booking(tmp_path: Path, monkeypatch) -> None:
    session_local, slot_id, email_service, _ = _setup(tmp_path, monkeypatch)
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
    monkeypatch.setitem(
        app.dependency_overrides,
        get_shopify_client_factory,
        lambda: (lambda shop, token: ShopifyAdminClient(shop, token, transport=transport)),
    )

    with TestClient(app) as client:
        first = _post(client, "orders/create", _order_payload(slot_id))
        retry = _post(client, "orders/create", _order_payload(slot_id))

    assert first.status_code == 200
    assert first.text == "Webhook processed successfully"
    assert retry.status_code == 200
    _assert_booked_once_with_confirmation(session_local, email_service)
