"""Delivery slot admin API tests: overlap rules, toggling and deletion."""

from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from delivery_scheduler.api.deps import get_now
from delivery_scheduler.core.security import create_session_token
from delivery_scheduler.db import session as db_session
from delivery_scheduler.db.base import Base
from delivery_scheduler.main import app
from delivery_scheduler.models.delivery import DeliverySlot, DeliveryZone
from delivery_scheduler.models.order import Order
from delivery_scheduler.models.shop import Shop, ShopSettings

SHOP = "slots-shop.myshopify.com"
OTHER_SHOP = "slots-other.myshopify.com"


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def _setup_db(tmp_path: Path, monkeypatch) -> tuple[sessionmaker, int]:
    engine = _build_test_engine(tmp_path / "slots.db")
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)

    with testing_session_local() as db:
        db.add(Shop(name=SHOP, shopify_id="2001"))
        db.add(Shop(name=OTHER_SHOP, shopify_id="2002"))
        zone = DeliveryZone(shop_name=SHOP, name="US", shipping_rate=Decimal("9.99"))
        db.add(zone)
        db.commit()
        zone_id = zone.id
    return testing_session_local, zone_id


def _auth() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_session_token(SHOP)}"}


def _slot(zone_id: int, start: str, end: str, capacity: int = 5) -> dict[str, object]:
    return {"start_time": start, "end_time": end, "capacity": capacity, "zone_id": zone_id}


def _add_order(session_local: sessionmaker, slot_id: int, status: str, order_id: str, on: date | None = None) -> None:
    with session_local() as db:
        db.add(
            Order(
                shop_name=SHOP,
                shopify_order_id=order_id,
                customer_email="buyer@example.com",
                delivery_slot_id=slot_id,
                delivery_date=on or date.today(),
                status=status,
                total_amount=Decimal("25.00"),
                shipping_address={},
            )
        )
        db.commit()


def test_overlapping_slot_rejected_and_adjacent_slot_accepted(tmp_path: Path, monkeypatch) -> None:
    _, zone_id = _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        first = client.post("/api/v1/slots", json=_slot(zone_id, "09:00", "12:00"), headers=_auth())
        assert first.status_code == 201
        body = first.json()
        assert body["start_time"] == "09:00"
        assert body["end_time"] == "12:00"
        assert body["zone_name"] == "US"
        assert body["current_bookings"] == 0
        assert body["available_capacity"] == 5

        overlapping = client.post("/api/v1/slots", json=_slot(zone_id, "11:00", "13:00"), headers=_auth())
        assert overlapping.status_code == 400
        assert overlapping.json()["detail"] == "Time slot overlaps with existing slot"

        adjacent = client.post("/api/v1/slots", json=_slot(zone_id, "12:00", "14:00"), headers=_auth())
        assert adjacent.status_code == 201

        listed = client.get("/api/v1/slots", headers=_auth()).json()
        assert [(item["start_time"], item["end_time"]) for item in listed] == [("09:00", "12:00"), ("12:00", "14:00")]


def test_slot_validation_errors(tmp_path: Path, monkeypatch) -> None:
    session_local, zone_id = _setup_db(tmp_path, monkeypatch)
    with session_local() as db:
        foreign_zone = DeliveryZone(shop_name=OTHER_SHOP, name="US", shipping_rate=Decimal("1.00"))
        db.add(foreign_zone)
        db.commit()
        foreign_zone_id = foreign_zone.id

    with TestClient(app) as client:
        backwards = client.post("/api/v1/slots", json=_slot(zone_id, "12:00", "09:00"), headers=_auth())
        assert backwards.status_code == 400
        assert backwards.json()["detail"] == "End time must be after start time"

        empty = client.post("/api/v1/slots", json=_slot(zone_id, "09:00", "10:00", capacity=0), headers=_auth())
        assert empty.status_code == 400
        assert empty.json()["detail"] == "Capacity must be greater than 0"

        foreign = client.post("/api/v1/slots", json=_slot(foreign_zone_id, "09:00", "10:00"), headers=_auth())
        assert foreign.status_code == 400
        assert foreign.json()["detail"] == "Invalid delivery zone for this shop"


def test_update_slot_rechecks_overlap(tmp_path: Path, monkeypatch) -> None:
    _, zone_id = _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        client.post("/api/v1/slots", json=_slot(zone_id, "09:00", "12:00"), headers=_auth())
        second = client.post("/api/v1/slots", json=_slot(zone_id, "12:00", "14:00"), headers=_auth()).json()

        widened = client.put(f"/api/v1/slots/{second['id']}", json=_slot(zone_id, "11:00", "14:00"), headers=_auth())
        assert widened.status_code == 400

        resized = client.put(
            f"/api/v1/slots/{second['id']}",
            json=_slot(zone_id, "12:00", "14:00", capacity=8),
            headers=_auth(),
        )
        assert resized.status_code == 200
        assert resized.json()["capacity"] == 8

        missing = client.put("/api/v1/slots/9999", json=_slot(zone_id, "15:00", "16:00"), headers=_auth())
        assert missing.status_code == 404
        assert missing.json()["detail"] == "Slot not found"


def test_reactivating_slot_rechecks_overlap(tmp_path: Path, monkeypatch) -> None:
    _, zone_id = _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        morning = client.post("/api/v1/slots", json=_slot(zone_id, "09:00", "12:00"), headers=_auth()).json()

        paused = client.post(f"/api/v1/slots/{morning['id']}/toggle", headers=_auth())
        assert paused.status_code == 200
        assert paused.json()["is_active"] is False

        replacement = client.post("/api/v1/slots", json=_slot(zone_id, "10:00", "11:00"), headers=_auth())
        assert replacement.status_code == 201

        resumed = client.post(f"/api/v1/slots/{morning['id']}/toggle", headers=_auth())
        assert resumed.status_code == 400

        active_only = client.get("/api/v1/slots", headers=_auth()).json()
        everything = client.get("/api/v1/slots", params={"include_inactive": True}, headers=_auth()).json()
        assert len(active_only) == 1
        assert len(everything) == 2


def test_slot_listing_reports_bookings_for_day(tmp_path: Path, monkeypatch) -> None:
    session_local, zone_id = _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        slot = client.post("/api/v1/slots", json=_slot(zone_id, "09:00", "12:00", capacity=3), headers=_auth()).json()
        _add_order(session_local, slot["id"], "CONFIRMED", "3001")
        _add_order(session_local, slot["id"], "CANCELLED", "3002")

        today = client.get("/api/v1/slots", params={"on": date.today().isoformat()}, headers=_auth()).json()
        assert today[0]["current_bookings"] == 1
        assert today[0]["available_capacity"] == 2

        other_day = client.get("/api/v1/slots", params={"on": "2000-01-01"}, headers=_auth()).json()
        assert other_day[0]["current_bookings"] == 0


def test_slot_with_active_orders_cannot_be_deleted(tmp_path: Path, monkeypatch) -> None:
    session_local, zone_id = _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        slot = client.post("/api/v1/slots", json=_slot(zone_id, "09:00", "12:00"), headers=_auth()).json()
        _add_order(session_local, slot["id"], "CONFIRMED", "4001")

        blocked = client.delete(f"/api/v1/slots/{slot['id']}", headers=_auth())
        assert blocked.status_code == 400
        assert blocked.json()["detail"].startswith("Cannot delete slot with 1 active orders")

        with session_local() as db:
            order = db.query(Order).filter(Order.shopify_order_id == "4001").one()
            order.status = "CANCELLED"
            db.commit()

        retired = client.delete(f"/api/v1/slots/{slot['id']}", headers=_auth())
        assert retired.status_code == 204

    with session_local() as db:
        kept = db.get(DeliverySlot, slot["id"])
        assert kept is not None
        assert kept.is_active is False


def test_unused_slot_is_deleted(tmp_path: Path, monkeypatch) -> None:
    session_local, zone_id = _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        slot = client.post("/api/v1/slots", json=_slot(zone_id, "09:00", "12:00"), headers=_auth()).json()
        response = client.delete(f"/api/v1/slots/{slot['id']}", headers=_auth())
        assert response.status_code == 204

    with session_local() as db:
        assert db.get(DeliverySlot, slot["id"]) is None


def test_slot_listing_and_dashboard_use_shop_local_day(tmp_path: Path, monkeypatch) -> None:
    session_local, zone_id = _setup_db(tmp_path, monkeypatch)
    # 12:00 UTC on Oct 18 is already 02:00 on Oct 19 at UTC+14.
    monkeypatch.setitem(app.dependency_overrides, get_now, lambda: datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc))
    with session_local() as db:
        db.add(ShopSettings(shop_name=SHOP, timezone="Etc/GMT-14"))
        db.commit()

    with TestClient(app) as client:
        slot = client.post("/api/v1/slots", json=_slot(zone_id, "09:00", "12:00", capacity=3), headers=_auth()).json()
        _add_order(session_local, slot["id"], "CONFIRMED", "3101", on=date(2026, 10, 19))

        listed = client.get("/api/v1/slots", headers=_auth()).json()
        dashboard = client.get("/api/v1/dashboard", headers=_auth()).json()
        toggled = client.post(f"/api/v1/slots/{slot['id']}/toggle", headers=_auth()).json()

    assert listed[0]["current_bookings"] == 1
    assert toggled["current_bookings"] == 1
    assert dashboard["today_slots"][0]["current_bookings"] == 1
