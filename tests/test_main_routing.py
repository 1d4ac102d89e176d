"""Application wiring tests: startup, health check and CORS."""

from pathlib import Path

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from delivery_scheduler.core.config import settings
from delivery_scheduler.db import session as db_session
from delivery_scheduler.main import app


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def _patch_db(tmp_path: Path, monkeypatch) -> Engine:
    engine = _build_test_engine(tmp_path / "routing.db")
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=engine))
    return engine


def test_startup_creates_tables_and_health_responds(tmp_path: Path, monkeypatch) -> None:
    engine = _patch_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert {"shops", "shop_settings", "delivery_zones", "delivery_slots", "blackout_dates", "orders", "shopify_sessions"} <= set(
        inspect(engine).get_table_names()
    )


def test_storefront_allows_checkout_extension_origin(tmp_path: Path, monkeypatch) -> None:
    _patch_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        preflight = client.options(
            "/apps/delivery-scheduler/zones",
            headers={
                "Origin": settings.storefront_allowed_origin,
                "Access-Control-Request-Method": "GET",
            },
        )

    assert preflight.status_code == 200
    assert preflight.headers["access-control-allow-origin"] == settings.storefront_allowed_origin
