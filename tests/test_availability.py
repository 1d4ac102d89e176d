"""Availability rules: capacity, blackout dates and bookable date windows."""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from delivery_scheduler.db.base import Base
from delivery_scheduler.models.delivery import BlackoutDate, DeliverySlot, DeliveryZone
from delivery_scheduler.models.order import Order
from delivery_scheduler.models.shop import Shop, ShopSettings
from delivery_scheduler.services import delivery_service, zone_service

SHOP = "availability.myshopify.com"
DELIVERY_DAY = date(2026, 10, 20)


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def _seed(tmp_path: Path) -> tuple[Session, int, int, int]:
    """Return a session plus the US zone, its slot and a second CA zone."""
    engine = _build_test_engine(tmp_path / "availability.db")
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    db.add(Shop(name=SHOP, shopify_id="3001"))
    us_zone = DeliveryZone(shop_name=SHOP, name="US", shipping_rate=Decimal("9.99"))
    ca_zone = DeliveryZone(shop_name=SHOP, name="CA", shipping_rate=Decimal("14.99"))
    db.add_all([us_zone, ca_zone])
    db.flush()
    slot = DeliverySlot(shop_name=SHOP, zone_id=us_zone.id, start_time=time(9, 0), end_time=time(12, 0), capacity=1)
    db.add(slot)
    db.add(DeliverySlot(shop_name=SHOP, zone_id=ca_zone.id, start_time=time(9, 0), end_time=time(12, 0), capacity=1))
    db.commit()
    return db, us_zone.id, slot.id, ca_zone.id


def _book(db: Session, slot_id: int, on: date, status: str, order_id: str) -> None:
    db.add(
        Order(
            shop_name=SHOP,
            shopify_order_id=order_id,
            customer_email="buyer@example.com",
            delivery_slot_id=slot_id,
            delivery_date=on,
            status=status,
            total_amount=Decimal("10.00"),
            shipping_address={},
        )
    )
    db.commit()


def _shop_settings(**overrides) -> ShopSettings:
    values = {
        "shop_name": SHOP,
        "cutoff_time": time(14, 0),
        "max_days_in_advance": 3,
        "enable_same_day_delivery": True,
        "timezone": "UTC",
    }
    values.update(overrides)
    return ShopSettings(**values)


def test_fully_booked_slot_is_not_offered(tmp_path: Path) -> None:
    db, zone_id, slot_id, _ = _seed(tmp_path)
    try:
        assert [item.slot.id for item in delivery_service.get_available_slots(db, SHOP, DELIVERY_DAY, zone_id)] == [slot_id]

        _book(db, slot_id, DELIVERY_DAY, "CONFIRMED", "5001")

        assert delivery_service.get_available_slots(db, SHOP, DELIVERY_DAY, zone_id) == []
        assert delivery_service.is_slot_available_for_date(db, slot_id, DELIVERY_DAY) is False
        assert delivery_service.is_slot_available_for_date(db, slot_id, date(2026, 10, 21)) is True
    finally:
        db.close()


def test_cancelled_orders_do_not_use_capacity(tmp_path: Path) -> None:
    db, zone_id, slot_id, _ = _seed(tmp_path)
    try:
        _book(db, slot_id, DELIVERY_DAY, "CANCELLED", "5002")

        assert delivery_service.get_slot_bookings_for_date(db, slot_id, DELIVERY_DAY) == 0
        available = delivery_service.get_available_slots(db, SHOP, DELIVERY_DAY, zone_id)
        assert available[0].current_bookings == 0
        assert available[0].available_capacity == 1
    finally:
        db.close()


def test_inactive_or_unknown_slot_is_unavailable(tmp_path: Path) -> None:
    db, _, slot_id, _ = _seed(tmp_path)
    try:
        slot = db.get(DeliverySlot, slot_id)
        slot.is_active = False
        db.commit()

        assert delivery_service.is_slot_available_for_date(db, slot_id, DELIVERY_DAY) is False
        assert delivery_service.is_slot_available_for_date(db, 9999, DELIVERY_DAY) is False
    finally:
        db.close()


def test_zone_blackout_only_affects_its_zone(tmp_path: Path) -> None:
    db, us_zone_id, _, ca_zone_id = _seed(tmp_path)
    try:
        db.add(BlackoutDate(shop_name=SHOP, blackout_date=DELIVERY_DAY, zone_id=us_zone_id))
        db.commit()

        assert delivery_service.get_available_slots(db, SHOP, DELIVERY_DAY, us_zone_id) == []
        assert len(delivery_service.get_available_slots(db, SHOP, DELIVERY_DAY, ca_zone_id)) == 1
        assert delivery_service.is_date_blacked_out(db, SHOP, DELIVERY_DAY, us_zone_id) is True
        assert delivery_service.is_date_blacked_out(db, SHOP, DELIVERY_DAY) is False
    finally:
        db.close()


def test_shop_wide_blackout_affects_every_zone(tmp_path: Path) -> None:
    db, us_zone_id, _, ca_zone_id = _seed(tmp_path)
    try:
        db.add(BlackoutDate(shop_name=SHOP, blackout_date=DELIVERY_DAY, zone_id=None))
        db.commit()

        assert delivery_service.get_available_slots(db, SHOP, DELIVERY_DAY, us_zone_id) == []
        assert delivery_service.get_available_slots(db, SHOP, DELIVERY_DAY, ca_zone_id) == []
        assert delivery_service.is_date_blacked_out(db, SHOP, DELIVERY_DAY) is True
    finally:
        db.close()


def test_recurring_blackout_matches_every_year(tmp_path: Path) -> None:
    db, zone_id, _, _ = _seed(tmp_path)
    try:
        db.add(BlackoutDate(shop_name=SHOP, blackout_date=date(2020, 1, 1), is_recurring=True))
        db.add(BlackoutDate(shop_name=SHOP, blackout_date=date(2021, 12, 25), is_recurring=True))
        db.commit()

        assert delivery_service.is_date_blacked_out(db, SHOP, date(2027, 1, 1), zone_id) is True
        assert delivery_service.is_date_blacked_out(db, SHOP, date(2026, 12, 25), zone_id) is True
        assert delivery_service.is_date_blacked_out(db, SHOP, date(2026, 12, 26), zone_id) is False
    finally:
        db.close()


def test_blackout_calendar_strings(tmp_path: Path) -> None:
    db, zone_id, _, ca_zone_id = _seed(tmp_path)
    today = date(2026, 10, 18)
    try:
        db.add_all([
            BlackoutDate(shop_name=SHOP, blackout_date=date(2026, 10, 1)),
            BlackoutDate(shop_name=SHOP, blackout_date=date(2026, 11, 2)),
            BlackoutDate(shop_name=SHOP, blackout_date=date(2026, 11, 3), zone_id=ca_zone_id),
            BlackoutDate(shop_name=SHOP, blackout_date=date(2020, 12, 25), is_recurring=True),
            BlackoutDate(shop_name=SHOP, blackout_date=date(2020, 3, 1), is_recurring=True),
            BlackoutDate(shop_name=SHOP, blackout_date=date(2026, 12, 25), zone_id=zone_id),
        ])
        db.commit()

        for_us_zone = delivery_service.get_blackout_dates_as_strings(db, SHOP, today, zone_id)
        assert for_us_zone == ["2026-11-02", "2026-12-25", "2027-03-01", "2027-12-25"]

        everything = delivery_service.get_blackout_dates_as_strings(db, SHOP, today)
        assert "2026-11-03" in everything
        assert "2026-10-01" not in everything
        assert everything == sorted(set(everything))
    finally:
        db.close()


def test_leap_day_recurring_blackout_skips_common_years(tmp_path: Path) -> None:
    db, zone_id, _, _ = _seed(tmp_path)
    try:
        db.add(BlackoutDate(shop_name=SHOP, blackout_date=date(2024, 2, 29), is_recurring=True))
        db.commit()

        assert delivery_service.get_blackout_dates_as_strings(db, SHOP, date(2026, 1, 10), zone_id) == []
        assert delivery_service.get_blackout_dates_as_strings(db, SHOP, date(2027, 3, 1), zone_id) == ["2028-02-29"]
    finally:
        db.close()


def test_available_dates_start_today_before_cutoff(tmp_path: Path) -> None:
    db, zone_id, _, _ = _seed(tmp_path)
    now = datetime(2026, 10, 18, 10, 0, tzinfo=timezone.utc)
    try:
        dates = delivery_service.get_available_dates(db, SHOP, zone_id, _shop_settings(), now)

        assert [option.value for option in dates] == [date(2026, 10, 18), date(2026, 10, 19), date(2026, 10, 20)]
        assert dates[0].label.startswith("Today - ")
        assert dates[0].label.endswith("Oct 18")
        assert dates[1].label.startswith("Tomorrow - ")
        assert not dates[2].label.startswith(("Today", "Tomorrow"))
    finally:
        db.close()


def test_available_dates_after_cutoff_or_without_same_day(tmp_path: Path) -> None:
    db, zone_id, _, _ = _seed(tmp_path)
    after_cutoff = datetime(2026, 10, 18, 15, 0, tzinfo=timezone.utc)
    morning = datetime(2026, 10, 18, 8, 0, tzinfo=timezone.utc)
    try:
        late = delivery_service.get_available_dates(db, SHOP, zone_id, _shop_settings(), after_cutoff)
        assert late[0].value == date(2026, 10, 19)
        assert late[0].label.startswith("Tomorrow - ")

        no_same_day = _shop_settings(enable_same_day_delivery=False)
        early = delivery_service.get_available_dates(db, SHOP, zone_id, no_same_day, morning)
        assert early[0].value == date(2026, 10, 19)
    finally:
        db.close()


def test_available_dates_skip_blackouts_and_full_days(tmp_path: Path) -> None:
    db, zone_id, slot_id, _ = _seed(tmp_path)
    now = datetime(2026, 10, 18, 15, 0, tzinfo=timezone.utc)
    try:
        db.add(BlackoutDate(shop_name=SHOP, blackout_date=date(2026, 10, 19)))
        db.commit()
        _book(db, slot_id, date(2026, 10, 20), "CONFIRMED", "5003")

        dates = delivery_service.get_available_dates(db, SHOP, zone_id, _shop_settings(), now)
        assert [option.value for option in dates] == [date(2026, 10, 21)]
    finally:
        db.close()


def test_available_dates_use_shop_timezone(tmp_path: Path) -> None:
    db, zone_id, _, _ = _seed(tmp_path)
    # 22:00 on the 18th in New York.
    now = datetime(2026, 10, 19, 2, 0, tzinfo=timezone.utc)
    try:
        shop_settings = _shop_settings(timezone="America/New_York", enable_same_day_delivery=False)
        dates = delivery_service.get_available_dates(db, SHOP, zone_id, shop_settings, now)
        assert dates[0].value == date(2026, 10, 19)
        assert dates[0].label.startswith("Tomorrow - ")
        assert delivery_service.last_bookable_date(shop_settings, now) == date(2026, 10, 21)
    finally:
        db.close()


def test_has_active_slots_tracks_slot_state(tmp_path: Path) -> None:
    db, zone_id, slot_id, _ = _seed(tmp_path)
    try:
        assert zone_service.has_active_slots(db, SHOP, zone_id) is True
        assert zone_service.has_active_slots(db, "elsewhere.myshopify.com", zone_id) is False

        delivery_service.toggle_slot(db, SHOP, slot_id)
        assert zone_service.has_active_slots(db, SHOP, zone_id) is False
    finally:
        db.close()
