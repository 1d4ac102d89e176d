"""Blackout date management."""

import logging
from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from delivery_scheduler.core.exceptions import NotFoundError, ValidationError
from delivery_scheduler.models.delivery import BlackoutDate, DeliveryZone

logger = logging.getLogger(__name__)

DUPLICATE_BLACKOUT_MESSAGE: str = "Blackout date already exists for this date and zone"


def list_blackout_dates(db: Session, shop_name: str) -> list[BlackoutDate]:
    return (
        db.query(BlackoutDate)
        .options(joinedload(BlackoutDate.zone))
        .filter(BlackoutDate.shop_name == shop_name)
        .order_by(BlackoutDate.blackout_date.asc())
        .all()
    )


def get_blackout_for_shop(db: Session, shop_name: str, blackout_id: int) -> BlackoutDate:
    blackout: BlackoutDate | None = (
        db.query(BlackoutDate)
        .filter(BlackoutDate.id == blackout_id, BlackoutDate.shop_name == shop_name)
        .first()
    )
    if blackout is None:
        raise NotFoundError("Blackout date not found", details={"blackout_id": blackout_id})
    return blackout


def _ensure_zone_belongs_to_shop(db: Session, shop_name: str, zone_id: int | None) -> None:
    if zone_id is None:
        return
    zone_exists: bool = (
        db.query(DeliveryZone)
        .filter(DeliveryZone.id == zone_id, DeliveryZone.shop_name == shop_name)
        .first()
        is not None
    )
    if not zone_exists:
        raise ValidationError("Invalid delivery zone for this shop")


def _duplicate_exists(
    db: Session,
    shop_name: str,
    blackout_date: date,
    zone_id: int | None,
    exclude_id: int | None = None,
) -> bool:
    query = db.query(BlackoutDate).filter(
        BlackoutDate.shop_name == shop_name,
        BlackoutDate.blackout_date == blackout_date,
    )
    # NULL never equals NULL in the unique constraint, so shop-wide rows are checked here.
    if zone_id is None:
        query = query.filter(BlackoutDate.zone_id.is_(None))
    else:
        query = query.filter(BlackoutDate.zone_id == zone_id)
    if exclude_id is not None:
        query = query.filter(BlackoutDate.id != exclude_id)
    return query.first() is not None


def _commit(db: Session, blackout: BlackoutDate) -> BlackoutDate:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValidationError(DUPLICATE_BLACKOUT_MESSAGE) from exc
    db.refresh(blackout)
    return blackout


def create_blackout_date(
    db: Session,
    shop_name: str,
    *,
    blackout_date: date,
    reason: str | None = None,
    is_recurring: bool = False,
    zone_id: int | None = None,
) -> BlackoutDate:
    """Add a blackout for the whole shop or a single zone."""
    _ensure_zone_belongs_to_shop(db, shop_name, zone_id)
    if _duplicate_exists(db, shop_name, blackout_date, zone_id):
        raise ValidationError(DUPLICATE_BLACKOUT_MESSAGE)

    blackout = BlackoutDate(
        shop_name=shop_name,
        blackout_date=blackout_date,
        reason=reason,
        is_recurring=is_recurring,
        zone_id=zone_id,
    )
    db.add(blackout)
    _commit(db, blackout)
    logger.info("Added blackout %s (zone=%s, recurring=%s) for %s", blackout_date, zone_id, is_recurring, shop_name)
    return blackout


def update_blackout_date(
    db: Session,
    shop_name: str,
    blackout_id: int,
    *,
    blackout_date: date,
    reason: str | None = None,
    is_recurring: bool = False,
    zone_id: int | None = None,
) -> BlackoutDate:
    blackout: BlackoutDate = get_blackout_for_shop(db, shop_name, blackout_id)
    _ensure_zone_belongs_to_shop(db, shop_name, zone_id)
    if _duplicate_exists(db, shop_name, blackout_date, zone_id, exclude_id=blackout.id):
        raise ValidationError(DUPLICATE_BLACKOUT_MESSAGE)

    blackout.blackout_date = blackout_date
    blackout.reason = reason
    blackout.is_recurring = is_recurring
    blackout.zone_id = zone_id
    return _commit(db, blackout)


def delete_blackout_date(db: Session, shop_name: str, blackout_id: int) -> None:
    blackout: BlackoutDate = get_blackout_for_shop(db, shop_name, blackout_id)
    db.delete(blackout)
    db.commit()
    logger.info("Deleted blackout %s for %s", blackout_id, shop_name)
