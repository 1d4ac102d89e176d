"""Delivery zone management scoped to a shop."""

import logging
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from delivery_scheduler.core.exceptions import NotFoundError, ValidationError
from delivery_scheduler.models.delivery import DeliverySlot, DeliveryZone
from delivery_scheduler.models.shop import Shop

logger = logging.getLogger(__name__)

ZONE_NOT_FOUND_MESSAGE: str = "Delivery zone not found or access denied"
DUPLICATE_ZONE_MESSAGE: str = "A delivery zone with this name already exists"


def normalize_country_code(value: str) -> str:
    return value.strip().upper()


def list_zones(db: Session, shop_name: str) -> list[DeliveryZone]:
    """Return all zones for the shop ordered by name."""
    return (
        db.query(DeliveryZone)
        .filter(DeliveryZone.shop_name == shop_name)
        .order_by(DeliveryZone.name.asc())
        .all()
    )


def get_zone_for_shop(db: Session, shop_name: str, zone_id: int) -> DeliveryZone:
    """Return the zone if it belongs to the shop."""
    zone: DeliveryZone | None = (
        db.query(DeliveryZone)
        .filter(DeliveryZone.id == zone_id, DeliveryZone.shop_name == shop_name)
        .first()
    )
    if zone is None:
        raise NotFoundError(ZONE_NOT_FOUND_MESSAGE, details={"zone_id": zone_id})
    return zone


def get_zone_by_country_code(db: Session, shop_name: str, country_code: str) -> DeliveryZone | None:
    """Find the active zone whose name is the given country code."""
    return (
        db.query(DeliveryZone)
        .filter(
            DeliveryZone.shop_name == shop_name,
            DeliveryZone.name == normalize_country_code(country_code),
            DeliveryZone.is_active.is_(True),
        )
        .first()
    )


def _validate_rate(shipping_rate: Decimal) -> None:
    if shipping_rate < 0:
        raise ValidationError("Shipping rate cannot be negative")


def _name_taken(db: Session, shop_name: str, name: str, exclude_zone_id: int | None = None) -> bool:
    query = db.query(DeliveryZone).filter(DeliveryZone.shop_name == shop_name, DeliveryZone.name == name)
    if exclude_zone_id is not None:
        query = query.filter(DeliveryZone.id != exclude_zone_id)
    return query.first() is not None


def create_zone(
    db: Session,
    shop_name: str,
    *,
    name: str,
    shipping_rate: Decimal,
    description: str | None = None,
    priority: int = 0,
) -> DeliveryZone:
    """Create a delivery zone after validating shop ownership and uniqueness."""
    shop: Shop | None = db.query(Shop).filter(Shop.name == shop_name).first()
    if shop is None:
        raise NotFoundError("Shop not found", details={"shop": shop_name})

    normalized_name: str = normalize_country_code(name)
    if not normalized_name:
        raise ValidationError("Zone name is required")
    _validate_rate(shipping_rate)
    if _name_taken(db, shop_name, normalized_name):
        raise ValidationError(DUPLICATE_ZONE_MESSAGE)

    zone = DeliveryZone(
        shop_name=shop_name,
        name=normalized_name,
        shipping_rate=shipping_rate,
        description=description,
        priority=priority,
        is_active=True,
    )
    db.add(zone)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValidationError(DUPLICATE_ZONE_MESSAGE) from exc
    db.refresh(zone)
    logger.info("Created delivery zone %s for %s", zone.name, shop_name)
    return zone


def update_zone(
    db: Session,
    shop_name: str,
    zone_id: int,
    *,
    name: str | None = None,
    shipping_rate: Decimal | None = None,
    description: str | None = None,
    priority: int | None = None,
) -> DeliveryZone:
    """Apply a partial update to a zone owned by the shop."""
    zone: DeliveryZone = get_zone_for_shop(db, shop_name, zone_id)

    if name is not None and name.strip():
        normalized_name: str = normalize_country_code(name)
        if _name_taken(db, shop_name, normalized_name, exclude_zone_id=zone.id):
            raise ValidationError(DUPLICATE_ZONE_MESSAGE)
        zone.name = normalized_name
    if shipping_rate is not None:
        _validate_rate(shipping_rate)
        zone.shipping_rate = shipping_rate
    if description is not None:
        zone.description = description
    if priority is not None:
        zone.priority = priority

    db.commit()
    db.refresh(zone)
    return zone


def has_active_slots(db: Session, shop_name: str, zone_id: int) -> bool:
    return (
        db.query(DeliverySlot)
        .filter(
            DeliverySlot.shop_name == shop_name,
            DeliverySlot.zone_id == zone_id,
            DeliverySlot.is_active.is_(True),
        )
        .first()
        is not None
    )


def toggle_zone(db: Session, shop_name: str, zone_id: int) -> DeliveryZone:
    """Flip a zone between active and inactive."""
    zone: DeliveryZone = get_zone_for_shop(db, shop_name, zone_id)
    zone.is_active = not zone.is_active
    if not zone.is_active and has_active_slots(db, shop_name, zone.id):
        logger.warning("Zone %s for %s deactivated while it still has active slots", zone.name, shop_name)
    db.commit()
    db.refresh(zone)
    return zone


def delete_zone(db: Session, shop_name: str, zone_id: int) -> None:
    """Delete a zone that no slot references."""
    zone: DeliveryZone = get_zone_for_shop(db, shop_name, zone_id)
    slots_count: int = db.query(DeliverySlot).filter(DeliverySlot.zone_id == zone.id).count()
    if slots_count > 0:
        raise ValidationError("Cannot delete zone with existing delivery slots")

    # Zone-specific blackouts go with the zone instead of widening to shop-wide.
    for blackout in list(zone.blackout_dates):
        db.delete(blackout)
    db.delete(zone)
    db.commit()
    logger.info("Deleted delivery zone %s for %s", zone_id, shop_name)
