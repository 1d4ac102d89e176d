"""App-proxy endpoints called by the checkout extension."""

import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime
from typing import Any

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from delivery_scheduler.api.deps import get_now
from delivery_scheduler.core.exceptions import NotFoundError
from delivery_scheduler.db.session import get_db
from delivery_scheduler.models.delivery import DeliveryZone
from delivery_scheduler.models.shop import ShopSettings
from delivery_scheduler.schemas.storefront import (
    AvailabilityData,
    AvailabilityResponse,
    AvailabilitySlot,
    AvailabilityZone,
    AvailableDates,
    DateOption,
    DeliveryEstimate,
    ReleaseSlotRequest,
    ReserveSlotRequest,
    StorefrontShopSettings,
    StorefrontSlot,
    StorefrontZone,
)
from delivery_scheduler.services import delivery_service, order_service, settings_service, shop_service, zone_service
from delivery_scheduler.services.delivery_service import SlotAvailability
from delivery_scheduler.utils.time import format_hhmm, parse_iso_date, shop_local_now

logger = logging.getLogger(__name__)

router: APIRouter = APIRouter()

Handler = Callable[..., JSONResponse]


def _json(content: Any, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    if hasattr(content, "model_dump"):
        content = content.model_dump(by_alias=True, mode="json")
    elif isinstance(content, list):
        content = [item.model_dump(by_alias=True, mode="json") if hasattr(item, "model_dump") else item for item in content]
    return JSONResponse(content=content, status_code=status_code)


def _error(message: str, status_code: int, **extra: Any) -> JSONResponse:
    return JSONResponse(content={**extra, "error": message}, status_code=status_code)


def _parse_date(value: str) -> date | None:
    try:
        return parse_iso_date(value)
    except ValueError:
        return None


def _storefront_zone(zone: DeliveryZone) -> StorefrontZone:
    return StorefrontZone(id=zone.id, name=zone.name, shipping_rate=float(zone.shipping_rate))


def _storefront_slot(item: SlotAvailability, requested_date: str) -> StorefrontSlot:
    return StorefrontSlot(
        id=item.slot.id,
        start_time=format_hhmm(item.slot.start_time),
        end_time=format_hhmm(item.slot.end_time),
        capacity=item.slot.capacity,
        current_orders=item.current_bookings,
        date=requested_date,
        zone_id=item.slot.zone_id,
        is_active=item.slot.is_active,
    )


def delivery_zones(db: Session, params: Mapping[str, str], now: datetime) -> JSONResponse:
    country_code, shop_name = params.get("country_code"), params.get("shop")
    if not country_code or not shop_name:
        return _error("Country code and shop are required", status.HTTP_400_BAD_REQUEST)

    zone = zone_service.get_zone_by_country_code(db, shop_name, country_code)
    if zone is None:
        return _error("No delivery zone found for this country", status.HTTP_404_NOT_FOUND)
    return _json(_storefront_zone(zone))


def delivery_estimate(db: Session, params: Mapping[str, str], now: datetime) -> JSONResponse:
    """Shipping rate and open slots for one country and date."""
    country_code, raw_date, shop_name = params.get("country_code"), params.get("delivery_date"), params.get("shop")
    if not country_code or not raw_date or not shop_name:
        return _error("Missing required parameters", status.HTTP_400_BAD_REQUEST)

    requested = _parse_date(raw_date)
    if requested is None:
        return _error("Invalid delivery date", status.HTTP_400_BAD_REQUEST)

    shop_settings: ShopSettings = settings_service.get_effective_settings(db, shop_name)
    if requested < shop_local_now(shop_settings.timezone, now).date():
        return _error("Cannot select past dates", status.HTTP_400_BAD_REQUEST)
    if requested > delivery_service.last_bookable_date(shop_settings, now):
        return _error("Selected date is too far in advance", status.HTTP_400_BAD_REQUEST)

    zone = zone_service.get_zone_by_country_code(db, shop_name, country_code)
    if zone is None:
        return _error("Delivery not available in this area", status.HTTP_404_NOT_FOUND)
    if delivery_service.is_date_blacked_out(db, shop_name, requested, zone.id):
        return _error("Selected date is not available for delivery", status.HTTP_400_BAD_REQUEST)

    slots = delivery_service.get_available_slots(db, shop_name, requested, zone.id)
    return _json(
        DeliveryEstimate(
            shipping_rate=float(zone.shipping_rate),
            available_slots=[_storefront_slot(item, raw_date) for item in slots],
            zone=zone.name,
        )
    )


def delivery_slots(db: Session, params: Mapping[str, str], now: datetime) -> JSONResponse:
    raw_date, raw_zone_id, shop_name = params.get("date"), params.get("zone_id"), params.get("shop")
    if not raw_date or not raw_zone_id or not shop_name:
        return _error("Date, zone_id, and shop are required", status.HTTP_400_BAD_REQUEST)

    requested = _parse_date(raw_date)
    if requested is None or not raw_zone_id.isdigit():
        return _error("Invalid date or zone_id", status.HTTP_400_BAD_REQUEST)

    slots = delivery_service.get_available_slots(db, shop_name, requested, int(raw_zone_id))
    return _json([_storefront_slot(item, raw_date) for item in slots])


def blackout_dates(db: Session, params: Mapping[str, str], now: datetime) -> JSONResponse:
    shop_name = params.get("shop")
    if not shop_name:
        return _error("Shop parameter is required", status.HTTP_400_BAD_REQUEST)

    shop_settings = settings_service.get_effective_settings(db, shop_name)
    today = shop_local_now(shop_settings.timezone, now).date()
    return _json(delivery_service.get_blackout_dates_as_strings(db, shop_name, today))


def delivery_availability(db: Session, params: Mapping[str, str], now: datetime) -> JSONResponse:
    """Zone, slots, blackout calendar and cutoff for the checkout widget."""
    country_code, raw_date, shop_name = params.get("country_code"), params.get("deliveryDate"), params.get("shop")
    if not country_code or not raw_date or not shop_name:
        return _error("Country code and delivery date are required", status.HTTP_400_BAD_REQUEST, success=False)

    requested = _parse_date(raw_date)
    if requested is None:
        return _error("Invalid delivery date", status.HTTP_400_BAD_REQUEST, success=False)

    zone = zone_service.get_zone_by_country_code(db, shop_name, country_code)
    if zone is None:
        return _error("Delivery not available in this area", status.HTTP_404_NOT_FOUND, success=False)
    if delivery_service.is_date_blacked_out(db, shop_name, requested, zone.id):
        return _error("Selected date is not available for delivery", status.HTTP_200_OK, success=False)

    shop_settings = settings_service.get_effective_settings(db, shop_name)
    today = shop_local_now(shop_settings.timezone, now).date()
    slots = delivery_service.get_available_slots(db, shop_name, requested, zone.id)
    return _json(
        AvailabilityResponse(
            data=AvailabilityData(
                zone=AvailabilityZone(id=zone.id, name=zone.name, base_rate=float(zone.shipping_rate)),
                slots=[
                    AvailabilitySlot(
                        id=item.slot.id,
                        start_time=format_hhmm(item.slot.start_time),
                        end_time=format_hhmm(item.slot.end_time),
                        capacity=item.slot.capacity,
                        current_orders=item.current_bookings,
                        is_available=item.available_capacity > 0 and item.slot.is_active,
                        price=float(item.slot.price_adjustment),
                    )
                    for item in slots
                ],
                blackout_dates=delivery_service.get_blackout_dates_as_strings(db, shop_name, today, zone.id),
                cutoff_time=format_hhmm(shop_settings.cutoff_time),
            )
        )
    )


def shop_settings_endpoint(db: Session, params: Mapping[str, str], now: datetime) -> JSONResponse:
    shop_name = params.get("shop")
    if not shop_name:
        return _error("Shop parameter is required", status.HTTP_400_BAD_REQUEST)
    if shop_service.get_shop_by_name(db, shop_name) is None:
        return _error("Shop not found", status.HTTP_404_NOT_FOUND)

    shop_settings = settings_service.get_shop_settings(db, shop_name)
    return _json(
        StorefrontShopSettings(
            shop_name=shop_name,
            cutoff_time=format_hhmm(shop_settings.cutoff_time),
            max_days_in_advance=shop_settings.max_days_in_advance,
            enable_same_day_delivery=shop_settings.enable_same_day_delivery,
            timezone=shop_settings.timezone,
        )
    )


def available_dates(db: Session, params: Mapping[str, str], now: datetime) -> JSONResponse:
    """Selectable dates for the zone honouring cutoff, same-day and blackout rules."""
    country_code, shop_name = params.get("country_code"), params.get("shop")
    if not country_code or not shop_name:
        return _error("Country code and shop are required", status.HTTP_400_BAD_REQUEST)

    zone = zone_service.get_zone_by_country_code(db, shop_name, country_code)
    if zone is None:
        return _error("No delivery zone found for this country", status.HTTP_404_NOT_FOUND)

    shop_settings = settings_service.get_effective_settings(db, shop_name)
    dates = delivery_service.get_available_dates(db, shop_name, zone.id, shop_settings, now)
    return _json(
        AvailableDates(
            zone=_storefront_zone(zone),
            dates=[DateOption(value=option.value.isoformat(), label=option.label) for option in dates],
        )
    )


def reserve_slot(db: Session, payload: dict[str, Any], params: Mapping[str, str], now: datetime) -> JSONResponse:
    request = ReserveSlotRequest.model_validate(payload)
    if not request.slot_id or not request.delivery_date:
        return _error("Slot ID and delivery date are required", status.HTTP_400_BAD_REQUEST)

    requested = _parse_date(str(request.delivery_date))
    if requested is None or not str(request.slot_id).isdigit():
        return _error("Invalid slot or delivery date", status.HTTP_400_BAD_REQUEST)

    if not delivery_service.is_slot_available_for_date(
        db, int(request.slot_id), requested, shop_name=params.get("shop") or None
    ):
        return _error("Slot is not available for the selected date", status.HTTP_409_CONFLICT)
    return _json({"success": True, "message": "Slot is available for reservation"})


def release_slot(db: Session, payload: dict[str, Any], params: Mapping[str, str], now: datetime) -> JSONResponse:
    request = ReleaseSlotRequest.model_validate(payload)
    if not request.slot_id:
        return _error("Slot ID is required", status.HTTP_400_BAD_REQUEST)
    if not request.order_id:
        return _error("Order ID is required", status.HTTP_400_BAD_REQUEST)
    if not str(request.slot_id).isdigit():
        return _error("Invalid slot ID", status.HTTP_400_BAD_REQUEST)

    try:
        order_service.release_delivery_slot(
            db, str(request.order_id), int(request.slot_id), now, shop_name=params.get("shop") or None
        )
    except NotFoundError as exc:
        return _error(exc.message, status.HTTP_409_CONFLICT)
    return _json({"success": True, "message": "Order delivery slot released successfully"})


GET_ENDPOINTS: dict[str, tuple[Handler, str]] = {
    "zones": (delivery_zones, "Internal server error"),
    "estimate": (delivery_estimate, "Failed to calculate shipping rate"),
    "slots": (delivery_slots, "Failed to fetch available slots"),
    "blackout-dates": (blackout_dates, "Failed to fetch blackout dates"),
    "availability": (delivery_availability, "Failed to check availability"),
    "shop-settings": (shop_settings_endpoint, "Failed to fetch shop settings"),
    "available-dates": (available_dates, "Failed to fetch available dates"),
}

POST_ENDPOINTS: dict[str, tuple[Handler, str]] = {
    "reserve-slot": (reserve_slot, "Failed to check slot availability"),
    "release-slot": (release_slot, "Failed to release slot"),
}


def _invalid_endpoint(error: str) -> JSONResponse:
    return JSONResponse(
        content={"message": "Failed to process request", "status": 400, "error": error},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


def _dispatch(endpoint: str, handler: Handler, failure_message: str, *args: Any) -> JSONResponse:
    try:
        return handler(*args)
    except Exception:
        logger.exception("Storefront endpoint %s failed", endpoint)
        return _error(failure_message, status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.get("/{endpoint}")
def storefront_get(
    endpoint: str,
    request: Request,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> JSONResponse:
    if endpoint not in GET_ENDPOINTS:
        return _invalid_endpoint("Invalid endpoint")
    handler, failure_message = GET_ENDPOINTS[endpoint]
    return _dispatch(endpoint, handler, failure_message, db, request.query_params, now)


@router.post("/{endpoint}")
def storefront_post(
    endpoint: str,
    request: Request,
    payload: dict[str, Any] | None = Body(default=None),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> JSONResponse:
    if endpoint not in POST_ENDPOINTS:
        return _invalid_endpoint("Invalid action endpoint")
    handler, failure_message = POST_ENDPOINTS[endpoint]
    return _dispatch(endpoint, handler, failure_message, db, payload or {}, request.query_params, now)
