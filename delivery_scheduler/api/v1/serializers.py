"""Response builders for ORM rows that need joined or computed fields."""

from delivery_scheduler.models.delivery import BlackoutDate
from delivery_scheduler.models.order import Order
from delivery_scheduler.schemas.delivery import BlackoutResponse, SlotResponse
from delivery_scheduler.schemas.order import OrderResponse
from delivery_scheduler.services.delivery_service import SlotAvailability


def serialize_slot(item: SlotAvailability) -> SlotResponse:
    slot = item.slot
    return SlotResponse(
        id=slot.id,
        zone_id=slot.zone_id,
        zone_name=slot.zone.name,
        start_time=slot.start_time,
        end_time=slot.end_time,
        capacity=slot.capacity,
        is_active=slot.is_active,
        price_adjustment=slot.price_adjustment,
        notes=slot.notes,
        current_bookings=item.current_bookings,
        available_capacity=item.available_capacity,
    )


def serialize_blackout(blackout: BlackoutDate) -> BlackoutResponse:
    return BlackoutResponse(
        id=blackout.id,
        blackout_date=blackout.blackout_date,
        reason=blackout.reason,
        is_recurring=blackout.is_recurring,
        zone_id=blackout.zone_id,
        zone_name=blackout.zone.name if blackout.zone is not None else None,
    )


def serialize_order(order: Order) -> OrderResponse:
    slot = order.delivery_slot
    return OrderResponse(
        id=order.id,
        shopify_order_id=order.shopify_order_id,
        customer_email=order.customer_email,
        delivery_slot_id=order.delivery_slot_id,
        delivery_date=order.delivery_date,
        status=order.status,
        total_amount=order.total_amount,
        shipping_address=order.shipping_address or {},
        delivery_notes=order.delivery_notes,
        tracking_number=order.tracking_number,
        time_slot=slot.time_range if slot is not None else None,
        zone_name=slot.zone.name if slot is not None else None,
        created_at=order.created_at,
    )
