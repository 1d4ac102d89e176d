"""Order models for scheduled deliveries booked at checkout."""

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import JSON, Boolean, Date, DateTime, Enum, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from delivery_scheduler.db.base import Base

ORDER_STATUSES = ("PENDING", "CONFIRMED", "CANCELLED", "DELIVERED")


class Order(Base):
    """Shopify order with a booked delivery slot."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    shop_name: Mapped[str] = mapped_column(ForeignKey("shops.name"), nullable=False, index=True)
    shopify_order_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    delivery_slot_id: Mapped[int] = mapped_column(ForeignKey("delivery_slots.id"), nullable=False)
    delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(Enum(*ORDER_STATUSES, name="order_status"), nullable=False, default="PENDING")
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    shipping_address: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    delivery_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    tracking_number: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sms_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    customer_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    delivery_slot: Mapped["DeliverySlot"] = relationship(back_populates="orders")

    __table_args__ = (
        Index("ix_orders_slot_delivery_date", "delivery_slot_id", "delivery_date"),
    )
