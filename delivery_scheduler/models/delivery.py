"""Delivery zone, slot and blackout ORM models."""

from datetime import date, datetime, time, timezone
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from delivery_scheduler.db.base import Base


class DeliveryZone(Base):
    """Shipping region keyed by country code."""

    __tablename__ = "delivery_zones"
    __table_args__ = (
        UniqueConstraint("shop_name", "name", name="uq_delivery_zones_shop_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    shop_name: Mapped[str] = mapped_column(ForeignKey("shops.name"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    shipping_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
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

    shop: Mapped["Shop"] = relationship(back_populates="zones")
    slots: Mapped[list["DeliverySlot"]] = relationship(back_populates="zone")
    blackout_dates: Mapped[list["BlackoutDate"]] = relationship(back_populates="zone")


class DeliverySlot(Base):
    """Recurring daily delivery window with a booking capacity."""

    __tablename__ = "delivery_slots"
    __table_args__ = (
        UniqueConstraint("shop_name", "zone_id", "start_time", "end_time", name="uq_delivery_slots_zone_window"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    shop_name: Mapped[str] = mapped_column(ForeignKey("shops.name"), nullable=False, index=True)
    zone_id: Mapped[int] = mapped_column(ForeignKey("delivery_zones.id"), nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    price_adjustment: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
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

    zone: Mapped[DeliveryZone] = relationship(back_populates="slots")
    orders: Mapped[list["Order"]] = relationship(back_populates="delivery_slot")

    @property
    def time_range(self) -> str:
        return f"{self.start_time.strftime('%H:%M')} - {self.end_time.strftime('%H:%M')}"


class BlackoutDate(Base):
    """Date on which no deliveries are scheduled, optionally recurring yearly."""

    __tablename__ = "blackout_dates"
    __table_args__ = (
        UniqueConstraint("shop_name", "date", "zone_id", name="uq_blackout_dates_shop_date_zone"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    shop_name: Mapped[str] = mapped_column(ForeignKey("shops.name"), nullable=False, index=True)
    blackout_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    zone_id: Mapped[int | None] = mapped_column(ForeignKey("delivery_zones.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    zone: Mapped[DeliveryZone | None] = relationship(back_populates="blackout_dates")
