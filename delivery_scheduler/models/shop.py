"""Shop and per-shop settings ORM models."""

from datetime import datetime, time, timezone

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from delivery_scheduler.db.base import Base


class Shop(Base):
    """Shopify store that installed the app, keyed by its myshopify domain."""

    __tablename__ = "shops"

    id: Mapped[int] = mapped_column(primary_key=True)
    shopify_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    shop_owner_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    localization: Mapped[str | None] = mapped_column(String(10), nullable=True)
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    shopify_domain: Mapped[str | None] = mapped_column(String(255), nullable=True)
    subscription_id: Mapped[str | None] = mapped_column(String(256), nullable=True)
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    shopify_plan: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=lambda: datetime.now(timezone.utc),
    )

    settings: Mapped["ShopSettings | None"] = relationship(back_populates="shop", uselist=False)
    zones: Mapped[list["DeliveryZone"]] = relationship(back_populates="shop")


class ShopSettings(Base):
    """Delivery booking rules for a single shop."""

    __tablename__ = "shop_settings"

    id: Mapped[int] = mapped_column(primary_key=True)
    shop_name: Mapped[str] = mapped_column(ForeignKey("shops.name"), nullable=False, unique=True)
    cutoff_time: Mapped[time] = mapped_column(Time, nullable=False, default=time(14, 0))
    max_days_in_advance: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    enable_same_day_delivery: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
    business_hours: Mapped[dict | None] = mapped_column(JSON, nullable=True)
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

    shop: Mapped[Shop] = relationship(back_populates="settings")
