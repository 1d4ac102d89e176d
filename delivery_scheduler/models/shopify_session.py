"""Stored Shopify OAuth sessions."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from delivery_scheduler.db.base import Base


class ShopifySession(Base):
    """Offline access token issued to the app for one shop."""

    __tablename__ = "shopify_sessions"

    id: Mapped[str] = mapped_column(String(191), primary_key=True)
    shop: Mapped[str] = mapped_column(String(191), nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(191), nullable=False)
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    scope: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    expires: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    access_token: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
