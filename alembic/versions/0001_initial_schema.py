"""initial delivery scheduler schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

ORDER_STATUS = sa.Enum("PENDING", "CONFIRMED", "CANCELLED", "DELIVERED", name="order_status")


def upgrade() -> None:
    op.create_table(
        "shops",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shopify_id", sa.String(length=50), nullable=False, unique=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("shop_owner_name", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("localization", sa.String(length=10), nullable=True),
        sa.Column("timezone", sa.String(length=64), nullable=True),
        sa.Column("shopify_domain", sa.String(length=255), nullable=True),
        sa.Column("subscription_id", sa.String(length=256), nullable=True),
        sa.Column("is_premium", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("shopify_plan", sa.JSON(), nullable=True),
        sa.Column("status", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("onboarding_completed", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_shops_name", "shops", ["name"], unique=True)

    op.create_table(
        "shop_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shop_name", sa.String(length=100), sa.ForeignKey("shops.name"), nullable=False, unique=True),
        sa.Column("cutoff_time", sa.Time(), nullable=False),
        sa.Column("max_days_in_advance", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("enable_same_day_delivery", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("timezone", sa.String(length=64), nullable=False, server_default="UTC"),
        sa.Column("business_hours", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "delivery_zones",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shop_name", sa.String(length=100), sa.ForeignKey("shops.name"), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("shipping_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("shop_name", "name", name="uq_delivery_zones_shop_name"),
    )
    op.create_index("ix_delivery_zones_shop_name", "delivery_zones", ["shop_name"])

    op.create_table(
        "delivery_slots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shop_name", sa.String(length=100), sa.ForeignKey("shops.name"), nullable=False),
        sa.Column("zone_id", sa.Integer(), sa.ForeignKey("delivery_zones.id"), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("price_adjustment", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("shop_name", "zone_id", "start_time", "end_time", name="uq_delivery_slots_zone_window"),
    )
    op.create_index("ix_delivery_slots_shop_name", "delivery_slots", ["shop_name"])

    op.create_table(
        "blackout_dates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shop_name", sa.String(length=100), sa.ForeignKey("shops.name"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("zone_id", sa.Integer(), sa.ForeignKey("delivery_zones.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("shop_name", "date", "zone_id", name="uq_blackout_dates_shop_date_zone"),
    )
    op.create_index("ix_blackout_dates_shop_name", "blackout_dates", ["shop_name"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shop_name", sa.String(length=100), sa.ForeignKey("shops.name"), nullable=False),
        sa.Column("shopify_order_id", sa.String(length=64), nullable=False, unique=True),
        sa.Column("customer_email", sa.String(length=255), nullable=False),
        sa.Column("delivery_slot_id", sa.Integer(), sa.ForeignKey("delivery_slots.id"), nullable=False),
        sa.Column("delivery_date", sa.Date(), nullable=False),
        sa.Column("status", ORDER_STATUS, nullable=False, server_default="PENDING"),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("shipping_address", sa.JSON(), nullable=False),
        sa.Column("delivery_notes", sa.Text(), nullable=True),
        sa.Column("tracking_number", sa.String(length=255), nullable=True),
        sa.Column("sms_notifications", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("customer_phone", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_orders_shop_name", "orders", ["shop_name"])
    op.create_index("ix_orders_slot_delivery_date", "orders", ["delivery_slot_id", "delivery_date"])

    op.create_table(
        "shopify_sessions",
        sa.Column("id", sa.String(length=191), primary_key=True),
        sa.Column("shop", sa.String(length=191), nullable=False),
        sa.Column("state", sa.String(length=191), nullable=False),
        sa.Column("is_online", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("scope", sa.String(length=1024), nullable=True),
        sa.Column("expires", sa.DateTime(timezone=True), nullable=True),
        sa.Column("access_token", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_shopify_sessions_shop", "shopify_sessions", ["shop"])


def downgrade() -> None:
    op.drop_index("ix_shopify_sessions_shop", table_name="shopify_sessions")
    op.drop_table("shopify_sessions")
    op.drop_index("ix_orders_slot_delivery_date", table_name="orders")
    op.drop_index("ix_orders_shop_name", table_name="orders")
    op.drop_table("orders")
    ORDER_STATUS.drop(op.get_bind(), checkfirst=True)
    op.drop_index("ix_blackout_dates_shop_name", table_name="blackout_dates")
    op.drop_table("blackout_dates")
    op.drop_index("ix_delivery_slots_shop_name", table_name="delivery_slots")
    op.drop_table("delivery_slots")
    op.drop_index("ix_delivery_zones_shop_name", table_name="delivery_zones")
    op.drop_table("delivery_zones")
    op.drop_table("shop_settings")
    op.drop_index("ix_shops_name", table_name="shops")
    op.drop_table("shops")
