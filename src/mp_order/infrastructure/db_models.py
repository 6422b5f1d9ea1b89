"""SQLAlchemy ORM models for mp_order.

These map to existing tables created by Alembic migrations.
DO NOT add/remove columns here without a corresponding migration.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, DateTime, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.mp_common.database import Base


class OrderORM(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    order_number: Mapped[str] = mapped_column(String(8), unique=True, nullable=False)
    group_id: Mapped[str] = mapped_column(String(8), nullable=False, index=True)
    cart_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    buyer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    vendor_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    order_status: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    shipment_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    order_type: Mapped[str] = mapped_column(String(10), nullable=False)
    subtotal_base: Mapped[int] = mapped_column(BigInteger, nullable=False)
    subtotal_sell: Mapped[int] = mapped_column(BigInteger, nullable=False)
    shipping_total: Mapped[int] = mapped_column(BigInteger, nullable=False)
    packing_total: Mapped[int] = mapped_column(BigInteger, nullable=False)
    vat_rate_bps: Mapped[int] = mapped_column(Integer, nullable=False)
    vat_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    vendor_vat_rate_bps: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    admin_commission: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    shipping_address: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    tracking_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String(128), nullable=True)
    version: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class OrderItemORM(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    vendor_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_base_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    unit_sell_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    unit_shipping: Mapped[int] = mapped_column(BigInteger, nullable=False)
    unit_packing: Mapped[int] = mapped_column(BigInteger, nullable=False)


class OrderStatusHistoryORM(Base):
    __tablename__ = "order_status_history"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    order_status: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    shipment_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    actor: Mapped[str] = mapped_column(String(64), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
