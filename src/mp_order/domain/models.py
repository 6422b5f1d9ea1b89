"""Domain models for mp_order: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.mp_common.enums import OrderStatus, OrderType, PaymentStatus, ShipmentStatus


@dataclass(frozen=True)
class StatusTriple:
    """The three independent status axes of an order."""

    order_status: OrderStatus
    payment_status: PaymentStatus | None = None
    shipment_status: ShipmentStatus | None = None

    @property
    def is_paid_and_approved(self) -> bool:
        return (
            self.order_status is OrderStatus.APPROVED
            and self.payment_status is PaymentStatus.PAID
        )


@dataclass
class OrderItem:
    product_id: str
    product_name: str
    vendor_id: str | None
    quantity: int
    unit_base_price: int
    unit_sell_price: int
    unit_shipping: int
    unit_packing: int
    order_id: str | None = None
    id: int | None = None


@dataclass
class Order:
    id: str
    order_number: str
    group_id: str
    cart_id: str | None
    buyer_id: str
    vendor_id: str | None            # None = platform-owned
    order_status: OrderStatus
    payment_status: PaymentStatus | None
    shipment_status: ShipmentStatus | None
    order_type: OrderType
    subtotal_base: int               # minor units
    subtotal_sell: int
    shipping_total: int
    packing_total: int
    vat_rate_bps: int
    vat_amount: int
    vendor_vat_rate_bps: int
    total_amount: int
    admin_commission: int
    currency: str
    shipping_address: dict[str, Any] | None = None
    tracking_number: str | None = None
    payment_reference: str | None = None
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    items: list[OrderItem] = field(default_factory=list)

    @property
    def status(self) -> StatusTriple:
        return StatusTriple(self.order_status, self.payment_status, self.shipment_status)

    @property
    def is_platform_owned(self) -> bool:
        return self.vendor_id is None

    def apply_status(self, target: StatusTriple) -> None:
        self.order_status = target.order_status
        self.payment_status = target.payment_status
        self.shipment_status = target.shipment_status


@dataclass
class StatusHistoryEntry:
    order_id: str
    order_status: OrderStatus
    payment_status: PaymentStatus | None
    shipment_status: ShipmentStatus | None
    actor: str
    note: str | None = None
    id: int | None = None
    created_at: datetime | None = None
