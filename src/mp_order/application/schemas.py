# src/mp_order/application/schemas.py
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from src.mp_common.enums import (
    OrderStatus,
    PaymentState,
    PaymentStatus,
    ShipmentStatus,
    TrackingEventType,
)
from src.mp_order.application.conversion import ConversionPlan
from src.mp_order.domain.models import Order, StatusHistoryEntry

# ---------------------------------------------------------------------------
# Inbound events and commands
# ---------------------------------------------------------------------------


class PaymentWebhookRequest(BaseModel):
    group_id: str | None = None
    order_id: str | None = None
    cart_id: str | None = None
    buyer_id: str | None = None
    shipping_address: dict[str, Any] | None = None
    payment_reference: str = Field(..., min_length=1)
    amount_paid: int = Field(..., ge=0)
    currency: str
    payment_state: PaymentState

    @model_validator(mode="after")
    def needs_target(self) -> "PaymentWebhookRequest":
        if not self.group_id and not self.order_id:
            raise ValueError("group_id or order_id is required")
        return self


class TrackingWebhookRequest(BaseModel):
    tracking_number: str | None = None
    order_id: str | None = None
    event_type: TrackingEventType
    timestamp: datetime | None = None

    @model_validator(mode="after")
    def needs_target(self) -> "TrackingWebhookRequest":
        if not self.tracking_number and not self.order_id:
            raise ValueError("tracking_number or order_id is required")
        return self


class AdminOrderUpdateRequest(BaseModel):
    order_status: OrderStatus | None = None
    payment_status: PaymentStatus | None = None
    shipment_status: ShipmentStatus | None = None
    tracking_number: str | None = Field(None, max_length=64)
    note: str | None = None


class CheckoutRequest(BaseModel):
    cart_id: str
    shipping_address: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class OrderItemResponse(BaseModel):
    product_id: str
    product_name: str
    vendor_id: str | None
    quantity: int
    unit_base_price: int
    unit_sell_price: int
    unit_shipping: int
    unit_packing: int


class OrderResponse(BaseModel):
    id: str
    order_number: str
    group_id: str
    buyer_id: str
    vendor_id: str | None
    order_status: str
    payment_status: str | None
    shipment_status: str | None
    order_type: str
    subtotal_base: int
    subtotal_sell: int
    shipping_total: int
    packing_total: int
    vat_rate_bps: int
    vat_amount: int
    total_amount: int
    admin_commission: int
    currency: str
    shipping_address: dict[str, Any] | None = None
    tracking_number: str | None = None
    payment_reference: str | None = None
    items: list[OrderItemResponse] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            order_number=order.order_number,
            group_id=order.group_id,
            buyer_id=order.buyer_id,
            vendor_id=order.vendor_id,
            order_status=order.order_status.value,
            payment_status=order.payment_status.value if order.payment_status else None,
            shipment_status=order.shipment_status.value if order.shipment_status else None,
            order_type=order.order_type.value,
            subtotal_base=order.subtotal_base,
            subtotal_sell=order.subtotal_sell,
            shipping_total=order.shipping_total,
            packing_total=order.packing_total,
            vat_rate_bps=order.vat_rate_bps,
            vat_amount=order.vat_amount,
            total_amount=order.total_amount,
            admin_commission=order.admin_commission,
            currency=order.currency,
            shipping_address=order.shipping_address,
            tracking_number=order.tracking_number,
            payment_reference=order.payment_reference,
            items=[
                OrderItemResponse(
                    product_id=i.product_id,
                    product_name=i.product_name,
                    vendor_id=i.vendor_id,
                    quantity=i.quantity,
                    unit_base_price=i.unit_base_price,
                    unit_sell_price=i.unit_sell_price,
                    unit_shipping=i.unit_shipping,
                    unit_packing=i.unit_packing,
                )
                for i in order.items
            ],
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class StatusHistoryResponse(BaseModel):
    order_status: str
    payment_status: str | None
    shipment_status: str | None
    actor: str
    note: str | None
    created_at: datetime | None

    @classmethod
    def from_domain(cls, entry: StatusHistoryEntry) -> "StatusHistoryResponse":
        return cls(
            order_status=entry.order_status.value,
            payment_status=entry.payment_status.value if entry.payment_status else None,
            shipment_status=entry.shipment_status.value if entry.shipment_status else None,
            actor=entry.actor,
            note=entry.note,
            created_at=entry.created_at,
        )


class PartitionPreviewResponse(BaseModel):
    vendor_id: str | None
    item_count: int
    subtotal_base: int
    subtotal_sell: int
    shipping_total: int
    packing_total: int
    vat_amount: int
    total_amount: int


class CheckoutPreviewResponse(BaseModel):
    order_type: str
    reasons: list[str]
    grand_total: int
    partitions: list[PartitionPreviewResponse]

    @classmethod
    def from_plan(cls, plan: ConversionPlan) -> "CheckoutPreviewResponse":
        return cls(
            order_type=plan.compliance.type.value,
            reasons=plan.compliance.reasons,
            grand_total=plan.grand_total,
            partitions=[
                PartitionPreviewResponse(
                    vendor_id=p.vendor_id,
                    item_count=sum(line.quantity for line in p.lines),
                    subtotal_base=p.totals.subtotal_base,
                    subtotal_sell=p.totals.subtotal_sell,
                    shipping_total=p.totals.shipping_total,
                    packing_total=p.totals.packing_total,
                    vat_amount=p.totals.vat_amount,
                    total_amount=p.totals.total_amount,
                )
                for p in plan.partitions
            ],
        )


class EventResultResponse(BaseModel):
    group_id: str | None
    order_ids: list[str]
    applied: list[str]
    skipped: list[str]
