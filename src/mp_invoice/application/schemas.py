"""Pydantic schemas for mp_invoice API."""

from datetime import datetime

from pydantic import BaseModel

from src.mp_common.money import to_display
from src.mp_invoice.domain.models import Invoice


class InvoiceResponse(BaseModel):
    id: str
    invoice_number: str
    invoice_type: str
    order_id: str
    group_id: str
    payment_status: str
    subtotal: int
    vat_amount: int
    shipping_amount: int
    packing_amount: int
    total_amount: int
    total_display: str
    currency: str
    comments: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, invoice: Invoice) -> "InvoiceResponse":
        return cls(
            id=invoice.id,
            invoice_number=invoice.invoice_number,
            invoice_type=invoice.invoice_type.value,
            order_id=invoice.order_id,
            group_id=invoice.group_id,
            payment_status=invoice.payment_status,
            subtotal=invoice.subtotal,
            vat_amount=invoice.vat_amount,
            shipping_amount=invoice.shipping_amount,
            packing_amount=invoice.packing_amount,
            total_amount=invoice.total_amount,
            total_display=to_display(invoice.total_amount, invoice.currency),
            currency=invoice.currency,
            comments=invoice.comments,
            created_at=invoice.created_at,
        )
