"""Domain models for mp_invoice: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.mp_common.enums import InvoiceType

INVOICE_PREFIXES: dict[InvoiceType, str] = {
    InvoiceType.ADMIN_TO_CUSTOMER: "INV",
    InvoiceType.VENDOR_TO_ADMIN: "VND",
}


def format_invoice_number(invoice_type: InvoiceType, year: int, sequence: int) -> str:
    """INV-2026-00042 / VND-2026-00007."""
    return f"{INVOICE_PREFIXES[invoice_type]}-{year}-{sequence:05d}"


@dataclass
class Invoice:
    id: str
    invoice_number: str
    invoice_type: InvoiceType
    order_id: str                    # primary order
    group_id: str
    scope_key: str                   # group_id (customer) or order_id (vendor)
    buyer_id: str
    vendor_id: str | None
    payment_status: str              # InvoicePaymentStatus value
    subtotal: int                    # minor units, immutable snapshot
    vat_amount: int
    shipping_amount: int
    packing_amount: int
    total_amount: int
    currency: str
    access_token: str
    comments: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
