"""Which invoice actions an applied order transition triggers.

Pure function of the locked previous status and the new status:
  - first time paid + approved is reached: generate the customer invoice (group scope)
    and, for a vendor-owned order, the vendor invoice
  - payment moves to paid: mark the customer invoice paid
  - shipment moves to delivered on a vendor-owned order: mark the vendor invoice paid
"""

from enum import Enum

from src.mp_common.enums import PaymentStatus, ShipmentStatus
from src.mp_order.domain.models import StatusTriple


class InvoiceAction(str, Enum):
    GENERATE_CUSTOMER_INVOICE = "GENERATE_CUSTOMER_INVOICE"
    GENERATE_VENDOR_INVOICE = "GENERATE_VENDOR_INVOICE"
    MARK_CUSTOMER_INVOICE_PAID = "MARK_CUSTOMER_INVOICE_PAID"
    MARK_VENDOR_INVOICE_PAID = "MARK_VENDOR_INVOICE_PAID"


def decide_invoice_actions(
    previous: StatusTriple, new: StatusTriple, vendor_owned: bool = True
) -> list[InvoiceAction]:
    actions: list[InvoiceAction] = []
    if new.is_paid_and_approved and not previous.is_paid_and_approved:
        actions.append(InvoiceAction.GENERATE_CUSTOMER_INVOICE)
        if vendor_owned:
            actions.append(InvoiceAction.GENERATE_VENDOR_INVOICE)
    if (
        new.payment_status is PaymentStatus.PAID
        and previous.payment_status is not PaymentStatus.PAID
    ):
        actions.append(InvoiceAction.MARK_CUSTOMER_INVOICE_PAID)
    if (
        vendor_owned
        and new.shipment_status is ShipmentStatus.DELIVERED
        and previous.shipment_status is not ShipmentStatus.DELIVERED
    ):
        actions.append(InvoiceAction.MARK_VENDOR_INVOICE_PAID)
    return actions
