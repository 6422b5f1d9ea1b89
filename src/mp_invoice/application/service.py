"""InvoiceService: generation, payment marking and lookup.

Generation runs inside the order transition transaction and is existence-checked by
scope: one customer invoice per order group, one vendor invoice per vendor order.
A second "generate" for an existing customer invoice only refreshes its payment status.
Rendering is delegated to an external renderer after the transaction commits.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.datetime_utils import current_year
from src.mp_common.enums import (
    InvoicePaymentStatus,
    InvoiceType,
    OrderStatus,
    PaymentStatus,
)
from src.mp_common.errors import InvoiceNotFoundError
from src.mp_common.id_generator import generate_access_token, generate_id
from src.mp_invoice.domain.models import Invoice, format_invoice_number
from src.mp_invoice.domain.repository import InvoiceRendererProtocol, InvoiceRepositoryProtocol
from src.mp_invoice.domain.triggers import InvoiceAction
from src.mp_invoice.infrastructure.persistence import InvoiceRepository
from src.mp_order.domain.models import Order
from src.mp_wallet.domain.fund_locking import compute_vendor_earning

logger = logging.getLogger(__name__)

_EXCLUDED_FROM_CUSTOMER_INVOICE = {OrderStatus.REJECTED, OrderStatus.CANCELLED}


class LoggingInvoiceRenderer:
    """Default renderer: documents are produced by an external service that polls invoices."""

    async def render(self, invoice_id: str) -> None:
        logger.info("Invoice %s ready for rendering", invoice_id)


class InvoiceService:
    def __init__(
        self,
        repo: InvoiceRepositoryProtocol | None = None,
        renderer: InvoiceRendererProtocol | None = None,
    ) -> None:
        self._repo: InvoiceRepositoryProtocol = repo or InvoiceRepository()
        self._renderer: InvoiceRendererProtocol = renderer or LoggingInvoiceRenderer()

    # ------------------------------------------------------------------
    # Trigger handling (caller owns the transaction)
    # ------------------------------------------------------------------

    async def apply_actions(
        self,
        db: AsyncSession,
        order: Order,
        actions: list[InvoiceAction],
        group_orders: list[Order] | None = None,
    ) -> list[str]:
        """Apply trigger actions for one order. Returns ids of newly created invoices."""
        created: list[str] = []
        for action in actions:
            match action:
                case InvoiceAction.GENERATE_CUSTOMER_INVOICE:
                    invoice = await self.generate_customer_invoice(
                        db, order, group_orders or [order]
                    )
                    if invoice is not None:
                        created.append(invoice.id)
                case InvoiceAction.GENERATE_VENDOR_INVOICE:
                    invoice = await self.generate_vendor_invoice(db, order)
                    if invoice is not None:
                        created.append(invoice.id)
                case InvoiceAction.MARK_CUSTOMER_INVOICE_PAID:
                    await self._repo.mark_paid(
                        db, InvoiceType.ADMIN_TO_CUSTOMER.value, order.group_id
                    )
                case InvoiceAction.MARK_VENDOR_INVOICE_PAID:
                    await self._repo.mark_paid(db, InvoiceType.VENDOR_TO_ADMIN.value, order.id)
        return created

    async def generate_customer_invoice(
        self, db: AsyncSession, order: Order, group_orders: list[Order]
    ) -> Invoice | None:
        """Group-scoped customer invoice. Returns None if one already exists."""
        invoice_type = InvoiceType.ADMIN_TO_CUSTOMER
        existing = await self._repo.get_by_scope(db, invoice_type.value, order.group_id)
        if existing is not None:
            if order.payment_status is PaymentStatus.PAID:
                await self._repo.mark_paid(db, invoice_type.value, order.group_id)
            return None

        billable = [
            o for o in group_orders if o.order_status not in _EXCLUDED_FROM_CUSTOMER_INVOICE
        ] or [order]
        invoice = Invoice(
            id=generate_id(),
            invoice_number="",
            invoice_type=invoice_type,
            order_id=order.id,
            group_id=order.group_id,
            scope_key=order.group_id,
            buyer_id=order.buyer_id,
            vendor_id=None,
            payment_status=(
                InvoicePaymentStatus.PAID.value
                if order.payment_status is PaymentStatus.PAID
                else InvoicePaymentStatus.UNPAID.value
            ),
            subtotal=sum(o.subtotal_base for o in billable),
            vat_amount=sum(o.vat_amount for o in billable),
            shipping_amount=sum(o.shipping_total for o in billable),
            packing_amount=sum(o.packing_total for o in billable),
            total_amount=sum(o.total_amount for o in billable),
            currency=order.currency,
            access_token=generate_access_token(),
        )
        return await self._insert_numbered(db, invoice)

    async def generate_vendor_invoice(self, db: AsyncSession, order: Order) -> Invoice | None:
        """Vendor-to-platform invoice for one vendor order. Returns None if it exists."""
        if order.vendor_id is None:
            return None
        invoice_type = InvoiceType.VENDOR_TO_ADMIN
        if await self._repo.get_by_scope(db, invoice_type.value, order.id) is not None:
            return None

        taxable = order.subtotal_base + order.shipping_total + order.packing_total
        vendor_earning = compute_vendor_earning(
            order.subtotal_base,
            order.shipping_total,
            order.packing_total,
            order.vendor_vat_rate_bps,
            order.total_amount,
        )
        invoice = Invoice(
            id=generate_id(),
            invoice_number="",
            invoice_type=invoice_type,
            order_id=order.id,
            group_id=order.group_id,
            scope_key=order.id,
            buyer_id=order.buyer_id,
            vendor_id=order.vendor_id,
            payment_status=InvoicePaymentStatus.UNPAID.value,
            subtotal=order.subtotal_base,
            vat_amount=max(vendor_earning - taxable, 0),
            shipping_amount=order.shipping_total,
            packing_amount=order.packing_total,
            total_amount=vendor_earning,
            currency=order.currency,
            access_token=generate_access_token(),
        )
        return await self._insert_numbered(db, invoice)

    async def render_all(self, invoice_ids: list[str]) -> None:
        """Hand freshly committed invoices to the renderer. Failures are logged, not raised."""
        for invoice_id in invoice_ids:
            try:
                await self._renderer.render(invoice_id)
            except Exception:
                logger.exception("Rendering invoice %s failed", invoice_id)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get(self, db: AsyncSession, invoice_id: str) -> Invoice:
        invoice = await self._repo.get_by_id(db, invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    async def get_by_token(self, db: AsyncSession, access_token: str) -> Invoice:
        invoice = await self._repo.get_by_token(db, access_token)
        if invoice is None:
            raise InvoiceNotFoundError("token")
        return invoice

    async def list_for_order(self, db: AsyncSession, order: Order) -> list[Invoice]:
        return await self._repo.list_for_order(db, order.id, order.group_id)

    async def _insert_numbered(self, db: AsyncSession, invoice: Invoice) -> Invoice | None:
        year = current_year()
        sequence = await self._repo.next_number(db, invoice.invoice_type.value, year)
        invoice.invoice_number = format_invoice_number(invoice.invoice_type, year, sequence)
        if not await self._repo.insert(db, invoice):
            # Lost a race with a concurrent generation for the same scope.
            return None
        logger.info(
            "Generated %s invoice %s for %s",
            invoice.invoice_type.value,
            invoice.invoice_number,
            invoice.scope_key,
        )
        return invoice
