"""InvoiceRepository: raw SQL persistence for invoices and the yearly counters.

(invoice_type, scope_key) is UNIQUE; insert uses ON CONFLICT DO NOTHING so a racing
second generation for the same scope is a no-op. Numbers come from invoice_counters,
incremented with an upsert that row-locks the (type, year) counter until commit.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.enums import InvoiceType
from src.mp_invoice.domain.models import Invoice

_SELECT_COLUMNS = """
    id, invoice_number, invoice_type, order_id, group_id, scope_key, buyer_id, vendor_id,
    payment_status, subtotal, vat_amount, shipping_amount, packing_amount, total_amount,
    currency, access_token, comments, created_at, updated_at
"""

_NEXT_NUMBER_SQL = text("""
    INSERT INTO invoice_counters (invoice_type, year, last_number)
    VALUES (:invoice_type, :year, 1)
    ON CONFLICT (invoice_type, year)
    DO UPDATE SET last_number = invoice_counters.last_number + 1
    RETURNING last_number
""")

_INSERT_SQL = text("""
    INSERT INTO invoices (id, invoice_number, invoice_type, order_id, group_id, scope_key,
        buyer_id, vendor_id, payment_status, subtotal, vat_amount, shipping_amount,
        packing_amount, total_amount, currency, access_token, comments)
    VALUES (:id, :invoice_number, :invoice_type, :order_id, :group_id, :scope_key,
        :buyer_id, :vendor_id, :payment_status, :subtotal, :vat_amount, :shipping_amount,
        :packing_amount, :total_amount, :currency, :access_token, :comments)
    ON CONFLICT (invoice_type, scope_key) DO NOTHING
    RETURNING id
""")

_GET_BY_SCOPE_SQL = text(f"""
    SELECT {_SELECT_COLUMNS} FROM invoices
    WHERE invoice_type = :invoice_type AND scope_key = :scope_key
""")

_MARK_PAID_SQL = text("""
    UPDATE invoices
    SET payment_status = 'paid', updated_at = NOW()
    WHERE invoice_type = :invoice_type AND scope_key = :scope_key
      AND payment_status = 'unpaid'
    RETURNING id
""")

_GET_BY_ID_SQL = text(f"SELECT {_SELECT_COLUMNS} FROM invoices WHERE id = :id")

_GET_BY_TOKEN_SQL = text(f"SELECT {_SELECT_COLUMNS} FROM invoices WHERE access_token = :token")

_LIST_FOR_ORDER_SQL = text(f"""
    SELECT {_SELECT_COLUMNS} FROM invoices
    WHERE (invoice_type = 'admin_to_customer' AND scope_key = :group_id)
       OR (invoice_type = 'vendor_to_admin' AND scope_key = :order_id)
    ORDER BY created_at
""")


def _row_to_invoice(row: Any) -> Invoice:
    return Invoice(
        id=str(row.id),
        invoice_number=row.invoice_number,
        invoice_type=InvoiceType(row.invoice_type),
        order_id=str(row.order_id),
        group_id=row.group_id,
        scope_key=row.scope_key,
        buyer_id=row.buyer_id,
        vendor_id=row.vendor_id,
        payment_status=row.payment_status,
        subtotal=row.subtotal,
        vat_amount=row.vat_amount,
        shipping_amount=row.shipping_amount,
        packing_amount=row.packing_amount,
        total_amount=row.total_amount,
        currency=row.currency,
        access_token=row.access_token,
        comments=row.comments,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class InvoiceRepository:
    async def next_number(self, db: AsyncSession, invoice_type: str, year: int) -> int:
        result = await db.execute(_NEXT_NUMBER_SQL, {"invoice_type": invoice_type, "year": year})
        return int(result.scalar_one())

    async def get_by_scope(
        self, db: AsyncSession, invoice_type: str, scope_key: str
    ) -> Invoice | None:
        row = (
            await db.execute(
                _GET_BY_SCOPE_SQL, {"invoice_type": invoice_type, "scope_key": scope_key}
            )
        ).fetchone()
        return _row_to_invoice(row) if row else None

    async def insert(self, db: AsyncSession, invoice: Invoice) -> bool:
        """Returns False when an invoice for the same (type, scope) already exists."""
        result = await db.execute(
            _INSERT_SQL,
            {
                "id": invoice.id,
                "invoice_number": invoice.invoice_number,
                "invoice_type": invoice.invoice_type.value,
                "order_id": invoice.order_id,
                "group_id": invoice.group_id,
                "scope_key": invoice.scope_key,
                "buyer_id": invoice.buyer_id,
                "vendor_id": invoice.vendor_id,
                "payment_status": invoice.payment_status,
                "subtotal": invoice.subtotal,
                "vat_amount": invoice.vat_amount,
                "shipping_amount": invoice.shipping_amount,
                "packing_amount": invoice.packing_amount,
                "total_amount": invoice.total_amount,
                "currency": invoice.currency,
                "access_token": invoice.access_token,
                "comments": invoice.comments,
            },
        )
        return result.fetchone() is not None

    async def mark_paid(self, db: AsyncSession, invoice_type: str, scope_key: str) -> bool:
        result = await db.execute(
            _MARK_PAID_SQL, {"invoice_type": invoice_type, "scope_key": scope_key}
        )
        return result.fetchone() is not None

    async def get_by_id(self, db: AsyncSession, invoice_id: str) -> Invoice | None:
        row = (await db.execute(_GET_BY_ID_SQL, {"id": invoice_id})).fetchone()
        return _row_to_invoice(row) if row else None

    async def get_by_token(self, db: AsyncSession, access_token: str) -> Invoice | None:
        row = (await db.execute(_GET_BY_TOKEN_SQL, {"token": access_token})).fetchone()
        return _row_to_invoice(row) if row else None

    async def list_for_order(
        self, db: AsyncSession, order_id: str, group_id: str
    ) -> list[Invoice]:
        result = await db.execute(
            _LIST_FOR_ORDER_SQL, {"order_id": order_id, "group_id": group_id}
        )
        return [_row_to_invoice(r) for r in result.fetchall()]
