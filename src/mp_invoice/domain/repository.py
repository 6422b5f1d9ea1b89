"""Repository and renderer Protocols for mp_invoice."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_invoice.domain.models import Invoice


class InvoiceRepositoryProtocol(Protocol):
    async def next_number(self, db: AsyncSession, invoice_type: str, year: int) -> int: ...

    async def get_by_scope(
        self, db: AsyncSession, invoice_type: str, scope_key: str
    ) -> Invoice | None: ...

    async def insert(self, db: AsyncSession, invoice: Invoice) -> bool: ...

    async def mark_paid(self, db: AsyncSession, invoice_type: str, scope_key: str) -> bool: ...

    async def get_by_id(self, db: AsyncSession, invoice_id: str) -> Invoice | None: ...

    async def get_by_token(self, db: AsyncSession, access_token: str) -> Invoice | None: ...

    async def list_for_order(
        self, db: AsyncSession, order_id: str, group_id: str
    ) -> list[Invoice]: ...


class InvoiceRendererProtocol(Protocol):
    """Renders an invoice document (HTML/PDF) outside this service."""

    async def render(self, invoice_id: str) -> None: ...
