"""Repository Protocol for orders, order items and status history."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_order.domain.models import Order, OrderItem, StatusHistoryEntry


class OrderRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, order: Order) -> None: ...

    async def get_by_id(self, db: AsyncSession, order_id: str) -> Order | None: ...

    async def lock_for_update(self, db: AsyncSession, order_id: str) -> Order | None: ...

    async def get_by_group(self, db: AsyncSession, group_id: str) -> list[Order]: ...

    async def lock_group_for_update(self, db: AsyncSession, group_id: str) -> list[Order]: ...

    async def get_by_tracking_number(
        self, db: AsyncSession, tracking_number: str
    ) -> Order | None: ...

    async def order_number_exists(self, db: AsyncSession, order_number: str) -> bool: ...

    async def update_status(self, db: AsyncSession, order: Order) -> None: ...

    async def list_items(self, db: AsyncSession, order_id: str) -> list[OrderItem]: ...

    async def insert_history(self, db: AsyncSession, entry: StatusHistoryEntry) -> None: ...

    async def list_history(self, db: AsyncSession, order_id: str) -> list[StatusHistoryEntry]: ...
