"""Repository Protocol for payout requests."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_payout.domain.models import PayoutRequest


class PayoutRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, user_id: str, amount: int) -> PayoutRequest: ...

    async def get(self, db: AsyncSession, payout_id: int) -> PayoutRequest | None: ...

    async def lock_for_update(self, db: AsyncSession, payout_id: int) -> PayoutRequest | None: ...

    async def save_review(self, db: AsyncSession, payout: PayoutRequest) -> PayoutRequest: ...

    async def list_requests(
        self,
        db: AsyncSession,
        user_id: str | None,
        status: str | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[PayoutRequest]: ...
