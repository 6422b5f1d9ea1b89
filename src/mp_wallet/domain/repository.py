"""Repository Protocol: dependency inversion for testability.

Unit tests inject a fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from collections.abc import Iterable
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_wallet.domain.models import Balance, LedgerEntry, WalletAccount


class WalletRepositoryProtocol(Protocol):
    async def ensure_account(self, db: AsyncSession, user_id: str) -> None: ...

    async def get_account(self, db: AsyncSession, user_id: str) -> WalletAccount | None: ...

    async def lock_accounts(self, db: AsyncSession, user_ids: Iterable[str]) -> None: ...

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        category: str,
        related_order_id: str | None,
        locked: bool,
        idempotency_key: str,
        description: str | None = None,
    ) -> LedgerEntry | None: ...

    async def debit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        category: str,
        reference_type: str,
        reference_id: str,
        idempotency_key: str,
        description: str | None = None,
    ) -> LedgerEntry | None: ...

    async def unlock_by_order(self, db: AsyncSession, order_id: str) -> int: ...

    async def reverse_by_order(self, db: AsyncSession, order_id: str, reason: str) -> int: ...

    async def get_balance(
        self, db: AsyncSession, user_id: str, for_update: bool = False
    ) -> Balance: ...

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        category: str | None,
    ) -> list[LedgerEntry]: ...
