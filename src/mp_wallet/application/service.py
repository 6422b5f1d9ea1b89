"""WalletApplicationService: balances, ledger history and per-order fund movements.

The order-level operations (lock / unlock / reverse) do NOT commit: they run inside the
order transition transaction, which already holds the order row lock.
"""

import logging
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_common.money import to_display
from src.mp_wallet.application.schemas import (
    BalanceResponse,
    LedgerEntryItem,
    LedgerResponse,
    cursor_decode,
    cursor_encode,
)
from src.mp_wallet.domain.fund_locking import compute_lock_credits, lock_idempotency_key
from src.mp_wallet.domain.repository import WalletRepositoryProtocol
from src.mp_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)


class WalletApplicationService:
    def __init__(
        self,
        repo: WalletRepositoryProtocol | None = None,
        platform_account_id: str | None = None,
    ) -> None:
        self._repo: WalletRepositoryProtocol = repo or WalletRepository()
        self._platform_account_id = platform_account_id or settings.PLATFORM_ACCOUNT_ID

    @property
    def repo(self) -> WalletRepositoryProtocol:
        return self._repo

    async def ensure_platform_account(self, db: AsyncSession) -> str:
        """Create the platform revenue wallet if missing. Called once at startup."""
        try:
            await self._repo.ensure_account(db, self._platform_account_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Platform revenue account ready: %s", self._platform_account_id)
        return self._platform_account_id

    async def lock_order_wallets(self, db: AsyncSession, vendor_ids: Iterable[str | None]) -> None:
        """Lock the wallets the orders' fund movements can touch, platform included."""
        user_ids = {v for v in vendor_ids if v is not None}
        user_ids.add(self._platform_account_id)
        await self._repo.lock_accounts(db, user_ids)

    async def lock_order_funds(
        self,
        db: AsyncSession,
        *,
        order_id: str,
        vendor_id: str | None,
        subtotal_base: int,
        shipping_total: int,
        packing_total: int,
        vendor_vat_rate_bps: int,
        total_amount: int,
    ) -> int:
        """Credit the order's locked funds. Returns the amount newly credited (0 on replay)."""
        credits = compute_lock_credits(
            vendor_id=vendor_id,
            subtotal_base=subtotal_base,
            shipping_total=shipping_total,
            packing_total=packing_total,
            vendor_vat_rate_bps=vendor_vat_rate_bps,
            total_amount=total_amount,
            platform_account_id=self._platform_account_id,
        )
        credited = 0
        for c in credits:
            entry = await self._repo.credit(
                db,
                c.user_id,
                c.amount,
                c.category,
                related_order_id=order_id,
                locked=True,
                idempotency_key=lock_idempotency_key(order_id, c.category),
                description=f"Locked {c.category} for order {order_id}",
            )
            if entry is not None:
                credited += c.amount
        if credited:
            logger.info("Locked %d for order %s", credited, order_id)
        return credited

    async def unlock_order_funds(self, db: AsyncSession, order_id: str) -> int:
        return await self._repo.unlock_by_order(db, order_id)

    async def reverse_order_funds(self, db: AsyncSession, order_id: str, reason: str) -> int:
        return await self._repo.reverse_by_order(db, order_id, reason)

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        balance = await self._repo.get_balance(db, user_id)
        return BalanceResponse.from_amounts(
            user_id=user_id,
            available=balance.available,
            locked=balance.locked,
            currency=settings.CURRENCY,
        )

    async def list_ledger(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        category: str | None,
    ) -> LedgerResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._repo.list_entries(db, user_id, cursor_id, limit + 1, category)
        has_more = len(entries) > limit
        page = entries[:limit]

        items = [
            LedgerEntryItem(
                id=e.id,
                entry_type=e.entry_type,
                category=e.category,
                amount=e.amount,
                amount_display=to_display(e.amount, settings.CURRENCY),
                locked=e.locked,
                available_after=e.available_after,
                locked_after=e.locked_after,
                related_order_id=e.related_order_id,
                reference_type=e.reference_type,
                reference_id=e.reference_id,
                source_entry_id=e.source_entry_id,
                description=e.description,
                created_at=e.created_at.isoformat() if e.created_at else "",
            )
            for e in page
        ]

        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return LedgerResponse(items=items, next_cursor=next_cursor, has_more=has_more)
