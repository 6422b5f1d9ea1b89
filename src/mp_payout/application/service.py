"""PayoutService: withdrawal requests and their admin review.

    request  -> pending               (amount > 0, available >= amount)
    approve  pending -> approved      (re-checks available under the wallet lock)
    pay      pending|approved -> paid (debits available in the same transaction)
    reject   pending|approved -> rejected (no ledger effect)

Only available funds count; locked (undelivered) earnings never satisfy a payout.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_common.enums import LedgerCategory, PayoutStatus
from src.mp_common.errors import (
    ForbiddenError,
    InsufficientFundsError,
    IntegrityError,
    PayoutNotFoundError,
    PayoutStateError,
    ValidationError,
)
from src.mp_payout.application.schemas import (
    PayoutListResponse,
    PayoutResponse,
    cursor_decode,
    cursor_encode,
)
from src.mp_payout.domain.models import PayoutRequest
from src.mp_payout.domain.repository import PayoutRepositoryProtocol
from src.mp_payout.infrastructure.persistence import PayoutRepository
from src.mp_wallet.domain.repository import WalletRepositoryProtocol
from src.mp_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)


class PayoutService:
    def __init__(
        self,
        repo: PayoutRepositoryProtocol | None = None,
        wallet_repo: WalletRepositoryProtocol | None = None,
    ) -> None:
        self._repo: PayoutRepositoryProtocol = repo or PayoutRepository()
        self._wallet: WalletRepositoryProtocol = wallet_repo or WalletRepository()

    async def request(self, db: AsyncSession, user_id: str, amount: int) -> PayoutRequest:
        if amount <= 0:
            raise ValidationError(f"Payout amount must be positive, got {amount}")
        try:
            balance = await self._wallet.get_balance(db, user_id, for_update=True)
            if balance.available < amount:
                raise InsufficientFundsError(amount, balance.available)
            payout = await self._repo.create(db, user_id, amount)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Payout %s requested by %s for %d", payout.id, user_id, amount)
        return payout

    async def approve(
        self, db: AsyncSession, payout_id: int, admin_id: str, note: str | None = None
    ) -> PayoutRequest:
        try:
            payout = await self._lock(db, payout_id, PayoutStatus.APPROVED, "approved")
            balance = await self._wallet.get_balance(db, payout.user_id, for_update=True)
            if balance.available < payout.amount:
                raise InsufficientFundsError(payout.amount, balance.available)
            payout.status = PayoutStatus.APPROVED
            payout.admin_note = note
            payout.reviewed_by = admin_id
            payout = await self._repo.save_review(db, payout)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Payout %s approved by %s", payout_id, admin_id)
        return payout

    async def pay(
        self,
        db: AsyncSession,
        payout_id: int,
        admin_id: str,
        transaction_reference: str,
        note: str | None = None,
    ) -> PayoutRequest:
        if not transaction_reference or not transaction_reference.strip():
            raise ValidationError("transaction_reference is required to mark a payout paid")
        try:
            payout = await self._lock(db, payout_id, PayoutStatus.PAID, "paid")
            entry = await self._wallet.debit(
                db,
                payout.user_id,
                payout.amount,
                LedgerCategory.PAYOUT.value,
                reference_type="PAYOUT",
                reference_id=str(payout.id),
                idempotency_key=f"payout:{payout.id}:debit",
                description=f"Payout {transaction_reference}",
            )
            if entry is None:
                raise IntegrityError(f"payout {payout.id} already debited but not marked paid")
            payout.status = PayoutStatus.PAID
            payout.transaction_reference = transaction_reference.strip()
            payout.admin_note = note if note is not None else payout.admin_note
            payout.reviewed_by = admin_id
            payout.ledger_entry_id = entry.id
            payout = await self._repo.save_review(db, payout)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Payout %s paid by %s (ref %s)", payout_id, admin_id, transaction_reference)
        return payout

    async def reject(
        self, db: AsyncSession, payout_id: int, admin_id: str, note: str | None = None
    ) -> PayoutRequest:
        try:
            payout = await self._lock(db, payout_id, PayoutStatus.REJECTED, "rejected")
            payout.status = PayoutStatus.REJECTED
            payout.admin_note = note
            payout.reviewed_by = admin_id
            payout = await self._repo.save_review(db, payout)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Payout %s rejected by %s", payout_id, admin_id)
        return payout

    async def get(
        self, db: AsyncSession, payout_id: int, actor_id: str, is_admin: bool
    ) -> PayoutRequest:
        payout = await self._repo.get(db, payout_id)
        if payout is None:
            raise PayoutNotFoundError(str(payout_id))
        if not is_admin and payout.user_id != actor_id:
            raise ForbiddenError("Not your payout request")
        return payout

    async def list_payouts(
        self,
        db: AsyncSession,
        user_id: str | None,
        status: str | None,
        cursor: str | None,
        limit: int,
    ) -> PayoutListResponse:
        cursor_id = cursor_decode(cursor)
        rows = await self._repo.list_requests(db, user_id, status, cursor_id, limit + 1)
        has_more = len(rows) > limit
        page = rows[:limit]
        return PayoutListResponse(
            items=[PayoutResponse.from_domain(p, settings.CURRENCY) for p in page],
            next_cursor=cursor_encode(page[-1].id) if has_more and page else None,
            has_more=has_more,
        )

    async def _lock(
        self, db: AsyncSession, payout_id: int, target: PayoutStatus, action: str
    ) -> PayoutRequest:
        payout = await self._repo.lock_for_update(db, payout_id)
        if payout is None:
            raise PayoutNotFoundError(str(payout_id))
        if not payout.can_move_to(target):
            raise PayoutStateError(str(payout_id), payout.status.value, action)
        return payout
