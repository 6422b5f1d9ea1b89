"""WalletRepository: concrete implementation of WalletRepositoryProtocol.

Every balance change is one appended ledger row plus an UPDATE of the materialized
wallet row, in the caller's transaction. The wallet row is locked (SELECT ... FOR UPDATE)
before the append so the *_after snapshots are exact.

Lock order: a unit of work that touches several wallets locks them all up front with
lock_accounts, sorted by user_id. Concurrent order groups sharing vendors and the platform
account then queue instead of deadlocking.

Idempotency: ledger_entries.idempotency_key is UNIQUE and inserts use
ON CONFLICT DO NOTHING. No returned row means the effect was already applied,
in which case the wallet row is left untouched and None is returned.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

import logging
from collections.abc import Iterable

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.enums import LedgerCategory, LedgerEntryType
from src.mp_common.errors import InsufficientFundsError, InternalError
from src.mp_common.money import validate_amount
from src.mp_wallet.domain.models import Balance, LedgerEntry, WalletAccount

logger = logging.getLogger(__name__)

_ENTRY_COLUMNS = """
    id, user_id, entry_type, category, amount, locked, idempotency_key,
    available_after, locked_after, related_order_id, reference_type, reference_id,
    source_entry_id, description, created_at
"""

_WALLET_COLUMNS = "user_id, available_balance, locked_balance, version, created_at, updated_at"

# ---------------------------------------------------------------------------
# SQL: wallet rows
# ---------------------------------------------------------------------------

_ENSURE_WALLET_SQL = text("""
    INSERT INTO wallet_accounts (user_id)
    VALUES (:user_id)
    ON CONFLICT (user_id) DO NOTHING
""")

_GET_WALLET_SQL = text(f"""
    SELECT {_WALLET_COLUMNS}
    FROM wallet_accounts
    WHERE user_id = :user_id
""")

_LOCK_WALLET_SQL = text(f"""
    SELECT {_WALLET_COLUMNS}
    FROM wallet_accounts
    WHERE user_id = :user_id
    FOR UPDATE
""")

_UPDATE_WALLET_SQL = text("""
    UPDATE wallet_accounts
    SET available_balance = :available_after,
        locked_balance    = :locked_after,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id
""")

# ---------------------------------------------------------------------------
# SQL: ledger
# ---------------------------------------------------------------------------

_INSERT_ENTRY_SQL = text(f"""
    INSERT INTO ledger_entries
        (user_id, entry_type, category, amount, locked, idempotency_key,
         available_after, locked_after, related_order_id, reference_type,
         reference_id, source_entry_id, description)
    VALUES
        (:user_id, :entry_type, :category, :amount, :locked, :idempotency_key,
         :available_after, :locked_after, :related_order_id, :reference_type,
         :reference_id, :source_entry_id, :description)
    ON CONFLICT (idempotency_key) DO NOTHING
    RETURNING {_ENTRY_COLUMNS}
""")

_SUM_LEDGER_SQL = text("""
    SELECT COALESCE(SUM(amount) FILTER (WHERE NOT locked), 0) AS available,
           COALESCE(SUM(amount) FILTER (WHERE locked), 0)     AS locked
    FROM ledger_entries
    WHERE user_id = :user_id
""")

# Credits of an order that have neither been released nor reversed yet.
_STILL_LOCKED_CREDITS_SQL = text(f"""
    SELECT {_ENTRY_COLUMNS}
    FROM ledger_entries e
    WHERE e.related_order_id = :order_id
      AND e.entry_type = 'CREDIT'
      AND e.locked = TRUE
      AND NOT EXISTS (
          SELECT 1 FROM ledger_entries s
          WHERE s.source_entry_id = e.id
            AND s.entry_type IN ('UNLOCK_RELEASE', 'REVERSAL')
      )
    ORDER BY e.id
""")

_LIST_ENTRIES_SQL = text(f"""
    SELECT {_ENTRY_COLUMNS}
    FROM ledger_entries
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
      AND (CAST(:category AS TEXT) IS NULL OR category = :category)
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_wallet(row: object) -> WalletAccount:
    return WalletAccount(
        user_id=row.user_id,  # type: ignore[attr-defined]
        available_balance=row.available_balance,  # type: ignore[attr-defined]
        locked_balance=row.locked_balance,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_entry(row: object) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        entry_type=row.entry_type,  # type: ignore[attr-defined]
        category=row.category,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        locked=row.locked,  # type: ignore[attr-defined]
        idempotency_key=row.idempotency_key,  # type: ignore[attr-defined]
        available_after=row.available_after,  # type: ignore[attr-defined]
        locked_after=row.locked_after,  # type: ignore[attr-defined]
        related_order_id=row.related_order_id,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        source_entry_id=row.source_entry_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class WalletRepository:
    """Append-only ledger with a row-locked materialized balance per user."""

    async def ensure_account(self, db: AsyncSession, user_id: str) -> None:
        await db.execute(_ENSURE_WALLET_SQL, {"user_id": user_id})

    async def get_account(self, db: AsyncSession, user_id: str) -> WalletAccount | None:
        row = (await db.execute(_GET_WALLET_SQL, {"user_id": user_id})).fetchone()
        return _row_to_wallet(row) if row else None

    async def lock_accounts(self, db: AsyncSession, user_ids: Iterable[str]) -> None:
        """Lock several wallet rows FOR UPDATE in user_id order. Held until commit."""
        for user_id in sorted(set(user_ids)):
            await self._lock_wallet(db, user_id)

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
    ) -> LedgerEntry | None:
        validate_amount(amount)
        wallet = await self._lock_wallet(db, user_id)
        return await self._append(
            db,
            wallet,
            entry_type=LedgerEntryType.CREDIT.value,
            category=category,
            amount=amount,
            locked=locked,
            idempotency_key=idempotency_key,
            related_order_id=related_order_id,
            reference_type="ORDER" if related_order_id else None,
            reference_id=related_order_id,
            description=description,
        )

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
    ) -> LedgerEntry | None:
        """Debit the available bucket. Locked funds never count towards the check."""
        validate_amount(amount)
        wallet = await self._lock_wallet(db, user_id)
        balance = await self._sum_ledger(db, user_id)
        if balance.available < amount:
            raise InsufficientFundsError(amount, balance.available)
        return await self._append(
            db,
            wallet,
            entry_type=LedgerEntryType.PAYOUT_DEBIT.value,
            category=category,
            amount=-amount,
            locked=False,
            idempotency_key=idempotency_key,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
        )

    async def unlock_by_order(self, db: AsyncSession, order_id: str) -> int:
        """Move every still-locked credit of the order to available. Returns the total moved."""
        total = 0
        for credit in await self._still_locked_credits(db, order_id):
            wallet = await self._lock_wallet(db, credit.user_id)
            release = await self._append(
                db,
                wallet,
                entry_type=LedgerEntryType.UNLOCK_RELEASE.value,
                category=credit.category,
                amount=-credit.amount,
                locked=True,
                idempotency_key=f"entry:{credit.id}:release",
                related_order_id=order_id,
                reference_type="ORDER",
                reference_id=order_id,
                source_entry_id=credit.id,
                description="Released on delivery",
            )
            if release is None:
                continue
            await self._append(
                db,
                wallet,
                entry_type=LedgerEntryType.UNLOCK_RECEIPT.value,
                category=credit.category,
                amount=credit.amount,
                locked=False,
                idempotency_key=f"entry:{credit.id}:receipt",
                related_order_id=order_id,
                reference_type="ORDER",
                reference_id=order_id,
                source_entry_id=credit.id,
                description="Available after delivery",
            )
            total += credit.amount
        if total:
            logger.info("Unlocked %d for order %s", total, order_id)
        return total

    async def reverse_by_order(self, db: AsyncSession, order_id: str, reason: str) -> int:
        """Remove every still-locked credit of the order. Returns the total removed."""
        total = 0
        for credit in await self._still_locked_credits(db, order_id):
            wallet = await self._lock_wallet(db, credit.user_id)
            reversal = await self._append(
                db,
                wallet,
                entry_type=LedgerEntryType.REVERSAL.value,
                category=LedgerCategory.REFUND.value,
                amount=-credit.amount,
                locked=True,
                idempotency_key=f"entry:{credit.id}:reversal",
                related_order_id=order_id,
                reference_type="ORDER",
                reference_id=order_id,
                source_entry_id=credit.id,
                description=reason,
            )
            if reversal is not None:
                total += credit.amount
        if total:
            logger.info("Reversed %d locked for order %s (%s)", total, order_id, reason)
        return total

    async def get_balance(
        self, db: AsyncSession, user_id: str, for_update: bool = False
    ) -> Balance:
        if for_update:
            await self._lock_wallet(db, user_id)
        return await self._sum_ledger(db, user_id)

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        category: str | None,
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _LIST_ENTRIES_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "category": category,
                "limit": limit,
            },
        )
        return [_row_to_entry(r) for r in result.fetchall()]

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    async def _lock_wallet(self, db: AsyncSession, user_id: str) -> WalletAccount:
        await db.execute(_ENSURE_WALLET_SQL, {"user_id": user_id})
        row = (await db.execute(_LOCK_WALLET_SQL, {"user_id": user_id})).fetchone()
        if row is None:
            raise InternalError(f"Wallet row missing after upsert for user {user_id}")
        return _row_to_wallet(row)

    async def _sum_ledger(self, db: AsyncSession, user_id: str) -> Balance:
        row = (await db.execute(_SUM_LEDGER_SQL, {"user_id": user_id})).fetchone()
        if row is None:
            return Balance(available=0, locked=0)
        return Balance(available=int(row.available), locked=int(row.locked))

    async def _still_locked_credits(self, db: AsyncSession, order_id: str) -> list[LedgerEntry]:
        result = await db.execute(_STILL_LOCKED_CREDITS_SQL, {"order_id": order_id})
        return [_row_to_entry(r) for r in result.fetchall()]

    async def _append(
        self,
        db: AsyncSession,
        wallet: WalletAccount,
        *,
        entry_type: str,
        category: str,
        amount: int,
        locked: bool,
        idempotency_key: str,
        related_order_id: str | None = None,
        reference_type: str | None = None,
        reference_id: str | None = None,
        source_entry_id: int | None = None,
        description: str | None = None,
    ) -> LedgerEntry | None:
        """Append one entry against an already-locked wallet and update it in place."""
        available_after = wallet.available_balance + (0 if locked else amount)
        locked_after = wallet.locked_balance + (amount if locked else 0)
        row = (
            await db.execute(
                _INSERT_ENTRY_SQL,
                {
                    "user_id": wallet.user_id,
                    "entry_type": entry_type,
                    "category": category,
                    "amount": amount,
                    "locked": locked,
                    "idempotency_key": idempotency_key,
                    "available_after": available_after,
                    "locked_after": locked_after,
                    "related_order_id": related_order_id,
                    "reference_type": reference_type,
                    "reference_id": reference_id,
                    "source_entry_id": source_entry_id,
                    "description": description,
                },
            )
        ).fetchone()
        if row is None:
            logger.debug("Ledger entry %s already applied", idempotency_key)
            return None
        await db.execute(
            _UPDATE_WALLET_SQL,
            {
                "user_id": wallet.user_id,
                "available_after": available_after,
                "locked_after": locked_after,
            },
        )
        wallet.available_balance = available_after
        wallet.locked_balance = locked_after
        wallet.version += 1
        return _row_to_entry(row)
