# src/mp_admin/application/reconciliation.py
"""Ledger reconciliation: wallet rows vs ledger sums, and per-order conservation.

Violations are logged at ERROR and returned. Nothing is ever corrected automatically;
the ledger is the source of truth and a human decides how to repair a mismatch.
"""
import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.errors import IntegrityError

logger = logging.getLogger(__name__)

_LEDGER_AVAILABLE = "COALESCE(SUM(e.amount) FILTER (WHERE NOT e.locked), 0)"
_LEDGER_LOCKED = "COALESCE(SUM(e.amount) FILTER (WHERE e.locked), 0)"

_WALLET_MISMATCH_SQL = text(f"""
    SELECT w.user_id, w.available_balance, w.locked_balance,
           {_LEDGER_AVAILABLE} AS ledger_available,
           {_LEDGER_LOCKED}    AS ledger_locked
    FROM wallet_accounts w
    LEFT JOIN ledger_entries e ON e.user_id = w.user_id
    GROUP BY w.user_id, w.available_balance, w.locked_balance
    HAVING w.available_balance <> {_LEDGER_AVAILABLE}
        OR w.locked_balance <> {_LEDGER_LOCKED}
        OR w.available_balance < 0
        OR w.locked_balance < 0
""")

_WALLET_ONE_SQL = text(f"""
    SELECT w.user_id, w.available_balance, w.locked_balance,
           {_LEDGER_AVAILABLE} AS ledger_available,
           {_LEDGER_LOCKED}    AS ledger_locked
    FROM wallet_accounts w
    LEFT JOIN ledger_entries e ON e.user_id = w.user_id
    WHERE w.user_id = :user_id
    GROUP BY w.user_id, w.available_balance, w.locked_balance
""")

_CREDITED = "COALESCE(SUM(e.amount) FILTER (WHERE e.entry_type = 'CREDIT'), 0)"
_RELEASED = "COALESCE(SUM(e.amount) FILTER (WHERE e.entry_type = 'UNLOCK_RECEIPT'), 0)"

# Every delivered order must have credited exactly its total and released all of it.
_ORDER_MISMATCH_SQL = text(f"""
    SELECT o.id, o.total_amount,
           {_CREDITED} AS credited,
           {_RELEASED} AS released
    FROM orders o
    LEFT JOIN ledger_entries e ON e.related_order_id = o.id
    WHERE o.shipment_status = 'delivered'
    GROUP BY o.id, o.total_amount
    HAVING {_CREDITED} <> o.total_amount OR {_RELEASED} <> o.total_amount
""")


def wallet_violation(row: Any) -> str | None:
    problems: list[str] = []
    if row.available_balance != row.ledger_available:
        problems.append(f"available {row.available_balance} != ledger {row.ledger_available}")
    if row.locked_balance != row.ledger_locked:
        problems.append(f"locked {row.locked_balance} != ledger {row.ledger_locked}")
    if row.available_balance < 0 or row.locked_balance < 0:
        problems.append("negative bucket")
    if not problems:
        return None
    return f"wallet {row.user_id}: " + "; ".join(problems)


def order_violation(row: Any) -> str | None:
    problems: list[str] = []
    if row.credited != row.total_amount:
        problems.append(f"credited {row.credited} != total {row.total_amount}")
    if row.released != row.total_amount:
        problems.append(f"released {row.released} != total {row.total_amount}")
    if not problems:
        return None
    return f"order {row.id}: " + "; ".join(problems)


class ReconciliationService:
    async def verify_wallets(self, db: AsyncSession) -> list[str]:
        rows = (await db.execute(_WALLET_MISMATCH_SQL)).fetchall()
        return _collect(wallet_violation(r) for r in rows)

    async def verify_order_conservation(self, db: AsyncSession) -> list[str]:
        rows = (await db.execute(_ORDER_MISMATCH_SQL)).fetchall()
        return _collect(order_violation(r) for r in rows)

    async def assert_wallet_consistent(self, db: AsyncSession, user_id: str) -> None:
        row = (await db.execute(_WALLET_ONE_SQL, {"user_id": user_id})).fetchone()
        if row is None:
            return
        violation = wallet_violation(row)
        if violation is not None:
            logger.error("Reconciliation violation: %s", violation)
            raise IntegrityError(violation)

    async def reconcile(self, db: AsyncSession) -> dict[str, object]:
        violations = await self.verify_wallets(db)
        violations.extend(await self.verify_order_conservation(db))
        return {"ok": len(violations) == 0, "violations": violations}


def _collect(candidates: Any) -> list[str]:
    violations = [v for v in candidates if v is not None]
    for v in violations:
        logger.error("Reconciliation violation: %s", v)
    return violations
