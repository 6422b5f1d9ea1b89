"""PayoutRepository: raw SQL persistence for payout_requests.

Review operations read the row FOR UPDATE so two admins cannot pay the same request.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.enums import PayoutStatus
from src.mp_common.errors import InternalError
from src.mp_payout.domain.models import PayoutRequest

_COLUMNS = """
    id, user_id, amount, status, admin_note, transaction_reference, reviewed_by,
    reviewed_at, ledger_entry_id, created_at, updated_at
"""

_INSERT_SQL = text(f"""
    INSERT INTO payout_requests (user_id, amount, status)
    VALUES (:user_id, :amount, 'pending')
    RETURNING {_COLUMNS}
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM payout_requests WHERE id = :id")

_LOCK_SQL = text(f"SELECT {_COLUMNS} FROM payout_requests WHERE id = :id FOR UPDATE")

_SAVE_REVIEW_SQL = text(f"""
    UPDATE payout_requests
    SET status = :status,
        admin_note = :admin_note,
        transaction_reference = :transaction_reference,
        reviewed_by = :reviewed_by,
        reviewed_at = NOW(),
        ledger_entry_id = :ledger_entry_id,
        updated_at = NOW()
    WHERE id = :id
    RETURNING {_COLUMNS}
""")

_LIST_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM payout_requests
    WHERE (CAST(:user_id AS TEXT) IS NULL OR user_id = :user_id)
      AND (CAST(:status AS TEXT) IS NULL OR status = :status)
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_payout(row: Any) -> PayoutRequest:
    return PayoutRequest(
        id=row.id,
        user_id=row.user_id,
        amount=row.amount,
        status=PayoutStatus(row.status),
        admin_note=row.admin_note,
        transaction_reference=row.transaction_reference,
        reviewed_by=row.reviewed_by,
        reviewed_at=row.reviewed_at,
        ledger_entry_id=row.ledger_entry_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class PayoutRepository:
    async def create(self, db: AsyncSession, user_id: str, amount: int) -> PayoutRequest:
        row = (await db.execute(_INSERT_SQL, {"user_id": user_id, "amount": amount})).fetchone()
        if row is None:
            raise InternalError("Payout insert returned no rows")
        return _row_to_payout(row)

    async def get(self, db: AsyncSession, payout_id: int) -> PayoutRequest | None:
        row = (await db.execute(_GET_SQL, {"id": payout_id})).fetchone()
        return _row_to_payout(row) if row else None

    async def lock_for_update(self, db: AsyncSession, payout_id: int) -> PayoutRequest | None:
        row = (await db.execute(_LOCK_SQL, {"id": payout_id})).fetchone()
        return _row_to_payout(row) if row else None

    async def save_review(self, db: AsyncSession, payout: PayoutRequest) -> PayoutRequest:
        row = (
            await db.execute(
                _SAVE_REVIEW_SQL,
                {
                    "id": payout.id,
                    "status": payout.status.value,
                    "admin_note": payout.admin_note,
                    "transaction_reference": payout.transaction_reference,
                    "reviewed_by": payout.reviewed_by,
                    "ledger_entry_id": payout.ledger_entry_id,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError(f"Payout {payout.id} disappeared during review")
        return _row_to_payout(row)

    async def list_requests(
        self,
        db: AsyncSession,
        user_id: str | None,
        status: str | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[PayoutRequest]:
        result = await db.execute(
            _LIST_SQL,
            {"user_id": user_id, "status": status, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_payout(r) for r in result.fetchall()]
