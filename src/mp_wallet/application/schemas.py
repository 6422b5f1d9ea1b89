"""Pydantic schemas and cursor utilities for mp_wallet API."""

import base64
import json

from pydantic import BaseModel

from src.mp_common.money import to_display

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except Exception:
        return None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    currency: str
    available_balance: int
    available_balance_display: str
    locked_balance: int
    locked_balance_display: str
    total_balance: int
    total_balance_display: str

    @classmethod
    def from_amounts(
        cls, user_id: str, available: int, locked: int, currency: str
    ) -> "BalanceResponse":
        return cls(
            user_id=user_id,
            currency=currency,
            available_balance=available,
            available_balance_display=to_display(available, currency),
            locked_balance=locked,
            locked_balance_display=to_display(locked, currency),
            total_balance=available + locked,
            total_balance_display=to_display(available + locked, currency),
        )


class LedgerEntryItem(BaseModel):
    id: int
    entry_type: str
    category: str
    amount: int
    amount_display: str
    locked: bool
    available_after: int
    locked_after: int
    related_order_id: str | None
    reference_type: str | None
    reference_id: str | None
    source_entry_id: int | None
    description: str | None
    created_at: str  # ISO8601 string


class LedgerResponse(BaseModel):
    items: list[LedgerEntryItem]
    next_cursor: str | None
    has_more: bool
