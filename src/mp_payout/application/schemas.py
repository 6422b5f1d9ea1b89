"""Pydantic schemas and cursor utilities for mp_payout API."""

import base64
import json
from datetime import datetime

from pydantic import BaseModel, Field

from src.mp_common.money import to_display
from src.mp_payout.domain.models import PayoutRequest


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


class PayoutCreateRequest(BaseModel):
    amount: int = Field(..., gt=0, description="Amount in minor units")


class PayoutReviewRequest(BaseModel):
    note: str | None = None


class PayoutPayRequest(BaseModel):
    transaction_reference: str = Field(..., min_length=1, max_length=128)
    note: str | None = None


class PayoutResponse(BaseModel):
    id: int
    user_id: str
    amount: int
    amount_display: str
    status: str
    admin_note: str | None
    transaction_reference: str | None
    reviewed_by: str | None
    reviewed_at: datetime | None
    ledger_entry_id: int | None
    created_at: datetime | None

    @classmethod
    def from_domain(cls, payout: PayoutRequest, currency: str) -> "PayoutResponse":
        return cls(
            id=payout.id,
            user_id=payout.user_id,
            amount=payout.amount,
            amount_display=to_display(payout.amount, currency),
            status=payout.status.value,
            admin_note=payout.admin_note,
            transaction_reference=payout.transaction_reference,
            reviewed_by=payout.reviewed_by,
            reviewed_at=payout.reviewed_at,
            ledger_entry_id=payout.ledger_entry_id,
            created_at=payout.created_at,
        )


class PayoutListResponse(BaseModel):
    items: list[PayoutResponse]
    next_cursor: str | None
    has_more: bool
