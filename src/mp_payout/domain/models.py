"""Domain models for mp_payout: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.mp_common.enums import PayoutStatus

# status -> statuses it may move to
PAYOUT_TRANSITIONS: dict[PayoutStatus, frozenset[PayoutStatus]] = {
    PayoutStatus.PENDING: frozenset(
        {PayoutStatus.APPROVED, PayoutStatus.PAID, PayoutStatus.REJECTED}
    ),
    PayoutStatus.APPROVED: frozenset({PayoutStatus.PAID, PayoutStatus.REJECTED}),
    PayoutStatus.PAID: frozenset(),
    PayoutStatus.REJECTED: frozenset(),
}


@dataclass
class PayoutRequest:
    id: int                          # BIGSERIAL
    user_id: str
    amount: int                      # minor units
    status: PayoutStatus
    admin_note: str | None = None
    transaction_reference: str | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    ledger_entry_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def can_move_to(self, target: PayoutStatus) -> bool:
        return target in PAYOUT_TRANSITIONS[self.status]
