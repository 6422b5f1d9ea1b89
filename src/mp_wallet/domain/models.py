"""Domain models for mp_wallet: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class WalletAccount:
    """Materialized balances; the ledger is the source of truth."""

    user_id: str
    available_balance: int   # minor units, withdrawable
    locked_balance: int      # minor units, waiting for delivery
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_balance(self) -> int:
        return self.available_balance + self.locked_balance


@dataclass
class Balance:
    available: int
    locked: int

    @property
    def total(self) -> int:
        return self.available + self.locked


@dataclass
class LedgerEntry:
    id: int                          # BIGSERIAL
    user_id: str
    entry_type: str                  # LedgerEntryType value
    category: str                    # LedgerCategory value
    amount: int                      # signed minor units
    locked: bool                     # bucket the amount applies to
    idempotency_key: str
    available_after: int
    locked_after: int
    related_order_id: str | None = None
    reference_type: str | None = None
    reference_id: str | None = None
    source_entry_id: int | None = None
    description: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class LockCredit:
    """One locked credit to write when an order's funds are locked."""

    user_id: str
    category: str
    amount: int
