"""In-memory Protocol fakes for service-level tests.

They keep the same observable rules as the SQL repositories: unique ledger idempotency
keys, unique invoice scopes, and order rows handed out by reference (as a FOR UPDATE
lock would).
"""

from dataclasses import replace
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from src.mp_cart.domain.models import Cart, CartLine, Category, UserProfile
from src.mp_common.enums import CartStatus, LedgerCategory, LedgerEntryType, PayoutStatus
from src.mp_common.errors import InsufficientFundsError
from src.mp_common.money import validate_amount
from src.mp_invoice.domain.models import Invoice
from src.mp_order.domain.models import Order, OrderItem, StatusHistoryEntry
from src.mp_payout.domain.models import PayoutRequest
from src.mp_wallet.domain.models import Balance, LedgerEntry, WalletAccount


class FakeWalletRepository:
    def __init__(self) -> None:
        self.entries: list[LedgerEntry] = []
        # (entries written before the call, user ids locked)
        self.lock_calls: list[tuple[int, list[str]]] = []

    # -- helpers used by assertions -------------------------------------------------

    def balance_of(self, user_id: str) -> Balance:
        mine = [e for e in self.entries if e.user_id == user_id]
        return Balance(
            available=sum(e.amount for e in mine if not e.locked),
            locked=sum(e.amount for e in mine if e.locked),
        )

    def entries_for_order(self, order_id: str) -> list[LedgerEntry]:
        return [e for e in self.entries if e.related_order_id == order_id]

    # -- protocol ---------------------------------------------------------------------

    async def ensure_account(self, db, user_id):
        return None

    async def lock_accounts(self, db, user_ids):
        self.lock_calls.append((len(self.entries), sorted(set(user_ids))))

    async def get_account(self, db, user_id):
        b = self.balance_of(user_id)
        return WalletAccount(user_id, b.available, b.locked, version=len(self.entries))

    async def credit(
        self, db, user_id, amount, category, related_order_id, locked, idempotency_key,
        description=None,
    ):
        validate_amount(amount)
        return self._append(
            user_id, LedgerEntryType.CREDIT.value, category, amount, locked, idempotency_key,
            related_order_id=related_order_id, description=description,
        )

    async def debit(
        self, db, user_id, amount, category, reference_type, reference_id, idempotency_key,
        description=None,
    ):
        validate_amount(amount)
        available = self.balance_of(user_id).available
        if available < amount:
            raise InsufficientFundsError(amount, available)
        return self._append(
            user_id, LedgerEntryType.PAYOUT_DEBIT.value, category, -amount, False,
            idempotency_key, reference_type=reference_type, reference_id=reference_id,
        )

    async def unlock_by_order(self, db, order_id):
        total = 0
        for credit in self._still_locked(order_id):
            release = self._append(
                credit.user_id, LedgerEntryType.UNLOCK_RELEASE.value, credit.category,
                -credit.amount, True, f"entry:{credit.id}:release",
                related_order_id=order_id, source_entry_id=credit.id,
            )
            if release is None:
                continue
            self._append(
                credit.user_id, LedgerEntryType.UNLOCK_RECEIPT.value, credit.category,
                credit.amount, False, f"entry:{credit.id}:receipt",
                related_order_id=order_id, source_entry_id=credit.id,
            )
            total += credit.amount
        return total

    async def reverse_by_order(self, db, order_id, reason):
        total = 0
        for credit in self._still_locked(order_id):
            if self._append(
                credit.user_id, LedgerEntryType.REVERSAL.value, LedgerCategory.REFUND.value,
                -credit.amount, True, f"entry:{credit.id}:reversal",
                related_order_id=order_id, source_entry_id=credit.id, description=reason,
            ):
                total += credit.amount
        return total

    async def get_balance(self, db, user_id, for_update=False):
        return self.balance_of(user_id)

    async def list_entries(self, db, user_id, cursor_id, limit, category):
        rows = [
            e for e in reversed(self.entries)
            if e.user_id == user_id
            and (cursor_id is None or e.id < cursor_id)
            and (category is None or e.category == category)
        ]
        return rows[:limit]

    def _still_locked(self, order_id: str) -> list[LedgerEntry]:
        closed = {
            e.source_entry_id
            for e in self.entries
            if e.entry_type in (LedgerEntryType.UNLOCK_RELEASE.value, LedgerEntryType.REVERSAL.value)
        }
        return [
            e for e in self.entries
            if e.related_order_id == order_id
            and e.entry_type == LedgerEntryType.CREDIT.value
            and e.locked
            and e.id not in closed
        ]

    def _append(
        self, user_id, entry_type, category, amount, locked, key, *, related_order_id=None,
        reference_type=None, reference_id=None, source_entry_id=None, description=None,
    ):
        if any(e.idempotency_key == key for e in self.entries):
            return None
        before = self.balance_of(user_id)
        entry = LedgerEntry(
            id=len(self.entries) + 1,
            user_id=user_id,
            entry_type=entry_type,
            category=category,
            amount=amount,
            locked=locked,
            idempotency_key=key,
            available_after=before.available + (0 if locked else amount),
            locked_after=before.locked + (amount if locked else 0),
            related_order_id=related_order_id,
            reference_type=reference_type,
            reference_id=reference_id,
            source_entry_id=source_entry_id,
            description=description,
            created_at=datetime.now(UTC),
        )
        self.entries.append(entry)
        return entry


class FakeOrderRepository:
    def __init__(self) -> None:
        self.orders: dict[str, Order] = {}
        self.items: dict[str, list[OrderItem]] = {}
        self.history: list[StatusHistoryEntry] = []

    def add(self, order: Order) -> Order:
        self.orders[order.id] = order
        return order

    async def create(self, db, order):
        self.orders[order.id] = order
        self.items[order.id] = [replace(i, order_id=order.id) for i in order.items]

    async def get_by_id(self, db, order_id):
        return self.orders.get(order_id)

    async def lock_for_update(self, db, order_id):
        return self.orders.get(order_id)

    async def get_by_group(self, db, group_id):
        return sorted(
            (o for o in self.orders.values() if o.group_id == group_id), key=lambda o: o.id
        )

    async def lock_group_for_update(self, db, group_id):
        return await self.get_by_group(db, group_id)

    async def get_by_tracking_number(self, db, tracking_number):
        for o in self.orders.values():
            if o.tracking_number == tracking_number:
                return o
        return None

    async def order_number_exists(self, db, order_number):
        return any(
            order_number in (o.order_number, o.group_id) for o in self.orders.values()
        )

    async def update_status(self, db, order):
        order.version += 1

    async def list_items(self, db, order_id):
        return list(self.items.get(order_id, []))

    async def insert_history(self, db, entry):
        self.history.append(entry)

    async def list_history(self, db, order_id):
        return [h for h in self.history if h.order_id == order_id]


class FakeCartRepository:
    def __init__(self) -> None:
        self.carts: dict[str, Cart] = {}
        self.lines: dict[str, list[CartLine]] = {}
        self.profiles: dict[str, UserProfile] = {}
        self.categories: dict[str, Category] = {}

    def add_cart(self, cart_id: str, user_id: str, lines: list[CartLine]) -> Cart:
        cart = Cart(id=cart_id, user_id=user_id, status=CartStatus.ACTIVE.value)
        self.carts[cart_id] = cart
        self.lines[cart_id] = lines
        return cart

    async def get_cart(self, db, cart_id):
        return self.carts.get(cart_id)

    async def lock_cart(self, db, cart_id):
        return self.carts.get(cart_id)

    async def list_lines(self, db, cart_id):
        return list(self.lines.get(cart_id, []))

    async def mark_converted(self, db, cart_id, group_id):
        cart = self.carts[cart_id]
        cart.status = CartStatus.CONVERTED.value
        cart.converted_group_id = group_id

    async def get_profile(self, db, user_id):
        return self.profiles.get(user_id)

    async def get_categories_with_ancestors(self, db, category_ids):
        return dict(self.categories)


class FakeInvoiceRepository:
    def __init__(self) -> None:
        self.counters: dict[tuple[str, int], int] = {}
        self.invoices: dict[tuple[str, str], Invoice] = {}

    async def next_number(self, db, invoice_type, year):
        key = (invoice_type, year)
        self.counters[key] = self.counters.get(key, 0) + 1
        return self.counters[key]

    async def get_by_scope(self, db, invoice_type, scope_key):
        return self.invoices.get((invoice_type, scope_key))

    async def insert(self, db, invoice):
        key = (invoice.invoice_type.value, invoice.scope_key)
        if key in self.invoices:
            return False
        self.invoices[key] = invoice
        return True

    async def mark_paid(self, db, invoice_type, scope_key):
        invoice = self.invoices.get((invoice_type, scope_key))
        if invoice is None or invoice.payment_status == "paid":
            return False
        invoice.payment_status = "paid"
        return True

    async def get_by_id(self, db, invoice_id):
        return next((i for i in self.invoices.values() if i.id == invoice_id), None)

    async def get_by_token(self, db, access_token):
        return next((i for i in self.invoices.values() if i.access_token == access_token), None)

    async def list_for_order(self, db, order_id, group_id):
        return [
            i for i in self.invoices.values() if i.order_id == order_id or i.scope_key == group_id
        ]


class FakePayoutRepository:
    def __init__(self) -> None:
        self.payouts: dict[int, PayoutRequest] = {}

    async def create(self, db, user_id, amount):
        payout = PayoutRequest(
            id=len(self.payouts) + 1, user_id=user_id, amount=amount, status=PayoutStatus.PENDING
        )
        self.payouts[payout.id] = payout
        return payout

    async def get(self, db, payout_id):
        return self.payouts.get(payout_id)

    async def lock_for_update(self, db, payout_id):
        return self.payouts.get(payout_id)

    async def save_review(self, db, payout):
        payout.reviewed_at = datetime.now(UTC)
        self.payouts[payout.id] = payout
        return payout

    async def list_requests(self, db, user_id, status, cursor_id, limit):
        rows = [
            p for p in sorted(self.payouts.values(), key=lambda p: p.id, reverse=True)
            if (user_id is None or p.user_id == user_id)
            and (status is None or p.status.value == status)
            and (cursor_id is None or p.id < cursor_id)
        ]
        return rows[:limit]


@pytest.fixture
def db() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def wallet_repo() -> FakeWalletRepository:
    return FakeWalletRepository()


@pytest.fixture
def order_repo() -> FakeOrderRepository:
    return FakeOrderRepository()


@pytest.fixture
def cart_repo() -> FakeCartRepository:
    return FakeCartRepository()


@pytest.fixture
def invoice_repo() -> FakeInvoiceRepository:
    return FakeInvoiceRepository()


@pytest.fixture
def payout_repo() -> FakePayoutRepository:
    return FakePayoutRepository()
