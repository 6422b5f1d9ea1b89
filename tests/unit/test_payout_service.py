"""Unit tests for PayoutService (in-memory repositories)."""

import pytest

from src.mp_common.enums import LedgerEntryType, PayoutStatus
from src.mp_common.errors import (
    ForbiddenError,
    InsufficientFundsError,
    IntegrityError,
    PayoutNotFoundError,
    PayoutStateError,
    ValidationError,
)
from src.mp_payout.application.service import PayoutService

VENDOR = "v1"


@pytest.fixture
def service(payout_repo, wallet_repo) -> PayoutService:
    return PayoutService(repo=payout_repo, wallet_repo=wallet_repo)


@pytest.fixture
async def funded(db, wallet_repo) -> None:
    await wallet_repo.credit(db, VENDOR, 10000, "vendor_earning", "o1", False, "k-available")
    await wallet_repo.credit(db, VENDOR, 50000, "vendor_earning", "o2", True, "k-locked")


class TestRequest:
    async def test_creates_pending_request(self, service, db, funded) -> None:
        payout = await service.request(db, VENDOR, 4000)
        assert payout.status is PayoutStatus.PENDING
        assert payout.amount == 4000
        db.commit.assert_awaited_once()

    async def test_locked_funds_never_count(self, service, db, funded) -> None:
        with pytest.raises(InsufficientFundsError):
            await service.request(db, VENDOR, 10001)
        db.rollback.assert_awaited_once()

    async def test_non_positive_amount(self, service, db) -> None:
        with pytest.raises(ValidationError):
            await service.request(db, VENDOR, 0)


class TestReview:
    async def test_approve_then_pay_debits_available(
        self, service, db, funded, wallet_repo
    ) -> None:
        payout = await service.request(db, VENDOR, 4000)
        await service.approve(db, payout.id, "admin-1", note="ok")
        paid = await service.pay(db, payout.id, "admin-1", " TX-99 ")

        assert paid.status is PayoutStatus.PAID
        assert paid.transaction_reference == "TX-99"
        assert paid.admin_note == "ok"
        debit = wallet_repo.entries[-1]
        assert debit.entry_type == LedgerEntryType.PAYOUT_DEBIT.value
        assert debit.idempotency_key == f"payout:{payout.id}:debit"
        assert paid.ledger_entry_id == debit.id
        assert wallet_repo.balance_of(VENDOR).available == 6000
        assert wallet_repo.balance_of(VENDOR).locked == 50000

    async def test_pay_straight_from_pending(self, service, db, funded) -> None:
        payout = await service.request(db, VENDOR, 1000)
        paid = await service.pay(db, payout.id, "admin-1", "TX-1")
        assert paid.status is PayoutStatus.PAID

    async def test_paid_is_terminal(self, service, db, funded) -> None:
        payout = await service.request(db, VENDOR, 1000)
        await service.pay(db, payout.id, "admin-1", "TX-1")
        with pytest.raises(PayoutStateError):
            await service.pay(db, payout.id, "admin-1", "TX-2")
        with pytest.raises(PayoutStateError):
            await service.reject(db, payout.id, "admin-1")

    async def test_pay_needs_reference(self, service, db, funded) -> None:
        payout = await service.request(db, VENDOR, 1000)
        with pytest.raises(ValidationError):
            await service.pay(db, payout.id, "admin-1", "   ")

    async def test_approve_rechecks_balance(self, service, db, funded, wallet_repo) -> None:
        payout = await service.request(db, VENDOR, 8000)
        await wallet_repo.debit(db, VENDOR, 5000, "payout", "PAYOUT", "x", "k-other")
        with pytest.raises(InsufficientFundsError):
            await service.approve(db, payout.id, "admin-1")

    async def test_reject_has_no_ledger_effect(self, service, db, funded, wallet_repo) -> None:
        payout = await service.request(db, VENDOR, 1000)
        before = len(wallet_repo.entries)
        rejected = await service.reject(db, payout.id, "admin-1", note="wrong iban")
        assert rejected.status is PayoutStatus.REJECTED
        assert rejected.reviewed_by == "admin-1"
        assert len(wallet_repo.entries) == before

    async def test_existing_debit_key_is_an_integrity_error(
        self, service, db, funded, wallet_repo
    ) -> None:
        payout = await service.request(db, VENDOR, 1000)
        await wallet_repo.debit(
            db, VENDOR, 1000, "payout", "PAYOUT", str(payout.id), f"payout:{payout.id}:debit"
        )
        with pytest.raises(IntegrityError):
            await service.pay(db, payout.id, "admin-1", "TX-1")

    async def test_unknown_payout(self, service, db) -> None:
        with pytest.raises(PayoutNotFoundError):
            await service.approve(db, 404, "admin-1")


class TestQueries:
    async def test_owner_or_admin_only(self, service, db, funded) -> None:
        payout = await service.request(db, VENDOR, 1000)
        assert (await service.get(db, payout.id, VENDOR, False)).id == payout.id
        assert (await service.get(db, payout.id, "admin-1", True)).id == payout.id
        with pytest.raises(ForbiddenError):
            await service.get(db, payout.id, "someone-else", False)

    async def test_list_pages_newest_first(self, service, db, funded) -> None:
        for amount in (100, 200, 300):
            await service.request(db, VENDOR, amount)
        page1 = await service.list_payouts(db, VENDOR, None, None, 2)
        assert [p.amount for p in page1.items] == [300, 200]
        assert page1.has_more is True
        page2 = await service.list_payouts(db, VENDOR, None, page1.next_cursor, 2)
        assert [p.amount for p in page2.items] == [100]
        assert page2.next_cursor is None
