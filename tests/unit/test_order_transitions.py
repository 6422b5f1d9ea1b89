"""OrderTransitionService against in-memory wallet, order and invoice repositories.

Covers: conservation of the order total, no double credit on replay, unlock idempotence,
compensating reversal on rejection, invoice uniqueness.
"""

from unittest.mock import AsyncMock

import pytest

from src.mp_common.enums import (
    InvoiceType,
    LedgerCategory,
    LedgerEntryType,
    OrderStatus,
    OrderType,
    PaymentStatus,
    ShipmentStatus,
)
from src.mp_common.errors import InvalidTransitionError, OrderNotFoundError
from src.mp_invoice.application.service import InvoiceService
from src.mp_order.application.service import OrderTransitionService
from src.mp_order.domain.models import Order
from src.mp_order.domain.state_machine import Effect, TransitionRequest
from src.mp_wallet.application.service import WalletApplicationService

PLATFORM = "PLATFORM"


def make_order(
    order_id: str = "o1",
    vendor_id: str | None = "v1",
    order_status: OrderStatus = OrderStatus.ORDER_RECEIVED,
    payment_status: PaymentStatus | None = PaymentStatus.PENDING,
    shipment_status: ShipmentStatus | None = None,
    vendor_vat_rate_bps: int = 0,
    group_id: str = "11111111",
) -> Order:
    return Order(
        id=order_id,
        order_number=group_id,
        group_id=group_id,
        cart_id="c1",
        buyer_id="b1",
        vendor_id=vendor_id,
        order_status=order_status,
        payment_status=payment_status,
        shipment_status=shipment_status,
        order_type=OrderType.DIRECT,
        subtotal_base=20000,
        subtotal_sell=26000,
        shipping_total=2000,
        packing_total=1000,
        vat_rate_bps=500,
        vat_amount=1150,
        vendor_vat_rate_bps=vendor_vat_rate_bps,
        total_amount=24150,
        admin_commission=2000,
        currency="AED",
    )


@pytest.fixture
def renderer() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def service(order_repo, wallet_repo, invoice_repo, renderer) -> OrderTransitionService:
    return OrderTransitionService(
        repo=order_repo,
        wallet=WalletApplicationService(repo=wallet_repo, platform_account_id=PLATFORM),
        invoices=InvoiceService(repo=invoice_repo, renderer=renderer),
    )


PAID = TransitionRequest(payment_status=PaymentStatus.PAID)
APPROVE = TransitionRequest(order_status=OrderStatus.APPROVED)
SHIP = TransitionRequest(shipment_status=ShipmentStatus.SHIPPED)
DELIVER = TransitionRequest(shipment_status=ShipmentStatus.DELIVERED)
REJECT = TransitionRequest(order_status=OrderStatus.REJECTED)


class TestFundLocking:
    async def test_lock_fires_once_when_paid_and_approved(
        self, db, service, order_repo, wallet_repo
    ) -> None:
        order_repo.add(make_order())
        first = await service.transition(db, "o1", APPROVE, "admin-1")
        assert first.effects == []
        second = await service.transition(db, "o1", PAID, "system", payment_reference="pay-1")

        assert second.effects == [Effect.LOCK_FUNDS]
        assert second.locked_amount == 24150
        assert wallet_repo.balance_of("v1").locked == 23000
        assert wallet_repo.balance_of(PLATFORM).locked == 1150
        # conservation: credits for the order sum to its total
        credits = [
            e.amount
            for e in wallet_repo.entries_for_order("o1")
            if e.entry_type == LedgerEntryType.CREDIT.value
        ]
        assert sum(credits) == 24150

    async def test_replayed_payment_does_not_credit_twice(
        self, db, service, order_repo, wallet_repo
    ) -> None:
        order_repo.add(make_order(order_status=OrderStatus.APPROVED))
        await service.transition(db, "o1", PAID, "system")
        replay = await service.transition(db, "o1", PAID, "system")

        assert replay.applied is False
        assert replay.effects == []
        assert len(wallet_repo.entries) == 2
        assert wallet_repo.balance_of("v1").locked == 23000

    async def test_lock_retry_after_partial_write_is_idempotent(
        self, db, order_repo, wallet_repo
    ) -> None:
        wallet = WalletApplicationService(repo=wallet_repo, platform_account_id=PLATFORM)
        kwargs = dict(
            order_id="o1",
            vendor_id="v1",
            subtotal_base=20000,
            shipping_total=2000,
            packing_total=1000,
            vendor_vat_rate_bps=0,
            total_amount=24150,
        )
        assert await wallet.lock_order_funds(db, **kwargs) == 24150
        assert await wallet.lock_order_funds(db, **kwargs) == 0
        assert len(wallet_repo.entries) == 2

    async def test_platform_owned_order_credits_platform_only(
        self, db, service, order_repo, wallet_repo, invoice_repo
    ) -> None:
        order_repo.add(make_order(vendor_id=None, order_status=OrderStatus.APPROVED))
        await service.transition(db, "o1", PAID, "system")
        assert wallet_repo.balance_of(PLATFORM).locked == 24150
        assert (InvoiceType.VENDOR_TO_ADMIN.value, "o1") not in invoice_repo.invoices


class TestUnlock:
    async def test_delivery_unlocks_and_replay_is_noop(
        self, db, service, order_repo, wallet_repo
    ) -> None:
        order_repo.add(make_order(order_status=OrderStatus.APPROVED))
        await service.transition(db, "o1", PAID, "system")
        await service.transition(db, "o1", SHIP, "system")
        delivered = await service.transition(db, "o1", DELIVER, "system")

        assert delivered.effects == [Effect.UNLOCK_FUNDS]
        assert delivered.unlocked_amount == 24150
        assert wallet_repo.balance_of("v1").available == 23000
        assert wallet_repo.balance_of("v1").locked == 0
        assert wallet_repo.balance_of(PLATFORM).available == 1150

        entries_before = len(wallet_repo.entries)
        replay = await service.transition(db, "o1", DELIVER, "system")
        assert replay.applied is False
        assert len(wallet_repo.entries) == entries_before

    async def test_unlock_by_order_twice_moves_nothing_second_time(
        self, db, service, order_repo, wallet_repo
    ) -> None:
        order_repo.add(make_order(order_status=OrderStatus.APPROVED))
        await service.transition(db, "o1", PAID, "system")
        assert await wallet_repo.unlock_by_order(db, "o1") == 24150
        assert await wallet_repo.unlock_by_order(db, "o1") == 0


class TestWalletLockOrder:
    async def test_wallets_locked_sorted_before_entries(
        self, db, service, order_repo, wallet_repo
    ) -> None:
        order_repo.add(make_order(order_status=OrderStatus.APPROVED))
        await service.transition(db, "o1", PAID, "system")
        await service.transition(db, "o1", SHIP, "system")
        await service.transition(db, "o1", DELIVER, "system")

        # lock on payment before the two credits, again on delivery before the unlock pairs
        assert wallet_repo.lock_calls == [(0, [PLATFORM, "v1"]), (2, [PLATFORM, "v1"])]

    async def test_platform_owned_order_locks_platform_only(
        self, db, service, order_repo, wallet_repo
    ) -> None:
        order_repo.add(make_order(vendor_id=None, order_status=OrderStatus.APPROVED))
        await service.transition(db, "o1", PAID, "system")
        assert wallet_repo.lock_calls == [(0, [PLATFORM])]

    async def test_no_fund_effect_takes_no_wallet_lock(
        self, db, service, order_repo, wallet_repo
    ) -> None:
        order_repo.add(make_order())
        await service.transition(db, "o1", APPROVE, "admin-1")
        assert wallet_repo.lock_calls == []


class TestRejection:
    async def test_reject_after_lock_reverses_locked_credits(
        self, db, service, order_repo, wallet_repo
    ) -> None:
        order_repo.add(make_order(order_status=OrderStatus.APPROVED))
        await service.transition(db, "o1", PAID, "system")
        rejected = await service.transition(db, "o1", REJECT, "admin-1", note="out of stock")

        assert rejected.effects == [Effect.REVERSE_FUNDS]
        assert rejected.reversed_amount == 24150
        assert wallet_repo.balance_of("v1").total == 0
        assert wallet_repo.balance_of(PLATFORM).total == 0
        reversals = [
            e for e in wallet_repo.entries if e.entry_type == LedgerEntryType.REVERSAL.value
        ]
        assert {e.category for e in reversals} == {LedgerCategory.REFUND.value}

        refunded = await service.transition(
            db, "o1", TransitionRequest(payment_status=PaymentStatus.REFUNDED), "admin-1"
        )
        assert refunded.applied is True
        assert refunded.effects == []

    async def test_reject_before_lock_writes_nothing(
        self, db, service, order_repo, wallet_repo
    ) -> None:
        order_repo.add(make_order())
        outcome = await service.transition(db, "o1", REJECT, "admin-1")
        assert outcome.reversed_amount == 0
        assert wallet_repo.entries == []

    async def test_delivered_order_cannot_be_rejected(
        self, db, service, order_repo, wallet_repo
    ) -> None:
        order_repo.add(make_order(order_status=OrderStatus.APPROVED))
        await service.transition(db, "o1", PAID, "system")
        await service.transition(db, "o1", SHIP, "system")
        await service.transition(db, "o1", DELIVER, "system")
        with pytest.raises(InvalidTransitionError):
            await service.transition(db, "o1", REJECT, "admin-1")
        assert wallet_repo.balance_of("v1").available == 23000


class TestInvoices:
    async def test_invoices_generated_once_and_marked_paid(
        self, db, service, order_repo, invoice_repo, renderer
    ) -> None:
        order_repo.add(make_order(payment_status=PaymentStatus.PAID))
        outcome = await service.transition(db, "o1", APPROVE, "admin-1")

        assert len(outcome.created_invoice_ids) == 2
        customer = invoice_repo.invoices[(InvoiceType.ADMIN_TO_CUSTOMER.value, "11111111")]
        vendor = invoice_repo.invoices[(InvoiceType.VENDOR_TO_ADMIN.value, "o1")]
        assert customer.payment_status == "paid"
        assert customer.total_amount == 24150
        assert vendor.payment_status == "unpaid"
        assert vendor.total_amount == 23000
        assert renderer.render.await_count == 2

        await service.transition(db, "o1", SHIP, "system")
        await service.transition(db, "o1", DELIVER, "system")
        assert vendor.payment_status == "paid"
        assert len(invoice_repo.invoices) == 2

    async def test_sibling_order_reuses_group_invoice(
        self, db, service, order_repo, invoice_repo
    ) -> None:
        order_repo.add(make_order("o1", vendor_id="v1", order_status=OrderStatus.APPROVED))
        order_repo.add(make_order("o2", vendor_id="v2", order_status=OrderStatus.APPROVED))
        await service.transition(db, "o1", PAID, "system")
        await service.transition(db, "o2", PAID, "system")

        customer_invoices = [
            i for i in invoice_repo.invoices.values()
            if i.invoice_type is InvoiceType.ADMIN_TO_CUSTOMER
        ]
        assert len(customer_invoices) == 1
        assert customer_invoices[0].total_amount == 2 * 24150
        assert customer_invoices[0].payment_status == "paid"


class TestBookkeeping:
    async def test_history_and_version(self, db, service, order_repo) -> None:
        order = order_repo.add(make_order())
        await service.transition(db, "o1", APPROVE, "admin-1", note="looks fine")
        [entry] = order_repo.history
        assert entry.actor == "admin-1"
        assert entry.note == "looks fine"
        assert entry.order_status is OrderStatus.APPROVED
        assert order.version == 1
        db.commit.assert_awaited()

    async def test_invalid_transition_rolls_back(self, db, service, order_repo) -> None:
        order_repo.add(make_order())
        with pytest.raises(InvalidTransitionError):
            await service.transition(db, "o1", SHIP, "admin-1")
        db.rollback.assert_awaited_once()
        assert order_repo.history == []

    async def test_missing_order(self, db, service) -> None:
        with pytest.raises(OrderNotFoundError):
            await service.transition(db, "nope", APPROVE, "admin-1")

    async def test_same_status_with_new_tracking_only_updates_details(
        self, db, service, order_repo
    ) -> None:
        order = order_repo.add(
            make_order(
                order_status=OrderStatus.APPROVED,
                payment_status=PaymentStatus.PAID,
                shipment_status=ShipmentStatus.SHIPPED,
            )
        )
        outcome = await service.transition(db, "o1", SHIP, "admin-1", tracking_number="TRK-9")
        assert outcome.applied is False
        assert order.tracking_number == "TRK-9"
        assert order_repo.history == []
