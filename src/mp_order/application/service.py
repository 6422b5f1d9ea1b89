"""Order transition and query services.

Every status change goes through OrderTransitionService.apply_transition while the order
row is locked (SELECT ... FOR UPDATE). The locked row is the "previous" value that guards
and effects are evaluated against, so a payment webhook and an admin command racing on
the same order are serialized and each effect (fund lock, unlock, reversal, invoice)
fires at most once.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.errors import ForbiddenError, OrderNotFoundError
from src.mp_invoice.application.service import InvoiceService
from src.mp_invoice.domain.triggers import InvoiceAction, decide_invoice_actions
from src.mp_order.domain.models import Order, StatusHistoryEntry, StatusTriple
from src.mp_order.domain.repository import OrderRepositoryProtocol
from src.mp_order.domain.state_machine import (
    Effect,
    TransitionRequest,
    derive_effects,
    resolve_target,
    validate_transition,
)
from src.mp_order.infrastructure.persistence import OrderRepository
from src.mp_wallet.application.service import WalletApplicationService

logger = logging.getLogger(__name__)


@dataclass
class TransitionOutcome:
    order: Order
    previous: StatusTriple
    applied: bool
    effects: list[Effect] = field(default_factory=list)
    invoice_actions: list[InvoiceAction] = field(default_factory=list)
    created_invoice_ids: list[str] = field(default_factory=list)
    locked_amount: int = 0
    unlocked_amount: int = 0
    reversed_amount: int = 0


class OrderTransitionService:
    def __init__(
        self,
        repo: OrderRepositoryProtocol | None = None,
        wallet: WalletApplicationService | None = None,
        invoices: InvoiceService | None = None,
    ) -> None:
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()
        self._wallet = wallet or WalletApplicationService()
        self._invoices = invoices or InvoiceService()

    @property
    def repo(self) -> OrderRepositoryProtocol:
        return self._repo

    @property
    def wallet(self) -> WalletApplicationService:
        return self._wallet

    @property
    def invoices(self) -> InvoiceService:
        return self._invoices

    async def transition(
        self,
        db: AsyncSession,
        order_id: str,
        request: TransitionRequest,
        actor: str,
        note: str | None = None,
        tracking_number: str | None = None,
        payment_reference: str | None = None,
    ) -> TransitionOutcome:
        """Lock, transition and commit one order; render new invoices after commit."""
        try:
            order = await self._repo.lock_for_update(db, order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            outcome = await self.apply_transition(
                db,
                order,
                request,
                actor,
                note=note,
                tracking_number=tracking_number,
                payment_reference=payment_reference,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        await self._invoices.render_all(outcome.created_invoice_ids)
        return outcome

    async def apply_transition(
        self,
        db: AsyncSession,
        order: Order,
        request: TransitionRequest,
        actor: str,
        note: str | None = None,
        tracking_number: str | None = None,
        payment_reference: str | None = None,
    ) -> TransitionOutcome:
        """Apply a transition to an order the caller has already locked. Does not commit."""
        previous = order.status
        target = resolve_target(previous, request)
        details_changed = (
            tracking_number is not None and tracking_number != order.tracking_number
        ) or (payment_reference is not None and payment_reference != order.payment_reference)

        if target == previous:
            if details_changed:
                order.tracking_number = tracking_number or order.tracking_number
                order.payment_reference = payment_reference or order.payment_reference
                await self._repo.update_status(db, order)
            return TransitionOutcome(order=order, previous=previous, applied=False)

        validate_transition(order.id, previous, target)

        order.apply_status(target)
        order.tracking_number = tracking_number or order.tracking_number
        order.payment_reference = payment_reference or order.payment_reference
        await self._repo.update_status(db, order)
        await self._repo.insert_history(
            db,
            StatusHistoryEntry(
                order_id=order.id,
                order_status=target.order_status,
                payment_status=target.payment_status,
                shipment_status=target.shipment_status,
                actor=actor,
                note=note,
            ),
        )

        outcome = TransitionOutcome(order=order, previous=previous, applied=True)
        outcome.effects = derive_effects(previous, target)
        if outcome.effects:
            await self._wallet.lock_order_wallets(db, [order.vendor_id])
        for effect in outcome.effects:
            match effect:
                case Effect.LOCK_FUNDS:
                    outcome.locked_amount = await self._wallet.lock_order_funds(
                        db,
                        order_id=order.id,
                        vendor_id=order.vendor_id,
                        subtotal_base=order.subtotal_base,
                        shipping_total=order.shipping_total,
                        packing_total=order.packing_total,
                        vendor_vat_rate_bps=order.vendor_vat_rate_bps,
                        total_amount=order.total_amount,
                    )
                case Effect.UNLOCK_FUNDS:
                    outcome.unlocked_amount = await self._wallet.unlock_order_funds(db, order.id)
                case Effect.REVERSE_FUNDS:
                    outcome.reversed_amount = await self._wallet.reverse_order_funds(
                        db, order.id, f"Order {target.order_status.value} by {actor}"
                    )

        outcome.invoice_actions = decide_invoice_actions(
            previous, target, vendor_owned=not order.is_platform_owned
        )
        if outcome.invoice_actions:
            group_orders = None
            if InvoiceAction.GENERATE_CUSTOMER_INVOICE in outcome.invoice_actions:
                group_orders = await self._repo.get_by_group(db, order.group_id)
            outcome.created_invoice_ids = await self._invoices.apply_actions(
                db, order, outcome.invoice_actions, group_orders
            )

        logger.info(
            "Order %s %s -> %s by %s (effects=%s)",
            order.id,
            _fmt(previous),
            _fmt(target),
            actor,
            [e.value for e in outcome.effects],
        )
        return outcome


class OrderQueryService:
    """Read access to orders for buyers, vendors and admins."""

    def __init__(self, repo: OrderRepositoryProtocol | None = None) -> None:
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()

    async def get_order(
        self, db: AsyncSession, order_id: str, actor_id: str, is_admin: bool
    ) -> Order:
        order = await self._repo.get_by_id(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        _check_access(order, actor_id, is_admin)
        order.items = await self._repo.list_items(db, order.id)
        return order

    async def list_group(
        self, db: AsyncSession, group_id: str, actor_id: str, is_admin: bool
    ) -> list[Order]:
        orders = await self._repo.get_by_group(db, group_id)
        return [o for o in orders if is_admin or actor_id in (o.buyer_id, o.vendor_id)]

    async def list_history(
        self, db: AsyncSession, order_id: str, actor_id: str, is_admin: bool
    ) -> list[StatusHistoryEntry]:
        order = await self._repo.get_by_id(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        _check_access(order, actor_id, is_admin)
        return await self._repo.list_history(db, order_id)


def _check_access(order: Order, actor_id: str, is_admin: bool) -> None:
    if not is_admin and actor_id not in (order.buyer_id, order.vendor_id):
        raise ForbiddenError("Not a party to this order")


def _fmt(status: StatusTriple) -> str:
    return "/".join(
        s.value if s is not None else "-"
        for s in (status.order_status, status.payment_status, status.shipment_status)
    )
