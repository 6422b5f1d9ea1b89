"""Inbound event handlers: payment webhook, carrier tracking webhook, admin status command.

Each event is one transaction. Handlers re-derive "already done?" from the locked rows,
so a retried webhook is harmless. Failures roll back and propagate so the sender retries.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.enums import PaymentState, PaymentStatus, ShipmentStatus, TrackingEventType
from src.mp_common.errors import InvalidTransitionError, OrderNotFoundError
from src.mp_order.application.conversion import OrderConversionService
from src.mp_order.application.schemas import (
    AdminOrderUpdateRequest,
    PaymentWebhookRequest,
    TrackingWebhookRequest,
)
from src.mp_order.application.service import OrderTransitionService, TransitionOutcome
from src.mp_order.domain.models import Order
from src.mp_order.domain.state_machine import TransitionRequest

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"

TRACKING_TO_SHIPMENT: dict[TrackingEventType, ShipmentStatus] = {
    TrackingEventType.PICKED_UP: ShipmentStatus.SHIPPED,
    TrackingEventType.IN_TRANSIT: ShipmentStatus.SHIPPED,
    TrackingEventType.DELIVERED: ShipmentStatus.DELIVERED,
}


@dataclass
class EventResult:
    group_id: str | None
    order_ids: list[str] = field(default_factory=list)
    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class OrderEventService:
    def __init__(
        self,
        transitions: OrderTransitionService | None = None,
        conversion: OrderConversionService | None = None,
    ) -> None:
        self._transitions = transitions or OrderTransitionService()
        self._conversion = conversion or OrderConversionService(order_repo=self._transitions.repo)
        self._repo = self._transitions.repo

    async def handle_payment(self, db: AsyncSession, event: PaymentWebhookRequest) -> EventResult:
        created_invoices: list[str] = []
        try:
            orders = await self._load_payment_orders(db, event)
            result = EventResult(group_id=orders[0].group_id, order_ids=[o.id for o in orders])
            self._check_amount(event, orders)
            if event.payment_state is PaymentState.PAID:
                # Wallets first, sorted, before any order in the group credits them.
                await self._transitions.wallet.lock_order_wallets(
                    db, [o.vendor_id for o in orders]
                )

            for order in orders:
                if event.payment_state is PaymentState.PAID:
                    request = TransitionRequest(payment_status=PaymentStatus.PAID)
                elif order.payment_status is PaymentStatus.PENDING:
                    request = TransitionRequest(payment_status=PaymentStatus.FAILED)
                else:
                    result.skipped.append(order.id)
                    continue
                try:
                    outcome = await self._transitions.apply_transition(
                        db,
                        order,
                        request,
                        SYSTEM_ACTOR,
                        note=f"Payment {event.payment_state.value}: {event.payment_reference}",
                        payment_reference=(
                            event.payment_reference
                            if event.payment_state is PaymentState.PAID
                            else None
                        ),
                    )
                except InvalidTransitionError as exc:
                    # e.g. paid after the order was cancelled; needs a manual refund
                    logger.warning("Payment %s not applied: %s", event.payment_reference, exc.message)
                    result.skipped.append(order.id)
                    continue
                _record(result, outcome)
                created_invoices.extend(outcome.created_invoice_ids)

            await db.commit()
        except Exception:
            await db.rollback()
            logger.exception("Payment webhook %s failed", event.payment_reference)
            raise
        await self._transitions.invoices.render_all(created_invoices)
        return result

    async def handle_tracking(
        self, db: AsyncSession, event: TrackingWebhookRequest
    ) -> EventResult:
        target = TRACKING_TO_SHIPMENT[event.event_type]
        try:
            order_id = event.order_id
            if order_id is None:
                found = await self._repo.get_by_tracking_number(db, event.tracking_number or "")
                if found is None:
                    raise OrderNotFoundError(f"tracking {event.tracking_number}")
                order_id = found.id
            order = await self._repo.lock_for_update(db, order_id)
            if order is None:
                raise OrderNotFoundError(order_id)

            result = EventResult(group_id=order.group_id, order_ids=[order.id])
            if (
                target is ShipmentStatus.SHIPPED
                and order.shipment_status is ShipmentStatus.DELIVERED
            ):
                # Carrier events can arrive out of order; never move back from delivered.
                logger.info("Ignoring stale %s event for order %s", event.event_type.value, order.id)
                result.skipped.append(order.id)
                await db.commit()
                return result

            outcome = await self._transitions.apply_transition(
                db,
                order,
                TransitionRequest(shipment_status=target),
                SYSTEM_ACTOR,
                note=f"Carrier event {event.event_type.value}",
                tracking_number=event.tracking_number,
            )
            _record(result, outcome)
            await db.commit()
        except Exception:
            await db.rollback()
            logger.exception("Tracking webhook for %s failed", event.tracking_number or event.order_id)
            raise
        await self._transitions.invoices.render_all(outcome.created_invoice_ids)
        return result

    async def handle_admin_update(
        self,
        db: AsyncSession,
        order_id: str,
        command: AdminOrderUpdateRequest,
        admin_id: str,
    ) -> TransitionOutcome:
        return await self._transitions.transition(
            db,
            order_id,
            TransitionRequest(
                order_status=command.order_status,
                payment_status=command.payment_status,
                shipment_status=command.shipment_status,
            ),
            actor=admin_id,
            note=command.note,
            tracking_number=command.tracking_number,
        )

    async def _load_payment_orders(
        self, db: AsyncSession, event: PaymentWebhookRequest
    ) -> list[Order]:
        if event.order_id:
            order = await self._repo.lock_for_update(db, event.order_id)
            if order is None:
                raise OrderNotFoundError(event.order_id)
            return [order]

        group_id = event.group_id or ""
        orders = await self._repo.lock_group_for_update(db, group_id)
        if orders:
            return orders
        if event.payment_state is PaymentState.PAID and event.cart_id and event.buyer_id:
            # First confirmation for an unconverted cart: convert inside this transaction.
            return await self._conversion.convert(
                db,
                event.buyer_id,
                event.cart_id,
                event.shipping_address,
                group_id=group_id,
                commit=False,
            )
        raise OrderNotFoundError(f"group {group_id}")

    @staticmethod
    def _check_amount(event: PaymentWebhookRequest, orders: list[Order]) -> None:
        expected = sum(o.total_amount for o in orders)
        currencies = {o.currency for o in orders}
        if event.amount_paid != expected:
            logger.warning(
                "Payment %s amount %d differs from order total %d",
                event.payment_reference,
                event.amount_paid,
                expected,
            )
        if currencies != {event.currency}:
            logger.warning(
                "Payment %s currency %s differs from order currency %s",
                event.payment_reference,
                event.currency,
                sorted(currencies),
            )


def _record(result: EventResult, outcome: TransitionOutcome) -> None:
    if outcome.applied:
        result.applied.append(outcome.order.id)
    else:
        result.skipped.append(outcome.order.id)
