"""Order state machine: one transition table per axis plus cross-axis guards.

    order:    order_received -> vendor_approved | vendor_rejected | approved | rejected | cancelled
              vendor_approved -> approved | rejected | cancelled
              vendor_rejected -> rejected | cancelled
              approved -> rejected | cancelled
              rejected, cancelled: terminal
    payment:  None -> pending | paid;  pending -> paid | failed
              failed -> pending | paid;  paid -> refunded;  refunded: terminal
    shipment: None -> processing | shipped;  processing -> shipped | delivered
              shipped -> delivered;  delivered: terminal

Guards:
  - shipment only moves when the target is approved and paid
  - a delivered order cannot be rejected or cancelled
  - a rejected/cancelled order accepts only paid -> refunded
  - refunded requires a rejected/cancelled order

Effects are derived from the locked previous value and the new value, so replays and
racing triggers never fire an effect twice.
"""

from dataclasses import dataclass
from enum import Enum

from src.mp_common.enums import OrderStatus, PaymentStatus, ShipmentStatus
from src.mp_common.errors import InvalidTransitionError
from src.mp_order.domain.models import StatusTriple

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.ORDER_RECEIVED: frozenset({
        OrderStatus.VENDOR_APPROVED,
        OrderStatus.VENDOR_REJECTED,
        OrderStatus.APPROVED,
        OrderStatus.REJECTED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.VENDOR_APPROVED: frozenset({
        OrderStatus.APPROVED,
        OrderStatus.REJECTED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.VENDOR_REJECTED: frozenset({OrderStatus.REJECTED, OrderStatus.CANCELLED}),
    OrderStatus.APPROVED: frozenset({OrderStatus.REJECTED, OrderStatus.CANCELLED}),
    OrderStatus.REJECTED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus | None, frozenset[PaymentStatus]] = {
    None: frozenset({PaymentStatus.PENDING, PaymentStatus.PAID}),
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PENDING, PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
}

SHIPMENT_TRANSITIONS: dict[ShipmentStatus | None, frozenset[ShipmentStatus]] = {
    None: frozenset({ShipmentStatus.PROCESSING, ShipmentStatus.SHIPPED}),
    ShipmentStatus.PROCESSING: frozenset({ShipmentStatus.SHIPPED, ShipmentStatus.DELIVERED}),
    ShipmentStatus.SHIPPED: frozenset({ShipmentStatus.DELIVERED}),
    ShipmentStatus.DELIVERED: frozenset(),
}

TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.REJECTED, OrderStatus.CANCELLED})


class Effect(str, Enum):
    LOCK_FUNDS = "LOCK_FUNDS"
    UNLOCK_FUNDS = "UNLOCK_FUNDS"
    REVERSE_FUNDS = "REVERSE_FUNDS"


@dataclass(frozen=True)
class TransitionRequest:
    """Requested target per axis; None means "leave this axis unchanged"."""

    order_status: OrderStatus | None = None
    payment_status: PaymentStatus | None = None
    shipment_status: ShipmentStatus | None = None

    def is_empty(self) -> bool:
        return (
            self.order_status is None
            and self.payment_status is None
            and self.shipment_status is None
        )


def resolve_target(current: StatusTriple, request: TransitionRequest) -> StatusTriple:
    return StatusTriple(
        order_status=request.order_status or current.order_status,
        payment_status=request.payment_status or current.payment_status,
        shipment_status=request.shipment_status or current.shipment_status,
    )


def _axis_violation(current: StatusTriple, target: StatusTriple) -> str | None:
    if (
        target.order_status != current.order_status
        and target.order_status not in ORDER_TRANSITIONS[current.order_status]
    ):
        return f"order_status {current.order_status.value} -> {target.order_status.value}"
    if (
        target.payment_status != current.payment_status
        and target.payment_status not in PAYMENT_TRANSITIONS[current.payment_status]
    ):
        return f"payment_status {_v(current.payment_status)} -> {_v(target.payment_status)}"
    if (
        target.shipment_status != current.shipment_status
        and target.shipment_status not in SHIPMENT_TRANSITIONS[current.shipment_status]
    ):
        return f"shipment_status {_v(current.shipment_status)} -> {_v(target.shipment_status)}"
    return None


def _guard_violation(current: StatusTriple, target: StatusTriple) -> str | None:
    shipment_moved = target.shipment_status != current.shipment_status
    payment_moved = target.payment_status != current.payment_status
    order_moved = target.order_status != current.order_status

    match (current, target):
        case (_, StatusTriple(order_status=o, payment_status=p)) if shipment_moved and (
            o is not OrderStatus.APPROVED or p is not PaymentStatus.PAID
        ):
            return "shipment can only move on an approved and paid order"
        case (StatusTriple(shipment_status=ShipmentStatus.DELIVERED), StatusTriple(order_status=o)) if (
            order_moved and o in TERMINAL_ORDER_STATUSES
        ):
            return "a delivered order cannot be rejected or cancelled"
        case (StatusTriple(order_status=o, payment_status=prev_p), StatusTriple(payment_status=p)) if (
            o in TERMINAL_ORDER_STATUSES
            and payment_moved
            and (prev_p, p) != (PaymentStatus.PAID, PaymentStatus.REFUNDED)
        ):
            return f"a {o.value} order only accepts paid -> refunded"
        case (_, StatusTriple(order_status=o, payment_status=PaymentStatus.REFUNDED)) if (
            payment_moved and o not in TERMINAL_ORDER_STATUSES
        ):
            return "refunded requires a rejected or cancelled order"
    return None


def validate_transition(order_id: str, current: StatusTriple, target: StatusTriple) -> None:
    """Raise InvalidTransitionError (409) unless current -> target is a legal step."""
    violation = _axis_violation(current, target) or _guard_violation(current, target)
    if violation is not None:
        raise InvalidTransitionError(order_id, violation)


def derive_effects(previous: StatusTriple, new: StatusTriple) -> list[Effect]:
    """Ledger effects of one applied transition."""
    effects: list[Effect] = []
    if new.is_paid_and_approved and not previous.is_paid_and_approved:
        effects.append(Effect.LOCK_FUNDS)
    if (
        new.shipment_status is ShipmentStatus.DELIVERED
        and previous.shipment_status is not ShipmentStatus.DELIVERED
    ):
        effects.append(Effect.UNLOCK_FUNDS)
    if (
        new.order_status in TERMINAL_ORDER_STATUSES
        and previous.order_status not in TERMINAL_ORDER_STATUSES
    ):
        effects.append(Effect.REVERSE_FUNDS)
    return effects


def _v(value: Enum | None) -> str:
    return value.value if value is not None else "none"
