"""OrderConversionService: turns a cart into one order per vendor.

Idempotent per cart and per group: the cart row is locked FOR UPDATE first, a converted
cart returns the orders of its group, and a group id that already has orders returns them.
Everything (orders, items, first history rows, cart flag) is written in one transaction.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_cart.domain.models import CartLine, UserProfile, ineligibility_reason
from src.mp_cart.domain.repository import CartRepositoryProtocol
from src.mp_cart.infrastructure.persistence import CartRepository
from src.mp_common.enums import CartStatus, OrderStatus, OrderType, PaymentStatus
from src.mp_common.errors import (
    AddressRequiredError,
    CartAlreadyConvertedError,
    CartEmptyError,
    CartNotFoundError,
    EligibilityError,
    GroupIdTakenError,
    InternalError,
    ValidationError,
)
from src.mp_common.id_generator import generate_id, generate_order_number
from src.mp_compliance.application.evaluator import ComplianceEvaluator, ComplianceResult
from src.mp_order.domain.models import Order, OrderItem, StatusHistoryEntry
from src.mp_order.domain.pricing import (
    PartitionTotals,
    consolidate_lines,
    partition_by_vendor,
    price_partition,
)
from src.mp_order.domain.repository import OrderRepositoryProtocol
from src.mp_order.domain.vat import resolve_vat_rates
from src.mp_order.infrastructure.persistence import OrderRepository

logger = logging.getLogger(__name__)

# Key for the platform-owned partition in shipping_overrides. Overrides are carrier quotes
# fetched server-side; buyers never supply them.
PLATFORM_PARTITION_KEY = "platform"

_MAX_NUMBER_ATTEMPTS = 20


@dataclass
class PartitionPlan:
    vendor_id: str | None
    lines: list[CartLine]
    totals: PartitionTotals
    vendor_vat_rate_bps: int


@dataclass
class ConversionPlan:
    compliance: ComplianceResult
    partitions: list[PartitionPlan] = field(default_factory=list)

    @property
    def grand_total(self) -> int:
        return sum(p.totals.total_amount for p in self.partitions)


def _is_group_id(value: str) -> bool:
    return len(value) == 8 and value.isdigit()


class OrderConversionService:
    def __init__(
        self,
        order_repo: OrderRepositoryProtocol | None = None,
        cart_repo: CartRepositoryProtocol | None = None,
        compliance: ComplianceEvaluator | None = None,
        commission_rate_bps: int | None = None,
        currency: str | None = None,
    ) -> None:
        self._orders: OrderRepositoryProtocol = order_repo or OrderRepository()
        self._carts: CartRepositoryProtocol = cart_repo or CartRepository()
        self._compliance = compliance or ComplianceEvaluator(self._carts)
        self._commission_rate_bps = (
            commission_rate_bps
            if commission_rate_bps is not None
            else settings.COMMISSION_RATE_BPS
        )
        self._currency = currency or settings.CURRENCY

    async def preview(
        self,
        db: AsyncSession,
        buyer_id: str,
        cart_id: str,
        shipping_overrides: dict[str, int] | None = None,
    ) -> ConversionPlan:
        """Compliance decision and per-vendor breakdown, without writing anything."""
        cart = await self._carts.get_cart(db, cart_id)
        if cart is None or cart.user_id != buyer_id:
            raise CartNotFoundError(cart_id)
        lines = await self._carts.list_lines(db, cart_id)
        return await self._plan(db, buyer_id, cart_id, lines, shipping_overrides)

    async def convert(
        self,
        db: AsyncSession,
        buyer_id: str,
        cart_id: str,
        shipping_address: dict[str, Any] | None,
        group_id: str | None = None,
        shipping_overrides: dict[str, int] | None = None,
        commit: bool = True,
    ) -> list[Order]:
        """Convert the cart. With commit=False the caller owns the transaction."""
        try:
            orders = await self._convert(
                db, buyer_id, cart_id, shipping_address, group_id, shipping_overrides
            )
            if commit:
                await db.commit()
        except Exception:
            if commit:
                await db.rollback()
            raise
        return orders

    async def _convert(
        self,
        db: AsyncSession,
        buyer_id: str,
        cart_id: str,
        shipping_address: dict[str, Any] | None,
        group_id: str | None,
        shipping_overrides: dict[str, int] | None,
    ) -> list[Order]:
        if group_id is not None and not _is_group_id(group_id):
            raise ValidationError(f"group_id must be 8 digits, got {group_id!r}")

        cart = await self._carts.lock_cart(db, cart_id)
        if cart is None or cart.user_id != buyer_id:
            raise CartNotFoundError(cart_id)

        if cart.status == CartStatus.CONVERTED.value:
            if group_id is not None and group_id != cart.converted_group_id:
                raise CartAlreadyConvertedError(cart_id)
            logger.info("Cart %s already converted to group %s", cart_id, cart.converted_group_id)
            return await self._orders.get_by_group(db, cart.converted_group_id or "")

        if group_id is not None:
            existing = await self._orders.get_by_group(db, group_id)
            if existing:
                return existing
            if await self._orders.order_number_exists(db, group_id):
                raise GroupIdTakenError(group_id)

        lines = await self._carts.list_lines(db, cart_id)
        plan = await self._plan(db, buyer_id, cart_id, lines, shipping_overrides)
        if plan.compliance.is_request and not shipping_address:
            raise AddressRequiredError()

        taken: set[str] = set()
        if group_id is None:
            group_id = await self._new_number(db, taken)
        taken.add(group_id)
        single = len(plan.partitions) == 1
        order_type = plan.compliance.type

        orders: list[Order] = []
        for partition in plan.partitions:
            order_number = group_id if single else await self._new_number(db, taken)
            taken.add(order_number)
            order = self._build_order(
                partition, order_number, group_id, cart_id, buyer_id, order_type, shipping_address
            )
            await self._orders.create(db, order)
            await self._orders.insert_history(
                db,
                StatusHistoryEntry(
                    order_id=order.id,
                    order_status=order.order_status,
                    payment_status=order.payment_status,
                    shipment_status=order.shipment_status,
                    actor=buyer_id,
                    note=(
                        "Purchase request created: " + ", ".join(plan.compliance.reasons)
                        if order_type is OrderType.REQUEST
                        else "Order created from cart"
                    ),
                ),
            )
            orders.append(order)

        await self._carts.mark_converted(db, cart_id, group_id)
        logger.info(
            "Converted cart %s into group %s (%d orders, %s)",
            cart_id,
            group_id,
            len(orders),
            order_type.value,
        )
        return orders

    async def _plan(
        self,
        db: AsyncSession,
        buyer_id: str,
        cart_id: str,
        lines: list[CartLine],
        shipping_overrides: dict[str, int] | None,
    ) -> ConversionPlan:
        if not lines:
            raise CartEmptyError(cart_id)
        for line in lines:
            reason = ineligibility_reason(line)
            if reason is not None:
                raise EligibilityError(line.product_id, reason)

        lines = consolidate_lines(lines)
        buyer = await self._carts.get_profile(db, buyer_id)
        compliance = await self._compliance.evaluate_for(db, buyer_id, buyer, lines)

        plan = ConversionPlan(compliance=compliance)
        overrides = _checked_overrides(shipping_overrides)
        for vendor_id, vendor_lines in partition_by_vendor(lines).items():
            rates = resolve_vat_rates(self._vendor_country(vendor_id, vendor_lines), _country(buyer))
            totals = price_partition(
                vendor_lines,
                vat_rate_bps=rates.admin_to_customer_bps,
                commission_rate_bps=self._commission_rate_bps,
                platform_owned=vendor_id is None,
                shipping_override=overrides.get(vendor_id or PLATFORM_PARTITION_KEY),
            )
            plan.partitions.append(
                PartitionPlan(
                    vendor_id=vendor_id,
                    lines=vendor_lines,
                    totals=totals,
                    vendor_vat_rate_bps=rates.vendor_to_admin_bps,
                )
            )
        return plan

    def _build_order(
        self,
        partition: PartitionPlan,
        order_number: str,
        group_id: str,
        cart_id: str,
        buyer_id: str,
        order_type: OrderType,
        shipping_address: dict[str, Any] | None,
    ) -> Order:
        totals = partition.totals
        return Order(
            id=generate_id(),
            order_number=order_number,
            group_id=group_id,
            cart_id=cart_id,
            buyer_id=buyer_id,
            vendor_id=partition.vendor_id,
            order_status=OrderStatus.ORDER_RECEIVED,
            payment_status=None if order_type is OrderType.REQUEST else PaymentStatus.PENDING,
            shipment_status=None,
            order_type=order_type,
            subtotal_base=totals.subtotal_base,
            subtotal_sell=totals.subtotal_sell,
            shipping_total=totals.shipping_total,
            packing_total=totals.packing_total,
            vat_rate_bps=totals.vat_rate_bps,
            vat_amount=totals.vat_amount,
            vendor_vat_rate_bps=partition.vendor_vat_rate_bps,
            total_amount=totals.total_amount,
            admin_commission=totals.admin_commission,
            currency=self._currency,
            shipping_address=shipping_address,
            items=[
                OrderItem(
                    product_id=line.product_id,
                    product_name=line.product_name,
                    vendor_id=line.vendor_id,
                    quantity=line.quantity,
                    unit_base_price=line.unit_base_price,
                    unit_sell_price=line.unit_sell_price,
                    unit_shipping=line.unit_shipping,
                    unit_packing=line.unit_packing,
                )
                for line in partition.lines
            ],
        )

    async def _new_number(self, db: AsyncSession, taken: set[str]) -> str:
        """Fresh 8-digit number unused in the database and in the current batch."""
        for _ in range(_MAX_NUMBER_ATTEMPTS):
            candidate = generate_order_number()
            if candidate in taken:
                continue
            if not await self._orders.order_number_exists(db, candidate):
                return candidate
        raise InternalError("Could not allocate a unique order number")

    @staticmethod
    def _vendor_country(vendor_id: str | None, lines: list[CartLine]) -> str | None:
        if vendor_id is None:
            return settings.HOME_REGION
        return lines[0].vendor_country


def _country(profile: UserProfile | None) -> str | None:
    return profile.country if profile else None


def _checked_overrides(overrides: dict[str, int] | None) -> dict[str, int]:
    for key, amount in (overrides or {}).items():
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise ValidationError(f"Shipping quote for {key!r} must be >= 0, got {amount!r}")
    return overrides or {}
