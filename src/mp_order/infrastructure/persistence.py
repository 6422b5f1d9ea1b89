"""OrderRepository: raw SQL persistence for orders, items and status history.

Orders are never deleted. Status columns change only through update_status, which the
transition service calls while holding the row lock taken by lock_for_update.
"""

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.enums import OrderStatus, OrderType, PaymentStatus, ShipmentStatus
from src.mp_order.domain.models import Order, OrderItem, StatusHistoryEntry

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_SELECT_COLUMNS = """
    id, order_number, group_id, cart_id, buyer_id, vendor_id,
    order_status, payment_status, shipment_status, order_type,
    subtotal_base, subtotal_sell, shipping_total, packing_total,
    vat_rate_bps, vat_amount, vendor_vat_rate_bps, total_amount, admin_commission,
    currency, shipping_address, tracking_number, payment_reference, version,
    created_at, updated_at
"""

_INSERT_ORDER_SQL = text("""
    INSERT INTO orders (id, order_number, group_id, cart_id, buyer_id, vendor_id,
        order_status, payment_status, shipment_status, order_type,
        subtotal_base, subtotal_sell, shipping_total, packing_total,
        vat_rate_bps, vat_amount, vendor_vat_rate_bps, total_amount, admin_commission,
        currency, shipping_address)
    VALUES (:id, :order_number, :group_id, :cart_id, :buyer_id, :vendor_id,
        :order_status, :payment_status, :shipment_status, :order_type,
        :subtotal_base, :subtotal_sell, :shipping_total, :packing_total,
        :vat_rate_bps, :vat_amount, :vendor_vat_rate_bps, :total_amount, :admin_commission,
        :currency, CAST(:shipping_address AS JSONB))
""")

_INSERT_ITEM_SQL = text("""
    INSERT INTO order_items (order_id, product_id, product_name, vendor_id, quantity,
        unit_base_price, unit_sell_price, unit_shipping, unit_packing)
    VALUES (:order_id, :product_id, :product_name, :vendor_id, :quantity,
        :unit_base_price, :unit_sell_price, :unit_shipping, :unit_packing)
""")

_GET_ORDER_BY_ID_SQL = text(f"SELECT {_SELECT_COLUMNS} FROM orders WHERE id = :id")

_LOCK_ORDER_SQL = text(f"SELECT {_SELECT_COLUMNS} FROM orders WHERE id = :id FOR UPDATE")

_GET_BY_GROUP_SQL = text(f"""
    SELECT {_SELECT_COLUMNS} FROM orders WHERE group_id = :group_id ORDER BY id
""")

# Fixed lock order (by id) so two group-wide lockers cannot deadlock.
_LOCK_GROUP_SQL = text(f"""
    SELECT {_SELECT_COLUMNS} FROM orders WHERE group_id = :group_id ORDER BY id FOR UPDATE
""")

_GET_BY_TRACKING_SQL = text(f"""
    SELECT {_SELECT_COLUMNS} FROM orders WHERE tracking_number = :tracking_number
    ORDER BY id LIMIT 1
""")

_ORDER_NUMBER_EXISTS_SQL = text("""
    SELECT 1 FROM orders WHERE order_number = :order_number OR group_id = :order_number
    LIMIT 1
""")

_UPDATE_STATUS_SQL = text("""
    UPDATE orders
    SET order_status = :order_status,
        payment_status = :payment_status,
        shipment_status = :shipment_status,
        tracking_number = :tracking_number,
        payment_reference = :payment_reference,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :id
""")

_LIST_ITEMS_SQL = text("""
    SELECT id, order_id, product_id, product_name, vendor_id, quantity,
           unit_base_price, unit_sell_price, unit_shipping, unit_packing
    FROM order_items WHERE order_id = :order_id ORDER BY id
""")

_INSERT_HISTORY_SQL = text("""
    INSERT INTO order_status_history
        (order_id, order_status, payment_status, shipment_status, actor, note)
    VALUES (:order_id, :order_status, :payment_status, :shipment_status, :actor, :note)
""")

_LIST_HISTORY_SQL = text("""
    SELECT id, order_id, order_status, payment_status, shipment_status, actor, note, created_at
    FROM order_status_history
    WHERE order_id = :order_id
    ORDER BY id DESC
""")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _enum_or_none(enum_cls: Any, value: str | None) -> Any:
    return enum_cls(value) if value is not None else None


def _value_or_none(value: Any) -> str | None:
    return value.value if value is not None else None


def _address(value: Any) -> dict[str, Any] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return json.loads(value)
    return dict(value)


def _row_to_order(row: Any) -> Order:
    return Order(
        id=str(row.id),
        order_number=row.order_number,
        group_id=row.group_id,
        cart_id=row.cart_id,
        buyer_id=row.buyer_id,
        vendor_id=row.vendor_id,
        order_status=OrderStatus(row.order_status),
        payment_status=_enum_or_none(PaymentStatus, row.payment_status),
        shipment_status=_enum_or_none(ShipmentStatus, row.shipment_status),
        order_type=OrderType(row.order_type),
        subtotal_base=row.subtotal_base,
        subtotal_sell=row.subtotal_sell,
        shipping_total=row.shipping_total,
        packing_total=row.packing_total,
        vat_rate_bps=row.vat_rate_bps,
        vat_amount=row.vat_amount,
        vendor_vat_rate_bps=row.vendor_vat_rate_bps,
        total_amount=row.total_amount,
        admin_commission=row.admin_commission,
        currency=row.currency,
        shipping_address=_address(row.shipping_address),
        tracking_number=row.tracking_number,
        payment_reference=row.payment_reference,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_item(row: Any) -> OrderItem:
    return OrderItem(
        id=row.id,
        order_id=str(row.order_id),
        product_id=str(row.product_id),
        product_name=row.product_name,
        vendor_id=row.vendor_id,
        quantity=row.quantity,
        unit_base_price=row.unit_base_price,
        unit_sell_price=row.unit_sell_price,
        unit_shipping=row.unit_shipping,
        unit_packing=row.unit_packing,
    )


def _row_to_history(row: Any) -> StatusHistoryEntry:
    return StatusHistoryEntry(
        id=row.id,
        order_id=str(row.order_id),
        order_status=OrderStatus(row.order_status),
        payment_status=_enum_or_none(PaymentStatus, row.payment_status),
        shipment_status=_enum_or_none(ShipmentStatus, row.shipment_status),
        actor=row.actor,
        note=row.note,
        created_at=row.created_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrderRepository:
    """Concrete implementation of OrderRepositoryProtocol using raw SQL."""

    async def create(self, db: AsyncSession, order: Order) -> None:
        await db.execute(
            _INSERT_ORDER_SQL,
            {
                "id": order.id,
                "order_number": order.order_number,
                "group_id": order.group_id,
                "cart_id": order.cart_id,
                "buyer_id": order.buyer_id,
                "vendor_id": order.vendor_id,
                "order_status": order.order_status.value,
                "payment_status": _value_or_none(order.payment_status),
                "shipment_status": _value_or_none(order.shipment_status),
                "order_type": order.order_type.value,
                "subtotal_base": order.subtotal_base,
                "subtotal_sell": order.subtotal_sell,
                "shipping_total": order.shipping_total,
                "packing_total": order.packing_total,
                "vat_rate_bps": order.vat_rate_bps,
                "vat_amount": order.vat_amount,
                "vendor_vat_rate_bps": order.vendor_vat_rate_bps,
                "total_amount": order.total_amount,
                "admin_commission": order.admin_commission,
                "currency": order.currency,
                "shipping_address": (
                    json.dumps(order.shipping_address)
                    if order.shipping_address is not None
                    else None
                ),
            },
        )
        for item in order.items:
            item.order_id = order.id
            await db.execute(
                _INSERT_ITEM_SQL,
                {
                    "order_id": order.id,
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "vendor_id": item.vendor_id,
                    "quantity": item.quantity,
                    "unit_base_price": item.unit_base_price,
                    "unit_sell_price": item.unit_sell_price,
                    "unit_shipping": item.unit_shipping,
                    "unit_packing": item.unit_packing,
                },
            )

    async def get_by_id(self, db: AsyncSession, order_id: str) -> Order | None:
        row = (await db.execute(_GET_ORDER_BY_ID_SQL, {"id": order_id})).fetchone()
        return _row_to_order(row) if row else None

    async def lock_for_update(self, db: AsyncSession, order_id: str) -> Order | None:
        row = (await db.execute(_LOCK_ORDER_SQL, {"id": order_id})).fetchone()
        return _row_to_order(row) if row else None

    async def get_by_group(self, db: AsyncSession, group_id: str) -> list[Order]:
        result = await db.execute(_GET_BY_GROUP_SQL, {"group_id": group_id})
        return [_row_to_order(r) for r in result.fetchall()]

    async def lock_group_for_update(self, db: AsyncSession, group_id: str) -> list[Order]:
        result = await db.execute(_LOCK_GROUP_SQL, {"group_id": group_id})
        return [_row_to_order(r) for r in result.fetchall()]

    async def get_by_tracking_number(
        self, db: AsyncSession, tracking_number: str
    ) -> Order | None:
        row = (
            await db.execute(_GET_BY_TRACKING_SQL, {"tracking_number": tracking_number})
        ).fetchone()
        return _row_to_order(row) if row else None

    async def order_number_exists(self, db: AsyncSession, order_number: str) -> bool:
        row = (
            await db.execute(_ORDER_NUMBER_EXISTS_SQL, {"order_number": order_number})
        ).fetchone()
        return row is not None

    async def update_status(self, db: AsyncSession, order: Order) -> None:
        await db.execute(
            _UPDATE_STATUS_SQL,
            {
                "id": order.id,
                "order_status": order.order_status.value,
                "payment_status": _value_or_none(order.payment_status),
                "shipment_status": _value_or_none(order.shipment_status),
                "tracking_number": order.tracking_number,
                "payment_reference": order.payment_reference,
            },
        )
        order.version += 1

    async def list_items(self, db: AsyncSession, order_id: str) -> list[OrderItem]:
        result = await db.execute(_LIST_ITEMS_SQL, {"order_id": order_id})
        return [_row_to_item(r) for r in result.fetchall()]

    async def insert_history(self, db: AsyncSession, entry: StatusHistoryEntry) -> None:
        await db.execute(
            _INSERT_HISTORY_SQL,
            {
                "order_id": entry.order_id,
                "order_status": entry.order_status.value,
                "payment_status": _value_or_none(entry.payment_status),
                "shipment_status": _value_or_none(entry.shipment_status),
                "actor": entry.actor,
                "note": entry.note,
            },
        )

    async def list_history(self, db: AsyncSession, order_id: str) -> list[StatusHistoryEntry]:
        result = await db.execute(_LIST_HISTORY_SQL, {"order_id": order_id})
        return [_row_to_history(r) for r in result.fetchall()]
