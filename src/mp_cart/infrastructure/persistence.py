"""CartRepository: raw SQL reads of carts, cart items, products, categories and profiles."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_cart.domain.models import Cart, CartLine, Category, UserProfile

_CART_COLUMNS = "id, user_id, status, converted_group_id"

_GET_CART_SQL = text(f"SELECT {_CART_COLUMNS} FROM carts WHERE id = :cart_id")

_LOCK_CART_SQL = text(f"SELECT {_CART_COLUMNS} FROM carts WHERE id = :cart_id FOR UPDATE")

_LIST_LINES_SQL = text("""
    SELECT ci.product_id,
           p.name             AS product_name,
           p.vendor_id,
           p.category_id,
           ci.quantity,
           p.base_price       AS unit_base_price,
           p.sell_price       AS unit_sell_price,
           p.shipping_charge  AS unit_shipping,
           p.packing_charge   AS unit_packing,
           p.is_published,
           p.approval_status,
           COALESCE(vp.is_suspended, FALSE) AS vendor_suspended,
           vp.country         AS vendor_country
    FROM cart_items ci
    JOIN products p ON p.id = ci.product_id
    LEFT JOIN user_profiles vp ON vp.user_id = p.vendor_id
    WHERE ci.cart_id = :cart_id
    ORDER BY ci.id
""")

_MARK_CONVERTED_SQL = text("""
    UPDATE carts
    SET status = 'converted', converted_group_id = :group_id, updated_at = NOW()
    WHERE id = :cart_id
""")

_GET_PROFILE_SQL = text("""
    SELECT user_id, country, onboarding_status, controlled_items_approved, is_suspended
    FROM user_profiles
    WHERE user_id = :user_id
""")

_CATEGORY_ANCESTORS_SQL = text("""
    WITH RECURSIVE chain AS (
        SELECT id, parent_id, is_controlled
        FROM categories
        WHERE id = ANY(:category_ids)
        UNION
        SELECT c.id, c.parent_id, c.is_controlled
        FROM categories c
        JOIN chain ON c.id = chain.parent_id
    )
    SELECT id, parent_id, is_controlled FROM chain
""")


def _row_to_cart(row: object) -> Cart:
    return Cart(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        converted_group_id=row.converted_group_id,  # type: ignore[attr-defined]
    )


def _row_to_line(row: object) -> CartLine:
    return CartLine(
        product_id=str(row.product_id),  # type: ignore[attr-defined]
        product_name=row.product_name,  # type: ignore[attr-defined]
        vendor_id=row.vendor_id,  # type: ignore[attr-defined]
        category_id=row.category_id,  # type: ignore[attr-defined]
        quantity=row.quantity,  # type: ignore[attr-defined]
        unit_base_price=row.unit_base_price,  # type: ignore[attr-defined]
        unit_sell_price=row.unit_sell_price,  # type: ignore[attr-defined]
        unit_shipping=row.unit_shipping,  # type: ignore[attr-defined]
        unit_packing=row.unit_packing,  # type: ignore[attr-defined]
        is_published=row.is_published,  # type: ignore[attr-defined]
        approval_status=row.approval_status,  # type: ignore[attr-defined]
        vendor_suspended=row.vendor_suspended,  # type: ignore[attr-defined]
        vendor_country=row.vendor_country,  # type: ignore[attr-defined]
    )


class CartRepository:
    async def get_cart(self, db: AsyncSession, cart_id: str) -> Cart | None:
        row = (await db.execute(_GET_CART_SQL, {"cart_id": cart_id})).fetchone()
        return _row_to_cart(row) if row else None

    async def lock_cart(self, db: AsyncSession, cart_id: str) -> Cart | None:
        row = (await db.execute(_LOCK_CART_SQL, {"cart_id": cart_id})).fetchone()
        return _row_to_cart(row) if row else None

    async def list_lines(self, db: AsyncSession, cart_id: str) -> list[CartLine]:
        result = await db.execute(_LIST_LINES_SQL, {"cart_id": cart_id})
        return [_row_to_line(r) for r in result.fetchall()]

    async def mark_converted(self, db: AsyncSession, cart_id: str, group_id: str) -> None:
        await db.execute(_MARK_CONVERTED_SQL, {"cart_id": cart_id, "group_id": group_id})

    async def get_profile(self, db: AsyncSession, user_id: str) -> UserProfile | None:
        row = (await db.execute(_GET_PROFILE_SQL, {"user_id": user_id})).fetchone()
        if row is None:
            return None
        return UserProfile(
            user_id=row.user_id,
            country=row.country,
            onboarding_status=row.onboarding_status,
            controlled_items_approved=row.controlled_items_approved,
            is_suspended=row.is_suspended,
        )

    async def get_categories_with_ancestors(
        self, db: AsyncSession, category_ids: list[str]
    ) -> dict[str, Category]:
        if not category_ids:
            return {}
        result = await db.execute(_CATEGORY_ANCESTORS_SQL, {"category_ids": category_ids})
        return {
            str(r.id): Category(
                id=str(r.id),
                parent_id=str(r.parent_id) if r.parent_id is not None else None,
                is_controlled=r.is_controlled,
            )
            for r in result.fetchall()
        }
