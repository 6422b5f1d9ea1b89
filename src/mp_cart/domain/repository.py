"""Repository Protocol for cart and reference-data reads."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_cart.domain.models import Cart, CartLine, Category, UserProfile


class CartRepositoryProtocol(Protocol):
    async def get_cart(self, db: AsyncSession, cart_id: str) -> Cart | None: ...

    async def lock_cart(self, db: AsyncSession, cart_id: str) -> Cart | None: ...

    async def list_lines(self, db: AsyncSession, cart_id: str) -> list[CartLine]: ...

    async def mark_converted(self, db: AsyncSession, cart_id: str, group_id: str) -> None: ...

    async def get_profile(self, db: AsyncSession, user_id: str) -> UserProfile | None: ...

    async def get_categories_with_ancestors(
        self, db: AsyncSession, category_ids: list[str]
    ) -> dict[str, Category]: ...
