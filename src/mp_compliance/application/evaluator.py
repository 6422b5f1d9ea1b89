"""Compliance evaluator: decides whether a checkout is a direct order or a purchase request.

Every rule runs and the reasons are unioned; any reason at all makes the order a request.
Side-effect free.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_cart.domain.models import CartLine, Category, UserProfile, is_controlled_category
from src.mp_cart.domain.repository import CartRepositoryProtocol
from src.mp_cart.infrastructure.persistence import CartRepository
from src.mp_common.enums import OrderType
from src.mp_common.errors import CartEmptyError
from src.mp_compliance.rules.buyer_approval import check_buyer_approval
from src.mp_compliance.rules.controlled_items import check_controlled_region
from src.mp_compliance.rules.high_value import check_high_value

logger = logging.getLogger(__name__)


@dataclass
class ComplianceResult:
    type: OrderType
    reasons: list[str] = field(default_factory=list)

    @property
    def is_request(self) -> bool:
        return self.type is OrderType.REQUEST


def decide(
    buyer: UserProfile | None,
    lines: list[CartLine],
    categories: dict[str, Category],
    high_value_threshold: int,
) -> ComplianceResult:
    controlled = [line for line in lines if is_controlled_category(line.category_id, categories)]
    sell_subtotal = sum(line.sell_total for line in lines)

    reasons: list[str] = []
    for rule_reasons in (
        check_buyer_approval(buyer, bool(controlled)),
        check_controlled_region(controlled, buyer.country if buyer else None),
        check_high_value(sell_subtotal, high_value_threshold),
    ):
        reasons.extend(r for r in rule_reasons if r not in reasons)

    return ComplianceResult(
        type=OrderType.REQUEST if reasons else OrderType.DIRECT,
        reasons=reasons,
    )


class ComplianceEvaluator:
    def __init__(
        self,
        cart_repo: CartRepositoryProtocol | None = None,
        high_value_threshold: int | None = None,
    ) -> None:
        self._carts: CartRepositoryProtocol = cart_repo or CartRepository()
        self._threshold = (
            high_value_threshold
            if high_value_threshold is not None
            else settings.HIGH_VALUE_THRESHOLD
        )

    async def evaluate(self, db: AsyncSession, buyer_id: str, cart_id: str) -> ComplianceResult:
        lines = await self._carts.list_lines(db, cart_id)
        if not lines:
            raise CartEmptyError(cart_id)
        return await self.evaluate_lines(db, buyer_id, lines)

    async def evaluate_lines(
        self, db: AsyncSession, buyer_id: str, lines: list[CartLine]
    ) -> ComplianceResult:
        buyer = await self._carts.get_profile(db, buyer_id)
        return await self.evaluate_for(db, buyer_id, buyer, lines)

    async def evaluate_for(
        self,
        db: AsyncSession,
        buyer_id: str,
        buyer: UserProfile | None,
        lines: list[CartLine],
    ) -> ComplianceResult:
        category_ids = sorted({line.category_id for line in lines if line.category_id is not None})
        categories = await self._carts.get_categories_with_ancestors(db, category_ids)
        result = decide(buyer, lines, categories, self._threshold)
        if result.is_request:
            logger.info("Buyer %s routed to purchase request: %s", buyer_id, result.reasons)
        return result
