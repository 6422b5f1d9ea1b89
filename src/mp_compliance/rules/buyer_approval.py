from src.mp_cart.domain.models import UserProfile

BUYER_NOT_APPROVED = "buyer_not_approved"
CONTROLLED_ITEMS_NOT_APPROVED = "controlled_items_not_approved"


def check_buyer_approval(buyer: UserProfile | None, has_controlled_items: bool) -> list[str]:
    """Unapproved buyers, and buyers not cleared for controlled items, go through a request."""
    reasons: list[str] = []
    if buyer is None or not buyer.is_approved:
        reasons.append(BUYER_NOT_APPROVED)
    if has_controlled_items and (buyer is None or not buyer.controlled_items_approved):
        reasons.append(CONTROLLED_ITEMS_NOT_APPROVED)
    return reasons
