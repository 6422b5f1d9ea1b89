"""Read models for carts and the reference data the checkout depends on.

Products, categories, profiles and carts are maintained by external CRUD; this
engine only reads them (and flips the cart to converted).
"""

from dataclasses import dataclass

APPROVED = "approved"


@dataclass
class Cart:
    id: str
    user_id: str
    status: str                      # CartStatus value
    converted_group_id: str | None = None


@dataclass
class CartLine:
    """One cart item joined with its product snapshot and vendor profile."""

    product_id: str
    product_name: str
    vendor_id: str | None            # None = platform-owned product
    category_id: str | None
    quantity: int
    unit_base_price: int             # minor units
    unit_sell_price: int
    unit_shipping: int
    unit_packing: int
    is_published: bool = True
    approval_status: str = APPROVED
    vendor_suspended: bool = False
    vendor_country: str | None = None

    @property
    def sell_total(self) -> int:
        return self.unit_sell_price * self.quantity


@dataclass
class UserProfile:
    user_id: str
    country: str | None
    onboarding_status: str
    controlled_items_approved: bool = False
    is_suspended: bool = False

    @property
    def is_approved(self) -> bool:
        return self.onboarding_status == APPROVED


@dataclass
class Category:
    id: str
    parent_id: str | None
    is_controlled: bool


def is_controlled_category(category_id: str | None, categories: dict[str, Category]) -> bool:
    """True if the category or any of its ancestors is controlled."""
    seen: set[str] = set()
    current = category_id
    while current is not None and current not in seen:
        seen.add(current)
        category = categories.get(current)
        if category is None:
            return False
        if category.is_controlled:
            return True
        current = category.parent_id
    return False


def ineligibility_reason(line: CartLine) -> str | None:
    if not line.is_published:
        return "product is not published"
    if line.approval_status != APPROVED:
        return f"product approval status is {line.approval_status}"
    if line.vendor_suspended:
        return "vendor is suspended"
    return None
