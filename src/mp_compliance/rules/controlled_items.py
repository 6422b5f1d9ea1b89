"""Region routing for controlled items.

A controlled item sold by a vendor in the home region always needs a request, and so
does a controlled item shipped into the home region by a vendor outside it.
Platform-owned products count as home-region stock.
"""

from src.mp_cart.domain.models import CartLine
from src.mp_common.regions import is_home_region

CONTROLLED_LOCAL_VENDOR = "controlled_item_local_vendor"
CONTROLLED_IMPORT = "controlled_item_import"


def check_controlled_region(
    controlled_lines: list[CartLine], buyer_country: str | None
) -> list[str]:
    reasons: list[str] = []
    buyer_home = is_home_region(buyer_country)
    for line in controlled_lines:
        vendor_home = line.vendor_id is None or is_home_region(line.vendor_country)
        if vendor_home and CONTROLLED_LOCAL_VENDOR not in reasons:
            reasons.append(CONTROLLED_LOCAL_VENDOR)
        elif not vendor_home and buyer_home and CONTROLLED_IMPORT not in reasons:
            reasons.append(CONTROLLED_IMPORT)
    return reasons
