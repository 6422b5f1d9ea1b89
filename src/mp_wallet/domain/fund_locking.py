"""Fund locking split: who is credited what when an order becomes paid + approved.

    vendor_taxable = subtotal_base + shipping_total + packing_total
    vendor_vat     = round(vendor_taxable × vendor_vat_rate_bps)
    vendor_earning = vendor_taxable + vendor_vat          (capped at total_amount)
    platform_share = total_amount - vendor_earning

Both credits are locked. Their sum is always exactly total_amount, so no money is
created or lost. Platform-owned orders (vendor_id is None) credit the whole total
to the platform account.
"""

from src.mp_common.enums import LedgerCategory
from src.mp_common.money import apply_rate_bps
from src.mp_wallet.domain.models import LockCredit


def lock_idempotency_key(order_id: str, category: str) -> str:
    return f"order:{order_id}:lock:{category}"


def compute_vendor_earning(
    subtotal_base: int,
    shipping_total: int,
    packing_total: int,
    vendor_vat_rate_bps: int,
    total_amount: int,
) -> int:
    vendor_taxable = subtotal_base + shipping_total + packing_total
    vendor_vat = apply_rate_bps(vendor_taxable, vendor_vat_rate_bps)
    return min(vendor_taxable + vendor_vat, total_amount)


def compute_lock_credits(
    *,
    vendor_id: str | None,
    subtotal_base: int,
    shipping_total: int,
    packing_total: int,
    vendor_vat_rate_bps: int,
    total_amount: int,
    platform_account_id: str,
) -> list[LockCredit]:
    """Return the locked credits for one order. Zero-amount credits are omitted."""
    if total_amount <= 0:
        return []
    if vendor_id is None:
        return [
            LockCredit(platform_account_id, LedgerCategory.COMMISSION.value, total_amount)
        ]

    vendor_earning = compute_vendor_earning(
        subtotal_base, shipping_total, packing_total, vendor_vat_rate_bps, total_amount
    )
    platform_share = total_amount - vendor_earning

    credits: list[LockCredit] = []
    if vendor_earning > 0:
        credits.append(
            LockCredit(vendor_id, LedgerCategory.VENDOR_EARNING.value, vendor_earning)
        )
    if platform_share > 0:
        credits.append(
            LockCredit(platform_account_id, LedgerCategory.COMMISSION.value, platform_share)
        )
    return credits
