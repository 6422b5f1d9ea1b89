"""Checkout pricing: consolidate cart lines, split them per vendor, price each partition.

Per partition (all minor units, rates in bps, half-up rounding):
    subtotal_base    = Σ unit_base × qty
    subtotal_sell    = Σ unit_sell × qty
    shipping_total   = Σ unit_shipping × qty   (or a server-side carrier quote)
    packing_total    = Σ unit_packing × qty
    vat_amount       = round((subtotal_base + shipping + packing) × vat_rate)
    admin_commission = round(subtotal_base × commission_rate)   (0 for platform-owned)
    total_amount     = subtotal_base + shipping + packing + vat_amount

Example (qty 2, base 100.00, sell 130.00, shipping 10.00, packing 5.00, VAT 5%):
    subtotal 200.00, shipping 20.00, packing 10.00, VAT 11.50, total 241.50
"""

from dataclasses import dataclass, replace

from src.mp_cart.domain.models import CartLine
from src.mp_common.money import apply_rate_bps


@dataclass(frozen=True)
class PartitionTotals:
    subtotal_base: int
    subtotal_sell: int
    shipping_total: int
    packing_total: int
    vat_rate_bps: int
    vat_amount: int
    admin_commission: int
    total_amount: int


def consolidate_lines(lines: list[CartLine]) -> list[CartLine]:
    """Merge duplicate product lines by summing quantities; first occurrence keeps its place."""
    merged: dict[str, CartLine] = {}
    for line in lines:
        existing = merged.get(line.product_id)
        if existing is None:
            merged[line.product_id] = replace(line)
        else:
            merged[line.product_id] = replace(existing, quantity=existing.quantity + line.quantity)
    return list(merged.values())


def partition_by_vendor(lines: list[CartLine]) -> dict[str | None, list[CartLine]]:
    """Group lines by vendor_id. None (platform-owned) is a partition of its own."""
    partitions: dict[str | None, list[CartLine]] = {}
    for line in lines:
        partitions.setdefault(line.vendor_id, []).append(line)
    return partitions


def price_partition(
    lines: list[CartLine],
    vat_rate_bps: int,
    commission_rate_bps: int,
    platform_owned: bool,
    shipping_override: int | None = None,
) -> PartitionTotals:
    subtotal_base = sum(line.unit_base_price * line.quantity for line in lines)
    subtotal_sell = sum(line.unit_sell_price * line.quantity for line in lines)
    shipping_total = (
        shipping_override
        if shipping_override is not None
        else sum(line.unit_shipping * line.quantity for line in lines)
    )
    packing_total = sum(line.unit_packing * line.quantity for line in lines)

    taxable = subtotal_base + shipping_total + packing_total
    vat_amount = apply_rate_bps(taxable, vat_rate_bps)
    admin_commission = 0 if platform_owned else apply_rate_bps(subtotal_base, commission_rate_bps)

    return PartitionTotals(
        subtotal_base=subtotal_base,
        subtotal_sell=subtotal_sell,
        shipping_total=shipping_total,
        packing_total=packing_total,
        vat_rate_bps=vat_rate_bps,
        vat_amount=vat_amount,
        admin_commission=admin_commission,
        total_amount=taxable + vat_amount,
    )
