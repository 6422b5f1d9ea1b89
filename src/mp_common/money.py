"""Integer arithmetic utilities for minor-unit money.

All prices, amounts, and balances use int (fils/cents). No float, no Decimal.
Rates are expressed in basis points: 500 bps == 5%.
"""

_BPS_DENOMINATOR = 10_000


def validate_amount(amount: int) -> None:
    """Validate that a monetary amount is a strictly positive integer."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"Amount must be an integer number of minor units, got {amount!r}")
    if amount <= 0:
        raise ValueError(f"Amount must be positive, got {amount}")


def apply_rate_bps(amount: int, rate_bps: int) -> int:
    """Apply a basis-point rate with half-up rounding to the nearest minor unit.

    apply_rate_bps(23000, 500) -> 1150   (5% of 230.00 = 11.50)
    apply_rate_bps(1, 5000)    -> 1      (0.005 rounds up)
    """
    if amount == 0 or rate_bps == 0:
        return 0
    sign = -1 if amount < 0 else 1
    return sign * ((abs(amount) * rate_bps + _BPS_DENOMINATOR // 2) // _BPS_DENOMINATOR)


def to_display(amount: int, currency: str = "AED") -> str:
    """Convert minor units to display string: 24150 -> 'AED 241.50', -1200 -> '-AED 12.00'."""
    if amount < 0:
        abs_amount = -amount
        return f"-{currency} {abs_amount // 100:,}.{abs_amount % 100:02d}"
    return f"{currency} {amount // 100:,}.{amount % 100:02d}"
