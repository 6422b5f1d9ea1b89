HIGH_VALUE = "high_value"


def check_high_value(sell_subtotal: int, threshold: int) -> list[str]:
    """Carts at or above the threshold (sell prices, minor units) need manual approval."""
    return [HIGH_VALUE] if sell_subtotal >= threshold else []
