"""
Position sizing for ROTATION MOMENTUM.

Equal-weight slots: every allocated instrument gets equity / allocated.
"""


def notional_per_slot(equity: float, allocated: int) -> float:
    """
    Notional value for one long slot.

    Args:
        equity: Current account equity
        allocated: Number of instruments actually allocated a slot

    Returns:
        equity / allocated

    Raises:
        ValueError: If nothing is allocated (callers short-circuit first)
    """
    if allocated <= 0:
        raise ValueError(f"allocated must be positive, got {allocated}")
    return equity / allocated


def calculate_order_quantity(notional: float, price: float) -> int:
    """
    Whole-share quantity for a notional.

    Fractional shares are not supported; the quantity is truncated toward zero.

    Args:
        notional: Target position value
        price: Last close

    Returns:
        notional / price truncated toward zero, or 0 for a non-positive price
    """
    if price <= 0:
        return 0
    return int(notional / price)
