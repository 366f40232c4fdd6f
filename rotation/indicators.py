"""
Technical indicators for ROTATION MOMENTUM.

Rate of change, maintained incrementally per instrument during replay, and
the matching vectorised form for analysis and reporting.
"""

from collections import deque
from typing import Deque, Optional, Tuple

import pandas as pd


class RateOfChange:
    """
    Rolling rate of change: (price_now / price_lookback_bars_ago) - 1.

    Undefined (None) until `lookback` bars have been seen after the first one.
    """

    def __init__(self, lookback: int):
        if lookback < 1:
            raise ValueError(f"lookback must be >= 1, got {lookback}")
        self._lookback = lookback
        self._prices: Deque[float] = deque(maxlen=lookback + 1)
        self._last: Optional[float] = None

    @property
    def lookback(self) -> int:
        return self._lookback

    @property
    def ready(self) -> bool:
        """True once a value can be computed."""
        return len(self._prices) == self._prices.maxlen

    @property
    def last(self) -> Optional[float]:
        """Most recent ROC value, or None while undefined."""
        return self._last

    def update(self, price: float) -> Optional[float]:
        """
        Feed one closing price.

        Args:
            price: Positive closing price

        Returns:
            Current ROC, or None while undefined
        """
        self._prices.append(price)
        if self.ready:
            self._last = price / self._prices[0] - 1
        return self._last


def calculate_roc(prices: pd.Series, lookback: int) -> pd.Series:
    """
    Vectorised rate of change over a price series.

    Args:
        prices: Series of closing prices
        lookback: Window length in bars

    Returns:
        Series of ROC values (NaN for the first `lookback` bars)
    """
    if lookback < 1:
        raise ValueError(f"lookback must be >= 1, got {lookback}")
    return prices / prices.shift(lookback) - 1


def calculate_drawdown(prices: pd.Series) -> Tuple[float, float]:
    """
    Calculate current and maximum drawdown.

    Args:
        prices: Series of prices or portfolio values

    Returns:
        Tuple of (current_drawdown, max_drawdown) as negative decimals
    """
    if len(prices) == 0:
        return (0.0, 0.0)

    rolling_max = prices.cummax()
    drawdown = (prices - rolling_max) / rolling_max

    current_drawdown = drawdown.iloc[-1]
    max_drawdown = drawdown.min()

    return (float(current_drawdown), float(max_drawdown))
