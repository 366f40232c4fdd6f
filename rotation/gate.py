"""
Trading-window gate for ROTATION MOMENTUM.

Decides, once per calendar-day transition, whether a rebalance may run:
inside the trading window, after warm-up, on the first day of a new month.
"""

from datetime import date
from enum import Enum
from typing import Optional


class GateDecision(Enum):
    """Outcome of a gate evaluation."""

    SKIP = "skip"
    PROCEED = "proceed"


class TradingWindowGate:
    """
    Rebalance gate over (previous day, new day).

    The warm-up counter is consumed once per evaluation, so the caller
    must evaluate exactly once per day transition.
    """

    def __init__(
        self,
        trading_start: Optional[date] = None,
        trading_stop: Optional[date] = None,
        warmup_days: int = 5,
    ):
        if warmup_days < 0:
            raise ValueError(f"warmup_days must be >= 0, got {warmup_days}")
        self.trading_start = trading_start
        self.trading_stop = trading_stop
        self.warmup_remaining = warmup_days

    def in_window(self, day: date) -> bool:
        """True if `day` is after the start and not after the stop."""
        if self.trading_start is not None and day <= self.trading_start:
            return False
        if self.trading_stop is not None and day > self.trading_stop:
            return False
        return True

    def evaluate(self, prev_day: Optional[date], new_day: date) -> GateDecision:
        """
        Evaluate a day transition.

        Args:
            prev_day: Last day seen (None on the first transition)
            new_day: Day being entered

        Returns:
            GateDecision.PROCEED on the first in-window day of a new month
        """
        if not self.in_window(new_day):
            return GateDecision.SKIP

        if self.warmup_remaining > 0:
            self.warmup_remaining -= 1
            return GateDecision.SKIP

        if prev_day is None:
            return GateDecision.SKIP

        # Monthly cadence
        if (prev_day.year, prev_day.month) == (new_day.year, new_day.month):
            return GateDecision.SKIP

        return GateDecision.PROCEED
