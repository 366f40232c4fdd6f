"""
Base strategy hooks for ROTATION MOMENTUM.

A strategy is driven by the replay through three callbacks: a closed bar,
a calendar-day transition, and an order fill.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..market_data import Bar
    from ..portfolio import Fill


class BaseStrategy(ABC):
    """
    Callback contract between the replay driver and a strategy.

    The driver guarantees event order: every bar of a day is delivered
    before the transition into the next day fires.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy identifier (e.g., 'simple_momentum')."""
        pass

    @abstractmethod
    def on_bar_closed(self, symbol: str, bar: "Bar") -> None:
        """
        Handle a closed bar.

        Args:
            symbol: Subscribed symbol
            bar: The bar that just closed
        """
        pass

    @abstractmethod
    def on_day_boundary(self, prev_day: Optional[date], new_day: date) -> None:
        """
        Handle a calendar-day transition.

        Args:
            prev_day: Previous trading day (None on the first transition)
            new_day: Day being entered
        """
        pass

    def on_order_filled(self, fill: "Fill") -> None:
        """Handle an execution. Optional."""
        pass
