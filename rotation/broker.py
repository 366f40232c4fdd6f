"""
Execution and account contracts consumed by ROTATION MOMENTUM.

The strategy core only talks to these protocols; `portfolio.PaperBroker`
is the in-process implementation used for replays.
"""

from typing import Protocol, runtime_checkable

from .instruments import Instrument


@runtime_checkable
class Broker(Protocol):
    """Order routing and position lookup."""

    def get_position(self, instrument: Instrument) -> int:
        """Signed position quantity for an instrument."""
        ...

    def enter_long(self, symbol: str, quantity: int) -> None:
        ...

    def enter_short(self, symbol: str, quantity: int) -> None:
        ...

    def exit_long(self, symbol: str) -> None:
        ...

    def exit_short(self, symbol: str) -> None:
        ...

    def cancel_all_orders(self) -> None:
        ...


@runtime_checkable
class Account(Protocol):
    """Account equity lookup."""

    def end_equity(self) -> float:
        """Equity as of the last close."""
        ...
