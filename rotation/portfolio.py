"""
Paper portfolio and broker for ROTATION MOMENTUM replays.

Market orders queue until the next bar of their symbol and fill at that
bar's open. Positions are signed (negative = short). No slippage,
commission or margin is modelled.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from .instruments import Instrument
from .market_data import Bar
from .order_manager import IntentType

logger = logging.getLogger(__name__)


@dataclass
class Position:
    """Represents a single signed position in the portfolio."""

    symbol: str
    quantity: int
    average_price: float
    current_price: float = 0.0
    opened: Optional[datetime] = None

    @property
    def value(self) -> float:
        """Current market value of position (negative for shorts)."""
        return self.quantity * self.current_price

    @property
    def cost_basis(self) -> float:
        """Total cost basis of position."""
        return self.quantity * self.average_price

    @property
    def unrealized_pnl(self) -> float:
        """Unrealized profit/loss."""
        return self.value - self.cost_basis


@dataclass(frozen=True)
class Fill:
    """An executed order."""

    symbol: str
    intent_type: IntentType
    quantity: int
    price: float
    timestamp: datetime
    position_after: int


@dataclass(frozen=True)
class Trade:
    """A completed round trip."""

    symbol: str
    side: str  # "LONG" or "SHORT"
    quantity: int
    entry_date: datetime
    entry_price: float
    exit_date: datetime
    exit_price: float

    @property
    def pnl(self) -> float:
        sign = 1 if self.side == "LONG" else -1
        return sign * (self.exit_price - self.entry_price) * self.quantity


@dataclass
class _PendingOrder:
    intent_type: IntentType
    quantity: Optional[int]


class PaperPortfolio:
    """
    Cash and signed-position ledger.
    """

    def __init__(self, initial_equity: float):
        """
        Initialize paper portfolio.

        Args:
            initial_equity: Starting cash
        """
        self.cash = initial_equity
        self.initial_equity = initial_equity
        self.positions: Dict[str, Position] = {}
        self.fills: List[Fill] = []
        self.trades: List[Trade] = []

    def quantity(self, symbol: str) -> int:
        pos = self.positions.get(symbol)
        return pos.quantity if pos else 0

    def mark(self, symbol: str, price: float) -> None:
        """Update a position's price with the latest close."""
        if symbol in self.positions:
            self.positions[symbol].current_price = price

    def get_total_value(self) -> float:
        """Cash plus marked position values."""
        return self.cash + sum(p.value for p in self.positions.values())

    def open(self, symbol: str, quantity: int, price: float, when: datetime) -> None:
        """Open a signed position. The symbol must be flat."""
        if symbol in self.positions:
            raise ValueError(f"{symbol} already has an open position")
        self.cash -= quantity * price
        self.positions[symbol] = Position(
            symbol=symbol,
            quantity=quantity,
            average_price=price,
            current_price=price,
            opened=when,
        )

    def close(self, symbol: str, price: float, when: datetime) -> Optional[Trade]:
        """Close the whole position at `price`."""
        pos = self.positions.pop(symbol, None)
        if pos is None:
            return None
        self.cash += pos.quantity * price
        trade = Trade(
            symbol=symbol,
            side="LONG" if pos.quantity > 0 else "SHORT",
            quantity=abs(pos.quantity),
            entry_date=pos.opened,
            entry_price=pos.average_price,
            exit_date=when,
            exit_price=price,
        )
        self.trades.append(trade)
        return trade


class PaperBroker:
    """
    In-process broker and account backed by a PaperPortfolio.
    """

    def __init__(self, initial_equity: float):
        self.portfolio = PaperPortfolio(initial_equity)
        self._pending: Dict[str, List[_PendingOrder]] = {}

    # Broker contract

    def get_position(self, instrument: Instrument) -> int:
        return self.portfolio.quantity(instrument.symbol)

    def enter_long(self, symbol: str, quantity: int) -> None:
        self._queue(symbol, IntentType.ENTER_LONG, quantity)

    def enter_short(self, symbol: str, quantity: int) -> None:
        self._queue(symbol, IntentType.ENTER_SHORT, quantity)

    def exit_long(self, symbol: str) -> None:
        self._queue(symbol, IntentType.EXIT_LONG, None)

    def exit_short(self, symbol: str) -> None:
        self._queue(symbol, IntentType.EXIT_SHORT, None)

    def cancel_all_orders(self) -> None:
        cancelled = sum(len(orders) for orders in self._pending.values())
        self._pending.clear()
        if cancelled:
            logger.debug(f"Cancelled {cancelled} pending orders")

    # Account contract

    def end_equity(self) -> float:
        return self.portfolio.get_total_value()

    # Replay hooks

    @property
    def pending_orders(self) -> Dict[str, List[_PendingOrder]]:
        return {s: list(o) for s, o in self._pending.items() if o}

    def _queue(self, symbol: str, intent_type: IntentType, quantity: Optional[int]) -> None:
        orders = self._pending.setdefault(symbol, [])
        # Repeated exits before a fill collapse into one
        if not intent_type.is_entry and any(o.intent_type == intent_type for o in orders):
            return
        orders.append(_PendingOrder(intent_type, quantity))

    def on_bar_open(self, bar: Bar) -> List[Fill]:
        """Fill this symbol's pending orders at the bar's open."""
        orders = self._pending.pop(bar.symbol, [])
        fills = []

        for order in orders:
            held = self.portfolio.quantity(bar.symbol)

            if order.intent_type == IntentType.EXIT_LONG:
                if held <= 0:
                    continue
                self.portfolio.close(bar.symbol, bar.open, bar.timestamp)
                qty = held
            elif order.intent_type == IntentType.EXIT_SHORT:
                if held >= 0:
                    continue
                self.portfolio.close(bar.symbol, bar.open, bar.timestamp)
                qty = -held
            else:
                if held != 0:
                    logger.warning(
                        f"{bar.symbol}: entry ignored, position {held} still open"
                    )
                    continue
                qty = order.quantity
                signed = qty if order.intent_type == IntentType.ENTER_LONG else -qty
                self.portfolio.open(bar.symbol, signed, bar.open, bar.timestamp)

            fill = Fill(
                symbol=bar.symbol,
                intent_type=order.intent_type,
                quantity=qty,
                price=bar.open,
                timestamp=bar.timestamp,
                position_after=self.portfolio.quantity(bar.symbol),
            )
            self.portfolio.fills.append(fill)
            fills.append(fill)

        return fills

    def on_bar_close(self, bar: Bar) -> None:
        """Mark the symbol's position to the close."""
        self.portfolio.mark(bar.symbol, bar.close)
