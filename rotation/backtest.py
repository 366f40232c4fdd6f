"""
Historical replay for ROTATION MOMENTUM.

Enforces the event-ordering contract the strategy relies on:
- Bars are delivered in non-decreasing timestamp order
- Every bar of a day is delivered before the transition into the next day
- Pending orders fill at a symbol's next open, before the strategy sees that bar
- A data-integrity error stops the replay and is re-raised to the caller
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

import pandas as pd

from .market_data import Bar, DataIntegrityError, iter_bars
from .portfolio import Fill, PaperBroker, Trade
from .rebalance import RebalanceOutcome
from .strategy import SimpleMomentumStrategy

logger = logging.getLogger(__name__)


@dataclass
class BacktestResult:
    """Results of a replay run."""

    equity_curve: pd.Series
    trades: List[Trade]
    fills: List[Fill]
    rebalances: List[RebalanceOutcome]
    initial_equity: float
    final_value: float
    elapsed_seconds: float = 0.0
    last_timestamp: Optional[datetime] = None
    summaries: List[str] = field(default_factory=list)

    @property
    def total_return(self) -> float:
        if self.initial_equity <= 0:
            return 0.0
        return self.final_value / self.initial_equity - 1


class HistoricalReplay:
    """
    Replays daily bars for every subscribed symbol through a strategy.
    """

    def __init__(
        self,
        strategy: SimpleMomentumStrategy,
        broker: PaperBroker,
        data: Dict[str, pd.DataFrame],
        seed_date: Optional[date] = None,
    ):
        """
        Initialize replay.

        Args:
            strategy: Strategy with its universe subscribed
            broker: Paper broker the strategy trades through
            data: Dict of symbol -> validated bar DataFrame
            seed_date: Day the account is opened; equity before it is not recorded
        """
        missing = [s for s in strategy.registry.symbols if s not in data]
        if missing:
            raise ValueError(f"No bars supplied for {missing}")

        self.strategy = strategy
        self.broker = broker
        self.data = data
        self.seed_date = seed_date
        self._equity: Dict[pd.Timestamp, float] = {}

    def _events(self) -> List[Bar]:
        """All bars merged by timestamp; ties keep subscription order."""
        bars: List[Bar] = []
        for symbol in self.strategy.registry.symbols:
            bars.extend(iter_bars(self.data[symbol], symbol))
        # sorted() is stable
        return sorted(bars, key=lambda b: b.timestamp)

    def _record_equity(self, day: date) -> None:
        if self.seed_date is not None and day <= self.seed_date:
            return
        self._equity[pd.Timestamp(day)] = self.broker.end_equity()

    def run(self) -> BacktestResult:
        """
        Run the replay to completion.

        Returns:
            BacktestResult

        Raises:
            DataIntegrityError: On a bar that violates data integrity
        """
        start = time.perf_counter()
        initial_equity = self.broker.end_equity()
        if self.seed_date is not None:
            self._equity[pd.Timestamp(self.seed_date)] = initial_equity

        current_day: Optional[date] = None
        events = self._events()
        logger.info(f"Replaying {len(events)} bars for {len(self.strategy.registry)} symbols")

        try:
            for bar in events:
                day = bar.timestamp.date()
                if day != current_day:
                    if current_day is not None:
                        self._record_equity(current_day)
                    self.strategy.on_day_boundary(current_day, day)
                    current_day = day

                for fill in self.broker.on_bar_open(bar):
                    self.strategy.on_order_filled(fill)

                # The strategy rejects a bad close before the ledger marks it
                self.strategy.on_bar_closed(bar.symbol, bar)
                self.broker.on_bar_close(bar)
        except DataIntegrityError as e:
            logger.error(f"Replay aborted: {e}")
            raise

        if current_day is not None:
            self._record_equity(current_day)

        elapsed = time.perf_counter() - start
        equity_curve = pd.Series(self._equity, dtype=float).sort_index()

        return BacktestResult(
            equity_curve=equity_curve,
            trades=list(self.broker.portfolio.trades),
            fills=list(self.broker.portfolio.fills),
            rebalances=list(self.strategy.rebalances),
            initial_equity=initial_equity,
            final_value=self.broker.end_equity(),
            elapsed_seconds=elapsed,
            last_timestamp=self.strategy.last_timestamp,
            summaries=[r.summary for r in self.strategy.rebalances if r.summary],
        )
