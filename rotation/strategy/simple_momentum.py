"""
Simple momentum rotation strategy.

Every bar feeds the instrument's rate of change. On the first trading day
of each month the universe is ranked by ROC and the best `top_count`
instruments with a positive ROC are held long in equal-weight slots.
After the trading stop every open position is liquidated.
"""

import logging
import math
from datetime import date, datetime, time
from typing import Iterable, List, Optional

from ..broker import Account, Broker
from ..config import StrategyConfig
from ..gate import TradingWindowGate
from ..instruments import InstrumentResolver
from ..logger import DecisionLogger
from ..market_data import Bar, InvalidPriceError
from ..order_manager import IntentType, OrderManager, exit_intent
from ..rebalance import RebalanceOutcome, RebalanceScheduler
from ..state import InstrumentRegistry
from .base import BaseStrategy

logger = logging.getLogger(__name__)


def _start_of_day(day: Optional[date]) -> Optional[datetime]:
    return datetime.combine(day, time.min) if day is not None else None


class SimpleMomentumStrategy(BaseStrategy):
    """Monthly top-N rate-of-change rotation."""

    def __init__(
        self,
        config: StrategyConfig,
        broker: Broker,
        account: Account,
        resolver: Optional[InstrumentResolver] = None,
        decision_logger: Optional[DecisionLogger] = None,
    ):
        """
        Initialize strategy.

        Args:
            config: Strategy parameters
            broker: Execution collaborator
            account: Equity source for sizing
            resolver: Symbol resolver (identity "ib" variations by default)
            decision_logger: Decision audit logger
        """
        self.config = config
        self.broker = broker
        self.account = account
        self.resolver = resolver or InstrumentResolver()
        self.decision_logger = decision_logger or DecisionLogger()

        self.registry = InstrumentRegistry(config.lookback)
        self.gate = TradingWindowGate(
            trading_start=config.trading_start,
            trading_stop=config.trading_stop,
            warmup_days=config.warmup_days,
        )
        self.order_manager = OrderManager(broker, self.decision_logger)
        self.scheduler = RebalanceScheduler(
            registry=self.registry,
            gate=self.gate,
            order_manager=self.order_manager,
            account=account,
            top_count=config.top_count,
            decision_logger=self.decision_logger,
        )

        self._trading_start = _start_of_day(config.trading_start)
        self._trading_stop = _start_of_day(config.trading_stop)
        self.rebalances: List[RebalanceOutcome] = []
        self.last_timestamp: Optional[datetime] = None

    @property
    def name(self) -> str:
        return "simple_momentum"

    def set_symbols(self, symbols: Iterable[str]) -> None:
        """Resolve and subscribe the universe, then fix it for the run."""
        for symbol in symbols:
            self.registry.subscribe(self.resolver.resolve(symbol))
        self.registry.freeze()
        logger.info(f"Subscribed {len(self.registry)} instruments: {self.registry.symbols}")

    def on_bar_closed(self, symbol: str, bar: Bar) -> None:
        close = bar.close
        if not math.isfinite(close) or close <= 0:
            raise InvalidPriceError(symbol, bar.timestamp, close)

        state = self.registry.get(symbol)
        state.last_close = close
        state.last_timestamp = bar.timestamp
        state.bars_seen += 1

        roc = state.roc.update(close)
        if roc is not None:
            state.returns.append(roc)

        state.position = self.broker.get_position(state.instrument)

        if self.last_timestamp is None or bar.timestamp > self.last_timestamp:
            self.last_timestamp = bar.timestamp

        if self._trading_start is not None and bar.timestamp <= self._trading_start:
            return

        state.score = None
        if state.bars_seen > self.config.min_len and state.roc.last is not None:
            state.score = state.roc.last

        if self._trading_stop is not None and bar.timestamp > self._trading_stop:
            intent = exit_intent(symbol, state.position, reason="trading stop")
            if intent is not None:
                self.decision_logger.log_liquidation(symbol, state.position, bar.timestamp)
                self.order_manager.submit(intent)

    def on_day_boundary(self, prev_day: Optional[date], new_day: date) -> None:
        outcome = self.scheduler.run(prev_day, new_day)
        if outcome is not None:
            self.rebalances.append(outcome)

    def on_order_filled(self, fill) -> None:
        state = self.registry.get(fill.symbol)
        state.position = fill.position_after
        if fill.intent_type in (IntentType.ENTER_LONG, IntentType.ENTER_SHORT):
            state.entry_price = fill.price
            state.since = fill.timestamp
        else:
            state.exit_price = fill.price
