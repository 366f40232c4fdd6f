"""
Monthly rebalance scheduler for ROTATION MOMENTUM.

Enforces invariants:
- Only instruments with an eligible score are ranked
- At most top_count instruments are held long, each with a positive score
- Outstanding orders are cancelled before new intents are issued
- Slots are sized from the count actually allocated, not top_count
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import FrozenSet, List, Optional

from .broker import Account
from .gate import GateDecision, TradingWindowGate
from .logger import DecisionLogger
from .order_manager import OrderIntent, OrderManager, translate_position_change
from .sizing import calculate_order_quantity, notional_per_slot
from .state import InstrumentRegistry

logger = logging.getLogger(__name__)


class SchedulerPhase(Enum):
    """Scheduler lifecycle within one invocation."""

    IDLE = "idle"
    RANKING = "ranking"
    SIZING = "sizing"
    EMITTING = "emitting"


@dataclass(frozen=True)
class RankingEntry:
    """Transient (symbol, score) pair for one rebalance."""

    symbol: str
    score: float


@dataclass
class RebalanceOutcome:
    """Everything a single rebalance decided."""

    date: date
    ranking: List[RankingEntry]
    selected: List[str]
    equity: float
    notional: float
    intents: List[OrderIntent] = field(default_factory=list)
    summary: str = ""


def rank_instruments(registry: InstrumentRegistry) -> List[RankingEntry]:
    """
    Rank eligible instruments by score, best first.

    Instruments without a score are left out entirely. The sort is
    stable, so ties keep subscription order.
    """
    entries = [
        RankingEntry(state.symbol, state.score)
        for state in registry
        if state.score is not None
    ]
    return sorted(entries, key=lambda e: e.score, reverse=True)


def format_summary(day: date, considered: List[RankingEntry]) -> str:
    """Human-readable rebalance line, e.g. '2020-03-02 [Mon]: Long: A: 0.12; '."""
    if not considered:
        return ""
    longs = "; ".join(f"{e.symbol}: {e.score:.2f}" for e in considered)
    return f"{day:%Y-%m-%d} [{day:%a}]: Long: {longs}; "


class RebalanceScheduler:
    """
    Ranks instruments and resets desired positions on gated day transitions.

    Holds no state between invocations except the previous selection,
    used to suppress unchanged summaries.
    """

    def __init__(
        self,
        registry: InstrumentRegistry,
        gate: TradingWindowGate,
        order_manager: OrderManager,
        account: Account,
        top_count: int = 4,
        decision_logger: Optional[DecisionLogger] = None,
    ):
        if top_count < 1:
            raise ValueError(f"top_count must be >= 1, got {top_count}")
        self.registry = registry
        self.gate = gate
        self.order_manager = order_manager
        self.account = account
        self.top_count = top_count
        self.decision_logger = decision_logger or DecisionLogger()
        self.phase = SchedulerPhase.IDLE
        self._last_selected: Optional[FrozenSet[str]] = None

    def run(self, prev_day: Optional[date], new_day: date) -> Optional[RebalanceOutcome]:
        """
        Handle one calendar-day transition.

        Args:
            prev_day: Previous trading day (None on the first transition)
            new_day: Day being entered

        Returns:
            RebalanceOutcome, or None if the gate skipped the day
        """
        if self.gate.evaluate(prev_day, new_day) == GateDecision.SKIP:
            return None

        try:
            self.phase = SchedulerPhase.RANKING
            ranking = rank_instruments(self.registry)
            self.decision_logger.log_ranking(ranking, new_day)
            considered = ranking[: self.top_count]

            for state in self.registry:
                state.desired_position = 0

            selected = []
            for entry in considered:
                # A ranking slot is not a guarantee of allocation
                if entry.score > 0:
                    self.registry.get(entry.symbol).desired_position = 1
                    selected.append(entry.symbol)

            self.order_manager.cancel_all()

            self.phase = SchedulerPhase.SIZING
            equity = self.account.end_equity()
            notional = notional_per_slot(equity, len(selected)) if selected else 0.0

            self.phase = SchedulerPhase.EMITTING
            intents = self._emit_intents(notional)

            summary = format_summary(new_day, considered)
            if frozenset(selected) != self._last_selected and summary:
                self.decision_logger.log_rebalance(summary, selected, equity)
            else:
                summary = ""
            self._last_selected = frozenset(selected)

            return RebalanceOutcome(
                date=new_day,
                ranking=ranking,
                selected=selected,
                equity=equity,
                notional=notional,
                intents=intents,
                summary=summary,
            )
        finally:
            self.phase = SchedulerPhase.IDLE

    def _emit_intents(self, notional: float) -> List[OrderIntent]:
        """Diff every instrument's position against its desired sign."""
        emitted: List[OrderIntent] = []

        for state in self.registry:
            current = state.position_sign
            desired = state.desired_position
            if current == desired:
                continue

            quantity = None
            if desired != 0:
                quantity = calculate_order_quantity(notional, state.last_close)
                if quantity <= 0:
                    logger.warning(
                        f"{state.symbol}: slot {notional:,.0f} buys no shares "
                        f"at {state.last_close:.2f}, skipping entry"
                    )
                    # Still close the opposite side, if any
                    desired = 0

            intents = translate_position_change(
                state.symbol, current, desired, quantity, reason="rebalance"
            )
            emitted.extend(self.order_manager.submit_all(intents))

        return emitted
