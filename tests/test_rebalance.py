"""
Tests for the rebalance scheduler.

Ranking eligibility, top-N allocation, sizing from the allocated count,
cancel-before-emit ordering and idempotence.
"""

from datetime import date
from unittest.mock import MagicMock, call

import pytest

from rotation.gate import TradingWindowGate
from rotation.instruments import InstrumentResolver
from rotation.order_manager import IntentType, OrderManager
from rotation.rebalance import (
    RankingEntry,
    RebalanceScheduler,
    SchedulerPhase,
    format_summary,
    rank_instruments,
)
from rotation.state import InstrumentRegistry

JAN_31 = date(2020, 1, 31)
FEB_3 = date(2020, 2, 3)
FEB_4 = date(2020, 2, 4)
MAR_2 = date(2020, 3, 2)


def make_registry(rows):
    """rows: list of (symbol, score, last_close)."""
    resolver = InstrumentResolver()
    registry = InstrumentRegistry(lookback=42)
    for symbol, score, close in rows:
        state = registry.subscribe(resolver.resolve(symbol))
        state.score = score
        state.last_close = close
    registry.freeze()
    return registry


@pytest.fixture
def broker():
    return MagicMock()


@pytest.fixture
def account():
    account = MagicMock()
    account.end_equity.return_value = 100_000.0
    return account


def make_scheduler(registry, broker, account, top_count=2):
    return RebalanceScheduler(
        registry=registry,
        gate=TradingWindowGate(warmup_days=0),
        order_manager=OrderManager(broker),
        account=account,
        top_count=top_count,
    )


class TestRanking:
    """Eligibility and ordering of the ranking set."""

    def test_ineligible_instruments_excluded(self):
        registry = make_registry([("A", 0.1, 10), ("B", None, 10), ("C", -0.2, 10)])

        ranking = rank_instruments(registry)

        assert [e.symbol for e in ranking] == ["A", "C"]
        assert all(e.score is not None for e in ranking)

    def test_descending_with_stable_ties(self):
        registry = make_registry(
            [("A", 0.1, 10), ("B", 0.3, 10), ("C", 0.1, 10), ("D", 0.3, 10)]
        )

        ranking = rank_instruments(registry)

        assert ranking == [
            RankingEntry("B", 0.3),
            RankingEntry("D", 0.3),
            RankingEntry("A", 0.1),
            RankingEntry("C", 0.1),
        ]


class TestRebalanceScenario:
    """A=5.0, B=3.0, C=-1.0, top_count=2, equity=100,000."""

    @pytest.fixture
    def registry(self):
        return make_registry([("A", 5.0, 100.0), ("B", 3.0, 250.0), ("C", -1.0, 40.0)])

    def test_selection_and_sizing(self, registry, broker, account):
        scheduler = make_scheduler(registry, broker, account)

        outcome = scheduler.run(JAN_31, FEB_3)

        assert outcome.selected == ["A", "B"]
        assert outcome.notional == pytest.approx(50_000.0)
        assert registry.get("A").desired_position == 1
        assert registry.get("B").desired_position == 1
        assert registry.get("C").desired_position == 0

        assert broker.enter_long.call_args_list == [call("A", 500), call("B", 200)]
        broker.enter_short.assert_not_called()

    def test_cancel_all_before_new_intents(self, registry, broker, account):
        scheduler = make_scheduler(registry, broker, account)

        scheduler.run(JAN_31, FEB_3)

        assert broker.method_calls[0] == call.cancel_all_orders()
        assert len(broker.method_calls) == 3

    def test_summary_names_selection(self, registry, broker, account):
        outcome = make_scheduler(registry, broker, account).run(JAN_31, FEB_3)

        assert outcome.summary == "2020-02-03 [Mon]: Long: A: 5.00; B: 3.00; "

    def test_scheduler_returns_to_idle(self, registry, broker, account):
        scheduler = make_scheduler(registry, broker, account)
        scheduler.run(JAN_31, FEB_3)
        assert scheduler.phase == SchedulerPhase.IDLE


class TestAllocationLimits:
    """Top-N cap and positive-score requirement."""

    def test_non_positive_scores_in_top_n_not_allocated(self, broker, account):
        registry = make_registry([("A", 0.2, 10.0), ("B", 0.0, 10.0), ("C", -0.1, 10.0)])
        scheduler = make_scheduler(registry, broker, account, top_count=3)

        outcome = scheduler.run(JAN_31, FEB_3)

        assert outcome.selected == ["A"]
        # Slot sized from the one allocated instrument, not top_count
        assert outcome.notional == pytest.approx(100_000.0)
        broker.enter_long.assert_called_once_with("A", 10_000)

    def test_never_more_than_top_count(self, broker, account):
        rows = [(f"S{i}", 0.01 * (i + 1), 10.0) for i in range(10)]
        registry = make_registry(rows)
        scheduler = make_scheduler(registry, broker, account, top_count=4)

        scheduler.run(JAN_31, FEB_3)

        longs = [s for s in registry if s.desired_position == 1]
        assert len(longs) == 4
        assert all(s.score > 0 for s in longs)
        assert {s.symbol for s in longs} == {"S9", "S8", "S7", "S6"}

    def test_no_allocation_skips_sizing(self, broker, account):
        registry = make_registry([("A", -0.2, 10.0), ("B", None, 10.0)])
        scheduler = make_scheduler(registry, broker, account)

        outcome = scheduler.run(JAN_31, FEB_3)

        assert outcome.selected == []
        assert outcome.notional == 0.0
        assert outcome.intents == []

    def test_existing_long_dropped_is_exited(self, broker, account):
        registry = make_registry([("A", 0.5, 10.0), ("B", 0.4, 10.0), ("C", 0.1, 10.0)])
        registry.get("C").position = 300
        scheduler = make_scheduler(registry, broker, account)

        outcome = scheduler.run(JAN_31, FEB_3)

        types = [(i.symbol, i.intent_type) for i in outcome.intents]
        assert ("C", IntentType.EXIT_LONG) in types
        assert registry.get("C").desired_position == 0

    def test_short_held_and_selected_is_flipped(self, broker, account):
        registry = make_registry([("A", 0.5, 10.0)])
        registry.get("A").position = -50
        scheduler = make_scheduler(registry, broker, account, top_count=1)

        outcome = scheduler.run(JAN_31, FEB_3)

        assert [i.intent_type for i in outcome.intents] == [
            IntentType.EXIT_SHORT,
            IntentType.ENTER_LONG,
        ]

    def test_price_above_slot_skips_entry(self, broker, account):
        registry = make_registry([("A", 0.5, 200_000.0)])
        scheduler = make_scheduler(registry, broker, account, top_count=1)

        outcome = scheduler.run(JAN_31, FEB_3)

        assert outcome.intents == []
        broker.enter_long.assert_not_called()


class TestCadence:
    """Gate integration and idempotence."""

    def test_gate_skip_returns_none(self, broker, account):
        registry = make_registry([("A", 0.5, 10.0)])
        scheduler = make_scheduler(registry, broker, account)

        assert scheduler.run(FEB_3, FEB_4) is None
        broker.cancel_all_orders.assert_not_called()

    def test_second_call_with_unchanged_state_emits_nothing(self, broker, account):
        registry = make_registry([("A", 5.0, 100.0), ("B", 3.0, 250.0), ("C", -1.0, 40.0)])
        scheduler = make_scheduler(registry, broker, account)

        first = scheduler.run(JAN_31, FEB_3)
        assert len(first.intents) == 2

        # Fills arrived: positions now match desired
        registry.get("A").position = 500
        registry.get("B").position = 200

        second = scheduler.run(FEB_4, MAR_2)

        assert second.intents == []
        assert second.summary == ""

    def test_summary_repeated_only_on_selection_change(self, broker, account):
        registry = make_registry([("A", 5.0, 100.0), ("B", 3.0, 250.0)])
        scheduler = make_scheduler(registry, broker, account)

        assert scheduler.run(JAN_31, FEB_3).summary != ""
        registry.get("B").score = -1.0
        assert scheduler.run(FEB_4, MAR_2).summary != ""

    def test_reordered_selection_is_not_a_change(self, broker, account):
        registry = make_registry([("A", 5.0, 100.0), ("B", 3.0, 250.0)])
        scheduler = make_scheduler(registry, broker, account)

        assert scheduler.run(JAN_31, FEB_3).summary != ""
        registry.get("A").score = 3.0
        registry.get("B").score = 5.0

        second = scheduler.run(FEB_4, MAR_2)

        assert second.selected == ["B", "A"]
        assert second.summary == ""


class TestSummaryFormat:
    def test_empty_when_nothing_considered(self):
        assert format_summary(FEB_3, []) == ""
