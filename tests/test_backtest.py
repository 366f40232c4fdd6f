"""
Tests for the historical replay.

End-to-end runs over synthetic trending data.
"""

from datetime import date, datetime

import numpy as np
import pandas as pd
import pytest

from rotation.backtest import HistoricalReplay
from rotation.config import StrategyConfig
from rotation.market_data import InvalidPriceError
from rotation.order_manager import IntentType
from rotation.portfolio import PaperBroker
from rotation.strategy import SimpleMomentumStrategy


def make_frame(dates, start, growth):
    closes = start * np.power(growth, np.arange(len(dates)))
    return pd.DataFrame(
        {"open": closes, "high": closes, "low": closes, "close": closes, "volume": 1e6},
        index=dates,
    )


@pytest.fixture
def dates():
    return pd.bdate_range("2020-01-01", "2020-04-30")


@pytest.fixture
def sample_data(dates):
    """A rises fastest, B rises slowly, C falls."""
    return {
        "A": make_frame(dates, 100.0, 1.01),
        "B": make_frame(dates, 50.0, 1.005),
        "C": make_frame(dates, 80.0, 0.995),
    }


@pytest.fixture
def strategy_config():
    return StrategyConfig(
        lookback=5,
        min_len=10,
        top_count=2,
        warmup_days=0,
        trading_start=date(2020, 1, 10),
        trading_stop=date(2020, 3, 31),
    )


def build(strategy_config, data, initial_equity=1_000_000.0, seed=True):
    broker = PaperBroker(initial_equity)
    strategy = SimpleMomentumStrategy(strategy_config, broker=broker, account=broker)
    strategy.set_symbols(list(data.keys()))
    seed_date = date(2020, 1, 8) if seed else None
    return strategy, broker, HistoricalReplay(strategy, broker, data, seed_date=seed_date)


class TestReplayRun:
    """Monthly rebalances and trading stop."""

    def test_rebalances_monthly(self, strategy_config, sample_data):
        strategy, _, replay = build(strategy_config, sample_data)

        result = replay.run()

        assert [r.date for r in result.rebalances] == [date(2020, 2, 3), date(2020, 3, 2)]

    def test_top_two_positive_selected(self, strategy_config, sample_data):
        _, _, replay = build(strategy_config, sample_data)

        result = replay.run()

        first = result.rebalances[0]
        assert first.selected == ["A", "B"]
        assert [e.symbol for e in first.ranking] == ["A", "B", "C"]
        assert first.notional == pytest.approx(500_000.0)
        assert first.summary.startswith("2020-02-03 [Mon]: Long: A:")

    def test_unchanged_selection_emits_nothing(self, strategy_config, sample_data):
        _, _, replay = build(strategy_config, sample_data)

        result = replay.run()

        second = result.rebalances[1]
        assert second.selected == ["A", "B"]
        assert second.intents == []
        assert second.summary == ""
        assert len(result.summaries) == 1

    def test_fills_at_next_open(self, strategy_config, sample_data):
        _, _, replay = build(strategy_config, sample_data)

        result = replay.run()

        entries = [f for f in result.fills if f.intent_type == IntentType.ENTER_LONG]
        assert {f.symbol for f in entries} == {"A", "B"}
        assert all(f.timestamp == datetime(2020, 2, 3) for f in entries)
        a_fill = next(f for f in entries if f.symbol == "A")
        assert a_fill.price == pytest.approx(sample_data["A"].loc["2020-02-03", "open"])

    def test_liquidated_after_trading_stop(self, strategy_config, sample_data):
        strategy, broker, replay = build(strategy_config, sample_data)

        result = replay.run()

        assert broker.portfolio.positions == {}
        assert len(result.trades) == 2
        exits = [f for f in result.fills if f.intent_type == IntentType.EXIT_LONG]
        # Exit queued on the first bar after the stop, filled at the next open
        assert all(f.timestamp == datetime(2020, 4, 2) for f in exits)
        assert all(t.pnl > 0 for t in result.trades)

    def test_equity_curve_starts_at_seed(self, strategy_config, sample_data):
        _, _, replay = build(strategy_config, sample_data)

        result = replay.run()

        curve = result.equity_curve
        assert curve.index[0] == pd.Timestamp("2020-01-08")
        assert curve.iloc[0] == pytest.approx(1_000_000.0)
        assert curve.index[-1] == pd.Timestamp("2020-04-30")
        assert curve.index.is_monotonic_increasing
        assert result.final_value == pytest.approx(curve.iloc[-1])
        assert result.total_return > 0

    def test_last_timestamp(self, strategy_config, sample_data):
        _, _, replay = build(strategy_config, sample_data)
        assert replay.run().last_timestamp == datetime(2020, 4, 30)

    def test_missing_data_rejected(self, strategy_config, sample_data):
        broker = PaperBroker(1_000_000.0)
        strategy = SimpleMomentumStrategy(strategy_config, broker=broker, account=broker)
        strategy.set_symbols(["A", "B", "D"])

        with pytest.raises(ValueError, match="D"):
            HistoricalReplay(strategy, broker, sample_data)


class TestReplayAbort:
    """Data-integrity violations stop the replay."""

    def test_zero_close_aborts(self, strategy_config, sample_data):
        sample_data["C"].loc["2020-02-14", "close"] = 0.0
        strategy, _, replay = build(strategy_config, sample_data)

        with pytest.raises(InvalidPriceError) as exc:
            replay.run()

        assert exc.value.symbol == "C"
        assert exc.value.timestamp == datetime(2020, 2, 14)
        assert exc.value.value == 0.0
        # Nothing after the bad bar was processed
        assert strategy.registry.get("C").last_timestamp == datetime(2020, 2, 13)
        assert strategy.last_timestamp == datetime(2020, 2, 14)

    def test_missing_close_aborts(self, strategy_config, sample_data):
        sample_data["B"].loc["2020-02-14", "close"] = np.nan
        strategy, broker, replay = build(strategy_config, sample_data)

        with pytest.raises(InvalidPriceError) as exc:
            replay.run()

        assert exc.value.symbol == "B"
        assert exc.value.timestamp == datetime(2020, 2, 14)
        assert np.isnan(exc.value.value)
        assert strategy.registry.get("B").last_close > 0
        assert not np.isnan(broker.end_equity())
