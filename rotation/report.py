"""
Performance reporting for ROTATION MOMENTUM.

Builds the end-of-run report (annual P&L and drawdowns, gain-to-pain,
peak and current drawdown, trade statistics) from an equity curve and the
completed round trips, and writes the run outputs to disk.
"""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from .indicators import calculate_drawdown
from .portfolio import Trade
from .state import InstrumentRegistry


@dataclass
class AnnualStats:
    """One calendar year of performance."""

    year: int
    pnl: float
    pnl_pct: float
    end_equity: float
    maxdd: float       # Largest peak-to-trough loss in cash (positive)
    maxdd_pct: float   # Same, as a percentage of the peak


@dataclass
class Peak:
    date: str
    equity: float


@dataclass
class Drawdown:
    cash: float
    pct: float


@dataclass
class PerformanceReport:
    """Structured performance report document."""

    annual_stats: List[AnnualStats] = field(default_factory=list)
    pnl: float = 0.0
    pnl_pct: float = 0.0
    avgdd: float = 0.0
    avgdd_pct: float = 0.0
    gain_to_pain: float = 0.0
    total_peak: Optional[Peak] = None
    total_maxdd: Optional[Drawdown] = None
    latest_peak: Optional[Peak] = None
    latest_maxdd: Optional[Drawdown] = None
    avg_trade_pnl: float = 0.0
    maxdd: float = 0.0
    maxdd_pct: float = 0.0
    num_trades: int = 0

    def to_dict(self) -> Dict:
        """JSON-serialisable document."""
        return asdict(self)


def _max_drawdown_cash(values: pd.Series, start_peak: float) -> Drawdown:
    """Largest peak-to-trough decline, seeding the running peak with `start_peak`."""
    peaks = np.maximum.accumulate(np.concatenate(([start_peak], values.to_numpy())))[1:]
    losses = peaks - values.to_numpy()
    if len(losses) == 0:
        return Drawdown(cash=0.0, pct=0.0)
    pct = np.where(peaks > 0, losses / peaks * 100, 0.0)
    return Drawdown(cash=float(losses.max()), pct=float(pct.max()))


def _peak_and_current_dd(values: pd.Series) -> tuple:
    peak_date = values.idxmax()
    peak_value = float(values.max())
    cash = peak_value - float(values.iloc[-1])
    pct = cash / peak_value * 100 if peak_value > 0 else 0.0
    return (
        Peak(date=pd.Timestamp(peak_date).strftime("%Y-%m-%d"), equity=peak_value),
        Drawdown(cash=cash, pct=pct),
    )


def build_report(equity_curve: pd.Series, trades: List[Trade]) -> PerformanceReport:
    """
    Build the performance report.

    Args:
        equity_curve: Daily end-of-day equity indexed by date
        trades: Completed round trips

    Returns:
        PerformanceReport
    """
    report = PerformanceReport(num_trades=len(trades))

    if trades:
        report.avg_trade_pnl = float(np.mean([t.pnl for t in trades]))

    if len(equity_curve) == 0:
        return report

    equity_curve = equity_curve.sort_index()
    start_equity = float(equity_curve.iloc[0])

    for year, values in equity_curve.groupby(equity_curve.index.year):
        end = float(values.iloc[-1])
        pnl = end - start_equity
        dd = _max_drawdown_cash(values, start_equity)
        report.annual_stats.append(
            AnnualStats(
                year=int(year),
                pnl=pnl,
                pnl_pct=pnl / start_equity * 100 if start_equity > 0 else 0.0,
                end_equity=end,
                maxdd=dd.cash,
                maxdd_pct=dd.pct,
            )
        )
        start_equity = end

    stats = report.annual_stats
    report.pnl = float(np.mean([s.pnl for s in stats]))
    report.pnl_pct = float(np.mean([s.pnl_pct for s in stats]))
    report.avgdd = float(np.mean([s.maxdd for s in stats]))
    report.avgdd_pct = float(np.mean([s.maxdd_pct for s in stats]))
    total_dd = sum(s.maxdd for s in stats)
    report.gain_to_pain = sum(s.pnl for s in stats) / total_dd if total_dd > 0 else 0.0

    report.total_peak, report.total_maxdd = _peak_and_current_dd(equity_curve)

    last_year = equity_curve.index[-1].year
    latest = equity_curve[equity_curve.index.year == last_year]
    report.latest_peak, report.latest_maxdd = _peak_and_current_dd(latest)

    overall = _max_drawdown_cash(equity_curve, float(equity_curve.iloc[0]))
    report.maxdd = overall.cash
    _, max_dd_frac = calculate_drawdown(equity_curve)
    report.maxdd_pct = abs(max_dd_frac) * 100

    return report


def _money(value: float) -> str:
    return f"${int(round(value)):,d}"


def format_report(report: PerformanceReport) -> str:
    """Render the report as the plain-text statistics block."""
    lines: List[str] = []

    for s in sorted(report.annual_stats, key=lambda a: a.year):
        lines.append(
            f"{s.year} PnL: {_money(s.pnl)}, PnL Pct: {s.pnl_pct:.2f}%, "
            f"End Equity: {_money(s.end_equity)}, MaxDD: {_money(s.maxdd)}, "
            f"Pct MaxDD: {s.maxdd_pct:.2f}%"
        )

    if report.annual_stats:
        lines.append("")
        lines.append(
            f"Avg PnL: {_money(report.pnl)}, Pct Avg PnL: {report.pnl_pct:.2f}%, "
            f"Avg DD: {_money(report.avgdd)}, Pct Avg DD: {report.avgdd_pct:.2f}%, "
            f"Gain to Pain: {report.gain_to_pain:.4f}"
        )

    if report.total_peak is not None and report.total_maxdd is not None:
        lines.append("")
        lines.append(
            f"Total equity peak [{report.total_peak.date}]: {_money(report.total_peak.equity)}"
        )
        lines.append(
            f"Current Drawdown: {_money(report.total_maxdd.cash)} [{report.total_maxdd.pct:.2f}%]"
        )

    if report.latest_peak is not None and report.latest_maxdd is not None:
        lines.append("")
        lines.append(
            f"{report.latest_peak.date[:4]} equity peak [{report.latest_peak.date}]: "
            f"{_money(report.latest_peak.equity)}"
        )
        lines.append(
            f"Current Drawdown: {_money(report.latest_maxdd.cash)} [{report.latest_maxdd.pct:.2f}%]"
        )

    lines.append("")
    lines.append(
        f"Avg Trade PnL: {_money(report.avg_trade_pnl)}, Max DD: {_money(report.maxdd)}, "
        f"Max DD Pct: {report.maxdd_pct:.2f}%, Num Trades: {report.num_trades}"
    )

    return "\n".join(lines)


def positions_frame(registry: InstrumentRegistry) -> pd.DataFrame:
    """Positions and signals per instrument, in subscription order."""
    rows = [
        {
            "symbol": s.symbol,
            "position": s.position,
            "desired": s.desired_position,
            "last_close": s.last_close,
            "score": s.score,
            "last_bar": s.last_timestamp.strftime("%Y-%m-%d") if s.last_timestamp else "",
        }
        for s in registry
    ]
    return pd.DataFrame(rows, columns=["symbol", "position", "desired", "last_close", "score", "last_bar"])


def trades_frame(trades: List[Trade]) -> pd.DataFrame:
    """Completed round trips as a DataFrame."""
    columns = ["symbol", "side", "quantity", "entry_date", "entry_price", "exit_date", "exit_price", "pnl"]
    rows = [{**asdict(t), "pnl": t.pnl} for t in trades]
    return pd.DataFrame(rows, columns=columns)


def write_outputs(
    output_dir: str,
    equity_curve: pd.Series,
    trades: List[Trade],
    report: PerformanceReport,
) -> Path:
    """
    Write trades.csv, equity.csv and report.json.

    Returns:
        The output directory
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    trades_frame(trades).to_csv(out / "trades.csv", index=False)
    equity_curve.rename("equity").to_csv(out / "equity.csv", index_label="date")
    with open(out / "report.json", "w") as f:
        json.dump(report.to_dict(), f, indent=2)

    return out
