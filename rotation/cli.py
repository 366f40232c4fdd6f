"""
Command-line interface for ROTATION MOMENTUM.

    rotation --config config.yaml run
    rotation --config config.yaml config
"""

import logging
import sys
import time
from datetime import timedelta
from typing import Optional

import click
import pandas as pd
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .backtest import BacktestResult, HistoricalReplay
from .config import Config, load_config
from .instruments import InstrumentResolver
from .logger import setup_logger
from .market_data import DataIntegrityError, DataQualityError, load_bars
from .notifier import EmailNotifier, report_body, report_subject
from .portfolio import PaperBroker
from .report import build_report, format_report, positions_frame, write_outputs
from .strategy import SimpleMomentumStrategy

console = Console()


def _load(config_path: str) -> Config:
    try:
        return load_config(config_path)
    except Exception as e:
        console.print(f"[red]Failed to load config: {e}[/red]")
        sys.exit(1)


def _positions_table(df: pd.DataFrame) -> Table:
    table = Table(title="Positions & Signals")
    table.add_column("Symbol", style="cyan")
    table.add_column("Position", justify="right")
    table.add_column("Desired", justify="right")
    table.add_column("Last Close", justify="right")
    table.add_column("ROC", justify="right")
    table.add_column("Last Bar")

    for row in df.itertuples(index=False):
        score = "-" if row.score is None or pd.isna(row.score) else f"{row.score:.2%}"
        table.add_row(
            row.symbol,
            str(row.position),
            str(row.desired),
            f"{row.last_close:,.2f}",
            score,
            row.last_bar,
        )
    return table


def run_backtest(config: Config, data_dir: Optional[str] = None):
    """
    Build the strategy, replay the data and return (strategy, result).

    Raises:
        DataQualityError: If bar files are missing or malformed
        DataIntegrityError: If a bar violates data integrity during replay
    """
    broker = PaperBroker(config.account.initial_equity)
    strategy = SimpleMomentumStrategy(
        config.strategy,
        broker=broker,
        account=broker,
        resolver=InstrumentResolver(config.universe.venue),
    )
    strategy.set_symbols(config.universe.symbols)

    data = load_bars(data_dir or config.paths.data_dir, config.universe.symbols)

    # Open the account a couple of days before trading starts
    seed_date = None
    if config.strategy.trading_start is not None:
        seed_date = config.strategy.trading_start - timedelta(days=2)

    replay = HistoricalReplay(strategy, broker, data, seed_date=seed_date)
    return strategy, replay.run()


@click.group()
@click.option("--config", "-c", default="config.yaml", help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx, config, verbose):
    """ROTATION MOMENTUM - monthly top-N rate-of-change rotation."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["level"] = logging.DEBUG if verbose else logging.INFO


@cli.command()
@click.option("--data-dir", "-d", default=None, help="Override paths.data_dir")
@click.pass_context
def run(ctx, data_dir):
    """Replay historical bars and report."""
    config = _load(ctx.obj["config_path"])
    setup_logger(log_dir=config.paths.log_dir, level=ctx.obj["level"])

    if not config.universe.symbols:
        console.print("[red]No symbols configured (universe.symbols)[/red]")
        sys.exit(1)

    start = time.perf_counter()
    try:
        with console.status("[bold green]Replaying bars..."):
            strategy, result = run_backtest(config, data_dir)
    except (DataQualityError, DataIntegrityError) as e:
        console.print(f"[red]Run aborted: {e}[/red]")
        sys.exit(1)
    console.print(f"backtest took {time.perf_counter() - start:.2f} secs")

    start = time.perf_counter()
    report = build_report(result.equity_curve, result.trades)
    out = write_outputs(config.paths.output_dir, result.equity_curve, result.trades, report)
    console.print(f"writing outputs to {out} took {time.perf_counter() - start:.2f} secs")
    console.print()

    _print_summary(result)
    positions = positions_frame(strategy.registry)
    console.print(_positions_table(positions))

    if config.report.write_report:
        message = format_report(report)
        console.print(Panel(message, title="Statistics"))

        notifier = EmailNotifier(config.email)
        if config.email.enabled:
            notifier.send(
                report_subject(strategy.name, result.last_timestamp),
                report_body(positions.to_string(index=False), message),
            )


def _print_summary(result: BacktestResult) -> None:
    table = Table(title="Run Summary", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Initial equity", f"{result.initial_equity:,.0f}")
    table.add_row("Final equity", f"{result.final_value:,.0f}")
    table.add_row("Total return", f"{result.total_return:+.2%}")
    table.add_row("Rebalances", str(len(result.rebalances)))
    table.add_row("Round trips", str(len(result.trades)))
    console.print(table)


@cli.command("config")
@click.pass_context
def show_config(ctx):
    """Show the effective configuration."""
    config = _load(ctx.obj["config_path"])
    data = config.model_dump()
    data["email"]["password"] = "***" if data["email"]["password"] else ""

    for section, values in data.items():
        table = Table(title=section)
        table.add_column("Key", style="cyan")
        table.add_column("Value")
        for key, value in values.items():
            table.add_row(key, str(value))
        console.print(table)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
