"""
Structured logging for ROTATION MOMENTUM.

Every ranking, rebalance and order decision is logged with its date.
"""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _daily_file_handler(log_dir: str, level: int) -> logging.FileHandler:
    """File handler writing to <log_dir>/rotation_YYYY-MM-DD.log."""
    path = Path(log_dir)
    path.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(
        path / f"rotation_{datetime.now():%Y-%m-%d}.log",
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
    return handler


def setup_logger(
    name: str = "rotation",
    log_dir: str = "logs",
    level: int = logging.INFO,
    console_output: bool = True,
) -> logging.Logger:
    """
    Install the run's log handlers on the package logger.

    Child loggers (rotation.rebalance, rotation.decisions, ...) propagate here.
    Calling it again replaces the handlers from the previous call.

    Args:
        name: Logger name
        log_dir: Directory for the daily log file
        level: Logging level
        console_output: Also log to stderr through rich

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_daily_file_handler(log_dir, level))

    if console_output:
        rich_handler = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_path=False,
        )
        rich_handler.setLevel(level)
        logger.addHandler(rich_handler)

    return logger


def get_logger(name: str = "rotation") -> logging.Logger:
    return logging.getLogger(name)


class DecisionLogger:
    """
    Audit trail of strategy decisions, one pipe-delimited line each:
    RANKING, REBALANCE, ORDER and LIQUIDATION.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger("rotation.decisions")

    def log_ranking(self, ranking: Sequence, as_of: date) -> None:
        """Log the ranked set considered at a rebalance."""
        self.logger.info(
            f"RANKING | date={as_of} | eligible={len(ranking)} | "
            f"top={[e.symbol for e in ranking[:5]]}"
        )
        for i, entry in enumerate(ranking, start=1):
            self.logger.debug(f"  {i:2d}. {entry.symbol:<10} ROC={entry.score:.4f}")

    def log_rebalance(
        self,
        summary: str,
        selected: List[str],
        equity: float,
    ) -> None:
        """Log rebalance decision."""
        self.logger.info(
            f"REBALANCE | equity={equity:,.0f} | selected={selected} | {summary}"
        )

    def log_order(
        self,
        action: str,
        symbol: str,
        quantity: Optional[int],
        reason: str,
    ) -> None:
        """Log order placement."""
        qty = "ALL" if quantity is None else quantity
        self.logger.info(f"ORDER | {action} | {symbol} | qty={qty} | reason={reason}")

    def log_liquidation(self, symbol: str, position: int, as_of: datetime) -> None:
        """Log a forced exit after the trading stop."""
        self.logger.info(
            f"LIQUIDATION | date={as_of.date()} | {symbol} | position={position}"
        )
