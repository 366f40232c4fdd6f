"""
Market data for ROTATION MOMENTUM.

Loads daily OHLCV bars from CSV files (one `<SYMBOL>.csv` per instrument)
and defines the data-integrity errors raised while replaying them.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Iterator

import pandas as pd

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("open", "high", "low", "close")


class DataQualityError(Exception):
    """Raised when bar files cannot be loaded or are malformed."""

    pass


class DataIntegrityError(Exception):
    """Raised when a bar violates a data invariant during replay. Fatal."""

    pass


class InvalidPriceError(DataIntegrityError):
    """Raised on a close that is not a finite positive number."""

    def __init__(self, symbol: str, timestamp: datetime, value: float):
        self.symbol = symbol
        self.timestamp = timestamp
        self.value = value
        super().__init__(
            f"Invalid close for [{symbol} {timestamp:%Y-%m-%d}]: {value:f}"
        )


@dataclass(frozen=True)
class Bar:
    """A closed daily bar."""

    symbol: str
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


def validate_bars(df: pd.DataFrame, symbol: str) -> pd.DataFrame:
    """
    Normalise a bar frame: lower-case columns, datetime index, sorted, no duplicates.

    Non-positive or missing closes are left in place; they are rejected during replay.

    Raises:
        DataQualityError: If required columns are missing or dates unparsable
    """
    df = df.rename(columns=str.lower)

    if "date" in df.columns:
        try:
            df["date"] = pd.to_datetime(df["date"])
        except (ValueError, TypeError) as e:
            raise DataQualityError(f"{symbol}: unparsable dates ({e})") from e
        df = df.set_index("date")

    if not isinstance(df.index, pd.DatetimeIndex):
        raise DataQualityError(f"{symbol}: bars must be indexed by date")

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise DataQualityError(f"{symbol}: missing columns {missing}")

    if "volume" not in df.columns:
        df["volume"] = 0.0

    if df.index.has_duplicates:
        logger.warning(f"{symbol}: dropping {df.index.duplicated().sum()} duplicate bars")
        df = df[~df.index.duplicated(keep="last")]

    return df.sort_index()


def load_bars(data_dir: str, symbols: Iterable[str]) -> Dict[str, pd.DataFrame]:
    """
    Load one CSV per symbol.

    Args:
        data_dir: Directory holding `<SYMBOL>.csv` files
        symbols: Universe symbols

    Returns:
        Dict of symbol -> validated bar DataFrame

    Raises:
        DataQualityError: If a file is missing or malformed
    """
    base = Path(data_dir)
    data: Dict[str, pd.DataFrame] = {}

    for symbol in symbols:
        path = base / f"{symbol}.csv"
        if not path.exists():
            raise DataQualityError(f"No data file for {symbol}: {path}")
        try:
            df = pd.read_csv(path)
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise DataQualityError(f"{symbol}: cannot parse {path} ({e})") from e
        data[symbol] = validate_bars(df, symbol)
        logger.debug(f"Loaded {len(data[symbol])} bars for {symbol}")

    return data


def iter_bars(df: pd.DataFrame, symbol: str) -> Iterator[Bar]:
    """Yield Bar records from a validated frame in date order."""
    for ts, row in zip(df.index, df.itertuples(index=False)):
        yield Bar(
            symbol=symbol,
            timestamp=ts.to_pydatetime(),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
        )
