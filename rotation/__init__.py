"""
ROTATION MOMENTUM - Monthly Momentum Rotation

A rate-of-change rotation system:
- Tracks a rolling N-bar rate of change per instrument
- Ranks the universe on the first trading day of each month
- Holds the top-N instruments with a positive ROC, equal-weighted
- Liquidates everything after the trading stop date
"""

__version__ = "1.0.0"

from .config import (
    Config,
    load_config,
    StrategyConfig,
    AccountConfig,
)
from .indicators import RateOfChange, calculate_roc
from .market_data import Bar, DataIntegrityError, InvalidPriceError
from .order_manager import IntentType, OrderIntent, translate_position_change
from .rebalance import RankingEntry, RebalanceScheduler
from .state import InstrumentRegistry, InstrumentState
from .strategy import SimpleMomentumStrategy

__all__ = [
    "Config",
    "load_config",
    "StrategyConfig",
    "AccountConfig",
    "RateOfChange",
    "calculate_roc",
    "Bar",
    "DataIntegrityError",
    "InvalidPriceError",
    "IntentType",
    "OrderIntent",
    "translate_position_change",
    "RankingEntry",
    "RebalanceScheduler",
    "InstrumentRegistry",
    "InstrumentState",
    "SimpleMomentumStrategy",
]
