"""
Per-instrument state for ROTATION MOMENTUM.

One InstrumentState per subscribed symbol, owned by the registry for the
lifetime of a run. The key set is fixed once subscription completes.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Dict, Iterator, List, Optional

from .indicators import RateOfChange
from .instruments import Instrument

VALID_SIGNS = (-1, 0, 1)


class RegistryFrozenError(RuntimeError):
    """Raised when subscribing after the universe has been fixed."""

    pass


@dataclass
class InstrumentState:
    """Mutable per-instrument record updated on every bar and rebalance."""

    instrument: Instrument
    roc: RateOfChange
    returns: Deque[float] = field(default_factory=deque)
    bars_seen: int = 0
    score: Optional[float] = None
    last_close: float = 0.0
    last_timestamp: Optional[datetime] = None
    position: int = 0  # Signed quantity cached from the broker
    _desired_position: int = field(default=0, repr=False)

    # Fill book-keeping
    entry_price: float = 0.0
    exit_price: float = 0.0
    since: Optional[datetime] = None

    @classmethod
    def create(cls, instrument: Instrument, lookback: int) -> "InstrumentState":
        return cls(
            instrument=instrument,
            roc=RateOfChange(lookback),
            returns=deque(maxlen=lookback),
        )

    @property
    def symbol(self) -> str:
        return self.instrument.symbol

    @property
    def desired_position(self) -> int:
        return self._desired_position

    @desired_position.setter
    def desired_position(self, value: int) -> None:
        if value not in VALID_SIGNS:
            raise ValueError(f"desired_position must be -1, 0 or 1, got {value}")
        self._desired_position = value

    @property
    def position_sign(self) -> int:
        if self.position > 0:
            return 1
        if self.position < 0:
            return -1
        return 0


class InstrumentRegistry:
    """
    Owned mapping from symbol to InstrumentState.

    Iteration follows subscription order, which is also the tie-break
    order for rankings.
    """

    def __init__(self, lookback: int):
        self.lookback = lookback
        self._states: Dict[str, InstrumentState] = {}
        self._frozen = False

    def subscribe(self, instrument: Instrument) -> InstrumentState:
        """
        Create the state record for an instrument.

        Raises:
            RegistryFrozenError: If the universe is already fixed
            ValueError: If the symbol is already subscribed
        """
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot subscribe {instrument.symbol}: registry is frozen"
            )
        if instrument.symbol in self._states:
            raise ValueError(f"Duplicate subscription: {instrument.symbol}")

        state = InstrumentState.create(instrument, self.lookback)
        self._states[instrument.symbol] = state
        return state

    def freeze(self) -> None:
        """Fix the key set for the rest of the run."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, symbol: str) -> InstrumentState:
        """Get state for a subscribed symbol (KeyError otherwise)."""
        try:
            return self._states[symbol]
        except KeyError:
            raise KeyError(f"Symbol not subscribed: {symbol}") from None

    @property
    def symbols(self) -> List[str]:
        return list(self._states.keys())

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._states

    def __iter__(self) -> Iterator[InstrumentState]:
        return iter(self._states.values())

    def __len__(self) -> int:
        return len(self._states)
