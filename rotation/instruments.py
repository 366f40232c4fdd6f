"""
Instrument resolution for ROTATION MOMENTUM.

Maps universe symbols to immutable Instrument records carrying the
venue-specific variation used for order routing.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass(frozen=True)
class InstrumentVariation:
    """Venue-specific representation of an instrument."""

    venue: str
    symbol: str
    factor: float = 1.0  # Venue price = factor * data price
    tick: float = 0.01


@dataclass(frozen=True)
class Instrument:
    """A tradable instrument, resolved once per run."""

    symbol: str
    variation: InstrumentVariation = field(compare=False)


class InstrumentResolver:
    """
    Resolves symbols into instruments for a venue.

    Venue metadata defaults to an identity variation (same symbol, unit
    factor) unless overrides are registered.
    """

    def __init__(self, venue: str = "ib", overrides: Optional[Dict[str, InstrumentVariation]] = None):
        """
        Initialize resolver.

        Args:
            venue: Venue name for variations
            overrides: Optional symbol -> variation mapping
        """
        self.venue = venue
        self._overrides: Dict[str, InstrumentVariation] = dict(overrides or {})
        self._cache: Dict[str, Instrument] = {}

    def resolve(self, symbol: str) -> Instrument:
        """
        Resolve a symbol.

        Raises:
            ValueError: If symbol is blank
        """
        symbol = symbol.strip()
        if not symbol:
            raise ValueError("Cannot resolve an empty symbol")

        if symbol in self._cache:
            return self._cache[symbol]

        variation = self._overrides.get(symbol) or InstrumentVariation(
            venue=self.venue,
            symbol=symbol,
        )
        instrument = Instrument(symbol=symbol, variation=variation)
        self._cache[symbol] = instrument
        return instrument
