"""
Strategy package for ROTATION MOMENTUM.

Strategies implement the BaseStrategy callback hooks and are driven by
the historical replay.

Available strategies:
- SimpleMomentumStrategy: Monthly top-N rate-of-change rotation
"""

from .base import BaseStrategy
from .simple_momentum import SimpleMomentumStrategy

__all__ = [
    "BaseStrategy",
    "SimpleMomentumStrategy",
]
