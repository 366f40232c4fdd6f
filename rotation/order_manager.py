"""
Order intents and dispatch for ROTATION MOMENTUM.

Enforces invariants:
- Position changes are the minimal exit/enter sequence for (current, desired)
- Flips are an exit followed by an entry, never a combined order
- Every dispatched intent is logged with its reason
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from .broker import Broker
from .logger import DecisionLogger
from .state import VALID_SIGNS


class IntentType(Enum):
    """Order intent direction."""

    ENTER_LONG = "enter_long"
    ENTER_SHORT = "enter_short"
    EXIT_LONG = "exit_long"
    EXIT_SHORT = "exit_short"

    @property
    def is_entry(self) -> bool:
        return self in (IntentType.ENTER_LONG, IntentType.ENTER_SHORT)


@dataclass(frozen=True)
class OrderIntent:
    """A position change handed to the execution collaborator."""

    symbol: str
    intent_type: IntentType
    quantity: Optional[int] = None  # None on exits: close the whole position
    reason: str = ""


def translate_position_change(
    symbol: str,
    current: int,
    desired: int,
    quantity: Optional[int] = None,
    reason: str = "rebalance",
) -> List[OrderIntent]:
    """
    Diff current vs desired position sign into ordered intents.

    | current | desired | intents                      |
    |---------|---------|------------------------------|
    |  0      |  1      | enter-long(qty)              |
    |  0      | -1      | enter-short(qty)             |
    |  1      |  0      | exit-long                    |
    |  1      | -1      | exit-long, enter-short(qty)  |
    | -1      |  0      | exit-short                   |
    | -1      |  1      | exit-short, enter-long(qty)  |
    |  x      |  x      | none                         |

    Args:
        symbol: Instrument symbol
        current: Current position sign
        desired: Desired position sign
        quantity: Entry quantity (required when an entry results)
        reason: Originating reason, carried on every intent

    Returns:
        Intents in execution order

    Raises:
        ValueError: On signs outside {-1, 0, 1} or a missing entry quantity
    """
    if current not in VALID_SIGNS or desired not in VALID_SIGNS:
        raise ValueError(
            f"Position signs must be -1, 0 or 1, got current={current} desired={desired}"
        )

    if current == desired:
        return []

    intents: List[OrderIntent] = []

    if current > 0:
        intents.append(OrderIntent(symbol, IntentType.EXIT_LONG, None, reason))
    elif current < 0:
        intents.append(OrderIntent(symbol, IntentType.EXIT_SHORT, None, reason))

    if desired != 0:
        if quantity is None:
            raise ValueError(f"Entry for {symbol} requires a quantity")
        entry = IntentType.ENTER_LONG if desired > 0 else IntentType.ENTER_SHORT
        intents.append(OrderIntent(symbol, entry, quantity, reason))

    return intents


def exit_intent(symbol: str, position: int, reason: str) -> Optional[OrderIntent]:
    """Unconditional exit for a signed position, or None when flat."""
    if position > 0:
        return OrderIntent(symbol, IntentType.EXIT_LONG, None, reason)
    if position < 0:
        return OrderIntent(symbol, IntentType.EXIT_SHORT, None, reason)
    return None


class OrderManager:
    """
    Sends intents to the broker and keeps the run's dispatch trail.
    """

    def __init__(
        self,
        broker: Broker,
        decision_logger: Optional[DecisionLogger] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize order manager.

        Args:
            broker: Execution collaborator
            decision_logger: Decision audit logger
            logger: Logger instance
        """
        self.broker = broker
        self.decision_logger = decision_logger or DecisionLogger()
        self.logger = logger or logging.getLogger(__name__)
        self.dispatched: List[OrderIntent] = []

    def submit(self, intent: OrderIntent) -> None:
        """Dispatch one intent."""
        if intent.intent_type.is_entry and (intent.quantity is None or intent.quantity <= 0):
            raise ValueError(f"Invalid entry quantity for {intent.symbol}: {intent.quantity}")

        if intent.intent_type == IntentType.ENTER_LONG:
            self.broker.enter_long(intent.symbol, intent.quantity)
        elif intent.intent_type == IntentType.ENTER_SHORT:
            self.broker.enter_short(intent.symbol, intent.quantity)
        elif intent.intent_type == IntentType.EXIT_LONG:
            self.broker.exit_long(intent.symbol)
        else:
            self.broker.exit_short(intent.symbol)

        self.decision_logger.log_order(
            intent.intent_type.value.upper(),
            intent.symbol,
            intent.quantity,
            intent.reason,
        )
        self.dispatched.append(intent)

    def submit_all(self, intents: Iterable[OrderIntent]) -> List[OrderIntent]:
        """Dispatch intents in order and return them."""
        sent = []
        for intent in intents:
            self.submit(intent)
            sent.append(intent)
        return sent

    def cancel_all(self) -> None:
        """Cancel every outstanding order before issuing new intents."""
        self.broker.cancel_all_orders()
        self.logger.debug("Cancelled all outstanding orders")
