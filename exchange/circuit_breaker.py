"""
Circuit breaker with overnight gap carry-over.

Near the close, a day target that is still more than `max_move` away from
the current price is locked at current +/- max_move. The unrealised part
of the move becomes a gap that is applied at the next open, so it is
deferred rather than lost, and never compounds.
"""

import logging
import math

from exchange.state import PriceState

logger = logging.getLogger(__name__)


class CircuitBreaker:
    """
    Normal/Tripped state machine over PriceState.

    The Tripped state is PriceState.breaker_active; it is cleared only by
    open_price, so repeated checks after a trip are no-ops.

    Args:
        enabled: Master switch
        time_threshold: Elapsed fraction of the day after which the breaker may trip
        max_move: Largest move allowed between current price and target
        gap_threshold: Relative gap below which the next open ignores it
        epsilon: Price floor for the locked target
    """

    def __init__(
        self,
        enabled: bool = True,
        time_threshold: float = 0.95,
        max_move: float = 15.0,
        gap_threshold: float = 0.001,
        epsilon: float = 0.01,
    ):
        if not 0.0 <= time_threshold <= 1.0:
            raise ValueError(f"time_threshold must be in [0, 1], got {time_threshold}")
        if max_move <= 0:
            raise ValueError(f"max_move must be > 0, got {max_move}")
        if gap_threshold < 0:
            raise ValueError(f"gap_threshold must be >= 0, got {gap_threshold}")
        self.enabled = enabled
        self.time_threshold = time_threshold
        self.max_move = max_move
        self.gap_threshold = gap_threshold
        self.epsilon = epsilon

    def check(self, state: PriceState, elapsed_ratio: float) -> bool:
        """
        Trip if the remaining move to target is too large this late in the day.

        Returns:
            True only on the call that trips the breaker
        """
        if not self.enabled or state.breaker_active or elapsed_ratio < self.time_threshold:
            return False

        current = state.model_price
        move = state.target - current
        if abs(move) <= self.max_move:
            return False

        locked = max(self.epsilon, current + math.copysign(self.max_move, move))
        state.gap = state.target - locked
        state.target = locked
        state.breaker_active = True
        logger.warning(
            f"Circuit breaker tripped on {state.symbol}: target locked at {locked:.2f}, "
            f"gap {state.gap:+.2f} deferred to next open"
        )
        return True

    def open_price(self, state: PriceState, previous_close: float) -> float:
        """
        Opening price for a new day; consumes the gap and resets to Normal.

        A gap larger than gap_threshold (relative to the previous close)
        opens the market at previous_close + gap, otherwise at previous_close.
        """
        gap = state.gap
        state.gap = 0.0
        state.breaker_active = False
        if previous_close > 0 and abs(gap / previous_close) > self.gap_threshold:
            return max(self.epsilon, previous_close + gap)
        return previous_close
