"""
Market regimes.

A regime scales the strength of each synthetic agent and shapes the
synthetic order-book depth. The regime in force is an input to the
market; RegimeScheduler is the default way to pick one per day.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from pricing.random_provider import RandomProvider

logger = logging.getLogger(__name__)


class Regime(str, Enum):
    QUIET = "quiet"
    EUPHORIC = "euphoric"
    PANIC = "panic"
    SQUEEZE = "squeeze"


@dataclass(frozen=True)
class ScenarioParameters:
    """
    Agent strength multipliers and depth shape of one regime.

    Attributes:
        regime: Regime this parameter set describes
        smart_money: Multiplier on the mean-reversion agent (negative = contrarian)
        trend_follower: Multiplier on the momentum agent
        fomo: Multiplier on the extrapolative agent
        asymmetric_down: Extra FOMO weight when impact is falling
        bid_depth: Multiplier on synthetic bid quantity
        ask_depth: Multiplier on synthetic ask quantity
    """

    regime: Regime
    smart_money: float
    trend_follower: float
    fomo: float
    asymmetric_down: float = 1.0
    bid_depth: float = 1.0
    ask_depth: float = 1.0


SCENARIOS: dict[Regime, ScenarioParameters] = {
    Regime.QUIET: ScenarioParameters(Regime.QUIET, 0.8, 0.1, 0.0),
    Regime.EUPHORIC: ScenarioParameters(
        Regime.EUPHORIC, 0.0, 0.3, 0.9, bid_depth=2.0, ask_depth=0.5
    ),
    Regime.PANIC: ScenarioParameters(
        Regime.PANIC, 0.2, 0.0, 0.7, asymmetric_down=1.5, bid_depth=0.5, ask_depth=2.0
    ),
    Regime.SQUEEZE: ScenarioParameters(
        Regime.SQUEEZE, -0.5, 0.4, 0.6, bid_depth=3.0, ask_depth=0.2
    ),
}


def get_scenario(regime: "Regime | str") -> ScenarioParameters:
    try:
        return SCENARIOS[Regime(regime)]
    except ValueError:
        valid = ", ".join(r.value for r in Regime)
        raise ValueError(f"Unknown regime '{regime}'. Valid: {valid}") from None


class RegimeScheduler:
    """
    Daily regime switching.

    At each new day, with probability `switch_probability`, the regime
    changes to one of the other regimes chosen uniformly.

    Args:
        rng: Shared random provider
        initial: Regime on the first day
        switch_probability: Daily switch probability in [0, 1]
    """

    def __init__(
        self,
        rng: RandomProvider,
        initial: "Regime | str" = Regime.QUIET,
        switch_probability: float = 0.3,
    ):
        if not 0.0 <= switch_probability <= 1.0:
            raise ValueError(f"switch_probability must be in [0, 1], got {switch_probability}")
        self.rng = rng
        self.current = Regime(initial)
        self.switch_probability = switch_probability

    @property
    def scenario(self) -> ScenarioParameters:
        return SCENARIOS[self.current]

    def advance(self, day: int) -> Regime:
        """Possibly switch regime for `day`; returns the regime in force."""
        if self.rng.bernoulli(self.switch_probability):
            others = [r for r in Regime if r is not self.current]
            previous = self.current
            self.current = self.rng.choice(others)
            logger.info(f"Day {day}: regime {previous.value} -> {self.current.value}")
        return self.current
