"""
Abstract base class for synthetic flow agents.

An agent does not place orders itself. Every tick it reports a signed
force: positive pushes the displayed price up, negative pushes it down.
The MarketImpactModel sums the forces of all agents into its decaying
impact accumulator.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Sequence

from agents.scenario import ScenarioParameters


@dataclass(frozen=True)
class FlowContext:
    """
    Read-only market view handed to agents each tick.

    Attributes:
        symbol: Instrument symbol
        model_price: Bridge price before impact
        shadow_price: model_price plus current impact
        fundamental: Fundamental value S
        impact: Current impact
        previous_impact: Impact one tick earlier
        returns: Recent simple returns of the shadow price, oldest first
        scenario: Active regime parameters
    """

    symbol: str
    model_price: float
    shadow_price: float
    fundamental: float
    impact: float
    previous_impact: float
    scenario: ScenarioParameters
    returns: Sequence[float] = field(default_factory=tuple)


class FlowAgent(ABC):
    """
    Base class for all synthetic flow agents.

    Args:
        base_strength: Strength before the regime multiplier
        max_force: Absolute cap on the reported force

    Raises:
        ValueError: If max_force <= 0 or base_strength < 0
    """

    name = "agent"
    # AgentForces field this agent contributes to
    force_kind = "mean_reversion"

    def __init__(self, base_strength: float, max_force: float = 5.0) -> None:
        if base_strength < 0:
            raise ValueError(f"base_strength must be >= 0, got {base_strength}")
        if max_force <= 0:
            raise ValueError(f"max_force must be > 0, got {max_force}")
        self.base_strength = base_strength
        self.max_force = max_force

    @abstractmethod
    def regime_multiplier(self, scenario: ScenarioParameters) -> float:
        """Multiplier this regime applies to the agent."""
        pass

    @abstractmethod
    def raw_force(self, context: FlowContext, strength: float) -> float:
        """Unclamped force for the given effective strength."""
        pass

    def strength(self, scenario: ScenarioParameters) -> float:
        return self.base_strength * self.regime_multiplier(scenario)

    def compute_force(self, context: FlowContext) -> float:
        """Signed force for this tick, clamped to +/- max_force."""
        strength = self.strength(context.scenario)
        if strength == 0.0:
            return 0.0
        force = self.raw_force(context, strength)
        return max(-self.max_force, min(self.max_force, force))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base_strength={self.base_strength}, max_force={self.max_force})"
