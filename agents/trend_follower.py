"""
Trend follower: chases the moving average of recent returns.

Returns are dimensionless, so the force is scaled by the shadow price to
land in price units. No force until `min_history` returns are available.
"""

from agents.base import FlowAgent, FlowContext
from agents.scenario import ScenarioParameters


class TrendFollowerAgent(FlowAgent):
    """
    Momentum agent.

    Args:
        base_strength: Strength before the regime multiplier
        max_force: Absolute cap on the force
        moving_average_period: Number of most recent returns averaged
        min_history: Returns required before the agent acts
    """

    name = "trend_follower"
    force_kind = "momentum"

    def __init__(
        self,
        base_strength: float = 0.5,
        max_force: float = 5.0,
        moving_average_period: int = 20,
        min_history: int = 5,
    ) -> None:
        super().__init__(base_strength, max_force)
        if moving_average_period < 1:
            raise ValueError(f"moving_average_period must be >= 1, got {moving_average_period}")
        if min_history < 1:
            raise ValueError(f"min_history must be >= 1, got {min_history}")
        self.moving_average_period = moving_average_period
        self.min_history = min_history

    def regime_multiplier(self, scenario: ScenarioParameters) -> float:
        return scenario.trend_follower

    def raw_force(self, context: FlowContext, strength: float) -> float:
        if len(context.returns) < self.min_history:
            return 0.0
        window = list(context.returns)[-self.moving_average_period:]
        mean_return = sum(window) / len(window)
        return strength * mean_return * context.shadow_price
