"""
FOMO: extrapolates whichever way the impact just moved.

Falls are amplified by the regime's asymmetric-downside factor (panic
sells harder than greed buys).
"""

from agents.base import FlowAgent, FlowContext
from agents.scenario import ScenarioParameters


class FomoAgent(FlowAgent):
    """Force = strength * (impact_t - impact_{t-1}), scaled up on the way down."""

    name = "fomo"
    force_kind = "extrapolation"

    def __init__(self, base_strength: float = 0.3, max_force: float = 5.0) -> None:
        super().__init__(base_strength, max_force)

    def regime_multiplier(self, scenario: ScenarioParameters) -> float:
        return scenario.fomo

    def raw_force(self, context: FlowContext, strength: float) -> float:
        change = context.impact - context.previous_impact
        force = strength * change
        if change < 0:
            force *= context.scenario.asymmetric_down
        return force
