"""
Smart money: trades the gap between fundamental value and the shadow price.
"""

from agents.base import FlowAgent, FlowContext
from agents.scenario import ScenarioParameters


class SmartMoneyAgent(FlowAgent):
    """Buys below fundamental, sells above. Force = strength * (S - shadow)."""

    name = "smart_money"
    force_kind = "mean_reversion"

    def __init__(self, base_strength: float = 0.05, max_force: float = 5.0) -> None:
        super().__init__(base_strength, max_force)

    def regime_multiplier(self, scenario: ScenarioParameters) -> float:
        return scenario.smart_money

    def raw_force(self, context: FlowContext, strength: float) -> float:
        return strength * (context.fundamental - context.shadow_price)
