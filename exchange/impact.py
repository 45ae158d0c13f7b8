"""
Market impact model.

Keeps one decaying impact accumulator per instrument:

    impact_{t+1} = clamp(decay * impact_t + net_flow, -max_impact, +max_impact)

Net flow is the sum of the synthetic agents' forces plus the baseline flow
recorded from player fills since the previous tick. The displayed price
is the bridge price plus impact.
"""

from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any, Sequence

from agents.base import FlowAgent, FlowContext
from agents.registry import default_agents
from agents.scenario import ScenarioParameters
from exchange.orders import Side


@dataclass(frozen=True)
class AgentForces:
    """Decomposed net flow of one tick, in price units."""

    baseline: float = 0.0
    mean_reversion: float = 0.0
    momentum: float = 0.0
    extrapolation: float = 0.0

    @property
    def total(self) -> float:
        return self.baseline + self.mean_reversion + self.momentum + self.extrapolation


@dataclass
class _ImpactState:
    impact: float = 0.0
    previous_impact: float = 0.0
    pending_flow: float = 0.0
    shadow_price: float = 0.0
    prices: deque = field(default_factory=deque)
    history: deque = field(default_factory=deque)
    forces: AgentForces = field(default_factory=AgentForces)


class MarketImpactModel:
    """
    Aggregates agent flow into a decaying per-instrument impact.

    Args:
        agents: Synthetic agents (default: one of each kind)
        decay_rate: Fraction of impact kept each tick, in (0, 1]
        max_impact: Absolute cap on the accumulated impact
        return_window: Number of recent returns offered to agents
        history_limit: Impact values kept for impact_history
    """

    def __init__(
        self,
        agents: Sequence[FlowAgent] | None = None,
        decay_rate: float = 0.95,
        max_impact: float = 30.0,
        return_window: int = 20,
        history_limit: int = 2000,
    ):
        if not 0.0 < decay_rate <= 1.0:
            raise ValueError(f"decay_rate must be in (0, 1], got {decay_rate}")
        if max_impact <= 0:
            raise ValueError(f"max_impact must be > 0, got {max_impact}")
        if return_window < 1 or history_limit < 1:
            raise ValueError("return_window and history_limit must be >= 1")

        self.agents = list(agents) if agents is not None else default_agents()
        self.decay_rate = decay_rate
        self.max_impact = max_impact
        self.return_window = return_window
        self.history_limit = history_limit
        self._states: dict[str, _ImpactState] = {}

    def _state(self, symbol: str) -> _ImpactState:
        state = self._states.get(symbol)
        if state is None:
            state = _ImpactState(
                prices=deque(maxlen=self.return_window + 1),
                history=deque(maxlen=self.history_limit),
            )
            self._states[symbol] = state
        return state

    # =========================================================================
    # Read-only accessors
    # =========================================================================

    def impact(self, symbol: str) -> float:
        return self._state(symbol).impact

    def shadow_price(self, symbol: str) -> float:
        """Model price plus impact as of the last update (0 before the first)."""
        return self._state(symbol).shadow_price

    def impact_history(self, symbol: str) -> tuple[float, ...]:
        return tuple(self._state(symbol).history)

    def last_forces(self, symbol: str) -> AgentForces:
        return self._state(symbol).forces

    # =========================================================================
    # Updates
    # =========================================================================

    def record_fill(
        self,
        symbol: str,
        side: Side,
        quantity: int,
        liquidity_sensitivity: float,
        passive: bool = False,
    ) -> float:
        """
        Add player flow to the next update's baseline.

        An aggressive buy pushes the price up. A passive fill means the
        counterparty was the aggressor, so the direction is reversed.

        Returns:
            The signed contribution recorded
        """
        delta = side.sign * quantity * liquidity_sensitivity
        if passive:
            delta = -delta
        self._state(symbol).pending_flow += delta
        return delta

    def update(
        self,
        symbol: str,
        model_price: float,
        fundamental: float,
        scenario: ScenarioParameters,
    ) -> AgentForces:
        """
        Advance the impact of `symbol` by one tick.

        Args:
            symbol: Instrument symbol
            model_price: Bridge price for this tick
            fundamental: Anchor for the mean-reversion agent
            scenario: Regime scaling the agents

        Returns:
            The forces applied this tick
        """
        state = self._state(symbol)
        shadow = model_price + state.impact
        prices = list(state.prices)
        returns = tuple(
            (b - a) / a for a, b in zip(prices, prices[1:]) if a > 0
        )
        context = FlowContext(
            symbol=symbol,
            model_price=model_price,
            shadow_price=shadow,
            fundamental=fundamental,
            impact=state.impact,
            previous_impact=state.previous_impact,
            scenario=scenario,
            returns=returns,
        )

        totals = {"mean_reversion": 0.0, "momentum": 0.0, "extrapolation": 0.0}
        for agent in self.agents:
            totals[agent.force_kind] += agent.compute_force(context)

        forces = AgentForces(baseline=state.pending_flow, **totals)
        state.pending_flow = 0.0

        impact = self.decay_rate * state.impact + forces.total
        impact = max(-self.max_impact, min(self.max_impact, impact))

        state.previous_impact = state.impact
        state.impact = impact
        state.shadow_price = model_price + impact
        state.prices.append(state.shadow_price)
        state.history.append(impact)
        state.forces = forces
        return forces

    # =========================================================================
    # Persistence
    # =========================================================================

    def get_state(self) -> dict[str, Any]:
        return {
            symbol: {
                "impact": s.impact,
                "previous_impact": s.previous_impact,
                "pending_flow": s.pending_flow,
                "shadow_price": s.shadow_price,
                "prices": list(s.prices),
                "history": list(s.history),
                "forces": asdict(s.forces),
            }
            for symbol, s in self._states.items()
        }

    def set_state(self, data: dict[str, Any]) -> None:
        self._states = {}
        for symbol, saved in data.items():
            state = self._state(symbol)
            state.impact = float(saved["impact"])
            state.previous_impact = float(saved["previous_impact"])
            state.pending_flow = float(saved["pending_flow"])
            state.shadow_price = float(saved["shadow_price"])
            state.prices.extend(saved["prices"])
            state.history.extend(saved["history"])
            state.forces = AgentForces(**saved["forces"])
