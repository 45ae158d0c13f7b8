# tests/unit/agents/test_flow_agents.py
"""Tests for the synthetic flow agents and the agent registry."""

import pytest

from agents.base import FlowContext
from agents.fomo import FomoAgent
from agents.registry import create_agent, default_agents
from agents.scenario import Regime, get_scenario
from agents.smart_money import SmartMoneyAgent
from agents.trend_follower import TrendFollowerAgent


def context(regime=Regime.QUIET, **kwargs):
    defaults = dict(
        symbol="PARSNIP",
        model_price=100.0,
        shadow_price=100.0,
        fundamental=100.0,
        impact=0.0,
        previous_impact=0.0,
        returns=(),
    )
    defaults.update(kwargs)
    return FlowContext(scenario=get_scenario(regime), **defaults)


class TestSmartMoney:
    def test_buys_below_fundamental(self):
        agent = SmartMoneyAgent(base_strength=0.05)
        force = agent.compute_force(context(shadow_price=90.0, fundamental=100.0))
        # 0.05 * 0.8 (quiet) * 10
        assert force == pytest.approx(0.4)

    def test_sells_above_fundamental(self):
        agent = SmartMoneyAgent()
        assert agent.compute_force(context(shadow_price=110.0)) < 0

    def test_contrarian_in_squeeze(self):
        agent = SmartMoneyAgent()
        assert agent.compute_force(context(Regime.SQUEEZE, shadow_price=90.0)) < 0

    def test_silent_when_regime_disables_it(self):
        agent = SmartMoneyAgent()
        assert agent.compute_force(context(Regime.EUPHORIC, shadow_price=50.0)) == 0.0

    def test_force_is_clamped(self):
        agent = SmartMoneyAgent(base_strength=1.0, max_force=2.0)
        assert agent.compute_force(context(shadow_price=10.0)) == 2.0
        assert agent.compute_force(context(shadow_price=500.0)) == -2.0


class TestTrendFollower:
    def test_needs_min_history(self):
        agent = TrendFollowerAgent(min_history=5)
        assert agent.compute_force(context(returns=(0.01,) * 4)) == 0.0

    def test_follows_average_return(self):
        agent = TrendFollowerAgent(base_strength=0.5, moving_average_period=3, min_history=3)
        force = agent.compute_force(context(returns=(-1.0, 0.01, 0.02, 0.03), shadow_price=100.0))
        # Window is the last three returns: mean 0.02; strength 0.5 * 0.1 (quiet)
        assert force == pytest.approx(0.05 * 0.02 * 100.0)

    def test_validation(self):
        with pytest.raises(ValueError):
            TrendFollowerAgent(moving_average_period=0)


class TestFomo:
    def test_extrapolates_rise(self):
        agent = FomoAgent(base_strength=0.3)
        force = agent.compute_force(context(Regime.EUPHORIC, impact=2.0, previous_impact=1.0))
        assert force == pytest.approx(0.3 * 0.9 * 1.0)

    def test_panic_amplifies_falls(self):
        agent = FomoAgent(base_strength=0.3)
        down = agent.compute_force(context(Regime.PANIC, impact=1.0, previous_impact=2.0))
        up = agent.compute_force(context(Regime.PANIC, impact=2.0, previous_impact=1.0))
        assert down == pytest.approx(-1.5 * up)

    def test_inactive_in_quiet_market(self):
        assert FomoAgent().compute_force(context(impact=5.0, previous_impact=0.0)) == 0.0


class TestRegistry:
    def test_create_by_name(self):
        agent = create_agent("Smart_Money", base_strength=0.2, max_force=1.0)
        assert isinstance(agent, SmartMoneyAgent)
        assert agent.base_strength == 0.2

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown agent type"):
            create_agent("whale")

    def test_default_agents_cover_every_force(self):
        kinds = {a.force_kind for a in default_agents()}
        assert kinds == {"mean_reversion", "momentum", "extrapolation"}

    def test_base_validation(self):
        with pytest.raises(ValueError):
            SmartMoneyAgent(base_strength=-1.0)
        with pytest.raises(ValueError):
            FomoAgent(max_force=0.0)
