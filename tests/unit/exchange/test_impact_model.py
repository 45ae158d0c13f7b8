# tests/unit/exchange/test_impact_model.py
"""
Tests for MarketImpactModel accumulation, decay and clamping.
"""

import pytest

from agents.fomo import FomoAgent
from agents.scenario import get_scenario
from agents.smart_money import SmartMoneyAgent
from exchange.impact import AgentForces, MarketImpactModel
from exchange.orders import Side

QUIET = get_scenario("quiet")


class TestBaselineFlow:
    def test_aggressive_buy_pushes_up(self):
        model = MarketImpactModel(agents=[])
        delta = model.record_fill("PARSNIP", Side.BUY, 100, 0.01)
        assert delta == pytest.approx(1.0)

        forces = model.update("PARSNIP", 100.0, 100.0, QUIET)
        assert forces.baseline == pytest.approx(1.0)
        assert model.impact("PARSNIP") == pytest.approx(1.0)
        assert model.shadow_price("PARSNIP") == pytest.approx(101.0)

    def test_passive_fill_reverses_direction(self):
        model = MarketImpactModel(agents=[])
        assert model.record_fill("PARSNIP", Side.BUY, 100, 0.01, passive=True) == pytest.approx(-1.0)

    def test_pending_flow_is_consumed(self):
        model = MarketImpactModel(agents=[], decay_rate=0.5)
        model.record_fill("PARSNIP", Side.SELL, 200, 0.01)
        model.update("PARSNIP", 100.0, 100.0, QUIET)
        model.update("PARSNIP", 100.0, 100.0, QUIET)
        assert model.impact("PARSNIP") == pytest.approx(-1.0)
        assert model.last_forces("PARSNIP") == AgentForces()

    def test_symbols_are_independent(self):
        model = MarketImpactModel(agents=[])
        model.record_fill("PARSNIP", Side.BUY, 100, 0.01)
        model.update("PARSNIP", 100.0, 100.0, QUIET)
        model.update("MELON", 250.0, 250.0, QUIET)
        assert model.impact("MELON") == 0.0


class TestDecayAndClamp:
    def test_decay_toward_zero(self):
        model = MarketImpactModel(agents=[], decay_rate=0.9)
        model.record_fill("PARSNIP", Side.BUY, 1000, 0.01)
        model.update("PARSNIP", 100.0, 100.0, QUIET)
        for _ in range(10):
            model.update("PARSNIP", 100.0, 100.0, QUIET)
        assert model.impact("PARSNIP") == pytest.approx(10.0 * 0.9**10)

    def test_clamped_to_max_impact(self):
        model = MarketImpactModel(agents=[], max_impact=30.0)
        model.record_fill("PARSNIP", Side.SELL, 100_000, 0.01)
        model.update("PARSNIP", 100.0, 100.0, QUIET)
        assert model.impact("PARSNIP") == -30.0

    def test_history_is_bounded(self):
        model = MarketImpactModel(agents=[], history_limit=3)
        for _ in range(5):
            model.update("PARSNIP", 100.0, 100.0, QUIET)
        assert len(model.impact_history("PARSNIP")) == 3

    @pytest.mark.parametrize(
        "kwargs", [{"decay_rate": 0.0}, {"decay_rate": 1.5}, {"max_impact": 0.0}, {"return_window": 0}]
    )
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(ValueError):
            MarketImpactModel(agents=[], **kwargs)


class TestAgentForces:
    def test_forces_are_grouped_by_kind(self):
        model = MarketImpactModel(agents=[SmartMoneyAgent(), FomoAgent()])
        forces = model.update("PARSNIP", 90.0, 100.0, QUIET)
        assert forces.mean_reversion > 0
        assert forces.momentum == 0.0
        # no previous impact move, so nothing to extrapolate
        assert forces.extrapolation == 0.0
        assert forces.total == pytest.approx(model.impact("PARSNIP"))

    def test_default_agents(self):
        assert len(MarketImpactModel().agents) == 3


class TestPersistence:
    def test_state_round_trip_continues_identically(self):
        first = MarketImpactModel()
        for price in (100.0, 101.0, 102.5, 101.0):
            first.update("PARSNIP", price, 100.0, QUIET)
        first.record_fill("PARSNIP", Side.BUY, 10, 0.01)

        second = MarketImpactModel()
        second.set_state(first.get_state())

        a = first.update("PARSNIP", 103.0, 100.0, QUIET)
        b = second.update("PARSNIP", 103.0, 100.0, QUIET)
        assert a == b
        assert first.impact_history("PARSNIP") == second.impact_history("PARSNIP")
