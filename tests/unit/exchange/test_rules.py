# tests/unit/exchange/test_rules.py
"""
Tests for MarketRules structured config loading.
"""

from pathlib import Path

import pytest
from omegaconf import OmegaConf
from omegaconf.errors import ConfigKeyError, ValidationError

from exchange.market import build_agents
from exchange.rules import MarketRules

PROJECT_CONFIG = Path(__file__).resolve().parents[3] / "conf" / "config.yaml"


class TestMarketRules:
    def test_defaults(self):
        rules = MarketRules.from_config()
        assert rules.epsilon == 0.01
        assert rules.circuit_breaker.max_move == 15.0
        assert rules.virtual_flow.max_flow_per_tick == 500
        assert rules.daily.total_days == 28

    def test_partial_override_keeps_defaults(self):
        rules = MarketRules.from_config(OmegaConf.create({"impact": {"decay_rate": 0.8}}))
        assert rules.impact.decay_rate == 0.8
        assert rules.impact.max_impact == 30.0
        assert isinstance(rules, MarketRules)

    def test_plain_mapping(self):
        rules = MarketRules.from_config({"depth": {"levels": 3}})
        assert rules.depth.levels == 3

    def test_unknown_key_rejected(self):
        with pytest.raises(ConfigKeyError):
            MarketRules.from_config({"impact": {"decay": 0.8}})

    def test_wrong_type_rejected(self):
        with pytest.raises(ValidationError):
            MarketRules.from_config({"depth": {"levels": "many"}})

    def test_project_config_loads(self):
        cfg = OmegaConf.load(PROJECT_CONFIG)
        rules = MarketRules.from_config(cfg.rules)
        assert rules.order_admission.initial_margin_ratio == 0.1

    def test_agents_follow_rules(self):
        rules = MarketRules.from_config({"agents": {"fomo": {"base_strength": 0.6}}})
        smart, trend, fomo = build_agents(rules)
        assert fomo.base_strength == 0.6
        assert smart.base_strength == 0.05
        assert trend.moving_average_period == 20
