"""
Structured market rules.

MarketRules is an OmegaConf structured config: from_config merges a
DictConfig (usually the `rules` node of the hydra config) over the
dataclass defaults, so omitted keys keep their defaults and unknown or
mistyped keys fail at load time.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping

from omegaconf import DictConfig, OmegaConf


@dataclass
class FundamentalRules:
    min_quantity: float = 100.0


@dataclass
class DailyProcessRules:
    mean_reversion: float = 0.15
    total_days: int = 28


@dataclass
class BridgeRules:
    opening_shock: float = 2.0
    shock_decay: float = 10.0


@dataclass
class CarryRules:
    risk_free_rate: float = 0.002
    storage_cost: float = 0.005
    base_convenience_yield: float = 0.001


@dataclass
class CircuitBreakerRules:
    enabled: bool = True
    time_threshold: float = 0.95
    max_move: float = 15.0
    gap_threshold: float = 0.001


@dataclass
class ImpactRules:
    decay_rate: float = 0.95
    max_impact: float = 30.0
    history_limit: int = 2000


@dataclass
class AgentRules:
    base_strength: float = 0.05
    max_force: float = 5.0


@dataclass
class TrendRules:
    base_strength: float = 0.5
    max_force: float = 5.0
    moving_average_period: int = 20
    min_history: int = 5


@dataclass
class AgentsRules:
    smart_money: AgentRules = field(default_factory=lambda: AgentRules(0.05, 5.0))
    trend_follower: TrendRules = field(default_factory=TrendRules)
    fomo: AgentRules = field(default_factory=lambda: AgentRules(0.3, 5.0))


@dataclass
class VirtualFlowRules:
    min_gap: float = 0.1
    flow_base: float = 10.0
    flow_exponent: float = 1.5
    max_flow_per_tick: int = 500


@dataclass
class DepthRules:
    levels: int = 5
    level_spacing: float = 0.01
    level_decay: float = 0.15
    price_decimals: int = 2


@dataclass
class OrderAdmissionRules:
    initial_margin_ratio: float = 0.1


@dataclass
class MarketRules:
    """All tunable constants of the market, grouped by component."""

    epsilon: float = 0.01
    fundamental: FundamentalRules = field(default_factory=FundamentalRules)
    daily: DailyProcessRules = field(default_factory=DailyProcessRules)
    bridge: BridgeRules = field(default_factory=BridgeRules)
    carry: CarryRules = field(default_factory=CarryRules)
    circuit_breaker: CircuitBreakerRules = field(default_factory=CircuitBreakerRules)
    impact: ImpactRules = field(default_factory=ImpactRules)
    agents: AgentsRules = field(default_factory=AgentsRules)
    virtual_flow: VirtualFlowRules = field(default_factory=VirtualFlowRules)
    depth: DepthRules = field(default_factory=DepthRules)
    order_admission: OrderAdmissionRules = field(default_factory=OrderAdmissionRules)

    @classmethod
    def from_config(cls, cfg: DictConfig | Mapping[str, Any] | None = None) -> "MarketRules":
        schema = OmegaConf.structured(cls)
        if cfg is not None:
            schema = OmegaConf.merge(schema, cfg)
        return OmegaConf.to_object(schema)
