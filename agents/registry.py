"""
Agent Factory.
"""

from typing import Any

from agents.base import FlowAgent
from agents.fomo import FomoAgent
from agents.smart_money import SmartMoneyAgent
from agents.trend_follower import TrendFollowerAgent

AGENT_TYPES: dict[str, type[FlowAgent]] = {
    SmartMoneyAgent.name: SmartMoneyAgent,
    TrendFollowerAgent.name: TrendFollowerAgent,
    FomoAgent.name: FomoAgent,
}


def create_agent(agent_type: str, **kwargs: Any) -> FlowAgent:
    """
    Create an agent instance by name.

    Args:
        agent_type: One of "smart_money", "trend_follower", "fomo"
        **kwargs: Constructor arguments (base_strength, max_force, ...)

    Returns:
        Configured agent

    Raises:
        ValueError: If agent_type is unknown
    """
    agent_cls = AGENT_TYPES.get(agent_type.lower())
    if agent_cls is None:
        valid = ", ".join(sorted(AGENT_TYPES))
        raise ValueError(f"Unknown agent type: {agent_type}. Valid: {valid}")
    return agent_cls(**kwargs)


def default_agents() -> list[FlowAgent]:
    """One agent of each kind with default parameters."""
    return [SmartMoneyAgent(), TrendFollowerAgent(), FomoAgent()]
