"""
agents - Synthetic order-flow agents

Each agent turns the current market context into a signed force (in price
units) that the market impact model accumulates.

Modules:
    base: FlowAgent interface and the per-tick FlowContext
    smart_money: Mean reversion toward the fundamental value
    trend_follower: Momentum on recent returns
    fomo: Extrapolation of the latest impact change
    scenario: Market regimes and the regime scheduler
    registry: Name-based agent construction
"""

__version__ = "2.0.0"
