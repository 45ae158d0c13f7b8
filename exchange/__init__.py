"""
exchange - Order matching and market orchestration

This package owns the per-instrument order books and drives the simulated
trading day: day opens, intraday ticks, market impact, circuit breakers
and the virtual order flow that keeps the book in line with the model.

Modules:
    orders: Order, fill and execution records
    errors: Typed order validation errors
    orderbook: Price-time priority matching engine with synthetic depth
    circuit_breaker: End-of-day move cap with overnight gap carry-over
    impact: Decaying market impact built from synthetic agent forces
    clock: Time source protocol and the simulation clock
    rules: Structured market configuration
    market: The day/tick orchestrator
    event_logger: JSONL event log
    season: Config-driven season runner
    metrics: Summary statistics over season results
"""

__version__ = "2.0.0"
