"""
Per-instrument price state and end-of-day records.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any


@dataclass
class PriceState:
    """
    Mutable price state of one instrument.

    Written once per day at the open (new target, gap consumed) and once
    per tick (bridge price, impact). Readers get copies via Market.price_state.

    Attributes:
        symbol: Instrument symbol
        current_price: Displayed price, model price plus impact
        model_price: Bridge price before impact
        open_price: Price at today's open
        previous_close: Close the open was derived from
        target: Effective day-level target (may be locked by the breaker)
        fundamental: Anchor the processes pull toward (carry-adjusted for futures)
        futures_quote: Cost-of-carry futures value of the fundamental
        impact: Accumulated market impact
        gap: Excess move deferred to the next open by the circuit breaker
        breaker_active: True once the breaker tripped today
    """

    symbol: str
    current_price: float = 0.0
    model_price: float = 0.0
    open_price: float = 0.0
    previous_close: float = 0.0
    target: float = 0.0
    fundamental: float = 0.0
    futures_quote: float = 0.0
    impact: float = 0.0
    gap: float = 0.0
    breaker_active: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PriceState":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class DayRecord:
    """Summary of one instrument over one trading day."""

    day: int
    season: str
    symbol: str
    regime: str
    open: float
    close: float
    target: float
    fundamental: float
    futures_quote: float
    impact: float
    breaker_tripped: bool
    gap: float
    flow_volume: int
    flow_vwap: float
