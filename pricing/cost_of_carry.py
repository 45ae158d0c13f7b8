"""
Cost-of-carry futures pricing.

    F = S * exp((r + storage - convenience_yield) * D / DAYS_PER_YEAR)

A simulated year is four 28-day seasons.
"""

import math
from enum import Enum

from pricing.commodity import DAYS_PER_SEASON

DAYS_PER_YEAR = 4 * DAYS_PER_SEASON

# Convenience-yield boosts while holding the physical good is worth more
BIRTHDAY_BOOST = 0.10
BUNDLE_BOOST = 0.05
FESTIVAL_BOOST = 0.03


class MarketState(str, Enum):
    CONTANGO = "contango"
    BACKWARDATION = "backwardation"
    FLAT = "flat"


class FuturesPricer:
    """
    Converts between spot and futures prices.

    Args:
        risk_free_rate: Annualised risk-free rate r
        storage_cost: Annualised storage cost
        base_convenience_yield: Annualised convenience yield q before event boosts
        days_per_year: Trading days per simulated year
    """

    def __init__(
        self,
        risk_free_rate: float = 0.002,
        storage_cost: float = 0.005,
        base_convenience_yield: float = 0.001,
        days_per_year: int = DAYS_PER_YEAR,
    ):
        if days_per_year <= 0:
            raise ValueError(f"days_per_year must be > 0, got {days_per_year}")
        self.risk_free_rate = risk_free_rate
        self.storage_cost = storage_cost
        self.base_convenience_yield = base_convenience_yield
        self.days_per_year = days_per_year

    def convenience_yield(
        self,
        birthday: bool = False,
        bundle: bool = False,
        festival: bool = False,
    ) -> float:
        """Base convenience yield plus event boosts."""
        q = self.base_convenience_yield
        if birthday:
            q += BIRTHDAY_BOOST
        if bundle:
            q += BUNDLE_BOOST
        if festival:
            q += FESTIVAL_BOOST
        return q

    def carry_factor(self, days_to_maturity: int, convenience_yield: float | None = None) -> float:
        if days_to_maturity <= 0:
            return 1.0
        q = self.base_convenience_yield if convenience_yield is None else convenience_yield
        rate = self.risk_free_rate + self.storage_cost - q
        return math.exp(rate * days_to_maturity / self.days_per_year)

    def futures_price(
        self,
        spot: float,
        days_to_maturity: int,
        convenience_yield: float | None = None,
    ) -> float:
        return spot * self.carry_factor(days_to_maturity, convenience_yield)

    def implied_spot(
        self,
        futures: float,
        days_to_maturity: int,
        convenience_yield: float | None = None,
    ) -> float:
        return futures / self.carry_factor(days_to_maturity, convenience_yield)

    @staticmethod
    def basis(futures: float, spot: float) -> float:
        return futures - spot

    def annualized_basis(self, futures: float, spot: float, days_to_maturity: int) -> float:
        """Basis as an annualised fraction of spot; 0 when undefined."""
        if days_to_maturity <= 0 or spot <= 0:
            return 0.0
        return (futures - spot) / spot * self.days_per_year / days_to_maturity

    @staticmethod
    def market_state(futures: float, spot: float, tolerance: float = 1e-9) -> MarketState:
        if futures > spot + tolerance:
            return MarketState.CONTANGO
        if futures < spot - tolerance:
            return MarketState.BACKWARDATION
        return MarketState.FLAT
