"""
Fundamental value engine.

    S = base_price * seasonal_multiplier * (total_demand / total_supply)

where each total is the base quantity plus the digested news deltas,
floored at `min_quantity` so a run of bad news can never divide by zero.
"""

from typing import Iterable

from pricing.commodity import Commodity, Season
from pricing.news import NewsEvent, NewsLedger


class FundamentalValueEngine:
    """
    Supply/demand implied fair value of a commodity.

    Args:
        min_quantity: Floor applied to total demand and total supply
    """

    def __init__(self, min_quantity: float = 100.0):
        if min_quantity <= 0:
            raise ValueError(f"min_quantity must be > 0, got {min_quantity}")
        self.min_quantity = min_quantity

    def seasonal_multiplier(self, commodity: Commodity, season: Season) -> float:
        if commodity.in_season(season):
            return 1.0
        return commodity.off_season_multiplier

    def totals(
        self,
        commodity: Commodity,
        news: Iterable[NewsEvent],
        day: int,
    ) -> tuple[float, float]:
        """(total_demand, total_supply) on `day` with news weighted by digestion."""
        demand = commodity.base_demand
        supply = commodity.base_supply
        for event in news:
            weight = event.digestion(day)
            if weight <= 0.0:
                continue
            demand += event.demand_delta * weight
            supply += event.supply_delta * weight
        return max(self.min_quantity, demand), max(self.min_quantity, supply)

    def value(
        self,
        commodity: Commodity,
        season: Season,
        ledger: NewsLedger,
        day: int,
        time_of_day: int | None = None,
    ) -> float:
        """
        Fundamental value S on `day`.

        Only news already public at (day, time_of_day) contribute; with no
        time given, every news released up to and including `day` counts.
        """
        news = ledger.affecting(commodity, day, time_of_day)
        demand, supply = self.totals(commodity, news, day)
        return commodity.base_price * self.seasonal_multiplier(commodity, season) * demand / supply

    def expected_value(
        self,
        commodity: Commodity,
        season: Season,
        ledger: NewsLedger,
        day: int,
    ) -> float:
        """Value once every public news is fully priced in (digestion ignored)."""
        demand = commodity.base_demand
        supply = commodity.base_supply
        for event in ledger.affecting(commodity, day):
            if event.is_permanent or event.active:
                demand += event.demand_delta
                supply += event.supply_delta
        demand = max(self.min_quantity, demand)
        supply = max(self.min_quantity, supply)
        return commodity.base_price * self.seasonal_multiplier(commodity, season) * demand / supply

    def volatility_modifier(
        self,
        commodity: Commodity,
        ledger: NewsLedger,
        day: int,
    ) -> float:
        """Extra daily volatility from news, weighted by digestion."""
        return sum(
            event.volatility_delta * event.digestion(day)
            for event in ledger.affecting(commodity, day)
        )
