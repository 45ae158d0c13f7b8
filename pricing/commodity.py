"""
Commodity reference data, the seasonal calendar and tradable instruments.

Commodities are immutable records loaded once per season. Instruments are a
tagged variant over commodities: a spot instrument quotes the commodity
itself, a futures instrument adds a delivery day (and therefore a maturity
and a carry cost).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping

logger = logging.getLogger(__name__)

DAYS_PER_SEASON = 28


class Season(str, Enum):
    SPRING = "spring"
    SUMMER = "summer"
    FALL = "fall"
    WINTER = "winter"

    @property
    def code(self) -> str:
        """Three-letter code used in contract symbols."""
        return _SEASON_CODES[self]

    def next(self) -> "Season":
        members = list(Season)
        return members[(members.index(self) + 1) % len(members)]

    @classmethod
    def parse(cls, value: "str | Season") -> "Season":
        if isinstance(value, Season):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown season '{value}'. Valid: {valid}") from None


_SEASON_CODES = {
    Season.SPRING: "SPR",
    Season.SUMMER: "SUM",
    Season.FALL: "FAL",
    Season.WINTER: "WIN",
}


def season_for_day(day: int, start: Season = Season.SPRING) -> Season:
    """Season of an absolute simulation day (day 1 is the first day of `start`)."""
    members = list(Season)
    offset = (day - 1) // DAYS_PER_SEASON
    return members[(members.index(start) + offset) % len(members)]


def day_of_season(day: int) -> int:
    """1-based day within the season of an absolute simulation day."""
    return (day - 1) % DAYS_PER_SEASON + 1


# =============================================================================
# Commodities
# =============================================================================


@dataclass(frozen=True)
class Commodity:
    """
    Static reference data for one commodity.

    Attributes:
        symbol: Lower-case identifier (e.g. "parsnip")
        name: Display name
        category: Item category used by category-scoped news
        base_price: Price when demand equals supply, in season
        base_demand: Demand before news
        base_supply: Supply before news
        growth_seasons: Seasons in which the commodity is in season
        off_season_multiplier: Price multiplier outside the growth seasons
        greenhouse: In season all year when True
        base_volatility: Daily log volatility of the target process
        intraday_volatility: Tick volatility as a fraction of the open price
        momentum_factor: Weight of yesterday's return in today's draw
        volatility_clustering: Persistence of the volatility state (0-1)
        jump_probability: Daily probability of a price jump
        jump_magnitude: Log size of a jump
        liquidity_sensitivity: Price impact per unit of player flow
    """

    symbol: str
    name: str
    category: str = "crop"
    base_price: float = 100.0
    base_demand: float = 10000.0
    base_supply: float = 10000.0
    growth_seasons: tuple[Season, ...] = ()
    off_season_multiplier: float = 2.5
    greenhouse: bool = False
    base_volatility: float = 0.02
    intraday_volatility: float = 0.002
    momentum_factor: float = 0.3
    volatility_clustering: float = 0.6
    jump_probability: float = 0.01
    jump_magnitude: float = 0.03
    liquidity_sensitivity: float = 0.01

    def __post_init__(self) -> None:
        if self.base_price <= 0:
            raise ValueError(f"{self.symbol}: base_price must be > 0, got {self.base_price}")
        if self.liquidity_sensitivity <= 0:
            raise ValueError(
                f"{self.symbol}: liquidity_sensitivity must be > 0, "
                f"got {self.liquidity_sensitivity}"
            )
        if not 0.0 <= self.volatility_clustering < 1.0:
            raise ValueError(
                f"{self.symbol}: volatility_clustering must be in [0, 1), "
                f"got {self.volatility_clustering}"
            )
        if not 0.0 <= self.jump_probability <= 1.0:
            raise ValueError(
                f"{self.symbol}: jump_probability must be in [0, 1], "
                f"got {self.jump_probability}"
            )
        if self.base_volatility < 0 or self.intraday_volatility < 0:
            raise ValueError(f"{self.symbol}: volatilities must be >= 0")

    def in_season(self, season: Season) -> bool:
        return self.greenhouse or not self.growth_seasons or season in self.growth_seasons

    @classmethod
    def fallback(cls, symbol: str, base_price: float = 100.0) -> "Commodity":
        """Flat-price default used when a symbol has no configuration."""
        return cls(
            symbol=symbol,
            name=symbol.title(),
            base_price=base_price,
            greenhouse=True,
            base_volatility=0.0,
            intraday_volatility=0.0,
            momentum_factor=0.0,
            volatility_clustering=0.0,
            jump_probability=0.0,
            jump_magnitude=0.0,
        )


class CommodityCatalog:
    """Symbol -> Commodity lookup that degrades to a flat default."""

    def __init__(self, commodities: Iterable[Commodity] = (), fallback_price: float = 100.0):
        self._items: dict[str, Commodity] = {}
        self.fallback_price = fallback_price
        for commodity in commodities:
            self.add(commodity)

    def add(self, commodity: Commodity) -> None:
        self._items[commodity.symbol.lower()] = commodity

    def get(self, symbol: str) -> Commodity:
        key = symbol.lower()
        commodity = self._items.get(key)
        if commodity is None:
            logger.warning(
                f"No commodity config for '{symbol}', using flat default "
                f"(price {self.fallback_price})"
            )
            commodity = Commodity.fallback(key, self.fallback_price)
            self._items[key] = commodity
        return commodity

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and symbol.lower() in self._items

    def __iter__(self):
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    @property
    def symbols(self) -> list[str]:
        return list(self._items)


# =============================================================================
# Instruments
# =============================================================================


class InstrumentKind(str, Enum):
    SPOT = "spot"
    FUTURES = "futures"


@dataclass(frozen=True)
class Instrument:
    """
    A tradable contract on a commodity.

    Spot instruments have no maturity; their horizon is the rest of the
    current season. Futures deliver on an absolute simulation day.
    """

    symbol: str
    commodity: str
    kind: InstrumentKind = InstrumentKind.SPOT
    delivery_day: int | None = field(default=None)

    def __post_init__(self) -> None:
        if self.kind is InstrumentKind.FUTURES and self.delivery_day is None:
            raise ValueError(f"Futures contract {self.symbol} needs a delivery_day")

    @property
    def has_maturity(self) -> bool:
        return self.kind is InstrumentKind.FUTURES

    @property
    def has_carry_cost(self) -> bool:
        return self.kind is InstrumentKind.FUTURES

    def days_to_maturity(self, day: int) -> int:
        """Simulated days until delivery (futures) or season end (spot), never negative."""
        if self.has_maturity:
            return max(0, self.delivery_day - day)
        return DAYS_PER_SEASON - day_of_season(day)

    @classmethod
    def spot(cls, commodity: str) -> "Instrument":
        return cls(symbol=commodity.upper(), commodity=commodity.lower())

    @classmethod
    def futures(
        cls,
        commodity: str,
        delivery_day: int,
        start_season: Season = Season.SPRING,
    ) -> "Instrument":
        """Futures contract delivering on absolute day `delivery_day`, e.g. PARSNIP-SPR-28."""
        if delivery_day < 1:
            raise ValueError(f"delivery_day must be >= 1, got {delivery_day}")
        season = season_for_day(delivery_day, start_season)
        symbol = f"{commodity.upper()}-{season.code}-{day_of_season(delivery_day):02d}"
        return cls(
            symbol=symbol,
            commodity=commodity.lower(),
            kind=InstrumentKind.FUTURES,
            delivery_day=delivery_day,
        )


def parse_seasons(values: Iterable[str | Season]) -> tuple[Season, ...]:
    return tuple(Season.parse(v) for v in values)


def commodity_from_mapping(symbol: str, data: Mapping) -> Commodity:
    """Build a Commodity from a plain mapping (one YAML entry)."""
    fields = dict(data)
    fields["growth_seasons"] = parse_seasons(fields.get("growth_seasons", ()))
    fields.setdefault("name", symbol.title())
    return Commodity(symbol=symbol.lower(), **fields)


# =============================================================================
# Time of day (HHMM, may run past midnight up to 2600)
# =============================================================================


def hhmm_to_minutes(hhmm: int) -> int:
    return (hhmm // 100) * 60 + hhmm % 100


def minutes_to_hhmm(minutes: int) -> int:
    return (minutes // 60) * 100 + minutes % 60
