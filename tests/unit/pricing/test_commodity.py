# tests/unit/pricing/test_commodity.py
"""Tests for seasons, the commodity catalog and instruments."""

import logging

import pytest

from pricing.commodity import (
    Commodity,
    CommodityCatalog,
    Instrument,
    InstrumentKind,
    Season,
    day_of_season,
    hhmm_to_minutes,
    minutes_to_hhmm,
    season_for_day,
)


class TestCalendar:
    def test_season_for_day(self):
        assert season_for_day(1) is Season.SPRING
        assert season_for_day(28) is Season.SPRING
        assert season_for_day(29) is Season.SUMMER
        assert season_for_day(113) is Season.SPRING
        assert season_for_day(1, Season.WINTER) is Season.WINTER
        assert season_for_day(29, Season.WINTER) is Season.SPRING

    def test_day_of_season(self):
        assert day_of_season(1) == 1
        assert day_of_season(28) == 28
        assert day_of_season(29) == 1

    def test_season_parse(self):
        assert Season.parse("Summer") is Season.SUMMER
        with pytest.raises(ValueError, match="Unknown season"):
            Season.parse("monsoon")

    def test_hhmm_conversion(self):
        assert hhmm_to_minutes(630) == 390
        assert minutes_to_hhmm(390) == 630
        assert minutes_to_hhmm(hhmm_to_minutes(2550)) == 2550


class TestCommodity:
    def test_validation(self):
        with pytest.raises(ValueError, match="base_price"):
            Commodity("x", "X", base_price=0)
        with pytest.raises(ValueError, match="liquidity_sensitivity"):
            Commodity("x", "X", liquidity_sensitivity=0)

    def test_fallback_is_flat(self):
        fallback = Commodity.fallback("mystery")
        assert fallback.base_volatility == 0.0
        assert fallback.intraday_volatility == 0.0
        assert fallback.jump_probability == 0.0
        assert fallback.in_season(Season.WINTER)


class TestCatalog:
    def test_lookup_is_case_insensitive(self, catalog):
        assert catalog.get("PARSNIP").symbol == "parsnip"
        assert "Melon" in catalog

    def test_missing_symbol_warns_and_falls_back(self, catalog, caplog):
        with caplog.at_level(logging.WARNING, logger="pricing.commodity"):
            commodity = catalog.get("starfruit")
        assert commodity.base_price == catalog.fallback_price
        assert "starfruit" in caplog.text

    def test_empty_catalog(self):
        catalog = CommodityCatalog()
        assert len(catalog) == 0
        assert catalog.get("anything").base_volatility == 0.0


class TestInstrument:
    def test_futures_symbol(self):
        contract = Instrument.futures("parsnip", 28)
        assert contract.symbol == "PARSNIP-SPR-28"
        assert contract.kind is InstrumentKind.FUTURES
        assert contract.has_maturity and contract.has_carry_cost

    def test_futures_symbol_in_later_season(self):
        assert Instrument.futures("melon", 56).symbol == "MELON-SUM-28"
        assert Instrument.futures("melon", 30).symbol == "MELON-SUM-02"

    def test_days_to_maturity_crosses_seasons(self):
        contract = Instrument.futures("melon", 56)
        assert contract.days_to_maturity(20) == 36
        assert contract.days_to_maturity(56) == 0
        assert contract.days_to_maturity(60) == 0

    def test_spot_horizon_is_rest_of_season(self):
        spot = Instrument.spot("parsnip")
        assert spot.symbol == "PARSNIP"
        assert not spot.has_maturity
        assert spot.days_to_maturity(1) == 27
        assert spot.days_to_maturity(28) == 0
        assert spot.days_to_maturity(29) == 27

    def test_futures_needs_delivery_day(self):
        with pytest.raises(ValueError):
            Instrument("X-SPR-01", "x", InstrumentKind.FUTURES)
        with pytest.raises(ValueError):
            Instrument.futures("x", 0)
