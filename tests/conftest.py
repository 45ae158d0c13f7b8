# tests/conftest.py
"""Shared fixtures for the test suite."""

import pytest

from pricing.commodity import Commodity, CommodityCatalog, Season
from pricing.random_provider import RandomProvider


@pytest.fixture
def seed():
    """Fixed seed for reproducibility."""
    return 42


@pytest.fixture
def rng(seed):
    """Shared random provider with fixed seed."""
    return RandomProvider(seed)


@pytest.fixture
def flat_commodity():
    """In-season commodity priced at 100 with balanced demand and supply."""
    return Commodity(
        symbol="parsnip",
        name="Parsnip",
        category="vegetable",
        base_price=100.0,
        base_demand=10000.0,
        base_supply=10000.0,
        growth_seasons=(Season.SPRING,),
        off_season_multiplier=2.5,
    )


@pytest.fixture
def catalog(flat_commodity):
    """Catalog with the flat parsnip and a summer melon."""
    melon = Commodity(
        symbol="melon",
        name="Melon",
        category="fruit",
        base_price=250.0,
        growth_seasons=(Season.SUMMER,),
        liquidity_sensitivity=0.08,
    )
    return CommodityCatalog([flat_commodity, melon])
