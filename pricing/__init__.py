"""
pricing - Fundamental value and price processes

This package turns commodity reference data and scheduled news into
fundamental values, day-level targets and tick-level prices.

Modules:
    random_provider: Seeded source of all randomness
    digestion: Time-decaying weight of a news item
    commodity: Commodity reference data, seasons and tradable instruments
    news: News templates, realised events, the news ledger and scheduler
    fundamental: Supply/demand implied fair value
    gbm: Day-level mean-reverting target process
    bridge: Tick-level bridge toward the day target
    cost_of_carry: Spot <-> futures conversion
    config_loader: YAML loading of commodity and news reference data
"""

__version__ = "2.0.0"
