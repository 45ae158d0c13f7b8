# tests/unit/exchange/test_event_logger.py
"""
Tests for JSONL event logging.
"""

import pytest

from exchange.clock import SimulationClock
from exchange.event_logger import EventLogger, load_events
from exchange.market import Market
from exchange.orders import Order, OrderType, Side
from pricing.commodity import Instrument
from pricing.news import NewsTemplate


@pytest.fixture
def log_path(tmp_path):
    return tmp_path / "logs" / "events.jsonl"


class TestEventLogger:
    def test_creates_parent_directory(self, log_path):
        with EventLogger(log_path):
            pass
        assert log_path.exists()

    def test_writes_typed_events(self, log_path):
        with EventLogger(log_path) as events:
            events.log_circuit_breaker(3, 115, "PARSNIP", 115.0, 25.0)
            events.log_news(3, "rain", "Spring rain", "medium", 800, 0.0, 1000.0)

        loaded = load_events(log_path)
        assert [e["event_type"] for e in loaded] == ["circuit_breaker", "news"]
        assert loaded[0]["gap"] == 25.0
        assert load_events(log_path, "news")[0]["news_id"] == "rain"

    def test_write_after_close_is_ignored(self, log_path):
        events = EventLogger(log_path)
        events.close()
        events.log_circuit_breaker(1, 1, "PARSNIP", 1.0, 1.0)
        assert load_events(log_path) == []


class TestMarketEvents:
    def test_market_emits_open_news_fill_and_close(self, catalog, log_path):
        rain = NewsTemplate(
            news_id="rain",
            supply_delta=1000.0,
            affected_items=("parsnip",),
            trigger_day_range=(1, 1),
            trigger_time=800,
        )
        clock = SimulationClock(ticks_per_day=5)
        with EventLogger(log_path) as events:
            market = Market([Instrument.spot("parsnip")], catalog, [rain], seed=7, event_logger=events)
            clock.start_day(1)
            market.open_day(1)
            market.submit_order(
                "PARSNIP",
                Order(side=Side.SELL, quantity=3, order_type=OrderType.MARKET, is_real=True, trader_id="farmer"),
            )
            while clock.advance():
                market.tick(clock)
            market.close_day()

        kinds = {e["event_type"] for e in load_events(log_path)}
        assert {"day_open", "news", "fill", "day_close"} <= kinds

        (fill,) = load_events(log_path, "fill")
        assert fill["trader_id"] == "farmer"
        assert fill["side"] == "sell"
        assert fill["quantity"] == 3
