# tests/unit/pricing/test_news.py
"""Tests for the news ledger and the news scheduler."""

import pytest

from pricing.commodity import Commodity, Season
from pricing.news import (
    FollowUp,
    NewsEvent,
    NewsLedger,
    NewsScheduler,
    NewsTemplate,
    Severity,
)
from pricing.random_provider import RandomProvider


def template(news_id="rain", **kwargs):
    defaults = dict(
        title=news_id,
        supply_delta=1000.0,
        affected_items=("parsnip",),
        trigger_day_range=(1, 28),
        duration_days=3,
        probability=1.0,
        trigger_time=800,
    )
    defaults.update(kwargs)
    return NewsTemplate(news_id=news_id, **defaults)


class TestNewsTemplate:
    def test_probability_bounds(self):
        with pytest.raises(ValueError, match="probability"):
            template(probability=1.5)

    def test_day_range_must_not_be_empty(self):
        with pytest.raises(ValueError, match="trigger_day_range"):
            template(trigger_day_range=(10, 5))


class TestNewsScheduler:
    """Trigger rules: season, day range, prerequisites, probability, once per season."""

    def test_fires_once_per_season(self, rng):
        scheduler = NewsScheduler([template()], rng)
        ledger = NewsLedger()
        assert len(scheduler.advance(1, Season.SPRING, ledger)) == 1
        assert scheduler.advance(2, Season.SPRING, ledger) == []
        assert len(ledger) == 1

        event = next(iter(ledger))
        assert event.trigger_day == 1
        assert event.trigger_time == 800
        assert event.supply_delta == 1000.0

    def test_reset_makes_templates_eligible_again(self, rng):
        scheduler = NewsScheduler([template()], rng)
        ledger = NewsLedger()
        scheduler.advance(1, Season.SPRING, ledger)
        scheduler.reset()
        assert len(scheduler.advance(29, Season.SUMMER, ledger)) == 1

    def test_season_filter(self, rng):
        scheduler = NewsScheduler([template(trigger_season=Season.SUMMER)], rng)
        ledger = NewsLedger()
        assert scheduler.advance(1, Season.SPRING, ledger) == []
        assert len(scheduler.advance(29, Season.SUMMER, ledger)) == 1

    def test_day_range_uses_day_of_season(self, rng):
        scheduler = NewsScheduler([template(trigger_day_range=(3, 4))], rng)
        ledger = NewsLedger()
        assert scheduler.advance(2, Season.SPRING, ledger) == []
        assert len(scheduler.advance(3, Season.SPRING, ledger)) == 1

    def test_prerequisites(self, rng):
        scheduler = NewsScheduler(
            [template("second", prerequisites=("first",)), template("first", trigger_day_range=(2, 28))],
            rng,
        )
        ledger = NewsLedger()
        assert scheduler.advance(1, Season.SPRING, ledger) == []
        # "first" fires on day 2 after "second" has been checked, so "second" waits a day
        assert [e.news_id for e in scheduler.advance(2, Season.SPRING, ledger)] == ["first"]
        assert [e.news_id for e in scheduler.advance(3, Season.SPRING, ledger)] == ["second"]

    def test_zero_probability_never_fires(self, rng):
        scheduler = NewsScheduler([template(probability=0.0)], rng)
        ledger = NewsLedger()
        for day in range(1, 29):
            scheduler.advance(day, Season.SPRING, ledger)
        assert len(ledger) == 0

    def test_follow_up(self, rng):
        templates = [
            template("outbreak", follow_up=FollowUp("spread", delay_days=2, probability=1.0)),
            template("spread", trigger_day_range=(29, 29)),
        ]
        scheduler = NewsScheduler(templates, rng)
        ledger = NewsLedger()
        scheduler.advance(1, Season.SPRING, ledger)
        assert scheduler.advance(2, Season.SPRING, ledger) == []
        released = scheduler.advance(3, Season.SPRING, ledger)
        assert [e.news_id for e in released] == ["spread"]
        assert released[0].trigger_day == 3

    def test_random_impact_range_scales_deltas(self, rng):
        scheduler = NewsScheduler([template(random_impact_range=(0.5, 0.6))], rng)
        ledger = NewsLedger()
        event = scheduler.advance(1, Season.SPRING, ledger)[0]
        assert 1500.0 <= event.supply_delta <= 1600.0

    def test_drawn_trigger_time_is_on_ten_minute_grid(self):
        scheduler = NewsScheduler([], RandomProvider(3))
        for severity in Severity:
            for _ in range(50):
                time = scheduler.draw_trigger_time(severity)
                assert 600 <= time <= 2550
                assert time % 10 == 0
                assert time % 100 < 60

    def test_critical_news_favours_morning(self):
        scheduler = NewsScheduler([], RandomProvider(11))
        times = [scheduler.draw_trigger_time(Severity.CRITICAL) for _ in range(400)]
        morning = sum(1 for t in times if t < 1200)
        night = sum(1 for t in times if t >= 2200)
        assert morning > night

    def test_same_seed_same_schedule(self):
        templates = [template(f"n{i}", probability=0.3, trigger_time=None) for i in range(10)]
        runs = []
        for _ in range(2):
            scheduler = NewsScheduler(templates, RandomProvider(42))
            ledger = NewsLedger()
            for day in range(1, 29):
                scheduler.advance(day, Season.SPRING, ledger)
            runs.append(ledger.to_list())
        assert runs[0] == runs[1]

    def test_state_round_trip(self, rng):
        scheduler = NewsScheduler(
            [template("a", follow_up=FollowUp("b", delay_days=5)), template("b", trigger_day_range=(29, 29))],
            rng,
        )
        scheduler.advance(1, Season.SPRING, NewsLedger())
        restored = NewsScheduler(scheduler.templates, rng)
        restored.set_state(scheduler.get_state())
        assert restored.triggered == ["a"]
        assert restored.pending_follow_ups == [(6, "b", 1.0)]


class TestNewsLedger:
    def make_event(self, news_id, day, duration=2, permanent=False):
        return NewsEvent(
            news_id=news_id, title=news_id, severity=Severity.LOW, news_type="t",
            demand_delta=0.0, supply_delta=100.0, volatility_delta=0.0,
            duration_days=duration, is_permanent=permanent,
            trigger_day=day, trigger_time=600, is_global=True,
        )

    def test_update_active(self):
        ledger = NewsLedger([self.make_event("a", 1), self.make_event("b", 1, permanent=True)])
        ledger.update_active(5)
        active = {e.news_id: e.active for e in ledger}
        assert active == {"a": False, "b": True}

    def test_prune_expired_keeps_permanent_and_live(self):
        ledger = NewsLedger([
            self.make_event("old", 1),
            self.make_event("live", 4),
            self.make_event("forever", 1, permanent=True),
        ])
        assert ledger.prune_expired(5) == 1
        assert [e.news_id for e in ledger] == ["live", "forever"]

    def test_global_news_affects_everything(self):
        ledger = NewsLedger([self.make_event("g", 1)])
        assert len(ledger.affecting(Commodity("melon", "Melon"))) == 1

    def test_serialisation(self):
        ledger = NewsLedger([self.make_event("a", 3)])
        restored = NewsLedger.from_list(ledger.to_list())
        assert [e.to_dict() for e in restored] == ledger.to_list()
