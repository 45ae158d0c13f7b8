"""
News templates, realised news events, the news ledger and the scheduler.

Templates are static configuration. The scheduler is the single writer of
the NewsLedger: each simulated day it rolls the eligible templates and
appends realised NewsEvents. Engines only read the ledger.
"""

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Iterable, Iterator

from pricing.commodity import Commodity, Season, day_of_season, hhmm_to_minutes, minutes_to_hhmm
from pricing.digestion import digestion_factor, is_within_window
from pricing.random_provider import RandomProvider

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Morning weight multiplier by severity
SEVERITY_MORNING_BIAS = {
    Severity.LOW: 0.8,
    Severity.MEDIUM: 1.0,
    Severity.HIGH: 1.5,
    Severity.CRITICAL: 2.0,
}

# (start HHMM, end HHMM, base weight)
TRIGGER_PERIODS = {
    "morning": (600, 1150, 1.5),
    "afternoon": (1200, 1750, 1.2),
    "evening": (1800, 2150, 0.5),
    "night": (2200, 2550, 0.2),
}


@dataclass(frozen=True)
class FollowUp:
    news_id: str
    delay_days: int = 1
    probability: float = 1.0


@dataclass(frozen=True)
class NewsTemplate:
    """
    Configured news item that may fire during a season.

    trigger_day_range is inclusive and expressed in days of the season.
    A None trigger_season means any season; a None trigger_time means the
    scheduler draws a time of day.
    """

    news_id: str
    title: str = ""
    severity: Severity = Severity.MEDIUM
    news_type: str = "market"
    demand_delta: float = 0.0
    supply_delta: float = 0.0
    volatility_delta: float = 0.0
    is_permanent: bool = False
    affected_items: tuple[str, ...] = ()
    affected_categories: tuple[str, ...] = ()
    is_global: bool = False
    trigger_season: Season | None = None
    trigger_day_range: tuple[int, int] = (1, 28)
    trigger_time: int | None = None
    duration_days: int = 7
    probability: float = 1.0
    prerequisites: tuple[str, ...] = ()
    random_impact_range: tuple[float, float] = (0.0, 0.0)
    follow_up: FollowUp | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.probability <= 1.0:
            raise ValueError(
                f"news '{self.news_id}': probability must be in [0, 1], got {self.probability}"
            )
        low, high = self.trigger_day_range
        if low > high:
            raise ValueError(f"news '{self.news_id}': empty trigger_day_range {self.trigger_day_range}")


@dataclass
class NewsEvent:
    """A news item that has been released into the market."""

    news_id: str
    title: str
    severity: Severity
    news_type: str
    demand_delta: float
    supply_delta: float
    volatility_delta: float
    duration_days: int
    is_permanent: bool
    trigger_day: int
    trigger_time: int
    affected_items: tuple[str, ...] = ()
    affected_categories: tuple[str, ...] = ()
    is_global: bool = False
    active: bool = True

    def applies_to(self, commodity: Commodity) -> bool:
        return (
            self.is_global
            or commodity.symbol in self.affected_items
            or commodity.category in self.affected_categories
        )

    def is_visible(self, day: int, time_of_day: int | None = None) -> bool:
        """True once the news is public at (day, time_of_day)."""
        if self.trigger_day != day or time_of_day is None:
            return self.trigger_day <= day
        return self.trigger_time <= time_of_day

    def digestion(self, day: int) -> float:
        return digestion_factor(day, self.trigger_day, self.duration_days, self.is_permanent)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["severity"] = self.severity.value
        data["affected_items"] = list(self.affected_items)
        data["affected_categories"] = list(self.affected_categories)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NewsEvent":
        fields = dict(data)
        fields["severity"] = Severity(fields["severity"])
        fields["affected_items"] = tuple(fields.get("affected_items", ()))
        fields["affected_categories"] = tuple(fields.get("affected_categories", ()))
        return cls(**fields)


class NewsLedger:
    """Released news, owned by the orchestrator. Only the scheduler appends."""

    def __init__(self, events: Iterable[NewsEvent] = ()):
        self._events: list[NewsEvent] = list(events)

    def add(self, event: NewsEvent) -> None:
        self._events.append(event)

    def __iter__(self) -> Iterator[NewsEvent]:
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def affecting(
        self,
        commodity: Commodity,
        day: int | None = None,
        time_of_day: int | None = None,
    ) -> list[NewsEvent]:
        """News relevant to a commodity, optionally only those public at (day, time)."""
        events = [e for e in self._events if e.applies_to(commodity)]
        if day is not None:
            events = [e for e in events if e.is_visible(day, time_of_day)]
        return events

    def update_active(self, day: int) -> None:
        for event in self._events:
            event.active = is_within_window(
                day, event.trigger_day, event.duration_days, event.is_permanent
            )

    def prune_expired(self, day: int) -> int:
        """Drop temporary news whose 2L window has fully passed. Returns count removed."""
        kept = [
            e for e in self._events
            if e.is_permanent or e.trigger_day > day
            or is_within_window(day, e.trigger_day, e.duration_days, False)
        ]
        removed = len(self._events) - len(kept)
        self._events = kept
        return removed

    def clear(self) -> None:
        self._events.clear()

    def to_list(self) -> list[dict[str, Any]]:
        return [e.to_dict() for e in self._events]

    @classmethod
    def from_list(cls, items: Iterable[dict[str, Any]]) -> "NewsLedger":
        return cls(NewsEvent.from_dict(item) for item in items)


class NewsScheduler:
    """
    Decides which configured news fire on each day.

    Each template fires at most once per season. A template is eligible when
    the season matches, the day of season is inside its range and all of
    its prerequisites have already fired this season; it then fires with
    its configured probability. Follow-ups are queued at trigger time and
    roll their own probability when due.

    Args:
        templates: Configured news, evaluated in the given order
        rng: Shared random provider
    """

    def __init__(self, templates: Iterable[NewsTemplate], rng: RandomProvider):
        self.templates = list(templates)
        self._by_id = {t.news_id: t for t in self.templates}
        self.rng = rng
        self.triggered: list[str] = []
        self.pending_follow_ups: list[tuple[int, str, float]] = []

    def reset(self) -> None:
        """Start a new season: every template becomes eligible again."""
        self.triggered = []
        self.pending_follow_ups = []

    def advance(self, day: int, season: Season, ledger: NewsLedger) -> list[NewsEvent]:
        """Fire due follow-ups and eligible templates for `day`. Returns the new events."""
        released: list[NewsEvent] = []

        due = [f for f in self.pending_follow_ups if f[0] <= day]
        self.pending_follow_ups = [f for f in self.pending_follow_ups if f[0] > day]
        for _, news_id, probability in due:
            template = self._by_id.get(news_id)
            if template is None:
                logger.warning(f"Follow-up news '{news_id}' is not configured, skipping")
                continue
            if news_id in self.triggered:
                continue
            if not self.rng.bernoulli(probability):
                continue
            released.append(self._release(template, day, ledger))

        season_day = day_of_season(day)
        for template in self.templates:
            if template.news_id in self.triggered:
                continue
            if template.trigger_season is not None and template.trigger_season != season:
                continue
            low, high = template.trigger_day_range
            if not low <= season_day <= high:
                continue
            if any(p not in self.triggered for p in template.prerequisites):
                continue
            if not self.rng.bernoulli(template.probability):
                continue
            released.append(self._release(template, day, ledger))

        return released

    def _release(self, template: NewsTemplate, day: int, ledger: NewsLedger) -> NewsEvent:
        scale = 1.0
        low, high = template.random_impact_range
        if high > low:
            scale += self.rng.uniform(low, high)

        if template.trigger_time is not None:
            trigger_time = template.trigger_time
        else:
            trigger_time = self.draw_trigger_time(template.severity)

        event = NewsEvent(
            news_id=template.news_id,
            title=template.title,
            severity=template.severity,
            news_type=template.news_type,
            demand_delta=template.demand_delta * scale,
            supply_delta=template.supply_delta * scale,
            volatility_delta=template.volatility_delta,
            duration_days=template.duration_days,
            is_permanent=template.is_permanent,
            trigger_day=day,
            trigger_time=trigger_time,
            affected_items=template.affected_items,
            affected_categories=template.affected_categories,
            is_global=template.is_global,
        )
        ledger.add(event)
        self.triggered.append(template.news_id)

        if template.follow_up is not None:
            follow = template.follow_up
            self.pending_follow_ups.append(
                (day + max(1, follow.delay_days), follow.news_id, follow.probability)
            )

        logger.info(
            f"News '{template.news_id}' released on day {day} at {trigger_time:04d} "
            f"(demand {event.demand_delta:+.0f}, supply {event.supply_delta:+.0f})"
        )
        return event

    def draw_trigger_time(self, severity: Severity) -> int:
        """Severity-weighted time of day in 10-minute steps (HHMM)."""
        names = list(TRIGGER_PERIODS)
        weights = []
        for name in names:
            weight = TRIGGER_PERIODS[name][2]
            if name == "morning":
                weight *= SEVERITY_MORNING_BIAS[severity]
            elif severity is Severity.CRITICAL and name == "evening":
                weight *= 0.5
            elif severity is Severity.CRITICAL and name == "night":
                weight *= 0.1
            weights.append(weight)

        start, end, _ = TRIGGER_PERIODS[self.rng.choice(names, weights)]
        first = hhmm_to_minutes(start)
        slots = (hhmm_to_minutes(end) - first) // 10 + 1
        return minutes_to_hhmm(first + 10 * self.rng.integers(0, slots))

    def get_state(self) -> dict[str, Any]:
        return {
            "triggered": list(self.triggered),
            "pending_follow_ups": [list(f) for f in self.pending_follow_ups],
        }

    def set_state(self, state: dict[str, Any]) -> None:
        self.triggered = list(state.get("triggered", []))
        self.pending_follow_ups = [
            (int(d), str(n), float(p)) for d, n, p in state.get("pending_follow_ups", [])
        ]
