"""
Event Logger for post-hoc market replay.

Logs day opens, news releases, player fills, circuit-breaker trips and
day closes as JSONL, one event per line, for later analysis.
"""

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TextIO

from exchange.orders import Fill
from exchange.state import DayRecord


@dataclass
class DayOpenEvent:
    """An instrument's opening for a new day."""

    day: int
    symbol: str
    regime: str
    open_price: float
    target: float
    fundamental: float
    futures_quote: float
    gap_applied: float


@dataclass
class NewsReleaseEvent:
    """A news item entering the ledger."""

    day: int
    news_id: str
    title: str
    severity: str
    trigger_time: int
    demand_delta: float
    supply_delta: float


@dataclass
class FillEvent:
    """A fill involving a player order."""

    day: int
    tick: int
    symbol: str
    order_id: str
    trader_id: str | None
    side: str
    quantity: int
    price: float
    passive: bool


@dataclass
class CircuitBreakerEvent:
    """A circuit-breaker trip."""

    day: int
    tick: int
    symbol: str
    locked_target: float
    gap: float


_EVENT_TYPES = {
    DayOpenEvent: "day_open",
    NewsReleaseEvent: "news",
    FillEvent: "fill",
    CircuitBreakerEvent: "circuit_breaker",
    DayRecord: "day_close",
}


class EventLogger:
    """
    Logs market events to JSONL format.

    Usage:
        with EventLogger(Path("logs/season_events.jsonl")) as events:
            market = Market(..., event_logger=events)
            ...
    """

    def __init__(self, output_path: Path):
        """
        Initialize the event logger.

        Args:
            output_path: Path to write JSONL file
        """
        self.output_path = Path(output_path)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._file: TextIO | None = None
        self._open()

    def _open(self) -> None:
        """Open the output file for writing."""
        self._file = open(self.output_path, "w")

    def log_day_open(
        self,
        day: int,
        symbol: str,
        regime: str,
        open_price: float,
        target: float,
        fundamental: float,
        futures_quote: float,
        gap_applied: float,
    ) -> None:
        self._write_event(
            DayOpenEvent(
                day=day,
                symbol=symbol,
                regime=regime,
                open_price=open_price,
                target=target,
                fundamental=fundamental,
                futures_quote=futures_quote,
                gap_applied=gap_applied,
            )
        )

    def log_news(
        self,
        day: int,
        news_id: str,
        title: str,
        severity: str,
        trigger_time: int,
        demand_delta: float,
        supply_delta: float,
    ) -> None:
        self._write_event(
            NewsReleaseEvent(
                day=day,
                news_id=news_id,
                title=title,
                severity=severity,
                trigger_time=trigger_time,
                demand_delta=demand_delta,
                supply_delta=supply_delta,
            )
        )

    def log_fill(self, day: int, tick: int, fill: Fill) -> None:
        """Log a player fill."""
        self._write_event(
            FillEvent(
                day=day,
                tick=tick,
                symbol=fill.symbol,
                order_id=fill.order_id,
                trader_id=fill.trader_id,
                side=fill.side.value,
                quantity=fill.quantity,
                price=fill.price,
                passive=fill.passive,
            )
        )

    def log_circuit_breaker(
        self, day: int, tick: int, symbol: str, locked_target: float, gap: float
    ) -> None:
        self._write_event(
            CircuitBreakerEvent(
                day=day, tick=tick, symbol=symbol, locked_target=locked_target, gap=gap
            )
        )

    def log_day_close(self, record: DayRecord) -> None:
        self._write_event(record)

    def _write_event(self, event: object) -> None:
        """Write an event to the JSONL file."""
        if self._file is None:
            return

        data = asdict(event)
        data["event_type"] = _EVENT_TYPES[type(event)]
        self._file.write(json.dumps(data) + "\n")

    def flush(self) -> None:
        """Flush the output buffer."""
        if self._file:
            self._file.flush()

    def close(self) -> None:
        """Close the output file."""
        if self._file:
            self._file.close()
            self._file = None

    def __enter__(self) -> "EventLogger":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def load_events(log_path: Path, event_type: str | None = None) -> list[dict[str, object]]:
    """
    Load events from a JSONL file.

    Args:
        log_path: Path to the JSONL file
        event_type: Keep only events of this type

    Returns:
        List of event dictionaries
    """
    events = []
    with open(log_path) as f:
        for line in f:
            if line.strip():
                event = json.loads(line)
                if event_type is None or event["event_type"] == event_type:
                    events.append(event)
    return events
