"""
Time source for the orchestrator.

The market never reads wall-clock time. Whatever drives it (the season
runner, a game host) exposes the TimeSource protocol; SimulationClock is
the in-process implementation.
"""

from typing import Protocol

from pricing.commodity import hhmm_to_minutes, minutes_to_hhmm


class TimeSource(Protocol):
    @property
    def day(self) -> int: ...

    @property
    def tick(self) -> int: ...

    @property
    def ticks_per_day(self) -> int: ...

    @property
    def ticks_remaining(self) -> int: ...

    @property
    def elapsed_ratio(self) -> float: ...

    @property
    def is_market_open(self) -> bool: ...

    @property
    def is_paused(self) -> bool: ...

    @property
    def time_of_day(self) -> int: ...


class SimulationClock:
    """
    Tick counter for a trading day between opening_time and closing_time.

    `tick` is the number of ticks already taken today; the runner calls
    advance() and then hands the clock to Market.tick. After the last tick
    `ticks_remaining` is 0.

    Args:
        ticks_per_day: Number of ticks in a trading day
        opening_time: Opening time, HHMM
        closing_time: Closing time, HHMM (may exceed 2400)
    """

    def __init__(self, ticks_per_day: int = 120, opening_time: int = 600, closing_time: int = 2600):
        if ticks_per_day < 1:
            raise ValueError(f"ticks_per_day must be >= 1, got {ticks_per_day}")
        if closing_time <= opening_time:
            raise ValueError(
                f"closing_time ({closing_time}) must be after opening_time ({opening_time})"
            )
        self._ticks_per_day = ticks_per_day
        self.opening_time = opening_time
        self.closing_time = closing_time
        self._day = 0
        self._tick = 0
        self._open = False
        self._paused = False

    @property
    def day(self) -> int:
        return self._day

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def ticks_per_day(self) -> int:
        return self._ticks_per_day

    @property
    def ticks_remaining(self) -> int:
        return self._ticks_per_day - self._tick

    @property
    def elapsed_ratio(self) -> float:
        return self._tick / self._ticks_per_day

    @property
    def is_market_open(self) -> bool:
        return self._open

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def time_of_day(self) -> int:
        """Current time as HHMM, linear in ticks between open and close."""
        start = hhmm_to_minutes(self.opening_time)
        span = hhmm_to_minutes(self.closing_time) - start
        return minutes_to_hhmm(start + int(span * self.elapsed_ratio))

    def start_day(self, day: int) -> None:
        self._day = day
        self._tick = 0
        self._open = True

    def advance(self) -> bool:
        """Move to the next tick. Returns False once the day is over."""
        if not self._open or self._tick >= self._ticks_per_day:
            self._open = False
            return False
        self._tick += 1
        return True

    def close(self) -> None:
        self._open = False

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False
