"""
Day-level target process.

A geometric, log-space mean-reverting process that pulls the price toward
the fundamental value S. Reversion strength grows as maturity approaches
(alpha = max(floor, 1/D)) and volatility shrinks with sqrt(D/T), so the
process lands exactly on S at D = 0. On top of the Gaussian shock it adds
volatility clustering, a momentum term and rare jumps.
"""

import math
from typing import Any

from pricing.commodity import DAYS_PER_SEASON, Commodity
from pricing.random_provider import RandomProvider

# Bounds of the clustered volatility state
MIN_VOLATILITY_STATE = 0.5
MAX_VOLATILITY_STATE = 2.5

# Reversion applied on the last day before maturity
FINAL_DAY_ALPHA = 0.9


class DailyPriceProcess:
    """
    Mean-reverting GBM producing one target price per simulated day.

    One instance per instrument: it carries the previous log return and the
    clustered volatility state from day to day.

    Args:
        rng: Shared random provider
        base_volatility: Daily log volatility
        momentum_factor: Weight of the previous log return
        volatility_clustering: Persistence of the volatility state in [0, 1)
        jump_probability: Daily probability of a jump
        jump_magnitude: Log size of a jump (sign is random)
        mean_reversion: Floor of the reversion strength alpha
        total_days: Horizon T used to scale volatility by sqrt(D/T)
        epsilon: Price floor
    """

    def __init__(
        self,
        rng: RandomProvider,
        base_volatility: float = 0.02,
        momentum_factor: float = 0.3,
        volatility_clustering: float = 0.6,
        jump_probability: float = 0.01,
        jump_magnitude: float = 0.03,
        mean_reversion: float = 0.15,
        total_days: int = DAYS_PER_SEASON,
        epsilon: float = 0.01,
    ):
        if base_volatility < 0:
            raise ValueError(f"base_volatility must be >= 0, got {base_volatility}")
        if not 0.0 < mean_reversion <= 1.0:
            raise ValueError(f"mean_reversion must be in (0, 1], got {mean_reversion}")
        if total_days < 1:
            raise ValueError(f"total_days must be >= 1, got {total_days}")
        if epsilon <= 0:
            raise ValueError(f"epsilon must be > 0, got {epsilon}")

        self.rng = rng
        self.base_volatility = base_volatility
        self.momentum_factor = momentum_factor
        self.volatility_clustering = volatility_clustering
        self.jump_probability = jump_probability
        self.jump_magnitude = jump_magnitude
        self.mean_reversion = mean_reversion
        self.total_days = total_days
        self.epsilon = epsilon

        self.last_return = 0.0
        self.volatility_state = 1.0

    @classmethod
    def for_commodity(cls, commodity: Commodity, rng: RandomProvider, **kwargs: Any) -> "DailyPriceProcess":
        return cls(
            rng,
            base_volatility=commodity.base_volatility,
            momentum_factor=commodity.momentum_factor,
            volatility_clustering=commodity.volatility_clustering,
            jump_probability=commodity.jump_probability,
            jump_magnitude=commodity.jump_magnitude,
            **kwargs,
        )

    def next_target(
        self,
        current: float,
        fundamental: float,
        days_to_maturity: int,
        volatility_modifier: float = 0.0,
    ) -> float:
        """
        Draw the next day-level target.

        Args:
            current: Current price P
            fundamental: Anchor S
            days_to_maturity: D; at D <= 0 the result is exactly S
            volatility_modifier: Additive volatility from news

        Returns:
            Next target price, floored at epsilon
        """
        if days_to_maturity <= 0:
            self.last_return = 0.0
            return fundamental

        log_current = math.log(max(self.epsilon, current))
        log_target = math.log(max(self.epsilon, fundamental))

        if days_to_maturity == 1:
            log_next = log_current + FINAL_DAY_ALPHA * (log_target - log_current)
            self.last_return = log_next - log_current
            return max(self.epsilon, math.exp(log_next))

        alpha = max(self.mean_reversion, 1.0 / days_to_maturity)

        if self.last_return != 0.0 and self.base_volatility > 0:
            clustered = (
                self.volatility_clustering * self.volatility_state
                + (1.0 - self.volatility_clustering) * abs(self.last_return) / self.base_volatility
            )
            self.volatility_state = min(MAX_VOLATILITY_STATE, max(MIN_VOLATILITY_STATE, clustered))

        horizon = min(1.0, days_to_maturity / self.total_days)
        sigma = max(0.0, self.base_volatility + volatility_modifier) * self.volatility_state * math.sqrt(horizon)

        shock = sigma * self.rng.gaussian()
        jump = 0.0
        if self.rng.uniform() < self.jump_probability:
            jump = self.jump_magnitude if self.rng.uniform() < 0.5 else -self.jump_magnitude

        log_next = (
            log_current
            + alpha * (log_target - log_current)
            + self.momentum_factor * self.last_return
            + shock
            + jump
        )
        self.last_return = log_next - log_current
        return max(self.epsilon, math.exp(log_next))

    def generate_path(self, start: float, fundamental: float, days: int) -> list[float]:
        """
        Offline path of `days` targets ending exactly on the fundamental.

        Does not disturb the live state of the process.
        """
        saved = (self.last_return, self.volatility_state)
        self.reset()
        path = []
        price = start
        for day in range(days):
            price = self.next_target(price, fundamental, days - day - 1)
            path.append(price)
        if path:
            path[-1] = fundamental
        self.last_return, self.volatility_state = saved
        return path

    def reset(self) -> None:
        self.last_return = 0.0
        self.volatility_state = 1.0

    def get_state(self) -> dict[str, float]:
        return {"last_return": self.last_return, "volatility_state": self.volatility_state}

    def set_state(self, state: dict[str, float]) -> None:
        self.last_return = float(state["last_return"])
        self.volatility_state = float(state["volatility_state"])
