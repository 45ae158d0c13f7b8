"""
Tick-level bridge from the day's open toward the day's target.

Each tick closes 1/n of the remaining distance (n = ticks left including
this one) and adds noise shaped by a volatility-smile envelope:

    psi(tau) = (1 + alpha * exp(-lambda * tau)) * sqrt(remaining / total)

The exponential term front-loads volatility right after the open; the
square root drives it to zero at the close, so the last tick lands on the
target exactly.
"""

import math

from pricing.random_provider import RandomProvider


class IntradayPriceProcess:
    """
    Brownian-bridge style intraday path.

    Args:
        rng: Shared random provider
        opening_shock: alpha, extra volatility right after the open
        shock_decay: lambda, how fast the opening shock fades
        epsilon: Price floor
    """

    def __init__(
        self,
        rng: RandomProvider,
        opening_shock: float = 2.0,
        shock_decay: float = 10.0,
        epsilon: float = 0.01,
    ):
        if opening_shock < 0:
            raise ValueError(f"opening_shock must be >= 0, got {opening_shock}")
        if shock_decay < 0:
            raise ValueError(f"shock_decay must be >= 0, got {shock_decay}")
        if epsilon <= 0:
            raise ValueError(f"epsilon must be > 0, got {epsilon}")
        self.rng = rng
        self.opening_shock = opening_shock
        self.shock_decay = shock_decay
        self.epsilon = epsilon

    def envelope(self, ticks_remaining: int, total_ticks: int) -> float:
        """Volatility-smile envelope psi after a step that leaves `ticks_remaining` ticks."""
        if total_ticks <= 0 or ticks_remaining <= 0:
            return 0.0
        remaining = min(ticks_remaining, total_ticks)
        tau = (total_ticks - remaining) / total_ticks
        smile = 1.0 + self.opening_shock * math.exp(-self.shock_decay * tau)
        return smile * math.sqrt(remaining / total_ticks)

    def step(
        self,
        current: float,
        target: float,
        ticks_remaining: int,
        total_ticks: int,
        sigma: float,
    ) -> float:
        """
        Advance one tick.

        Args:
            current: Price before this tick
            target: Day-level target
            ticks_remaining: Ticks left after this one (0 on the final tick)
            total_ticks: Ticks in the trading day
            sigma: Intraday volatility in price units

        Returns:
            The next price, floored at epsilon; the target itself on the final tick.
        """
        if ticks_remaining <= 0:
            return max(self.epsilon, target)

        gravity = (target - current) / (ticks_remaining + 1)
        noise = sigma * self.envelope(ticks_remaining, total_ticks) * self.rng.gaussian()
        return max(self.epsilon, current + gravity + noise)

    def path(self, open_price: float, target: float, total_ticks: int, sigma: float) -> list[float]:
        """Whole-day path, one price per tick, ending on the target."""
        prices = []
        price = open_price
        for tick in range(1, total_ticks + 1):
            price = self.step(price, target, total_ticks - tick, total_ticks, sigma)
            prices.append(price)
        return prices
