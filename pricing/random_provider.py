"""
Single source of randomness for one simulation instance.

Every stochastic component (news scheduler, daily process, bridge, regime
scheduler) draws from the same provider so that a seed fixes the whole run.
"""

from typing import Any, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


class RandomProvider:
    """
    Thin wrapper around a numpy Generator with exportable state.

    Args:
        seed: Seed for np.random.default_rng (None = OS entropy)
    """

    def __init__(self, seed: int | None = None):
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def gaussian(self) -> float:
        """Standard normal draw."""
        return float(self._rng.standard_normal())

    def uniform(self, low: float = 0.0, high: float = 1.0) -> float:
        return float(self._rng.uniform(low, high))

    def integers(self, low: int, high: int) -> int:
        """Integer in [low, high)."""
        return int(self._rng.integers(low, high))

    def bernoulli(self, probability: float) -> bool:
        return self.uniform() < probability

    def choice(self, items: Sequence[T], weights: Sequence[float] | None = None) -> T:
        if not items:
            raise ValueError("choice() needs at least one item")
        if weights is None:
            return items[self.integers(0, len(items))]
        p = np.asarray(weights, dtype=float)
        total = p.sum()
        if total <= 0:
            raise ValueError(f"weights must sum to > 0, got {total}")
        index = int(self._rng.choice(len(items), p=p / total))
        return items[index]

    def get_state(self) -> dict[str, Any]:
        """JSON-compatible snapshot of the bit generator."""
        state = self._rng.bit_generator.state
        return {
            "bit_generator": state["bit_generator"],
            "state": {k: int(v) for k, v in state["state"].items()},
            "has_uint32": int(state["has_uint32"]),
            "uinteger": int(state["uinteger"]),
        }

    def set_state(self, state: dict[str, Any]) -> None:
        expected = self._rng.bit_generator.state["bit_generator"]
        if state.get("bit_generator") != expected:
            raise ValueError(
                f"RNG state is for {state.get('bit_generator')}, expected {expected}"
            )
        self._rng.bit_generator.state = {
            "bit_generator": state["bit_generator"],
            "state": dict(state["state"]),
            "has_uint32": state["has_uint32"],
            "uinteger": state["uinteger"],
        }
