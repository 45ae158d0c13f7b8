# tests/unit/exchange/test_circuit_breaker.py
"""
Tests for the circuit breaker and overnight gap handling.
"""

import pytest

from exchange.circuit_breaker import CircuitBreaker
from exchange.state import PriceState


def state_at(price, target):
    return PriceState(symbol="PARSNIP", model_price=price, current_price=price, target=target)


class TestTrip:
    def test_locks_target_and_defers_gap(self):
        breaker = CircuitBreaker(max_move=15.0, time_threshold=0.95)
        state = state_at(100.0, 140.0)

        assert breaker.check(state, 0.96)
        assert state.target == pytest.approx(115.0)
        assert state.gap == pytest.approx(25.0)
        assert state.breaker_active

    def test_downward_trip(self):
        breaker = CircuitBreaker(max_move=15.0)
        state = state_at(100.0, 60.0)
        assert breaker.check(state, 1.0)
        assert state.target == pytest.approx(85.0)
        assert state.gap == pytest.approx(-25.0)

    def test_not_before_threshold(self):
        breaker = CircuitBreaker()
        state = state_at(100.0, 140.0)
        assert not breaker.check(state, 0.5)
        assert state.target == 140.0
        assert not state.breaker_active

    def test_small_move_does_not_trip(self):
        breaker = CircuitBreaker(max_move=15.0)
        state = state_at(100.0, 115.0)
        assert not breaker.check(state, 0.99)
        assert state.gap == 0.0

    def test_disabled(self):
        state = state_at(100.0, 500.0)
        assert not CircuitBreaker(enabled=False).check(state, 1.0)

    def test_trips_at_most_once_per_day(self):
        breaker = CircuitBreaker(max_move=15.0)
        state = state_at(100.0, 140.0)
        assert breaker.check(state, 0.96)
        state.target = 200.0
        assert not breaker.check(state, 0.98)
        assert state.gap == pytest.approx(25.0)

    def test_locked_target_stays_positive(self):
        breaker = CircuitBreaker(max_move=15.0, epsilon=0.01)
        state = state_at(5.0, -40.0)
        breaker.check(state, 1.0)
        assert state.target == pytest.approx(0.01)

    @pytest.mark.parametrize(
        "kwargs",
        [{"time_threshold": 1.5}, {"max_move": 0.0}, {"gap_threshold": -0.1}],
    )
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(ValueError):
            CircuitBreaker(**kwargs)


class TestOpen:
    def test_gap_is_applied_once(self):
        breaker = CircuitBreaker(max_move=15.0)
        state = state_at(100.0, 140.0)
        breaker.check(state, 0.96)

        assert breaker.open_price(state, 115.0) == pytest.approx(140.0)
        assert state.gap == 0.0
        assert not state.breaker_active
        assert breaker.open_price(state, 115.0) == 115.0

    def test_tiny_gap_is_ignored(self):
        breaker = CircuitBreaker(gap_threshold=0.001)
        state = state_at(100.0, 100.0)
        state.gap = 0.05
        assert breaker.open_price(state, 100.0) == 100.0
        assert state.gap == 0.0

    def test_negative_gap_floors_at_epsilon(self):
        breaker = CircuitBreaker(epsilon=0.01)
        state = state_at(10.0, 10.0)
        state.gap = -50.0
        assert breaker.open_price(state, 10.0) == 0.01
