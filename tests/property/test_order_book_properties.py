# tests/property/test_order_book_properties.py
"""
Property-based tests for OrderBook invariants using Hypothesis.

Random sequences of limit orders, market sweeps, cancels and depth
regenerations must never leave a crossed or mis-sorted book, and fills
must conserve quantity.
"""

import math

from hypothesis import given, settings
from hypothesis import strategies as st

from agents.scenario import get_scenario
from exchange.orderbook import OrderBook
from exchange.orders import Order, OrderType, Side

# =============================================================================
# Strategies for generating test data
# =============================================================================

prices = st.floats(min_value=1.0, max_value=200.0, allow_nan=False).map(lambda p: round(p, 2))
quantities = st.integers(min_value=1, max_value=50)
sides = st.sampled_from([Side.BUY, Side.SELL])


@st.composite
def book_actions(draw):
    """A list of (kind, args) actions to replay against a book."""
    actions = []
    for _ in range(draw(st.integers(min_value=1, max_value=40))):
        kind = draw(st.sampled_from(["limit", "market", "cancel", "depth"]))
        if kind == "limit":
            actions.append((kind, (draw(sides), draw(prices), draw(quantities), draw(st.booleans()))))
        elif kind == "market":
            actions.append((kind, (draw(st.booleans()), draw(st.integers(min_value=0, max_value=200)))))
        elif kind == "cancel":
            actions.append((kind, (draw(st.integers(min_value=1, max_value=200)),)))
        else:
            actions.append((kind, (draw(prices),)))
    return actions


def replay(book, actions):
    for kind, args in actions:
        if kind == "limit":
            side, price, quantity, real = args
            book.submit(Order(side=side, quantity=quantity, price=price, is_real=real, trader_id="p"))
        elif kind == "market":
            book.execute_market(*args)
        elif kind == "cancel":
            book.cancel(f"{book.symbol}-{args[0]}")
        else:
            book.generate_synthetic_depth(args[0])


def assert_well_formed(book):
    bids, asks = book.bids(), book.asks()
    assert all(a.price > b.price or (a.price == b.price and a.sequence < b.sequence)
               for a, b in zip(bids, bids[1:]))
    assert all(a.price < b.price or (a.price == b.price and a.sequence < b.sequence)
               for a, b in zip(asks, asks[1:]))
    assert all(0 < o.remaining <= o.quantity for o in bids + asks)
    if bids and asks:
        assert book.best_bid() < book.best_ask()
    assert len(book) == len(bids) + len(asks)


# =============================================================================
# Property Tests: OrderBook Invariants
# =============================================================================


class TestOrderBookInvariants:
    """Property tests for OrderBook invariants."""

    @given(book_actions())
    @settings(max_examples=100, deadline=None)
    def test_book_never_crosses(self, actions):
        book = OrderBook("PROP")
        replay(book, actions)
        assert_well_formed(book)

    @given(st.lists(st.tuples(prices, quantities), min_size=1, max_size=10), st.integers(1, 600))
    @settings(max_examples=100, deadline=None)
    def test_market_sweep_conserves_quantity(self, asks, quantity):
        book = OrderBook("PROP")
        for price, size in asks:
            book.submit(Order(side=Side.SELL, quantity=size, price=price))
        available = sum(size for _, size in asks)
        best = book.best_ask()

        execution = book.execute_market(True, quantity)

        assert execution.filled_quantity == min(quantity, available)
        assert sum(f.quantity for f in execution.fills) == execution.filled_quantity
        assert book.volume_in_range(0.0, math.inf, Side.SELL) == available - execution.filled_quantity
        assert execution.slippage >= -1e-9
        assert execution.vwap >= best - 1e-9
        assert [f.price for f in execution.fills] == sorted(f.price for f in execution.fills)

    @given(prices, st.sampled_from(["quiet", "euphoric", "panic", "squeeze"]))
    @settings(max_examples=50, deadline=None)
    def test_synthetic_depth_shape(self, mid, regime):
        book = OrderBook("PROP")
        book.generate_synthetic_depth(mid, get_scenario(regime))
        bids, asks = book.bids(), book.asks()
        assert all(o.price < mid for o in bids)
        assert all(o.price > mid for o in asks)
        assert all(o.quantity >= 1 for o in bids + asks)
        assert_well_formed(book)

    @given(book_actions())
    @settings(max_examples=50, deadline=None)
    def test_market_order_remainder_never_rests(self, actions):
        book = OrderBook("PROP")
        replay(book, actions)
        before = len(book)
        execution = book.submit(Order(side=Side.BUY, quantity=10_000, order_type=OrderType.MARKET))
        assert execution.resting_order_id is None
        assert len(book) <= before
