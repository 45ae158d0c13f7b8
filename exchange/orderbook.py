"""
OrderBook implementation for one instrument.

Bids are kept in descending price order and asks in ascending price order;
at equal price the earlier submission has priority. Incoming orders that
cross the opposite side are matched immediately, so the resting book never
crosses.

Two kinds of orders share the book:
- real orders placed by players, which are validated (quantity, price,
  initial margin) and produce fill events for the external ledger;
- synthetic liquidity, which is wiped and re-seeded around a mid price by
  generate_synthetic_depth and consumed by the virtual order flow.
"""

import bisect
import logging
import math
from dataclasses import replace
from typing import Callable

from agents.scenario import ScenarioParameters
from exchange.errors import DuplicateOrder, InsufficientMargin, InvalidPrice, InvalidQuantity
from exchange.orders import (
    BookSnapshot,
    DepthLevel,
    Fill,
    MarketExecution,
    Order,
    OrderType,
    Side,
)

logger = logging.getLogger(__name__)

BalanceLookup = Callable[[str | None], float]
FillListener = Callable[[Fill], None]


def _bid_key(order: Order) -> tuple[float, int]:
    return (-order.price, order.sequence)


def _ask_key(order: Order) -> tuple[float, int]:
    return (order.price, order.sequence)


class OrderBook:
    """
    Price-time priority order book with synthetic depth.

    Args:
        symbol: Instrument symbol
        balance_lookup: trader_id -> available margin, used to admit real orders
        initial_margin_ratio: Fraction of notional a real order must cover
        depth_levels: Synthetic price levels per side
        level_spacing: Relative distance between synthetic levels
        level_decay: Quantity reduction per level away from the mid
        price_decimals: Rounding of synthetic prices

    Raises:
        ValueError: If any depth parameter is out of range
    """

    def __init__(
        self,
        symbol: str,
        balance_lookup: BalanceLookup | None = None,
        initial_margin_ratio: float = 0.1,
        depth_levels: int = 5,
        level_spacing: float = 0.01,
        level_decay: float = 0.15,
        price_decimals: int = 2,
    ) -> None:
        if depth_levels < 1:
            raise ValueError(f"depth_levels must be >= 1, got {depth_levels}")
        if level_spacing <= 0:
            raise ValueError(f"level_spacing must be > 0, got {level_spacing}")
        if not 0.0 <= level_decay < 1.0:
            raise ValueError(f"level_decay must be in [0, 1), got {level_decay}")
        if initial_margin_ratio < 0:
            raise ValueError(f"initial_margin_ratio must be >= 0, got {initial_margin_ratio}")

        self.symbol = symbol
        self.balance_lookup = balance_lookup
        self.initial_margin_ratio = initial_margin_ratio
        self.depth_levels = depth_levels
        self.level_spacing = level_spacing
        self.level_decay = level_decay
        self.price_decimals = price_decimals

        self._bids: list[Order] = []
        self._asks: list[Order] = []
        self._orders: dict[str, Order] = {}
        self._listeners: list[FillListener] = []
        self.next_sequence = 1

    # =========================================================================
    # Queries
    # =========================================================================

    def best_bid(self) -> float:
        """Highest bid price, 0 when there are no bids."""
        return self._bids[0].price if self._bids else 0.0

    def best_ask(self) -> float:
        """Lowest ask price, +inf when there are no asks."""
        return self._asks[0].price if self._asks else math.inf

    def mid_price(self) -> float:
        """Average of best bid and best ask, or 0 if either side is empty."""
        if not self._bids or not self._asks:
            return 0.0
        return (self._bids[0].price + self._asks[0].price) / 2

    def spread(self) -> float:
        if not self._bids or not self._asks:
            return math.inf
        return self._asks[0].price - self._bids[0].price

    def bids(self) -> list[Order]:
        return [replace(o) for o in self._bids]

    def asks(self) -> list[Order]:
        return [replace(o) for o in self._asks]

    def get_order(self, order_id: str) -> Order | None:
        order = self._orders.get(order_id)
        return replace(order) if order is not None else None

    def player_orders(self) -> list[Order]:
        """Copies of all resting real orders, bids first."""
        return [replace(o) for o in self._bids + self._asks if o.is_real]

    def volume_in_range(self, low: float, high: float, side: Side | None = None) -> int:
        """Resting quantity with price in [low, high], optionally on one side."""
        books = []
        if side in (None, Side.BUY):
            books.append(self._bids)
        if side in (None, Side.SELL):
            books.append(self._asks)
        return sum(o.remaining for book in books for o in book if low <= o.price <= high)

    def snapshot(self, depth: int = 5) -> BookSnapshot:
        """Top `depth` levels per side, aggregating consecutive orders of equal price and owner."""
        return BookSnapshot(
            symbol=self.symbol,
            bids=self._aggregate(self._bids, depth),
            asks=self._aggregate(self._asks, depth),
            best_bid=self.best_bid(),
            best_ask=self.best_ask(),
            mid_price=self.mid_price(),
        )

    @staticmethod
    def _aggregate(book: list[Order], depth: int) -> tuple[DepthLevel, ...]:
        levels: list[DepthLevel] = []
        for order in book:
            if levels and levels[-1].price == order.price and levels[-1].is_real == order.is_real:
                last = levels[-1]
                levels[-1] = DepthLevel(last.price, last.quantity + order.remaining, last.is_real)
                continue
            if len(levels) == depth:
                break
            levels.append(DepthLevel(order.price, order.remaining, order.is_real))
        return tuple(levels)

    def __len__(self) -> int:
        return len(self._orders)

    # =========================================================================
    # Fill events
    # =========================================================================

    def subscribe(self, listener: FillListener) -> None:
        """Register a callback for fills involving real orders."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: FillListener) -> None:
        self._listeners.remove(listener)

    def _publish(self, fills: tuple[Fill, ...]) -> None:
        for fill in fills:
            for listener in self._listeners:
                listener(fill)

    # =========================================================================
    # Order entry
    # =========================================================================

    def submit(self, order: Order) -> MarketExecution:
        """
        Validate and enter an order.

        Limit orders that cross the opposite side trade immediately and any
        remainder rests. Market orders trade against available depth and
        any unfilled remainder is dropped.

        Args:
            order: Incoming order. The book rests a copy, so later changes to
                `order` do not affect it; sequence and (if empty) order_id are
                assigned on that copy

        Returns:
            The execution of the immediately matched part

        Raises:
            InvalidQuantity: quantity is not a positive integer
            InvalidPrice: limit order without a finite positive price
            InsufficientMargin: real order whose owner cannot cover the margin
            DuplicateOrder: order_id already resting or of the book-assigned form
        """
        self._validate(order)

        order = replace(order)
        order.sequence = self.next_sequence
        self.next_sequence += 1
        if not order.order_id:
            order.order_id = f"{self.symbol}-{order.sequence}"
        order.remaining = order.quantity

        if order.order_type is OrderType.MARKET:
            return self._match(order, limit=None)
        return self._match(order, limit=order.price, rest=True)

    def _validate(self, order: Order) -> None:
        if order.order_id:
            self._check_order_id(order.order_id)

        if isinstance(order.quantity, bool) or not isinstance(order.quantity, int) or order.quantity <= 0:
            raise InvalidQuantity(
                f"Order quantity must be a positive integer, got {order.quantity!r}",
                order.order_id or None,
                order.quantity,
            )

        if order.order_type is OrderType.LIMIT:
            if order.price is None or not math.isfinite(order.price) or order.price <= 0:
                raise InvalidPrice(
                    f"Limit price must be a finite positive number, got {order.price!r}",
                    order.order_id or None,
                    order.price,
                )

        if order.is_real and self.balance_lookup is not None:
            if order.order_type is OrderType.LIMIT:
                reference = order.price
            else:
                opposite = self._asks if order.is_buy else self._bids
                reference = opposite[0].price if opposite else 0.0
            required = reference * order.quantity * self.initial_margin_ratio
            available = self.balance_lookup(order.trader_id)
            if available < required:
                raise InsufficientMargin(
                    f"Trader {order.trader_id} needs {required:.2f} margin, has {available:.2f}",
                    order.order_id or None,
                    required=required,
                    available=available,
                )

    def _check_order_id(self, order_id: str) -> None:
        if order_id in self._orders:
            raise DuplicateOrder(f"Order id {order_id!r} is already on the book", order_id, order_id)
        prefix = f"{self.symbol}-"
        if order_id.startswith(prefix) and order_id[len(prefix):].isdigit():
            raise DuplicateOrder(
                f"Order id {order_id!r} is reserved for book-assigned ids", order_id, order_id
            )

    def cancel(self, order_id: str) -> bool:
        """Remove a resting order. Returns False if it is not on the book."""
        order = self._orders.pop(order_id, None)
        if order is None:
            return False
        book = self._bids if order.is_buy else self._asks
        book.remove(order)
        return True

    def execute_market(self, is_buy: bool, quantity: int) -> MarketExecution:
        """
        Sweep the opposite side with a synthetic market order.

        Args:
            is_buy: True to lift asks, False to hit bids
            quantity: Quantity to trade; non-positive quantities do nothing

        Returns:
            Fills, VWAP and slippage versus the best price at entry. An empty
            book yields an empty execution with VWAP and slippage 0.
        """
        side = Side.BUY if is_buy else Side.SELL
        if quantity <= 0:
            return MarketExecution(side=side, requested=max(0, quantity))
        order = Order(side=side, quantity=int(quantity), order_type=OrderType.MARKET)
        order.sequence = self.next_sequence
        self.next_sequence += 1
        order.order_id = f"{self.symbol}-{order.sequence}"
        return self._match(order, limit=None)

    # =========================================================================
    # Matching
    # =========================================================================

    def _match(self, taker: Order, limit: float | None, rest: bool = False) -> MarketExecution:
        book = self._asks if taker.is_buy else self._bids
        best_at_entry = book[0].price if book else 0.0

        fills: list[Fill] = []
        player_fills: list[Fill] = []
        notional = 0.0

        while taker.remaining > 0 and book:
            resting = book[0]
            if limit is not None:
                if taker.is_buy and resting.price > limit:
                    break
                if not taker.is_buy and resting.price < limit:
                    break

            quantity = min(taker.remaining, resting.remaining)
            price = resting.price
            resting.remaining -= quantity
            taker.remaining -= quantity
            notional += quantity * price

            fill = Fill(
                symbol=self.symbol,
                order_id=resting.order_id,
                side=resting.side,
                quantity=quantity,
                price=price,
                is_real=resting.is_real,
                trader_id=resting.trader_id,
                passive=True,
            )
            fills.append(fill)
            if resting.is_real:
                player_fills.append(fill)
            if taker.is_real:
                player_fills.append(
                    Fill(
                        symbol=self.symbol,
                        order_id=taker.order_id,
                        side=taker.side,
                        quantity=quantity,
                        price=price,
                        is_real=True,
                        trader_id=taker.trader_id,
                        passive=False,
                    )
                )

            if resting.remaining == 0:
                book.pop(0)
                del self._orders[resting.order_id]

        resting_id = None
        if rest and taker.remaining > 0:
            self._insert(taker)
            resting_id = taker.order_id

        filled = taker.quantity - taker.remaining
        vwap = notional / filled if filled else 0.0
        if not filled:
            slippage = 0.0
        elif taker.is_buy:
            slippage = vwap - best_at_entry
        else:
            slippage = best_at_entry - vwap

        execution = MarketExecution(
            side=taker.side,
            requested=taker.quantity,
            fills=tuple(fills),
            player_fills=tuple(player_fills),
            filled_quantity=filled,
            vwap=vwap,
            slippage=slippage,
            resting_order_id=resting_id,
        )
        self._publish(execution.player_fills)
        return execution

    def _insert(self, order: Order) -> None:
        if order.is_buy:
            bisect.insort(self._bids, order, key=_bid_key)
        else:
            bisect.insort(self._asks, order, key=_ask_key)
        self._orders[order.order_id] = order

    # =========================================================================
    # Synthetic liquidity
    # =========================================================================

    def clear_synthetic(self) -> None:
        self._bids = [o for o in self._bids if o.is_real]
        self._asks = [o for o in self._asks if o.is_real]
        self._orders = {oid: o for oid, o in self._orders.items() if o.is_real}

    def generate_synthetic_depth(
        self,
        mid_price: float,
        scenario: ScenarioParameters | None = None,
        liquidity_sensitivity: float = 0.01,
    ) -> list[MarketExecution]:
        """
        Replace all synthetic orders with fresh depth around `mid_price`.

        Level k (1..depth_levels) sits k * level_spacing away from the mid
        with quantity base * (1 - (k - 1) * level_decay) * regime multiplier,
        where base = mid * level_spacing / liquidity_sensitivity. Real orders
        stay; a synthetic order that would cross one trades against it.

        Returns:
            Executions caused by synthetic orders crossing real ones
        """
        self.clear_synthetic()
        if not math.isfinite(mid_price) or mid_price <= 0:
            return []
        if liquidity_sensitivity <= 0:
            raise ValueError(f"liquidity_sensitivity must be > 0, got {liquidity_sensitivity}")

        bid_multiplier = scenario.bid_depth if scenario is not None else 1.0
        ask_multiplier = scenario.ask_depth if scenario is not None else 1.0
        base_quantity = max(1, int(mid_price * self.level_spacing / liquidity_sensitivity))
        min_price = 10.0 ** -self.price_decimals

        crossings = []
        for level in range(1, self.depth_levels + 1):
            decay = 1.0 - (level - 1) * self.level_decay
            offset = self.level_spacing * level
            for side, price, multiplier in (
                (Side.BUY, mid_price * (1.0 - offset), bid_multiplier),
                (Side.SELL, mid_price * (1.0 + offset), ask_multiplier),
            ):
                price = round(price, self.price_decimals)
                if price < min_price:
                    continue
                order = Order(
                    side=side,
                    quantity=max(1, int(base_quantity * decay * multiplier)),
                    price=price,
                )
                order.sequence = self.next_sequence
                self.next_sequence += 1
                order.order_id = f"{self.symbol}-{order.sequence}"
                execution = self._match(order, limit=price, rest=True)
                if not execution.is_empty:
                    crossings.append(execution)

        logger.debug(
            f"{self.symbol}: depth regenerated at {mid_price:.2f} "
            f"(base qty {base_quantity}, {len(self._orders)} resting)"
        )
        return crossings

    # =========================================================================
    # Persistence of player orders
    # =========================================================================

    def export_orders(self) -> list[dict]:
        return [o.to_dict() for o in self._bids + self._asks if o.is_real]

    def restore_orders(self, orders: list[dict], next_sequence: int) -> None:
        """Replace the book content with saved real orders; synthetic depth is dropped."""
        self._bids = []
        self._asks = []
        self._orders = {}
        for data in orders:
            self._insert(Order.from_dict(data))
        self.next_sequence = next_sequence
