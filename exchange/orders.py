"""
Order, fill and execution records.
"""

from dataclasses import dataclass, field
from enum import Enum


class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"

    @property
    def opposite(self) -> "Side":
        return Side.SELL if self is Side.BUY else Side.BUY

    @property
    def sign(self) -> int:
        return 1 if self is Side.BUY else -1


class OrderType(str, Enum):
    MARKET = "market"
    LIMIT = "limit"


@dataclass
class Order:
    """
    A resting or incoming order.

    `remaining` starts at `quantity` and shrinks on partial fills.
    `sequence` is assigned by the book on submission and is the time
    priority tie-break; `order_id` defaults to "<symbol>-<sequence>".
    The book rests its own copy, so the submitted instance is never
    updated by matching.

    Attributes:
        side: BUY or SELL
        quantity: Original quantity
        order_type: MARKET or LIMIT
        price: Limit price (None for market orders)
        is_real: True for player orders, False for synthetic liquidity
        trader_id: Owner used for margin checks and fill settlement
        order_id: Unique id within the book
    """

    side: Side
    quantity: int
    order_type: OrderType = OrderType.LIMIT
    price: float | None = None
    is_real: bool = False
    trader_id: str | None = None
    order_id: str = ""
    sequence: int = 0
    remaining: int = field(default=-1)

    def __post_init__(self) -> None:
        if self.remaining < 0:
            self.remaining = self.quantity

    @property
    def is_buy(self) -> bool:
        return self.side is Side.BUY

    @property
    def filled(self) -> int:
        return self.quantity - self.remaining

    def to_dict(self) -> dict:
        return {
            "side": self.side.value,
            "quantity": self.quantity,
            "order_type": self.order_type.value,
            "price": self.price,
            "is_real": self.is_real,
            "trader_id": self.trader_id,
            "order_id": self.order_id,
            "sequence": self.sequence,
            "remaining": self.remaining,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Order":
        return cls(
            side=Side(data["side"]),
            quantity=int(data["quantity"]),
            order_type=OrderType(data["order_type"]),
            price=data["price"],
            is_real=bool(data["is_real"]),
            trader_id=data["trader_id"],
            order_id=data["order_id"],
            sequence=int(data["sequence"]),
            remaining=int(data["remaining"]),
        )


@dataclass(frozen=True)
class Fill:
    """
    One match between two orders, seen from the order `order_id` refers to.

    `passive` is True when that order was resting in the book.
    """

    symbol: str
    order_id: str
    side: Side
    quantity: int
    price: float
    is_real: bool
    trader_id: str | None = None
    passive: bool = True


@dataclass(frozen=True)
class MarketExecution:
    """
    Result of matching one incoming order.

    Attributes:
        side: Side of the incoming order
        requested: Quantity asked for
        fills: Resting orders consumed, in match order
        player_fills: Fills involving player orders (resting or incoming)
        filled_quantity: Total quantity matched
        vwap: Volume-weighted average price (0 if nothing filled)
        slippage: Adverse distance of VWAP from the best price at entry
        resting_order_id: Id of the remainder left on the book, if any
    """

    side: Side
    requested: int
    fills: tuple[Fill, ...] = ()
    player_fills: tuple[Fill, ...] = ()
    filled_quantity: int = 0
    vwap: float = 0.0
    slippage: float = 0.0
    resting_order_id: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.filled_quantity == 0


@dataclass(frozen=True)
class DepthLevel:
    price: float
    quantity: int
    is_real: bool


@dataclass(frozen=True)
class BookSnapshot:
    """Immutable view of the top of one order book."""

    symbol: str
    bids: tuple[DepthLevel, ...]
    asks: tuple[DepthLevel, ...]
    best_bid: float
    best_ask: float
    mid_price: float
