"""
Order validation errors.

Raised by OrderBook.submit before any state is touched, so a rejected
order leaves the book exactly as it was.
"""


class OrderValidationError(ValueError):
    """Base class for rejected orders."""

    def __init__(self, message: str, order_id: str | None = None, value: object = None):
        super().__init__(message)
        self.order_id = order_id
        self.value = value


class InvalidQuantity(OrderValidationError):
    """Quantity is not a positive integer."""


class InvalidPrice(OrderValidationError):
    """Limit price is missing, non-finite or not positive."""


class InsufficientMargin(OrderValidationError):
    """The trader cannot post the initial margin for the order."""

    def __init__(
        self,
        message: str,
        order_id: str | None = None,
        required: float = 0.0,
        available: float = 0.0,
    ):
        super().__init__(message, order_id, required)
        self.required = required
        self.available = available


class DuplicateOrder(OrderValidationError):
    """The order id is already resting or is reserved for book-assigned ids."""
