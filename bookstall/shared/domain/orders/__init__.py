from bookstall.shared.domain.orders.models import (
    BookSummary,
    Order,
    OrderBuyer,
    OrderLine,
    OrderStatus,
    ShippingAddress,
)
from bookstall.shared.domain.orders.order_store import OrderActions, OrderStore

__all__ = [
    "BookSummary",
    "Order",
    "OrderBuyer",
    "OrderLine",
    "OrderStatus",
    "ShippingAddress",
    "OrderActions",
    "OrderStore",
]
