"""
Order identity and persistent per-order state.
"""

from .orders import Order, order_hash
from .store import DecayOffset, Direction, OrderState, OrderStateStore, StateTransaction

__all__ = [
    "DecayOffset",
    "Direction",
    "Order",
    "OrderState",
    "OrderStateStore",
    "StateTransaction",
    "order_hash",
]
