"""
Single-account order book.
Keeps every order ever placed plus an index of pending orders sorted by
placement sequence.
"""
from typing import Dict, Iterator, List
import itertools
import uuid

from sortedcontainers import SortedDict

from .errors import InvalidState, LedgerInvariantError, NotFound
from .types import Order, OrderStatus


class OrderBook:

    def __init__(self):
        self._orders: Dict[str, Order] = {}
        self._pending: SortedDict = SortedDict()  # sequence -> order_id
        self._sequence = itertools.count(1)

    # ========================================================================
    # QUERY METHODS
    # ========================================================================

    def get(self, order_id: str) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise NotFound(f"Order with id {order_id} doesn't exist")
        return order

    def all(self) -> List[Order]:
        """All orders in placement order"""
        return sorted(self._orders.values(), key=lambda o: o.sequence)

    def pending(self) -> List[Order]:
        """Pending orders, earliest placement first"""
        return [self._orders[oid] for oid in self._pending.values()]

    def iter_pending_ids(self) -> Iterator[str]:
        # Snapshot: callers mutate the book while iterating
        return iter(list(self._pending.values()))

    def __len__(self):
        return len(self._orders)

    # ========================================================================
    # MUTATION METHODS
    # ========================================================================

    @staticmethod
    def new_order_id() -> str:
        return str(uuid.uuid4())

    def next_sequence(self) -> int:
        return next(self._sequence)

    def add(self, order: Order):
        if order.order_id in self._orders:
            raise LedgerInvariantError(f"Duplicate order id {order.order_id}")
        self._orders[order.order_id] = order
        if order.is_pending:
            self._pending[order.sequence] = order.order_id

    def update(self, order: Order):
        """Replace a pending order with its next state"""
        current = self.get(order.order_id)
        if current.status.is_terminal:
            raise LedgerInvariantError(
                f"Order {order.order_id} is {current.status.value}; terminal orders cannot change"
            )
        if order.sequence != current.sequence:
            raise LedgerInvariantError(f"Order {order.order_id} sequence changed")

        self._orders[order.order_id] = order
        if order.status.is_terminal:
            self._pending.pop(order.sequence, None)

    def ensure_pending(self, order_id: str) -> Order:
        order = self.get(order_id)
        if order.status is not OrderStatus.PENDING:
            raise InvalidState(f"Order {order_id} is {order.status.value}, not PENDING")
        return order

    def __repr__(self):
        return f"OrderBook(orders={len(self._orders)}, pending={len(self._pending)})"
