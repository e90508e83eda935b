"""
Stateless matching engine.
Decides fill / pend / reject for one order against the current price and
computes the ledger legs of a fill. It never mutates the ledger itself.
"""
from decimal import Decimal
from typing import List, Optional
import logging

from .errors import InvalidRequest, RejectionReason
from .fees import FeeModel
from .ledger import Ledger
from .money import bounded_arithmetic, exact_arithmetic, to_decimal
from .types import LedgerEntry, MatchResult, Order, OrderType, Side

logger = logging.getLogger(__name__)

class MatchingEngine:
    """
    All-or-nothing matching against a single reference price.
    Market orders fill at the price; limit orders fill when the price is at
    or better than the limit (inclusive).
    """

    def __init__(self, fee_model: FeeModel):
        self.fee_model = fee_model

    def match_order(
        self,
        order: Order,
        price: Optional[Decimal],
        ledger: Ledger,
        initial: bool
    ) -> MatchResult:
        """
        Evaluate `order` at `price`.
        `initial` is True at placement, False on re-evaluation after a clock advance.
        """
        if price is None:
            if initial:
                return MatchResult(order=order, rejection_reason=RejectionReason.NO_LIQUIDITY)
            # Re-evaluation without a quote: nothing to match against yet
            return MatchResult(order=order)

        if order.order_type == OrderType.MARKET or self.crosses(order, price):
            return self._fill(order, price, ledger)

        if initial and not self.can_afford_at_limit(order, ledger):
            return MatchResult(order=order, rejection_reason=RejectionReason.INSUFFICIENT_FUNDS)
        return MatchResult(order=order)

    @staticmethod
    def crosses(order: Order, price: Decimal) -> bool:
        if order.limit_price is None:
            return True
        if order.side == Side.BUY:
            return price <= order.limit_price
        return price >= order.limit_price

    # ========================================================================
    # FILLS
    # ========================================================================

    def _fill(self, order: Order, price: Decimal, ledger: Ledger) -> MatchResult:
        quantity, notional, fee = self.fill_terms(order, price)
        entries = self.settlement_entries(order, quantity, notional, fee)

        if (order.side == Side.SELL and fee > notional) or not ledger.can_settle(entries):
            logger.debug(f"Order {order.order_id} cannot settle at {price}: needs {entries}")
            return MatchResult(order=order, rejection_reason=RejectionReason.INSUFFICIENT_FUNDS)

        return MatchResult(
            order=order,
            fill=True,
            price=price,
            quantity=quantity,
            notional=notional,
            fee=fee
        )

    def fill_terms(self, order: Order, price: Decimal):
        """(quantity, notional, fee) of filling `order` completely at `price`"""
        with exact_arithmetic():
            quantity, notional = order.amount.resolve(price)
        return quantity, notional, self.fee_for(notional, order.side)

    def fee_for(self, notional: Decimal, side: Side) -> Decimal:
        with bounded_arithmetic():
            fee = to_decimal(self.fee_model.fee(notional, side))
        if fee < 0:
            raise InvalidRequest(f"{self.fee_model!r} returned a negative fee: {fee}")
        return fee

    @staticmethod
    def settlement_entries(
        order: Order,
        quantity: Decimal,
        notional: Decimal,
        fee: Decimal
    ) -> List[LedgerEntry]:
        pair = order.pair
        oid = order.order_id
        with exact_arithmetic():
            if order.side == Side.BUY:
                return [
                    LedgerEntry(pair.quote, -(notional + fee), "buy", oid),
                    LedgerEntry(pair.base, quantity, "buy", oid),
                ]
            return [
                LedgerEntry(pair.base, -quantity, "sell", oid),
                LedgerEntry(pair.quote, notional - fee, "sell", oid),
            ]

    # ========================================================================
    # PLACEMENT CHECK FOR RESTING ORDERS
    # ========================================================================

    def can_afford_at_limit(self, order: Order, ledger: Ledger) -> bool:
        """Would the order settle if it filled at its own limit price right now?"""
        quantity, notional, fee = self.fill_terms(order, order.limit_price)
        if order.side == Side.SELL and fee > notional:
            return False
        entries = self.settlement_entries(order, quantity, notional, fee)
        return ledger.can_settle(entries)
