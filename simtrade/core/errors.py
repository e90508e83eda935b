"""
Caller-visible trading errors plus the fatal invariant error.
"""
from enum import Enum
from typing import Optional


class RejectionReason(Enum):
    NO_LIQUIDITY = "NO_LIQUIDITY"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"


class TradingError(Exception):
    """Base class for recoverable, caller-visible outcomes"""


class InvalidRequest(TradingError, ValueError):
    """Malformed request; raised before any state is touched"""


class NotFound(TradingError):
    """Unknown order id"""


class InvalidState(TradingError):
    """Operation not allowed in the order's current status"""


class OrderRejected(TradingError):
    """
    Order was recorded and moved to REJECTED.
    `order_id` is None when raised directly by the ledger.
    """

    reason: Optional[RejectionReason] = None

    def __init__(self, message: str, order_id: Optional[str] = None):
        super().__init__(message)
        self.order_id = order_id


class NoLiquidity(OrderRejected):
    reason = RejectionReason.NO_LIQUIDITY


class InsufficientFunds(OrderRejected):
    reason = RejectionReason.INSUFFICIENT_FUNDS


REJECTIONS = {
    RejectionReason.NO_LIQUIDITY: NoLiquidity,
    RejectionReason.INSUFFICIENT_FUNDS: InsufficientFunds,
}


class LedgerInvariantError(AssertionError):
    """Broken internal invariant. Never a business outcome."""
