"""
Simulated Trading Engine

An in-process broker for strategy testing: deterministic order execution and
balance bookkeeping against a pluggable market data source, behind the same
trading interface a live broker adapter implements.
"""

__version__ = "0.1.0"

from .core.types import (
    Account, Amount, Asset, AssetPair, Bar, OpenPosition, Order, OrderRequest,
    OrderStatus, OrderType, Side
)
from .core.errors import (
    TradingError, InvalidRequest, InvalidState, NotFound, OrderRejected,
    NoLiquidity, InsufficientFunds, LedgerInvariantError, RejectionReason
)
from .core.fees import FeeModel, NoFee, PercentageFee, FlatFee
from .core.data_source import MarketDataSource, InMemoryDataSource, BarDataSource
from .core.time_engine import SimulatedClock, SimulatedEnvironment
from .core.ledger import Ledger
from .core.matching_engine import MatchingEngine
from .broker import BrokerConfig, SimulatedBroker
from .client import TradingClient, SimulatedClient

__all__ = [
    "Account",
    "Amount",
    "Asset",
    "AssetPair",
    "Bar",
    "OpenPosition",
    "Order",
    "OrderRequest",
    "OrderStatus",
    "OrderType",
    "Side",
    "TradingError",
    "InvalidRequest",
    "InvalidState",
    "NotFound",
    "OrderRejected",
    "NoLiquidity",
    "InsufficientFunds",
    "LedgerInvariantError",
    "RejectionReason",
    "FeeModel",
    "NoFee",
    "PercentageFee",
    "FlatFee",
    "MarketDataSource",
    "InMemoryDataSource",
    "BarDataSource",
    "SimulatedClock",
    "SimulatedEnvironment",
    "Ledger",
    "MatchingEngine",
    "BrokerConfig",
    "SimulatedBroker",
    "TradingClient",
    "SimulatedClient"
]
