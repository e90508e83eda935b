"""
Core engine components.
"""

from .types import (
    Account, Amount, Asset, AssetPair, Bar, ClockAdvancedEvent, LedgerEntry,
    MatchResult, OpenPosition, Order, OrderRequest, OrderStatus, OrderType, Side
)
from .data_source import MarketDataSource, InMemoryDataSource, BarDataSource
from .time_engine import SimulatedClock, SimulatedEnvironment
from .ledger import Ledger
from .order_book import OrderBook
from .matching_engine import MatchingEngine

__all__ = [
    "Account",
    "Amount",
    "Asset",
    "AssetPair",
    "Bar",
    "ClockAdvancedEvent",
    "LedgerEntry",
    "MatchResult",
    "OpenPosition",
    "Order",
    "OrderRequest",
    "OrderStatus",
    "OrderType",
    "Side",
    "MarketDataSource",
    "InMemoryDataSource",
    "BarDataSource",
    "SimulatedClock",
    "SimulatedEnvironment",
    "Ledger",
    "OrderBook",
    "MatchingEngine"
]
