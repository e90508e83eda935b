"""
Async trading interface.

`TradingClient` is the contract shared by the simulated client and any live
broker adapter. `SimulatedClient` is a thin async veneer over a
SimulatedBroker: every call completes after the broker's synchronous
settlement and adds no ordering of its own.
"""
import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional
import logging

from .broker import BrokerConfig, SimulatedBroker
from .core.types import Account, Order, OrderRequest

logger = logging.getLogger(__name__)

class TradingClient(ABC):
    """Public trading interface for strategies"""

    @abstractmethod
    async def place_order(self, request: OrderRequest) -> str:
        """Place an order, returning its id"""
        pass

    @abstractmethod
    async def cancel_order(self, order_id: str) -> Order:
        pass

    @abstractmethod
    async def get_order(self, order_id: str) -> Order:
        pass

    @abstractmethod
    async def get_orders(self) -> List[Order]:
        pass

    @abstractmethod
    async def get_account(self) -> Account:
        pass

class SimulatedClient(TradingClient):

    def __init__(self, broker: Optional[SimulatedBroker] = None):
        self.broker = broker or SimulatedBroker(BrokerConfig())
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: BrokerConfig, data_source=None) -> "SimulatedClient":
        return cls(SimulatedBroker(config, data_source=data_source))

    async def place_order(self, request: OrderRequest) -> str:
        async with self._lock:
            return self.broker.place_order(request)

    async def cancel_order(self, order_id: str) -> Order:
        async with self._lock:
            return self.broker.cancel_order(order_id)

    async def get_order(self, order_id: str) -> Order:
        return self.broker.get_order(order_id)

    async def get_orders(self) -> List[Order]:
        return self.broker.get_orders()

    async def get_account(self) -> Account:
        return self.broker.get_account()

    # ========================================================================
    # SIMULATION CONTROLS
    # ========================================================================

    async def advance(self, duration: timedelta = timedelta(0)) -> datetime:
        async with self._lock:
            return self.broker.advance(duration)

    def set_price(self, pair, price, instant: Optional[datetime] = None):
        """Test hook, see SimulatedBroker.set_price"""
        self.broker.set_price(pair, price, instant)

    def get_price(self, pair) -> Optional[Decimal]:
        return self.broker.get_price(pair)
