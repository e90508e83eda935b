"""
Pluggable market data sources.

The engine only ever calls `price_at(pair, instant)`; a None result means no
quote exists for that pair at that instant.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, Optional
import logging

from sortedcontainers import SortedDict

from .errors import InvalidRequest
from .money import to_decimal, exact_arithmetic
from .types import AssetPair, Bar

logger = logging.getLogger(__name__)


class MarketDataSource(ABC):
    """Read-only price provider"""

    @abstractmethod
    def price_at(self, pair: AssetPair, instant: datetime) -> Optional[Decimal]:
        pass


# ============================================================================
# IN-MEMORY FIXTURE
# ============================================================================

class InMemoryDataSource(MarketDataSource):
    """
    Prices set directly by the caller.

    A price set without an instant applies at every instant. Prices set with
    an instant form a time series per pair; a lookup returns the latest price
    at or before the requested instant and falls back to the timeless price.
    """

    def __init__(self):
        self._static: Dict[AssetPair, Decimal] = {}
        self._series: Dict[AssetPair, SortedDict] = {}

    def set_price(self, pair: AssetPair, price, instant: Optional[datetime] = None):
        price = to_decimal(price)
        if price <= 0:
            raise InvalidRequest(f"Price for {pair} must be positive, got {price}")

        if instant is None:
            self._static[pair] = price
        else:
            self._series.setdefault(pair, SortedDict())[instant] = price
        logger.debug(f"Price set: {pair} = {price} at {instant or 'all times'}")

    def clear_price(self, pair: AssetPair):
        self._static.pop(pair, None)
        self._series.pop(pair, None)

    def price_at(self, pair: AssetPair, instant: datetime) -> Optional[Decimal]:
        series = self._series.get(pair)
        if series:
            idx = series.bisect_right(instant)
            if idx > 0:
                return series.peekitem(idx - 1)[1]
        return self._static.get(pair)


# ============================================================================
# HISTORICAL BARS
# ============================================================================

class BarDataSource(MarketDataSource):
    """
    Historical bar feed.

    The price at an instant is the mid of low/high of the bar covering it.
    Bars are keyed by start time; a bar covers [start, start + bar_duration).
    """

    def __init__(
        self,
        bars: Optional[Dict[AssetPair, Iterable[Bar]]] = None,
        bar_duration: timedelta = timedelta(minutes=1)
    ):
        if bar_duration <= timedelta(0):
            raise InvalidRequest("Bar duration must be positive")
        self.bar_duration = bar_duration
        self._bars: Dict[AssetPair, SortedDict] = {}

        for pair, pair_bars in (bars or {}).items():
            for bar in pair_bars:
                self.add_bar(pair, bar)

    def add_bar(self, pair: AssetPair, bar: Bar):
        if bar.low > bar.high:
            raise InvalidRequest(f"Bar at {bar.start} has low above high")
        if bar.low <= 0:
            raise InvalidRequest(f"Bar at {bar.start} has non-positive prices")
        self._bars.setdefault(pair, SortedDict())[bar.start] = bar

    def add_bars(self, pair: AssetPair, rows: Iterable[dict]):
        """Load bars from mappings with start/open/high/low/close keys"""
        count = 0
        for row in rows:
            self.add_bar(pair, Bar(
                start=row["start"],
                open=to_decimal(row["open"]),
                high=to_decimal(row["high"]),
                low=to_decimal(row["low"]),
                close=to_decimal(row["close"])
            ))
            count += 1
        logger.info(f"Loaded {count} bars for {pair}")

    def bar_at(self, pair: AssetPair, instant: datetime) -> Optional[Bar]:
        """Bar whose interval contains `instant`"""
        bars = self._bars.get(pair)
        if not bars:
            return None
        idx = bars.bisect_right(instant)
        if idx == 0:
            return None
        bar = bars.peekitem(idx - 1)[1]
        if instant >= bar.start + self.bar_duration:
            return None
        return bar

    def latest_bar(self, pair: AssetPair, instant: datetime) -> Optional[Bar]:
        """Last bar fully completed at `instant`; a bar still forming is not visible."""
        bars = self._bars.get(pair)
        if not bars:
            return None
        idx = bars.bisect_right(instant - self.bar_duration)
        if idx == 0:
            return None
        return bars.peekitem(idx - 1)[1]

    def price_at(self, pair: AssetPair, instant: datetime) -> Optional[Decimal]:
        bar = self.bar_at(pair, instant)
        if bar is None:
            return None
        with exact_arithmetic():
            return bar.mid
