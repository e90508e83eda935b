"""
Simulated clock and market environment.
Time only moves when the caller advances it; nothing runs in the background.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional
import logging

from .data_source import MarketDataSource
from .errors import InvalidRequest
from .types import AssetPair, ClockAdvancedEvent

logger = logging.getLogger(__name__)

ClockHandler = Callable[[ClockAdvancedEvent], None]

@dataclass
class ClockStats:
    """Counters for the simulated clock"""
    advances: int = 0
    handler_calls: int = 0

class SimulatedClock:
    """
    Monotonic simulated clock with:
    - explicit advance (never rewinds)
    - synchronous handlers fired after every advance, in registration order
    """

    def __init__(self, start: datetime):
        if start.tzinfo is None:
            raise InvalidRequest("Clock start time must be timezone-aware")
        self._now = start
        self._handlers: List[ClockHandler] = []
        self.stats = ClockStats()

    def now(self) -> datetime:
        return self._now

    # ========================================================================
    # HANDLERS
    # ========================================================================

    def register_handler(self, handler: ClockHandler):
        self._handlers.append(handler)

    # ========================================================================
    # ADVANCING
    # ========================================================================

    def advance(self, duration: timedelta) -> datetime:
        """Move forward by `duration` (zero allowed) and fire handlers"""
        if duration < timedelta(0):
            raise InvalidRequest(f"Cannot advance by negative duration {duration}")
        return self.advance_to(self._now + duration)

    def advance_to(self, instant: datetime) -> datetime:
        if instant < self._now:
            raise InvalidRequest(f"Cannot rewind clock from {self._now} to {instant}")

        event = ClockAdvancedEvent(previous=self._now, current=instant)
        self._now = instant
        self.stats.advances += 1
        logger.debug(f"Clock advanced {event.previous} -> {event.current}")

        # Handler errors propagate: a failing handler is a broken invariant
        for handler in self._handlers:
            handler(event)
            self.stats.handler_calls += 1
        return self._now

class SimulatedEnvironment:
    """
    Clock plus data source: answers "what is the price now".

    With a `refresh_interval`, `advance` walks the clock forward in steps of
    that size so handlers observe every intermediate price.
    """

    def __init__(
        self,
        clock: SimulatedClock,
        data_source: MarketDataSource,
        refresh_interval: Optional[timedelta] = None
    ):
        if refresh_interval is not None and refresh_interval <= timedelta(0):
            raise InvalidRequest("Refresh interval must be positive")
        self.clock = clock
        self.data_source = data_source
        self.refresh_interval = refresh_interval

    def now(self) -> datetime:
        return self.clock.now()

    def price(self, pair: AssetPair) -> Optional[Decimal]:
        return self.data_source.price_at(pair, self.clock.now())

    def register_handler(self, handler: ClockHandler):
        self.clock.register_handler(handler)

    def advance(self, duration: timedelta) -> datetime:
        if duration < timedelta(0):
            raise InvalidRequest(f"Cannot advance by negative duration {duration}")

        target = self.clock.now() + duration
        if self.refresh_interval is None:
            return self.clock.advance_to(target)

        steps = 0
        while True:
            next_time = min(self.clock.now() + self.refresh_interval, target)
            self.clock.advance_to(next_time)
            steps += 1
            if next_time >= target:
                break
        logger.debug(f"Environment advanced to {target} in {steps} steps")
        return self.clock.now()
