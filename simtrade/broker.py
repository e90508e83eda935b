"""
Simulated broker: the composition root of the engine.

Wires ledger + order book + environment (clock and data source) + matching
engine behind the trading operations. One broker manages one account.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Set
import logging
import threading

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .core.data_source import InMemoryDataSource, MarketDataSource
from .core.errors import (
    InvalidRequest, InvalidState, InsufficientFunds, LedgerInvariantError, REJECTIONS
)
from .core.fees import FeeModel, FlatFee, NoFee, PercentageFee
from .core.ledger import Ledger
from .core.matching_engine import MatchingEngine
from .core.money import ZERO, exact_arithmetic, is_whole, to_decimal
from .core.order_book import OrderBook
from .core.time_engine import SimulatedClock, SimulatedEnvironment
from .core.types import (
    Account, Amount, Asset, AssetPair, ClockAdvancedEvent, LedgerEntry, MatchResult,
    OpenPosition, Order, OrderRequest, Side
)

logger = logging.getLogger(__name__)

DEFAULT_START_TIME = datetime(2000, 1, 1, tzinfo=timezone.utc)

# ============================================================================
# CONFIGURATION
# ============================================================================

class BrokerConfig(BaseModel):
    """
    Construction parameters for a SimulatedBroker, consumed once.

    currency:          base currency of the account; always a notional asset
    initial_balance:   opening balance in `currency`
    notional_assets:   extra currency-like assets usable as quotes, mapped to
                       an optional opening balance
    unit_assets:       base assets that trade in whole units only when sized
                       by quantity (e.g. equities)
    fee_model:         fee charged in the quote currency on every fill
    start_time:        initial simulated instant (timezone-aware)
    refresh_interval:  step size used when advancing the clock; None advances
                       in a single step
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    currency: str = "USD"
    initial_balance: Decimal = Decimal(0)
    notional_assets: Dict[str, Optional[Decimal]] = Field(default_factory=dict)
    unit_assets: Set[str] = Field(default_factory=set)
    fee_model: FeeModel = Field(default_factory=NoFee)
    start_time: datetime = DEFAULT_START_TIME
    refresh_interval: Optional[timedelta] = None

    @field_validator("currency")
    @classmethod
    def _currency_not_blank(cls, v: str) -> str:
        if not v or not v.strip() or "/" in v:
            raise ValueError("currency must be a non-empty asset symbol")
        return v.strip()

    @field_validator("initial_balance", mode="before")
    @classmethod
    def _coerce_balance(cls, v: Any) -> Decimal:
        v = to_decimal(v)
        if v < 0:
            raise ValueError("initial_balance must not be negative")
        return v

    @field_validator("notional_assets", mode="before")
    @classmethod
    def _coerce_notional_balances(cls, v: Any) -> Dict[str, Optional[Decimal]]:
        result = {}
        for asset, balance in dict(v or {}).items():
            if not asset or "/" in asset:
                raise ValueError(f"malformed notional asset symbol {asset!r}")
            if balance is not None:
                balance = to_decimal(balance)
                if balance < 0:
                    raise ValueError(f"opening balance for {asset} must not be negative")
            result[asset] = balance
        return result

    @field_validator("start_time")
    @classmethod
    def _start_time_aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            raise ValueError("start_time must be timezone-aware")
        return v

    @field_validator("refresh_interval")
    @classmethod
    def _refresh_positive(cls, v: Optional[timedelta]) -> Optional[timedelta]:
        if v is not None and v <= timedelta(0):
            raise ValueError("refresh_interval must be positive")
        return v

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BrokerConfig":
        """
        Build from plain data (e.g. a decoded config file).
        Fees are given as `fee_percent` or `flat_fee` instead of a model.
        """
        data = dict(data)
        fee_percent = data.pop("fee_percent", None)
        flat_fee = data.pop("flat_fee", None)
        if fee_percent is not None and flat_fee is not None:
            raise ValueError("Specify at most one of fee_percent and flat_fee")
        if fee_percent is not None:
            data["fee_model"] = PercentageFee(fee_percent)
        elif flat_fee is not None:
            data["fee_model"] = FlatFee(flat_fee)
        return cls.model_validate(data)

    def opening_balances(self) -> Dict[str, Decimal]:
        balances = {asset: b for asset, b in self.notional_assets.items() if b is not None}
        balances[self.currency] = self.initial_balance
        return balances

# ============================================================================
# BROKER
# ============================================================================

class SimulatedBroker:
    """
    In-process broker for a single account.

    Orders are evaluated synchronously: placement resolves to FILLED,
    REJECTED or PENDING before returning. Pending limit orders are
    re-evaluated, earliest first, every time the clock advances.

    Calls are serialised with a re-entrant lock so balance checks and
    settlements cannot interleave between threads.
    """

    def __init__(
        self,
        config: Optional[BrokerConfig] = None,
        data_source: Optional[MarketDataSource] = None
    ):
        self.config = config or BrokerConfig()
        self.currency = self.config.currency
        self.notional_assets = frozenset({self.currency, *self.config.notional_assets})

        self.data_source = data_source if data_source is not None else InMemoryDataSource()
        self.clock = SimulatedClock(self.config.start_time)
        self.environment = SimulatedEnvironment(
            self.clock,
            self.data_source,
            refresh_interval=self.config.refresh_interval
        )
        self._ledger = Ledger(self.config.opening_balances())
        self._book = OrderBook()
        self.matching_engine = MatchingEngine(self.config.fee_model)

        self._lock = threading.RLock()
        self.environment.register_handler(self._on_clock_advanced)

        logger.info(
            f"Simulated broker ready: currency={self.currency}, "
            f"balance={self.config.initial_balance}, fee={self.config.fee_model!r}"
        )

    # ========================================================================
    # ORDERS
    # ========================================================================

    def place_order(self, request: OrderRequest) -> str:
        """
        Place an order and evaluate it immediately.
        Returns the order id; raises InvalidRequest (nothing recorded) or an
        OrderRejected subclass (order recorded as REJECTED).
        """
        with self._lock:
            self._validate(request)

            order = Order(
                order_id=self._book.new_order_id(),
                sequence=self._book.next_sequence(),
                pair=request.pair,
                side=request.side,
                amount=request.amount,
                created_at=self.clock.now(),
                limit_price=request.limit_price
            )
            price = self.environment.price(order.pair)
            # Evaluated before recording so a failure leaves no trace in the book
            result = self.matching_engine.match_order(order, price, self._ledger, initial=True)

            self._book.add(order)
            logger.info(
                f"Order {order.order_id} placed: {order.order_type.value} {order.side.value} "
                f"{order.amount} {order.pair}"
                + (f" @ {order.limit_price}" if order.limit_price is not None else "")
            )
            updated = self._apply(result)

            if result.rejected:
                raise REJECTIONS[result.rejection_reason](
                    f"Order {order.order_id} rejected: {result.rejection_reason.value}",
                    order_id=order.order_id
                )
            return updated.order_id

    def submit(self, pair, side: Side, amount: Amount, limit_price=None) -> str:
        """place_order taking the request fields directly"""
        request = OrderRequest(
            pair=AssetPair.coerce(pair),
            side=side,
            amount=amount,
            limit_price=limit_price
        )
        return self.place_order(request)

    def cancel_order(self, order_id: str) -> Order:
        with self._lock:
            order = self._book.ensure_pending(order_id)
            cancelled = order.cancelled(self.clock.now())
            self._book.update(cancelled)
            logger.info(f"Order {order_id} cancelled")
            return cancelled

    def get_order(self, order_id: str) -> Order:
        return self._book.get(order_id)

    def get_orders(self) -> List[Order]:
        return self._book.all()

    def pending_orders(self) -> List[Order]:
        return self._book.pending()

    # ========================================================================
    # ACCOUNT
    # ========================================================================

    def asset(self, symbol: str) -> Asset:
        """Unit assets listed in the config trade in whole units; everything else is fractional"""
        notional = symbol in self.notional_assets or symbol not in self.config.unit_assets
        return Asset(symbol=symbol, notional=notional)

    def balance(self, asset: str) -> Decimal:
        return self._ledger.balance(asset)

    def journal(self) -> List[LedgerEntry]:
        return self._ledger.journal

    def get_account(self) -> Account:
        with self._lock:
            balances = self._ledger.balances()
            positions = {}
            for asset, quantity in balances.items():
                if asset in self.notional_assets or quantity == 0:
                    continue
                price = self.environment.price(AssetPair(asset, self.currency))
                with exact_arithmetic():
                    market_value = None if price is None else quantity * price
                positions[asset] = OpenPosition(asset=asset, quantity=quantity, market_value=market_value)
            cash = self._ledger.balance(self.currency)
            committed = self._committed(self.currency)
            with exact_arithmetic():
                buying_power = max(ZERO, cash - committed)
            return Account(
                currency=self.currency,
                cash=cash,
                buying_power=buying_power,
                balances=balances,
                open_positions=positions
            )

    def deposit(self, asset: str, amount) -> Decimal:
        self._check_symbol(asset)
        with self._lock:
            self._ledger.credit(asset, amount, reason="deposit")
            logger.info(f"Deposited {amount} {asset}")
            return self._ledger.balance(asset)

    def withdraw(self, asset: str, amount) -> Decimal:
        """Raises InsufficientFunds when the balance does not cover `amount`"""
        self._check_symbol(asset)
        with self._lock:
            self._ledger.debit(asset, amount, reason="withdrawal")
            logger.info(f"Withdrew {amount} {asset}")
            return self._ledger.balance(asset)

    # ========================================================================
    # TIME AND PRICES
    # ========================================================================

    def now(self) -> datetime:
        return self.clock.now()

    def advance(self, duration: timedelta = timedelta(0)) -> datetime:
        """Advance simulated time; pending orders are re-evaluated on every step"""
        with self._lock:
            return self.environment.advance(duration)

    def get_price(self, pair) -> Optional[Decimal]:
        return self.environment.price(AssetPair.coerce(pair))

    def set_price(self, pair, price, instant: Optional[datetime] = None):
        """
        Test hook: set a price on the in-memory data source.
        Pending orders see the new price on the next advance.
        """
        with self._lock:
            if not isinstance(self.data_source, InMemoryDataSource):
                raise InvalidState("set_price requires an in-memory data source")
            pair = AssetPair.coerce(pair)
            self._check_notional(pair)
            self.data_source.set_price(pair, price, instant)

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _validate(self, request: OrderRequest):
        if not isinstance(request.pair, AssetPair):
            raise InvalidRequest(f"Malformed pair: {request.pair!r}")
        if not isinstance(request.side, Side):
            raise InvalidRequest(f"Unknown side: {request.side!r}")
        self._check_notional(request.pair)

        amount = request.amount
        if not isinstance(amount, Amount) or amount.value <= 0:
            raise InvalidRequest(f"Order amount must be positive, got {amount}")
        if request.limit_price is not None and request.limit_price <= 0:
            raise InvalidRequest(f"Limit price must be positive, got {request.limit_price}")
        if not self.asset(request.pair.base).notional and not amount.is_notional and not is_whole(amount.value):
            raise InvalidRequest(f"{request.pair.base} trades in whole units, got {amount.value}")

    def _check_notional(self, pair: AssetPair):
        if pair.quote not in self.notional_assets:
            raise InvalidRequest(f"{pair.quote} is not a valid notional asset")

    @staticmethod
    def _check_symbol(asset):
        if not isinstance(asset, str) or not asset.strip() or "/" in asset:
            raise InvalidRequest(f"Malformed asset symbol: {asset!r}")

    def _committed(self, quote: str) -> Decimal:
        """Quote currency pending buys would spend if they filled at their limits"""
        total = ZERO
        for order in self._book.pending():
            if order.side != Side.BUY or order.pair.quote != quote:
                continue
            _, notional, fee = self.matching_engine.fill_terms(order, order.limit_price)
            with exact_arithmetic():
                total += notional + fee
        return total

    def _apply(self, result: MatchResult) -> Order:
        order = result.order
        now = self.clock.now()

        if result.fill:
            entries = self.matching_engine.settlement_entries(
                order, result.quantity, result.notional, result.fee
            )
            try:
                self._ledger.settle(entries)
            except InsufficientFunds as exc:
                raise LedgerInvariantError(
                    f"Settlement of {order.order_id} failed after passing the balance check"
                ) from exc
            updated = order.filled(result.price, result.quantity, result.notional, result.fee, now)
            self._book.update(updated)
            logger.info(
                f"Order {order.order_id} filled: {order.side.value} {result.quantity} "
                f"{order.pair.base} @ {result.price} (notional {result.notional}, fee {result.fee})"
            )
            return updated

        if result.rejected:
            updated = order.rejected(result.rejection_reason, now)
            self._book.update(updated)
            logger.info(f"Order {order.order_id} rejected: {result.rejection_reason.value}")
            return updated

        return order

    def _on_clock_advanced(self, event: ClockAdvancedEvent):
        self._reevaluate_pending(event.current)

    def _reevaluate_pending(self, instant: datetime):
        for order_id in self._book.iter_pending_ids():
            order = self._book.get(order_id)
            price = self.environment.price(order.pair)
            result = self.matching_engine.match_order(order, price, self._ledger, initial=False)
            if result.rejected:
                logger.warning(
                    f"Pending order {order_id} rejected at {instant}: "
                    f"{result.rejection_reason.value}"
                )
            else:
                logger.debug(f"Re-evaluated {order_id} at {instant}: price={price}, fill={result.fill}")
            self._apply(result)

    def __repr__(self):
        return f"SimulatedBroker(currency={self.currency}, now={self.clock.now()}, {self._book!r})"
