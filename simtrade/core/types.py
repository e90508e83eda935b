"""
Domain models for the simulated broker.
Orders, requests and snapshots are immutable; state changes produce new objects.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Tuple
from decimal import Decimal

from .errors import InvalidRequest, RejectionReason
from .money import to_decimal, divide

# ============================================================================
# ENUMS
# ============================================================================

class Side(Enum):
    BUY = "BUY"
    SELL = "SELL"

class OrderType(Enum):
    MARKET = "MARKET"
    LIMIT = "LIMIT"

class OrderStatus(Enum):
    PENDING = "PENDING"
    FILLED = "FILLED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PENDING

# ============================================================================
# ASSETS
# ============================================================================

@dataclass(frozen=True)
class Asset:
    """Tradable instrument. Notional assets trade in fractional amounts."""
    symbol: str
    notional: bool = True

@dataclass(frozen=True)
class AssetPair:
    """Base asset priced in a quote (notional) asset, written BASE/QUOTE"""
    base: str
    quote: str

    def __post_init__(self):
        if not self.base or not self.quote:
            raise InvalidRequest(f"Malformed pair: {self.base!r}/{self.quote!r}")
        if "/" in self.base or "/" in self.quote:
            raise InvalidRequest(f"Malformed pair: {self.base!r}/{self.quote!r}")
        if self.base == self.quote:
            raise InvalidRequest(f"Pair {self.base}/{self.quote} trades an asset against itself")

    @classmethod
    def parse(cls, text: str) -> "AssetPair":
        parts = text.split("/") if isinstance(text, str) else []
        if len(parts) != 2:
            raise InvalidRequest(f"Malformed pair: {text!r}")
        return cls(base=parts[0].strip(), quote=parts[1].strip())

    @classmethod
    def coerce(cls, value) -> "AssetPair":
        if isinstance(value, AssetPair):
            return value
        return cls.parse(value)

    def __str__(self):
        return f"{self.base}/{self.quote}"

# ============================================================================
# AMOUNTS
# ============================================================================

@dataclass(frozen=True)
class Amount:
    """
    Order size: either a notional value in the quote currency or a
    quantity of the base asset. Use the constructors below.
    """
    value: Decimal
    is_notional: bool

    def __post_init__(self):
        object.__setattr__(self, "value", to_decimal(self.value))

    @classmethod
    def notional(cls, value) -> "Amount":
        return cls(value=value, is_notional=True)

    @classmethod
    def quantity(cls, value) -> "Amount":
        return cls(value=value, is_notional=False)

    def resolve(self, price: Decimal) -> Tuple[Decimal, Decimal]:
        """Return (quantity, notional) at the given price."""
        if self.is_notional:
            return divide(self.value, price), self.value
        return self.value, self.value * price

    def __str__(self):
        return f"{self.value} {'notional' if self.is_notional else 'units'}"

# ============================================================================
# ORDERS
# ============================================================================

@dataclass(frozen=True)
class OrderRequest:
    """What a caller asks the broker to do"""
    pair: AssetPair
    side: Side
    amount: Amount
    limit_price: Optional[Decimal] = None

    def __post_init__(self):
        if self.limit_price is not None:
            object.__setattr__(self, "limit_price", to_decimal(self.limit_price))

    @property
    def order_type(self) -> OrderType:
        return OrderType.MARKET if self.limit_price is None else OrderType.LIMIT

    @classmethod
    def market_buy(cls, pair, amount: Amount) -> "OrderRequest":
        return cls(pair=AssetPair.coerce(pair), side=Side.BUY, amount=amount)

    @classmethod
    def market_sell(cls, pair, amount: Amount) -> "OrderRequest":
        return cls(pair=AssetPair.coerce(pair), side=Side.SELL, amount=amount)

    @classmethod
    def limit_buy(cls, pair, amount: Amount, limit_price) -> "OrderRequest":
        return cls(
            pair=AssetPair.coerce(pair),
            side=Side.BUY,
            amount=amount,
            limit_price=limit_price
        )

    @classmethod
    def limit_sell(cls, pair, amount: Amount, limit_price) -> "OrderRequest":
        return cls(
            pair=AssetPair.coerce(pair),
            side=Side.SELL,
            amount=amount,
            limit_price=limit_price
        )

@dataclass(frozen=True)
class Order:
    """Immutable order record"""
    order_id: str
    sequence: int
    pair: AssetPair
    side: Side
    amount: Amount
    created_at: datetime
    limit_price: Optional[Decimal] = None
    status: OrderStatus = OrderStatus.PENDING
    filled_quantity: Decimal = Decimal(0)
    fill_price: Optional[Decimal] = None
    fill_notional: Optional[Decimal] = None
    fee: Decimal = Decimal(0)
    rejection_reason: Optional[RejectionReason] = None
    updated_at: Optional[datetime] = None

    @property
    def order_type(self) -> OrderType:
        return OrderType.MARKET if self.limit_price is None else OrderType.LIMIT

    @property
    def is_pending(self) -> bool:
        return self.status is OrderStatus.PENDING

    def filled(
        self,
        price: Decimal,
        quantity: Decimal,
        notional: Decimal,
        fee: Decimal,
        at: datetime
    ) -> "Order":
        return replace(
            self,
            status=OrderStatus.FILLED,
            fill_price=price,
            filled_quantity=quantity,
            fill_notional=notional,
            fee=fee,
            updated_at=at
        )

    def rejected(self, reason: RejectionReason, at: datetime) -> "Order":
        return replace(self, status=OrderStatus.REJECTED, rejection_reason=reason, updated_at=at)

    def cancelled(self, at: datetime) -> "Order":
        return replace(self, status=OrderStatus.CANCELLED, updated_at=at)

# ============================================================================
# MARKET DATA
# ============================================================================

@dataclass(frozen=True)
class Bar:
    """OHLC bar starting at `start`"""
    start: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal

    @property
    def mid(self) -> Decimal:
        return (self.low + self.high) / 2

# ============================================================================
# ACCOUNT
# ============================================================================

@dataclass(frozen=True)
class LedgerEntry:
    """One applied balance change"""
    asset: str
    delta: Decimal
    reason: str
    order_id: Optional[str] = None

@dataclass(frozen=True)
class OpenPosition:
    asset: str
    quantity: Decimal
    market_value: Optional[Decimal] = None

@dataclass(frozen=True)
class Account:
    """
    Point-in-time view of the account.
    `buying_power` is cash less what pending buys in the account currency
    would spend at their limit prices, never below zero. Nothing is reserved.
    """
    currency: str
    cash: Decimal
    buying_power: Decimal
    balances: Dict[str, Decimal] = field(default_factory=dict)
    open_positions: Dict[str, OpenPosition] = field(default_factory=dict)

    def balance(self, asset: str) -> Decimal:
        return self.balances.get(asset, Decimal(0))

# ============================================================================
# MATCH RESULT / EVENTS
# ============================================================================

@dataclass(frozen=True)
class MatchResult:
    """Outcome of evaluating one order against the current price"""
    order: Order
    fill: bool = False
    price: Optional[Decimal] = None
    quantity: Optional[Decimal] = None
    notional: Optional[Decimal] = None
    fee: Decimal = Decimal(0)
    rejection_reason: Optional[RejectionReason] = None

    @property
    def rejected(self) -> bool:
        return self.rejection_reason is not None

@dataclass(frozen=True)
class ClockAdvancedEvent:
    """Fired by the clock after every advance"""
    previous: datetime
    current: datetime
