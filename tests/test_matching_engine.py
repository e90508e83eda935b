from datetime import datetime, timezone
from decimal import Decimal

import pytest

from simtrade import Amount, AssetPair, FlatFee, Ledger, MatchingEngine, NoFee, Order, PercentageFee, Side
from simtrade.core.errors import InvalidRequest, RejectionReason
from simtrade.core.fees import FeeModel
from simtrade.core.money import DIVISION_PRECISION, divide
from simtrade.core.types import LedgerEntry

T0 = datetime(2025, 12, 17, tzinfo=timezone.utc)
PAIR = AssetPair("AAPL", "USD")


def order(side=Side.BUY, amount=None, limit_price=None):
    return Order(
        order_id="o-1",
        sequence=1,
        pair=PAIR,
        side=side,
        amount=amount or Amount.quantity(1),
        created_at=T0,
        limit_price=None if limit_price is None else Decimal(limit_price)
    )


@pytest.fixture
def engine():
    return MatchingEngine(NoFee())


def test_market_without_price_is_no_liquidity(engine):
    result = engine.match_order(order(), None, Ledger({"USD": 1000}), initial=True)
    assert result.rejection_reason == RejectionReason.NO_LIQUIDITY


def test_pending_without_price_stays_pending_on_reevaluation(engine):
    result = engine.match_order(order(limit_price=100), None, Ledger({"USD": 1000}), initial=False)
    assert not result.fill
    assert not result.rejected


def test_market_fills_at_price(engine):
    result = engine.match_order(order(), Decimal("276.39"), Ledger({"USD": 1000}), initial=True)
    assert result.fill
    assert result.price == Decimal("276.39")
    assert result.quantity == 1
    assert result.notional == Decimal("276.39")


@pytest.mark.parametrize("side,limit,price,crosses", [
    (Side.BUY, 250, "276.39", False),
    (Side.BUY, 250, "250", True),
    (Side.BUY, 250, "240", True),
    (Side.SELL, 300, "276.39", False),
    (Side.SELL, 300, "300", True),
    (Side.SELL, 300, "310", True),
])
def test_limit_crossing_is_inclusive(side, limit, price, crosses):
    assert MatchingEngine.crosses(order(side=side, limit_price=limit), Decimal(price)) is crosses


def test_resting_limit_checked_at_limit_price(engine):
    resting = order(amount=Amount.quantity(5), limit_price=250)
    assert not engine.match_order(resting, Decimal(300), Ledger({"USD": 1250}), initial=True).rejected

    result = engine.match_order(resting, Decimal(300), Ledger({"USD": 1249}), initial=True)
    assert result.rejection_reason == RejectionReason.INSUFFICIENT_FUNDS


def test_fill_needing_more_than_balance_is_rejected(engine):
    result = engine.match_order(order(amount=Amount.notional(101)), Decimal(10), Ledger({"USD": 100}), initial=True)
    assert result.rejection_reason == RejectionReason.INSUFFICIENT_FUNDS


def test_settlement_entries_include_fee():
    engine = MatchingEngine(PercentageFee(1))
    buy = order(amount=Amount.quantity(2))
    quantity, notional, fee = engine.fill_terms(buy, Decimal(50))
    assert (quantity, notional, fee) == (Decimal(2), Decimal(100), Decimal(1))

    assert engine.settlement_entries(buy, quantity, notional, fee) == [
        LedgerEntry("USD", Decimal(-101), "buy", "o-1"),
        LedgerEntry("AAPL", Decimal(2), "buy", "o-1"),
    ]

    sell = order(side=Side.SELL, amount=Amount.quantity(2))
    assert engine.settlement_entries(sell, quantity, notional, fee) == [
        LedgerEntry("AAPL", Decimal(-2), "sell", "o-1"),
        LedgerEntry("USD", Decimal(99), "sell", "o-1"),
    ]


def test_sell_fee_larger_than_proceeds_is_rejected():
    engine = MatchingEngine(FlatFee(5))
    result = engine.match_order(
        order(side=Side.SELL), Decimal(1), Ledger({"USD": 100, "AAPL": 1}), initial=True
    )
    assert result.rejection_reason == RejectionReason.INSUFFICIENT_FUNDS


class SeventhFee(FeeModel):

    def fee(self, notional, side):
        return notional / 7


def test_fee_model_runs_at_division_precision():
    engine = MatchingEngine(SeventhFee())
    _, notional, fee = engine.fill_terms(order(amount=Amount.quantity(1)), Decimal(1))
    assert notional == Decimal(1)
    assert fee == divide(Decimal(1), Decimal(7))
    assert len(fee.as_tuple().digits) == DIVISION_PRECISION


class FloatFee(FeeModel):

    def fee(self, notional, side):
        return 0.1


class RebateFee(FeeModel):

    def fee(self, notional, side):
        return Decimal(-1)


def test_fee_model_result_is_coerced_to_decimal():
    assert MatchingEngine(FloatFee()).fee_for(Decimal(10), Side.BUY) == Decimal("0.1")


def test_negative_fee_is_invalid():
    with pytest.raises(InvalidRequest, match="negative fee"):
        MatchingEngine(RebateFee()).fee_for(Decimal(10), Side.BUY)
