from decimal import Decimal

import pytest

from simtrade import InsufficientFunds, InvalidRequest, Ledger
from simtrade.core.types import LedgerEntry


def test_unseen_asset_is_zero():
    assert Ledger().balance("USD") == 0


def test_opening_balances_are_journaled():
    ledger = Ledger({"USD": "14.1"})
    assert ledger.balance("USD") == Decimal("14.1")
    assert ledger.journal == [LedgerEntry("USD", Decimal("14.1"), "opening balance")]


def test_negative_opening_balance_rejected():
    with pytest.raises(InvalidRequest):
        Ledger({"USD": -1})


def test_credit_and_debit():
    ledger = Ledger()
    ledger.credit("USD", "10")
    ledger.debit("USD", "2.5")
    assert ledger.balance("USD") == Decimal("7.5")


def test_debit_beyond_balance_raises_and_leaves_balance():
    ledger = Ledger({"USD": 5})
    with pytest.raises(InsufficientFunds) as excinfo:
        ledger.debit("USD", 6)
    assert excinfo.value.order_id is None
    assert ledger.balance("USD") == 5


@pytest.mark.parametrize("amount", [0, -1])
def test_non_positive_amounts_rejected(amount):
    with pytest.raises(InvalidRequest):
        Ledger().credit("USD", amount)


def test_settle_is_all_or_nothing():
    ledger = Ledger({"USD": 100, "AAPL": 1})
    entries = [
        LedgerEntry("USD", Decimal(50), "sell"),
        LedgerEntry("AAPL", Decimal(-2), "sell"),
    ]
    assert not ledger.can_settle(entries)
    with pytest.raises(InsufficientFunds):
        ledger.settle(entries)
    assert ledger.balances() == {"USD": Decimal(100), "AAPL": Decimal(1)}
    assert len(ledger.journal) == 2


def test_settle_nets_legs_on_same_asset():
    ledger = Ledger({"USD": 10})
    ledger.settle([
        LedgerEntry("USD", Decimal(-15), "x"),
        LedgerEntry("USD", Decimal(5), "y"),
    ])
    assert ledger.balance("USD") == 0


def test_balances_returns_copy():
    ledger = Ledger({"USD": 1})
    ledger.balances()["USD"] = Decimal(999)
    assert ledger.balance("USD") == 1
