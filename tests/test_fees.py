from decimal import Decimal

import pytest

from simtrade import FlatFee, NoFee, PercentageFee, Side
from simtrade.core.errors import InvalidRequest


def test_no_fee():
    assert NoFee().fee(Decimal(100), Side.BUY) == 0


def test_percentage_fee():
    fee = PercentageFee("0.25")
    assert fee.fee(Decimal("88.10"), Side.BUY) == Decimal("0.22025")
    assert fee.fee(Decimal(100), Side.SELL) == Decimal("0.25")


@pytest.mark.parametrize("percent", [-1, "100.01"])
def test_percentage_out_of_range(percent):
    with pytest.raises(InvalidRequest):
        PercentageFee(percent)


def test_flat_fee():
    assert FlatFee(2).fee(Decimal(1), Side.SELL) == Decimal(2)
    with pytest.raises(InvalidRequest):
        FlatFee(-1)
