from decimal import Decimal

import pytest

from simtrade.core.errors import InvalidRequest
from simtrade.core.money import DIVISION_PRECISION, divide, exact_arithmetic, is_whole, to_decimal


def test_float_goes_through_str():
    assert to_decimal(276.39) == Decimal("276.39")


@pytest.mark.parametrize("value", ["abc", "NaN", "Infinity", True, None, [1]])
def test_rejects_non_numbers(value):
    with pytest.raises(InvalidRequest):
        to_decimal(value)


def test_division_is_deterministic_and_bounded():
    q1 = divide(Decimal(100), Decimal("276.39"))
    q2 = divide(Decimal(100), Decimal("276.39"))
    assert q1 == q2
    assert len(q1.as_tuple().digits) == DIVISION_PRECISION


def test_division_by_zero_is_invalid():
    with pytest.raises(InvalidRequest):
        divide(Decimal(1), Decimal(0))


def test_exact_arithmetic_does_not_round():
    a = Decimal("0.1234567890123456789012345678901234")
    b = Decimal("1000000000000")
    with exact_arithmetic():
        total = a + b
    assert total - b == a


def test_is_whole():
    assert is_whole(Decimal("3.000"))
    assert not is_whole(Decimal("3.5"))
