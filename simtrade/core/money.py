"""
Decimal helpers shared by every money and quantity computation.

Addition, subtraction and multiplication run under `exact_arithmetic()`,
whose precision is large enough that no result is ever rounded. Division
(notional -> quantity) and fee models, which may divide, use a fixed
34-digit context so identical inputs always give identical results.
"""
import decimal
from decimal import Decimal, Context, InvalidOperation, ROUND_HALF_EVEN

from .errors import InvalidRequest

DIVISION_PRECISION = 34

_DIVISION_CONTEXT = Context(prec=DIVISION_PRECISION, rounding=ROUND_HALF_EVEN)

_EXACT_CONTEXT = Context(
    prec=decimal.MAX_PREC,
    Emax=decimal.MAX_EMAX,
    Emin=decimal.MIN_EMIN,
    rounding=ROUND_HALF_EVEN,
    traps=[InvalidOperation, decimal.DivisionByZero, decimal.Overflow]
)

ZERO = Decimal(0)


def exact_arithmetic():
    """Context manager in which +, - and * never round"""
    return decimal.localcontext(_EXACT_CONTEXT)


def bounded_arithmetic():
    """Context manager with the fixed division precision, for code that may divide"""
    return decimal.localcontext(_DIVISION_CONTEXT)


def to_decimal(value) -> Decimal:
    """Coerce int/str/float/Decimal to a finite Decimal (floats go through str)."""
    if isinstance(value, bool):
        raise InvalidRequest(f"Not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value)
        except InvalidOperation:
            raise InvalidRequest(f"Not a number: {value!r}") from None
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        raise InvalidRequest(f"Not a number: {value!r}")

    if not result.is_finite():
        raise InvalidRequest(f"Not a finite number: {value!r}")
    return result


def divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == 0:
        raise InvalidRequest("Division by zero price")
    return _DIVISION_CONTEXT.divide(numerator, denominator)


def is_whole(value: Decimal) -> bool:
    return value == value.to_integral_value()
