"""
Fee models. A fee is charged in the quote currency at settlement.
"""
from abc import ABC, abstractmethod
from decimal import Decimal

from .errors import InvalidRequest
from .money import exact_arithmetic, to_decimal
from .types import Side


class FeeModel(ABC):

    @abstractmethod
    def fee(self, notional: Decimal, side: Side) -> Decimal:
        """
        Fee owed for a fill of `notional` value on `side`, in the quote currency.
        Called under a 34-digit decimal context; the result must not be negative.
        """
        pass


class NoFee(FeeModel):

    def fee(self, notional: Decimal, side: Side) -> Decimal:
        return Decimal(0)

    def __repr__(self):
        return "NoFee()"


class PercentageFee(FeeModel):
    """Proportional fee; `percent` is 0-100, e.g. 0.25 means 0.25%"""

    def __init__(self, percent):
        percent = to_decimal(percent)
        if percent < 0 or percent > 100:
            raise InvalidRequest(f"Fee percentage must be between 0 and 100, got {percent}")
        self.percent = percent

    def fee(self, notional: Decimal, side: Side) -> Decimal:
        with exact_arithmetic():
            return (notional * self.percent).scaleb(-2)

    def __repr__(self):
        return f"PercentageFee({self.percent})"


class FlatFee(FeeModel):
    """Fixed fee per fill regardless of size"""

    def __init__(self, amount):
        amount = to_decimal(amount)
        if amount < 0:
            raise InvalidRequest(f"Flat fee must not be negative, got {amount}")
        self.amount = amount

    def fee(self, notional: Decimal, side: Side) -> Decimal:
        return self.amount

    def __repr__(self):
        return f"FlatFee({self.amount})"
