"""
Per-asset balance store for a single account.

Every mutation goes through `settle`, which checks all legs before applying
any of them, so a settlement either applies completely or not at all.
"""
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
import logging

from .errors import InsufficientFunds, InvalidRequest, LedgerInvariantError
from .money import ZERO, exact_arithmetic, to_decimal
from .types import LedgerEntry

logger = logging.getLogger(__name__)


class Ledger:

    def __init__(self, balances: Optional[Dict[str, Decimal]] = None):
        self._balances: Dict[str, Decimal] = {}
        self._journal: List[LedgerEntry] = []

        for asset, amount in (balances or {}).items():
            amount = to_decimal(amount)
            if amount < 0:
                raise InvalidRequest(f"Starting balance for {asset} must not be negative")
            if amount > 0:
                self.credit(asset, amount, reason="opening balance")

    # ========================================================================
    # QUERIES
    # ========================================================================

    def balance(self, asset: str) -> Decimal:
        return self._balances.get(asset, ZERO)

    def balances(self) -> Dict[str, Decimal]:
        return dict(self._balances)

    @property
    def journal(self) -> List[LedgerEntry]:
        return list(self._journal)

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def credit(self, asset: str, amount: Decimal, reason: str = "credit", order_id: Optional[str] = None):
        amount = self._check_positive(amount)
        self.settle([LedgerEntry(asset, amount, reason, order_id)])

    def debit(self, asset: str, amount: Decimal, reason: str = "debit", order_id: Optional[str] = None):
        amount = self._check_positive(amount)
        self.settle([LedgerEntry(asset, amount.copy_negate(), reason, order_id)])

    def can_settle(self, entries: Iterable[LedgerEntry]) -> bool:
        return self._shortfall(list(entries)) is None

    def settle(self, entries: Iterable[LedgerEntry]):
        """
        Apply all entries atomically.
        Raises InsufficientFunds (nothing applied) if any asset would go negative.
        """
        entries = [e for e in entries if e.delta != 0]
        shortfall = self._shortfall(entries)
        if shortfall is not None:
            asset, resulting = shortfall
            raise InsufficientFunds(
                f"Not enough {asset}: balance {self.balance(asset)}, "
                f"settlement would leave {resulting}"
            )

        with exact_arithmetic():
            for entry in entries:
                self._balances[entry.asset] = self.balance(entry.asset) + entry.delta
                self._journal.append(entry)

        for entry in entries:
            if self._balances[entry.asset] < 0:
                raise LedgerInvariantError(
                    f"{entry.asset} balance negative after settlement: {self._balances[entry.asset]}"
                )
        logger.debug(f"Settled {len(entries)} ledger entries")

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _shortfall(self, entries: List[LedgerEntry]):
        """(asset, resulting balance) of the first asset that would go negative"""
        with exact_arithmetic():
            resulting: Dict[str, Decimal] = {}
            for entry in entries:
                resulting[entry.asset] = resulting.get(entry.asset, self.balance(entry.asset)) + entry.delta
        for asset, value in resulting.items():
            if value < 0:
                return asset, value
        return None

    @staticmethod
    def _check_positive(amount) -> Decimal:
        amount = to_decimal(amount)
        if amount <= 0:
            raise InvalidRequest(f"Ledger amount must be positive, got {amount}")
        return amount

    def __repr__(self):
        return f"Ledger(assets={len(self._balances)}, entries={len(self._journal)})"
