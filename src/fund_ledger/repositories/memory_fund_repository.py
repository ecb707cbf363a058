import copy
import logging
import threading
from dataclasses import replace
from datetime import date
from typing import Any, Dict, List, Optional

from fund_ledger.domain.enums import TransactionDirection
from fund_ledger.domain.exceptions import NotFoundError
from fund_ledger.domain.models import DateRange, FundTransaction
from fund_ledger.repositories.base import FundTransactionRepository, is_all_scopes

logger = logging.getLogger(__name__)

# Rows shown when the dashboard runs in demo mode
DEMO_TRANSACTIONS = [
    FundTransaction(
        id="T001",
        date=date(2023, 10, 1),
        direction=TransactionDirection.INCOME,
        description="Thu quỹ hàng tháng T10",
        performed_by="Nguyễn Văn A",
        amount=5000000,
        balance_after=5000000,
    ),
    FundTransaction(
        id="T002",
        date=date(2023, 10, 5),
        direction=TransactionDirection.EXPENSE,
        description="Mua văn phòng phẩm",
        performed_by="Trần Thị B",
        amount=1200000,
        balance_after=3800000,
    ),
]


class InMemoryFundTransactionRepository(FundTransactionRepository):
    """
    In-process implementation used for demo mode and tests.

    Nothing is persisted. Rows handed out are copies, so callers can't
    change stored state behind the repository's back.
    """

    def __init__(self, seed: bool = False):
        self._rows: List[FundTransaction] = []
        self._next_sequence = 1
        # Each store call is atomic, like a single remote request
        self._lock = threading.RLock()
        if seed:
            for txn in DEMO_TRANSACTIONS:
                self._append(copy.copy(txn))

    def _append(self, transaction: FundTransaction) -> FundTransaction:
        transaction.sequence = self._next_sequence
        if transaction.id is None:
            transaction.id = f"T-{self._next_sequence}"
        self._next_sequence += 1
        self._rows.append(transaction)
        return transaction

    def _find_index(self, transaction_id: str) -> int:
        for index, row in enumerate(self._rows):
            if row.id == transaction_id:
                return index
        raise NotFoundError(f"Transaction with ID {transaction_id} not found")

    def insert(self, scope: Optional[str], transaction: FundTransaction) -> str:
        """Append a copy of the transaction"""
        transaction.scope = None if is_all_scopes(scope) else scope
        with self._lock:
            stored = self._append(copy.copy(transaction))
        transaction.id = stored.id
        transaction.sequence = stored.sequence
        logger.debug("Stored %s in memory", stored.id)
        return stored.id

    def update(self, transaction_id: str, patch: Dict[str, Any]) -> FundTransaction:
        with self._lock:
            index = self._find_index(transaction_id)
            self._rows[index] = replace(self._rows[index], **patch)
            return copy.copy(self._rows[index])

    def delete(self, transaction_id: str) -> None:
        with self._lock:
            del self._rows[self._find_index(transaction_id)]

    def query_latest(self, scope: Optional[str]) -> Optional[FundTransaction]:
        with self._lock:
            for row in reversed(self._rows):
                if is_all_scopes(scope) or row.scope == scope:
                    return copy.copy(row)
        return None

    def query_all(
        self,
        scope: Optional[str] = None,
        date_range: Optional[DateRange] = None,
    ) -> List[FundTransaction]:
        with self._lock:
            return [
                copy.copy(row)
                for row in self._rows
                if (is_all_scopes(scope) or row.scope == scope)
                and (date_range is None or date_range.contains(row.date))
            ]

    def get_by_id(self, transaction_id: str) -> Optional[FundTransaction]:
        with self._lock:
            try:
                return copy.copy(self._rows[self._find_index(transaction_id)])
            except NotFoundError:
                return None
