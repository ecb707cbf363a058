from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from fund_ledger.domain.enums import ALL_SCOPES
from fund_ledger.domain.models import DateRange, FundTransaction


def is_all_scopes(scope: Optional[str]) -> bool:
    """True when the scope means the unpartitioned, organisation-wide view"""
    return scope is None or scope == ALL_SCOPES


class FundTransactionRepository(ABC):
    """
    Abstract store for fund ledger rows.

    The repository pattern abstracts the data access, so demo mode, the
    local database and the remote script endpoint are interchangeable
    behind the ledger service.

    Rows are kept in insertion order. That order, not the transaction
    date, defines which row is "latest".
    """

    @abstractmethod
    def insert(self, scope: Optional[str], transaction: FundTransaction) -> str:
        """
        Durably append a row to the ledger.

        Args:
            scope: Department the row belongs to (None/ALL_SCOPES for none)
            transaction: Row to store, balance_after already computed

        Returns:
            The id assigned to the row. The transaction's `id` and
            `sequence` are populated in place.

        Raises:
            StorageError: If the backend write fails
        """
        pass

    @abstractmethod
    def update(self, transaction_id: str, patch: Dict[str, Any]) -> FundTransaction:
        """
        Change fields of an existing row in place.

        Args:
            transaction_id: Row to change
            patch: Validated field values keyed by attribute name

        Returns:
            The updated row

        Raises:
            NotFoundError: If the row doesn't exist
            StorageError: If the backend write fails
        """
        pass

    @abstractmethod
    def delete(self, transaction_id: str) -> None:
        """
        Remove a row.

        Raises:
            NotFoundError: If the row doesn't exist
            StorageError: If the backend write fails
        """
        pass

    @abstractmethod
    def query_latest(self, scope: Optional[str]) -> Optional[FundTransaction]:
        """
        Most recently inserted row for a scope.

        For None/ALL_SCOPES this is the latest row across every scope.
        """
        pass

    @abstractmethod
    def query_all(
        self,
        scope: Optional[str] = None,
        date_range: Optional[DateRange] = None,
    ) -> List[FundTransaction]:
        """
        Retrieve rows with optional filtering.

        Args:
            scope: Department filter, None/ALL_SCOPES for every department
            date_range: Inclusive filter on the transaction date

        Returns:
            Matching rows in ascending insertion order
        """
        pass

    @abstractmethod
    def get_by_id(self, transaction_id: str) -> Optional[FundTransaction]:
        """Retrieve a row by id, or None if it doesn't exist"""
        pass
