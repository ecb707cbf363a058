import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, Generator, List, Optional

from fund_ledger.database.connection import DatabaseManager, execute_schema
from fund_ledger.domain.enums import TransactionDirection
from fund_ledger.domain.exceptions import NotFoundError, StorageError
from fund_ledger.domain.models import DateRange, FundTransaction
from fund_ledger.repositories.base import FundTransactionRepository, is_all_scopes

logger = logging.getLogger(__name__)

# Domain attribute -> table column
COLUMNS = {
    "date": "date",
    "direction": "type",
    "amount": "amount",
    "description": "content",
    "performed_by": "performer",
}

class SQLiteFundTransactionRepository(FundTransactionRepository):
    """
    SQLite implementation of the FundTransactionRepository.

    Handles all database operations for the ledger using raw SQL.
    Every sqlite3 failure is re-raised as StorageError.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def ensure_schema(self) -> None:
        """Create the ledger tables if they don't exist yet."""
        with self._storage_errors("schema setup"), self.db.read() as conn:
            execute_schema(conn)

    @contextmanager
    def _storage_errors(self, action: str) -> Generator[None, None, None]:
        try:
            yield
        except sqlite3.Error as e:
            logger.error("SQLite %s failed: %s", action, e)
            raise StorageError(f"Database {action} failed: {e}") from e

    def insert(self, scope: Optional[str], transaction: FundTransaction) -> str:
        """Insert a row and populate its id and sequence."""
        transaction_id = f"T-{uuid.uuid4().hex[:12]}"
        department = None if is_all_scopes(scope) else scope

        with self._storage_errors("insert"), self.db.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO fund_transactions (
                    id, date, department, type, content, performer,
                    amount, balance_after
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    transaction_id,
                    transaction.date.isoformat(),
                    department,
                    transaction.direction.value,
                    transaction.description,
                    transaction.performed_by,
                    transaction.amount,
                    transaction.balance_after,
                ),
            )
            transaction.sequence = cursor.lastrowid

        transaction.id = transaction_id
        transaction.scope = department
        return transaction_id

    def update(self, transaction_id: str, patch: Dict[str, Any]) -> FundTransaction:
        """Update the given columns of an existing row."""
        assignments = []
        params: List[Any] = []
        for name, value in patch.items():
            assignments.append(f"{COLUMNS[name]} = ?")
            params.append(self._to_column_value(value))
        params.append(transaction_id)

        with self._storage_errors("update"), self.db.transaction() as conn:
            cursor = conn.execute(
                f"UPDATE fund_transactions SET {', '.join(assignments)} WHERE id = ?",
                params,
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Transaction with ID {transaction_id} not found")

        return self.get_by_id(transaction_id)

    def delete(self, transaction_id: str) -> None:
        with self._storage_errors("delete"), self.db.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM fund_transactions WHERE id = ?",
                (transaction_id,)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Transaction with ID {transaction_id} not found")

    def query_latest(self, scope: Optional[str]) -> Optional[FundTransaction]:
        query = "SELECT * FROM fund_transactions"
        params = []
        if not is_all_scopes(scope):
            query += " WHERE department = ?"
            params.append(scope)
        query += " ORDER BY sequence DESC LIMIT 1"

        with self._storage_errors("read"), self.db.read() as conn:
            row = conn.execute(query, params).fetchone()

        return self._row_to_transaction(row) if row else None

    def query_all(
        self,
        scope: Optional[str] = None,
        date_range: Optional[DateRange] = None,
    ) -> List[FundTransaction]:
        """Retrieve rows with optional filtering, oldest insert first."""
        query = "SELECT * FROM fund_transactions WHERE 1=1"
        params = []

        if not is_all_scopes(scope):
            query += " AND department = ?"
            params.append(scope)

        if date_range and date_range.start:
            query += " AND date >= ?"
            params.append(date_range.start.isoformat())

        if date_range and date_range.end:
            query += " AND date <= ?"
            params.append(date_range.end.isoformat())

        query += " ORDER BY sequence ASC"

        with self._storage_errors("read"), self.db.read() as conn:
            rows = conn.execute(query, params).fetchall()

        return [self._row_to_transaction(row) for row in rows]

    def get_by_id(self, transaction_id: str) -> Optional[FundTransaction]:
        with self._storage_errors("read"), self.db.read() as conn:
            row = conn.execute(
                "SELECT * FROM fund_transactions WHERE id = ?",
                (transaction_id,)
            ).fetchone()

        if row is None:
            return None

        return self._row_to_transaction(row)

    @staticmethod
    def _to_column_value(value: Any) -> Any:
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, TransactionDirection):
            return value.value
        return value

    def _row_to_transaction(self, row: sqlite3.Row) -> FundTransaction:
        """Convert database row to FundTransaction object."""
        return FundTransaction(
            id=row["id"],
            sequence=row["sequence"],
            date=date.fromisoformat(row["date"]),
            scope=row["department"],
            direction=TransactionDirection(row["type"]),
            description=row["content"],
            performed_by=row["performer"],
            amount=row["amount"],
            balance_after=row["balance_after"],
        )
