import logging
import threading
from contextlib import nullcontext
from dataclasses import replace
from typing import ContextManager, Dict, Iterable, List, Optional

from fund_ledger.domain.enums import ALL_SCOPES, TransactionDirection
from fund_ledger.domain.exceptions import NotFoundError, ValidationError
from fund_ledger.domain.models import (
    BalanceDiscrepancy,
    DateRange,
    FundTransaction,
    LedgerSummary,
    LedgerTotals,
    SessionContext,
    TransactionCandidate,
)
from fund_ledger.domain.validation import validate_candidate, validate_patch
from fund_ledger.repositories.base import FundTransactionRepository, is_all_scopes

logger = logging.getLogger(__name__)

class LedgerService:
    """
    Department fund ledger with a stored running balance.

    Each new row reads the `balance_after` of the latest row in its scope
    and persists `prior +/- amount` alongside itself. For the ALL_SCOPES
    sentinel (or no scope) the latest row across every department is used.

    Write strategy: the balance stays denormalized. With
    `serialize_writes=True` (the default) the read-modify-write of
    `add_transaction` runs under one lock per scope, so writers in this
    process can't both read the same prior balance. This does not cover
    other processes sharing the store, nor a department write interleaving
    with an organisation-wide write. `serialize_writes=False` gives the
    unguarded behaviour, where concurrent adds silently corrupt the balance.

    Edits and deletes never recompute any stored balance; use
    `audit_balances` to find rows that went stale.
    """

    def __init__(
        self,
        repository: FundTransactionRepository,
        serialize_writes: bool = True,
    ):
        self.repository = repository
        self.serialize_writes = serialize_writes
        self._scope_locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _write_guard(self, scope: Optional[str]) -> ContextManager:
        if not self.serialize_writes:
            return nullcontext()

        key = ALL_SCOPES if is_all_scopes(scope) else scope
        with self._locks_guard:
            if key not in self._scope_locks:
                self._scope_locks[key] = threading.Lock()
            return self._scope_locks[key]

    def add_transaction(self, candidate: TransactionCandidate) -> FundTransaction:
        """
        Append a transaction and store the running balance after it.

        Args:
            candidate: Date, scope, direction, amount and free-text fields

        Returns:
            The stored transaction with id and balance_after populated

        Raises:
            ValidationError: If the candidate is malformed (nothing is read or written)
            StorageError: If the store fails to read the prior row or to insert

        Example:
            service.add_transaction(TransactionCandidate(
                date="2023-10-01",
                direction=TransactionDirection.INCOME,
                amount=5000000,
                description="Thu quỹ hàng tháng T10",
                scope="Khoa Dược",
            ))
        """
        try:
            candidate = validate_candidate(candidate)
        except ValidationError as e:
            logger.warning("Rejected fund transaction: %s", e)
            raise

        scope = candidate.scope
        with self._write_guard(scope):
            prior = self.repository.query_latest(scope)
            prior_balance = prior.balance_after if prior is not None else 0

            if candidate.direction == TransactionDirection.INCOME:
                new_balance = prior_balance + candidate.amount
            else:
                new_balance = prior_balance - candidate.amount

            transaction = candidate.to_transaction(balance_after=new_balance)
            self.repository.insert(scope, transaction)

        logger.info(
            "Added %s %s %s to %s, balance %s",
            transaction.id,
            transaction.direction.name,
            transaction.amount,
            transaction.scope or ALL_SCOPES,
            transaction.balance_after,
        )
        return transaction

    def update_transaction(self, transaction_id: str, **fields) -> FundTransaction:
        """
        Edit date, direction, amount, description or performed_by in place.

        The stored balance_after of this row and of every later row is
        left as it was.

        Raises:
            ValidationError: If a field is not editable or has a bad value
            NotFoundError: If the transaction doesn't exist
            StorageError: If the store write fails
        """
        try:
            patch = validate_patch(fields)
        except ValidationError as e:
            logger.warning("Rejected update of %s: %s", transaction_id, e)
            raise

        updated = self.repository.update(transaction_id, patch)
        logger.info("Updated %s (%s)", transaction_id, ", ".join(patch))
        return updated

    def delete_transaction(self, transaction_id: str) -> None:
        """
        Remove a transaction. Other rows keep their stored balances.

        Raises:
            NotFoundError: If the transaction doesn't exist
            StorageError: If the store write fails
        """
        self.repository.delete(transaction_id)
        logger.info("Deleted %s", transaction_id)

    def get_transaction(self, transaction_id: str) -> FundTransaction:
        transaction = self.repository.get_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction with ID {transaction_id} not found")
        return transaction

    def list_transactions(
        self,
        scope: Optional[str] = None,
        date_range: Optional[DateRange] = None,
    ) -> List[FundTransaction]:
        """
        Query the ledger.

        Args:
            scope: Department, or None/ALL_SCOPES for every department
            date_range: Inclusive filter on the transaction date

        Returns:
            Matching transactions in insertion order. A date filter can
            leave gaps in the balance sequence; rows are never re-sorted
            by date.
        """
        return self.repository.query_all(scope=scope, date_range=date_range)

    @staticmethod
    def compute_totals(transactions: Iterable[FundTransaction]) -> LedgerTotals:
        """Sum income and expense amounts of exactly the given transactions"""
        income = 0
        expense = 0
        for txn in transactions:
            if txn.direction == TransactionDirection.INCOME:
                income += txn.amount
            else:
                expense += txn.amount
        return LedgerTotals(income_sum=income, expense_sum=expense)

    def current_balance(self, scope: Optional[str] = None) -> int:
        """
        Balance shown on the dashboard card.

        This is the stored balance_after of the latest inserted row in the
        scope, not a sum over rows, and it ignores any date filter.
        """
        latest = self.repository.query_latest(scope)
        return latest.balance_after if latest is not None else 0

    def summarize(
        self,
        scope: Optional[str] = None,
        date_range: Optional[DateRange] = None,
    ) -> LedgerSummary:
        """Filtered rows, totals for that view and the scope's current balance"""
        transactions = self.list_transactions(scope=scope, date_range=date_range)
        return LedgerSummary(
            transactions=transactions,
            totals=self.compute_totals(transactions),
            current_balance=self.current_balance(scope),
        )

    def description_history(self, scope: Optional[str] = None) -> List[str]:
        """Distinct descriptions in first-seen order, for form suggestions"""
        seen = dict.fromkeys(
            txn.description for txn in self.list_transactions(scope=scope)
        )
        return list(seen)

    def audit_balances(self, scope: Optional[str] = None) -> List[BalanceDiscrepancy]:
        """
        Find rows whose stored balance no longer matches the ledger.

        Replays the add algorithm over every row in insertion order: a
        department row continues its department's running balance, a row
        without department continues from the previous row of any scope.
        Nothing is repaired.

        Args:
            scope: Only report rows of this department (None/ALL_SCOPES for all)

        Returns:
            One BalanceDiscrepancy per stale row, in insertion order
        """
        expected_by_scope: Dict[Optional[str], int] = {}
        expected_previous = 0
        discrepancies = []

        for txn in self.repository.query_all():
            if txn.scope is None:
                prior = expected_previous
            else:
                prior = expected_by_scope.get(txn.scope, 0)

            expected = prior + txn.signed_amount
            expected_by_scope[txn.scope] = expected
            expected_previous = expected

            in_scope = is_all_scopes(scope) or txn.scope == scope
            if in_scope and txn.balance_after != expected:
                discrepancies.append(BalanceDiscrepancy(
                    transaction=txn,
                    stored_balance=txn.balance_after,
                    expected_balance=expected,
                ))

        if discrepancies:
            logger.warning(
                "%d stale balance(s) in %s", len(discrepancies), scope or ALL_SCOPES
            )
        return discrepancies

    def add_for_session(
        self,
        session: SessionContext,
        candidate: TransactionCandidate,
    ) -> FundTransaction:
        """Add a transaction filed under the user's department and name"""
        return self.add_transaction(replace(
            candidate,
            scope=candidate.scope if candidate.scope is not None else session.scope,
            performed_by=candidate.performed_by or session.performer_name,
        ))

    def list_for_session(
        self,
        session: SessionContext,
        date_range: Optional[DateRange] = None,
    ) -> List[FundTransaction]:
        """Admins see every department, other users only their own"""
        return self.list_transactions(scope=session.ledger_scope, date_range=date_range)
