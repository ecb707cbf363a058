from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional
from fund_ledger.domain.enums import ALL_SCOPES, TransactionDirection, UserRole

@dataclass
class FundTransaction:
    """Core domain model representing one movement of the department fund"""
    date: date
    direction: TransactionDirection
    amount: int
    description: str
    performed_by: str = ""
    scope: Optional[str] = None
    balance_after: int = 0
    id: Optional[str] = None
    sequence: Optional[int] = None

    @property
    def signed_amount(self) -> int:
        """Return amount with sign for balance calculations"""
        return self.amount if self.direction == TransactionDirection.INCOME else -self.amount

    def __repr__(self):
        sign = "+" if self.direction == TransactionDirection.INCOME else "-"
        return f"FundTransaction({self.id}, {self.date}, {self.description[:30]}, {sign}{self.amount})"


@dataclass
class TransactionCandidate:
    """Input for a new ledger row, before the store assigns id and balance"""
    date: date | str
    direction: TransactionDirection | str
    amount: int
    description: str
    performed_by: str = ""
    scope: Optional[str] = None

    def to_transaction(self, balance_after: int) -> FundTransaction:
        # Only call on a validated candidate
        return FundTransaction(
            date=self.date,
            direction=self.direction,
            amount=self.amount,
            description=self.description,
            performed_by=self.performed_by,
            scope=None if self.scope == ALL_SCOPES else self.scope,
            balance_after=balance_after,
        )


@dataclass(frozen=True)
class DateRange:
    """Inclusive filter on the transaction date. Either bound may be open."""
    start: Optional[date] = None
    end: Optional[date] = None

    def contains(self, day: date) -> bool:
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True


@dataclass(frozen=True)
class SessionContext:
    """
    The signed-in user, passed explicitly into ledger calls.

    Admins see the whole organisation; everybody else is confined to
    their own department.
    """
    username: str
    role: UserRole = UserRole.STAFF
    name: str = ""
    scope: Optional[str] = None

    @property
    def ledger_scope(self) -> Optional[str]:
        if self.role == UserRole.ADMIN:
            return ALL_SCOPES
        return self.scope

    @property
    def performer_name(self) -> str:
        return self.name or self.username

    def can_access(self, scope: Optional[str]) -> bool:
        """Admins may use any ledger, everybody else only their department's"""
        if self.role == UserRole.ADMIN:
            return True
        return scope == self.scope


@dataclass(frozen=True)
class LedgerTotals:
    income_sum: int = 0
    expense_sum: int = 0

    @property
    def net(self) -> int:
        """Income minus expenses for the summed view"""
        return self.income_sum - self.expense_sum


@dataclass
class LedgerSummary:
    """
    Overview of the fund page.

    `totals` covers only the filtered `transactions`, while
    `current_balance` is the latest stored balance of the whole scope.
    """
    transactions: List[FundTransaction] = field(default_factory=list)
    totals: LedgerTotals = field(default_factory=LedgerTotals)
    current_balance: int = 0


@dataclass(frozen=True)
class BalanceDiscrepancy:
    """A row whose stored balance differs from the recomputed running sum"""
    transaction: FundTransaction
    stored_balance: int
    expected_balance: int

    @property
    def difference(self) -> int:
        return self.stored_balance - self.expected_balance
