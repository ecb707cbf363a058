import pytest
from datetime import date

from fund_ledger.database.connection import DatabaseConfig, DatabaseManager, execute_schema
from fund_ledger.domain.enums import TransactionDirection
from fund_ledger.domain.models import TransactionCandidate
from fund_ledger.repositories.memory_fund_repository import InMemoryFundTransactionRepository
from fund_ledger.repositories.sqlite_fund_repository import SQLiteFundTransactionRepository
from fund_ledger.services.ledger_service import LedgerService

@pytest.fixture
def memory_repository() -> InMemoryFundTransactionRepository:
    """Empty in-memory store"""
    return InMemoryFundTransactionRepository()

@pytest.fixture
def ledger(memory_repository) -> LedgerService:
    """Service over an empty in-memory store"""
    return LedgerService(memory_repository)

@pytest.fixture
def test_db(tmp_path):
    """
    Create a real test database.

    Uses pytest's tmp_path fixture, so every test gets a fresh file.
    """
    db_manager = DatabaseManager(DatabaseConfig(tmp_path / "test.db"))
    execute_schema(db_manager.get_connection())

    yield db_manager

    db_manager.close()

@pytest.fixture
def sqlite_repository(test_db) -> SQLiteFundTransactionRepository:
    return SQLiteFundTransactionRepository(test_db)

@pytest.fixture
def make_candidate():
    """Factory for candidates with sensible defaults"""
    def _make(
        direction=TransactionDirection.INCOME,
        amount=1000000,
        on=date(2023, 10, 1),
        description="Thu quỹ",
        scope=None,
        performed_by="Nguyễn Văn A",
    ) -> TransactionCandidate:
        return TransactionCandidate(
            date=on,
            direction=direction,
            amount=amount,
            description=description,
            performed_by=performed_by,
            scope=scope,
        )
    return _make
