import pytest
from datetime import date

from fund_ledger.domain.enums import ALL_SCOPES, TransactionDirection
from fund_ledger.domain.exceptions import NotFoundError
from fund_ledger.domain.models import DateRange, FundTransaction
from fund_ledger.repositories.memory_fund_repository import InMemoryFundTransactionRepository

def _txn(amount=100, on=date(2023, 10, 1), balance_after=100) -> FundTransaction:
    return FundTransaction(
        date=on,
        direction=TransactionDirection.INCOME,
        amount=amount,
        description="Thu quỹ",
        balance_after=balance_after,
    )

@pytest.mark.unit
class TestInMemoryRepository:

    def test_demo_seed(self):
        repo = InMemoryFundTransactionRepository(seed=True)

        rows = repo.query_all()

        assert [r.id for r in rows] == ["T001", "T002"]
        assert repo.query_latest(ALL_SCOPES).balance_after == 3800000

    def test_insert_assigns_id_sequence_and_scope(self, memory_repository):
        # Arrange
        txn = _txn()

        # Act
        transaction_id = memory_repository.insert("Khoa Dược", txn)

        # Assert
        assert transaction_id == txn.id
        assert txn.sequence == 1
        assert txn.scope == "Khoa Dược"

    def test_sentinel_scope_is_stored_as_none(self, memory_repository):
        txn = _txn()

        memory_repository.insert(ALL_SCOPES, txn)

        assert memory_repository.get_by_id(txn.id).scope is None

    def test_returned_rows_are_copies(self, memory_repository):
        # Arrange
        txn = _txn()
        memory_repository.insert(None, txn)

        # Act
        memory_repository.get_by_id(txn.id).amount = 999
        txn.amount = 999

        # Assert
        assert memory_repository.get_by_id(txn.id).amount == 100

    def test_query_latest_is_by_insertion(self, memory_repository):
        # Arrange
        memory_repository.insert("A", _txn(on=date(2023, 12, 1), balance_after=1))
        memory_repository.insert("A", _txn(on=date(2023, 1, 1), balance_after=2))
        memory_repository.insert("B", _txn(balance_after=3))

        # Act & Assert
        assert memory_repository.query_latest("A").balance_after == 2
        assert memory_repository.query_latest(None).balance_after == 3
        assert memory_repository.query_latest("C") is None

    def test_query_all_filters(self, memory_repository):
        # Arrange
        memory_repository.insert("A", _txn(on=date(2023, 10, 1)))
        memory_repository.insert("B", _txn(on=date(2023, 10, 15)))
        memory_repository.insert("A", _txn(on=date(2023, 11, 1)))

        # Act
        october_a = memory_repository.query_all("A", DateRange(date(2023, 10, 1), date(2023, 10, 31)))
        from_mid_october = memory_repository.query_all(date_range=DateRange(start=date(2023, 10, 15)))

        # Assert
        assert [r.date for r in october_a] == [date(2023, 10, 1)]
        assert [r.date for r in from_mid_october] == [date(2023, 10, 15), date(2023, 11, 1)]

    def test_update_and_delete(self, memory_repository):
        # Arrange
        txn = _txn()
        memory_repository.insert(None, txn)

        # Act
        updated = memory_repository.update(txn.id, {"description": "Sửa"})
        memory_repository.delete(txn.id)

        # Assert
        assert updated.description == "Sửa"
        assert memory_repository.get_by_id(txn.id) is None

    def test_missing_id_raises(self, memory_repository):
        with pytest.raises(NotFoundError):
            memory_repository.update("T-9", {"amount": 1})
        with pytest.raises(NotFoundError):
            memory_repository.delete("T-9")
