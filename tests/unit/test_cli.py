import pytest
from typer.testing import CliRunner

from fund_ledger import cli
from fund_ledger.repositories.memory_fund_repository import InMemoryFundTransactionRepository
from fund_ledger.services.ledger_service import LedgerService

runner = CliRunner()

@pytest.fixture
def demo_service():
    """Run the CLI against the seeded demo store"""
    service = LedgerService(InMemoryFundTransactionRepository(seed=True))
    cli.state.service = service
    yield service
    cli.state.service = None
    cli.state.session = None
    cli.state.verbose = False

@pytest.mark.unit
class TestCli:

    def test_balance(self, demo_service):
        result = runner.invoke(cli.app, ["balance"])

        assert result.exit_code == 0
        assert "All: 3.800.000 ₫" in result.output

    def test_add_prints_new_balance(self, demo_service):
        # Act
        result = runner.invoke(cli.app, [
            "--user", "tranb",
            "add", "--type", "income", "--amount", "500.000",
            "--content", "Ủng hộ", "--date", "2023-10-20",
        ])

        # Assert
        assert result.exit_code == 0, result.output
        assert "Balance after: 4.300.000 ₫" in result.output
        latest = demo_service.list_transactions()[-1]
        assert latest.performed_by == "tranb"
        assert latest.balance_after == 4300000

    def test_staff_add_goes_to_own_department(self, demo_service):
        # Act
        result = runner.invoke(cli.app, [
            "--role", "staff", "--department", "Khoa Dược",
            "add", "-t", "Chi", "-a", "100000", "-c", "Nước uống",
        ])

        # Assert
        assert result.exit_code == 0, result.output
        assert "Balance after: -100.000 ₫" in result.output
        assert demo_service.current_balance("Khoa Dược") == -100000

    def test_add_rejects_bad_direction(self, demo_service):
        result = runner.invoke(cli.app, ["add", "-t", "foo", "-a", "1", "-c", "x"])

        assert result.exit_code == 1
        assert "Error" in result.output
        assert len(demo_service.list_transactions()) == 2

    def test_list_shows_totals_and_balance(self, demo_service):
        result = runner.invoke(cli.app, ["list", "--from", "2023-10-05", "--to", "2023-10-31"])

        assert result.exit_code == 0, result.output
        assert "Current balance: 3.800.000 ₫" in result.output
        assert "Expenses: 1.200.000 ₫" in result.output
        assert "Income:   0 ₫" in result.output

    def test_edit_keeps_stored_balance(self, demo_service):
        # Act
        result = runner.invoke(cli.app, ["edit", "T002", "--amount", "2.000.000"])

        # Assert
        assert result.exit_code == 0, result.output
        assert demo_service.get_transaction("T002").amount == 2000000
        assert demo_service.current_balance() == 3800000

    def test_audit_reports_stale_rows(self, demo_service):
        # Arrange
        demo_service.update_transaction("T001", amount=6000000)

        # Act
        result = runner.invoke(cli.app, ["audit"])

        # Assert
        assert result.exit_code == 1
        assert "Stale balances" in result.output

    def test_audit_clean(self, demo_service):
        result = runner.invoke(cli.app, ["audit"])

        assert result.exit_code == 0
        assert "All stored balances match" in result.output

    def test_delete_unknown_id(self, demo_service):
        result = runner.invoke(cli.app, ["delete", "T-404", "--yes"])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_delete(self, demo_service):
        result = runner.invoke(cli.app, ["delete", "T001", "--yes"])

        assert result.exit_code == 0
        assert [t.id for t in demo_service.list_transactions()] == ["T002"]

    def test_export_csv(self, demo_service, tmp_path):
        # Arrange
        target = tmp_path / "quy.csv"

        # Act
        result = runner.invoke(cli.app, ["export", str(target)])

        # Assert
        assert result.exit_code == 0, result.output
        assert target.exists()

    def test_staff_cannot_post_to_other_department(self, demo_service):
        # Act
        result = runner.invoke(cli.app, [
            "--role", "staff", "--department", "Khoa Dược",
            "add", "-t", "Thu", "-a", "100", "-c", "x", "--scope", "Khoa Nội",
        ])

        # Assert
        assert result.exit_code == 1
        assert "cannot use the ledger" in result.output
        assert demo_service.list_transactions("Khoa Nội") == []

    def test_staff_cannot_list_other_department(self, demo_service):
        result = runner.invoke(cli.app, [
            "--role", "staff", "--department", "Khoa Dược",
            "list", "--scope", "All",
        ])

        assert result.exit_code == 1
        assert "cannot use the ledger" in result.output

    def test_staff_may_name_own_department(self, demo_service):
        result = runner.invoke(cli.app, [
            "--role", "staff", "--department", "Khoa Dược",
            "balance", "--scope", "Khoa Dược",
        ])

        assert result.exit_code == 0, result.output
        assert "Khoa Dược: 0 ₫" in result.output

    def test_admin_may_pick_any_department(self, demo_service):
        result = runner.invoke(cli.app, [
            "add", "-t", "Thu", "-a", "100", "-c", "x", "--scope", "Khoa Nội",
        ])

        assert result.exit_code == 0, result.output
        assert demo_service.current_balance("Khoa Nội") == 100
