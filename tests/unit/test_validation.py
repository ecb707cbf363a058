import pytest
from datetime import date, datetime

from fund_ledger.domain.enums import TransactionDirection
from fund_ledger.domain.exceptions import ValidationError
from fund_ledger.domain.models import TransactionCandidate
from fund_ledger.domain.validation import (
    parse_date,
    parse_direction,
    validate_amount,
    validate_candidate,
    validate_patch,
)

@pytest.mark.unit
class TestParseDate:

    def test_accepts_iso_string(self):
        assert parse_date("2023-10-01") == date(2023, 10, 1)

    def test_drops_time_part(self):
        assert parse_date(datetime(2023, 10, 1, 8, 30)) == date(2023, 10, 1)

    @pytest.mark.parametrize("value", ["2023-02-30", "01/10/2023", "", "yesterday", 20231001, None])
    def test_rejects_invalid_dates(self, value):
        with pytest.raises(ValidationError):
            parse_date(value)

@pytest.mark.unit
class TestParseDirection:

    @pytest.mark.parametrize("value, expected", [
        (TransactionDirection.INCOME, TransactionDirection.INCOME),
        ("Thu", TransactionDirection.INCOME),
        ("Chi", TransactionDirection.EXPENSE),
        ("expense", TransactionDirection.EXPENSE),
        ("INCOME", TransactionDirection.INCOME),
    ])
    def test_accepts_enum_value_and_name(self, value, expected):
        assert parse_direction(value) == expected

    @pytest.mark.parametrize("value", ["foo", "", None, 1])
    def test_rejects_unknown(self, value):
        with pytest.raises(ValidationError, match="Invalid direction"):
            parse_direction(value)

@pytest.mark.unit
class TestValidateAmount:

    def test_zero_is_allowed(self):
        assert validate_amount(0) == 0

    @pytest.mark.parametrize("value", [-5, 1.5, "100", True, None])
    def test_rejects_non_whole_or_negative(self, value):
        with pytest.raises(ValidationError):
            validate_amount(value)

@pytest.mark.unit
class TestValidateCandidate:

    def test_returns_normalized_copy(self):
        # Arrange
        candidate = TransactionCandidate(
            date="2023-10-05",
            direction="Chi",
            amount=1200000,
            description="Mua văn phòng phẩm",
            performed_by=None,
        )

        # Act
        result = validate_candidate(candidate)

        # Assert
        assert result.date == date(2023, 10, 5)
        assert result.direction == TransactionDirection.EXPENSE
        assert result.performed_by == ""
        assert candidate.date == "2023-10-05"

    def test_rejects_non_text_description(self):
        candidate = TransactionCandidate(
            date="2023-10-05", direction="Chi", amount=1, description=42
        )

        with pytest.raises(ValidationError, match="description"):
            validate_candidate(candidate)

@pytest.mark.unit
class TestValidatePatch:

    def test_normalizes_values(self):
        patch = validate_patch({"date": "2023-10-06", "direction": "Thu", "amount": 3})

        assert patch == {
            "date": date(2023, 10, 6),
            "direction": TransactionDirection.INCOME,
            "amount": 3,
        }

    def test_rejects_balance_after(self):
        with pytest.raises(ValidationError, match="balance_after"):
            validate_patch({"balance_after": 10})
