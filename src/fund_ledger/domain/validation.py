"""
Input checks for ledger writes.

Every check runs before the store is touched, so a rejected candidate
never costs a round trip to the backend.
"""
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Dict

from fund_ledger.domain.enums import TransactionDirection
from fund_ledger.domain.exceptions import ValidationError
from fund_ledger.domain.models import TransactionCandidate

DATE_FORMAT = "%Y-%m-%d"

UPDATABLE_FIELDS = ("date", "direction", "amount", "description", "performed_by")


def parse_date(value: Any) -> date:
    """
    Coerce a calendar date.

    Args:
        value: A date, a datetime (time part dropped) or a 'YYYY-MM-DD' string

    Raises:
        ValidationError: If the value is not a valid calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), DATE_FORMAT).date()
        except ValueError:
            raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD")
    raise ValidationError(f"Invalid date {value!r}")


def parse_direction(value: Any) -> TransactionDirection:
    """Accept the enum itself, its value ('Thu'/'Chi') or its name ('INCOME'/'EXPENSE')"""
    if isinstance(value, TransactionDirection):
        return value
    if isinstance(value, str):
        for direction in TransactionDirection:
            if value == direction.value or value.upper() == direction.name:
                return direction
    allowed = ", ".join(d.name for d in TransactionDirection)
    raise ValidationError(f"Invalid direction {value!r}, expected one of: {allowed}")


def validate_amount(value: Any) -> int:
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Amount must be a whole number, got {value!r}")
    if value < 0:
        raise ValidationError(f"Amount must not be negative, got {value}")
    return value


def _validate_text(field_name: str, value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be text, got {value!r}")
    return value


def validate_candidate(candidate: TransactionCandidate) -> TransactionCandidate:
    """
    Validate a candidate and return a normalized copy.

    Returns:
        Candidate with a `date` date, a TransactionDirection and an int amount

    Raises:
        ValidationError: On the first invalid field
    """
    return replace(
        candidate,
        date=parse_date(candidate.date),
        direction=parse_direction(candidate.direction),
        amount=validate_amount(candidate.amount),
        description=_validate_text("description", candidate.description),
        performed_by=_validate_text("performed_by", candidate.performed_by),
    )


def validate_patch(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate the fields of an in-place edit.

    Only date, direction, amount, description and performed_by may change;
    id, scope and balance_after are fixed once the row exists.
    """
    if not fields:
        raise ValidationError("Nothing to update")

    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(
            f"Cannot update field(s): {', '.join(sorted(unknown))}"
        )

    patch = {}
    for name, value in fields.items():
        if name == "date":
            patch[name] = parse_date(value)
        elif name == "direction":
            patch[name] = parse_direction(value)
        elif name == "amount":
            patch[name] = validate_amount(value)
        else:
            patch[name] = _validate_text(name, value)
    return patch
