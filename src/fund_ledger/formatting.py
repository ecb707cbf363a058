"""Display helpers for Vietnamese-formatted amounts and dates."""
import re
from datetime import date


def format_number_vn(amount: int) -> str:
    """Group thousands with dots: 1200000 -> '1.200.000'"""
    sign = "-" if amount < 0 else ""
    return sign + f"{abs(amount):,}".replace(",", ".")


def format_currency_vn(amount: int) -> str:
    return f"{format_number_vn(amount)} ₫"


def format_date_vn(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def parse_amount_input(value: str) -> int:
    """
    Parse an amount typed with thousand separators.

    '1.200.000' and '1,200,000' both give 1200000.

    Raises:
        ValueError: If the text holds anything but digits and separators
    """
    cleaned = re.sub(r"[.,\s]", "", value or "")
    if not cleaned:
        return 0
    if not cleaned.isdigit():
        raise ValueError(f"Invalid amount '{value}'")
    return int(cleaned)
