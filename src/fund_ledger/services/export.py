from pathlib import Path
from typing import List

import pandas as pd

from fund_ledger.domain.models import FundTransaction

# Column headers, same names the spreadsheet backend uses
EXPORT_COLUMNS = [
    "id",
    "date",
    "department",
    "type",
    "content",
    "performer",
    "amount",
    "balanceAfter",
]


def transactions_to_frame(transactions: List[FundTransaction]) -> pd.DataFrame:
    """Build a DataFrame with one row per transaction, in the given order"""
    records = [
        {
            "id": txn.id,
            "date": txn.date.isoformat(),
            "department": txn.scope or "",
            "type": txn.direction.value,
            "content": txn.description,
            "performer": txn.performed_by,
            "amount": txn.amount,
            "balanceAfter": txn.balance_after,
        }
        for txn in transactions
    ]
    return pd.DataFrame.from_records(records, columns=EXPORT_COLUMNS)


def export_transactions(transactions: List[FundTransaction], filepath: Path | str) -> Path:
    """
    Write transactions to a .csv or .xlsx file.

    Args:
        transactions: Rows to export, typically a filtered ledger view
        filepath: Destination; the suffix picks the format

    Returns:
        The written path

    Raises:
        ValueError: If the suffix is neither .csv nor .xlsx
    """
    path = Path(filepath)
    suffix = path.suffix.lower()
    if suffix not in ('.csv', '.xlsx'):
        raise ValueError(f"Export file must be .csv or .xlsx, got {path.suffix}")

    df = transactions_to_frame(transactions)
    path.parent.mkdir(parents=True, exist_ok=True)

    if suffix == '.csv':
        # BOM so spreadsheet apps detect UTF-8 for Vietnamese text
        df.to_csv(path, index=False, encoding="utf-8-sig")
    else:
        df.to_excel(path, index=False, sheet_name="QuyKhoa")

    return path
