import json
import logging
import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import requests

from fund_ledger.domain.enums import TransactionDirection
from fund_ledger.domain.exceptions import NotFoundError, StorageError
from fund_ledger.domain.models import DateRange, FundTransaction
from fund_ledger.repositories.base import FundTransactionRepository, is_all_scopes

logger = logging.getLogger(__name__)

# Domain attribute -> field name used by the spreadsheet web app
FIELDS = {
    "date": "date",
    "direction": "type",
    "amount": "amount",
    "description": "content",
    "performed_by": "performer",
}

# Timezone of the spreadsheet; date cells come back as UTC instants
DEFAULT_SHEET_TIMEZONE = "Asia/Ho_Chi_Minh"

class ScriptEndpointFundTransactionRepository(FundTransactionRepository):
    """
    Store backed by a spreadsheet web app (one sheet row per transaction).

    Every call is a POST whose JSON body carries an `action` name, the way
    the dashboard's script endpoint expects it. The sheet has no query
    language, so reads fetch the whole sheet and filter client-side; sheet
    row order is the insertion order.
    """

    def __init__(self, url: str, timeout: float = 30, sheet_timezone: str = DEFAULT_SHEET_TIMEZONE):
        if not url:
            raise ValueError("Script endpoint URL is not configured")
        self.url = url
        self.timeout = timeout
        try:
            self.sheet_timezone = ZoneInfo(sheet_timezone)
        except ZoneInfoNotFoundError as e:
            raise ValueError(f"Unknown sheet timezone '{sheet_timezone}'") from e

    def _call(self, action: str, data: Optional[Dict[str, Any]] = None) -> Any:
        """
        Send one action to the endpoint.

        Raises:
            NotFoundError: If the endpoint reports a missing row
            StorageError: On network failure, an HTML error page or an error payload
        """
        payload = {"action": action, **(data or {})}
        try:
            # Plain-text body: the web app reads the raw POST contents
            response = requests.post(
                self.url,
                data=json.dumps(payload, ensure_ascii=False).encode("utf-8"),
                headers={"Content-Type": "text/plain;charset=utf-8"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error("Script endpoint call %s failed: %s", action, e)
            raise StorageError(f"Script endpoint call '{action}' failed: {e}") from e

        text = response.text
        try:
            result = json.loads(text) if text else None
        except ValueError as e:
            if "<!DOCTYPE html>" in text:
                raise StorageError(
                    "Script endpoint returned an HTML page; check the URL or the script deployment"
                ) from e
            raise StorageError(f"Script endpoint returned non-JSON response for '{action}'") from e

        if isinstance(result, dict) and result.get("error"):
            message = str(result["error"])
            if "not found" in message.lower():
                raise NotFoundError(message)
            logger.error("Script endpoint error for %s: %s", action, message)
            raise StorageError(message)

        return result

    def _fetch_rows(self) -> List[FundTransaction]:
        rows = self._call("getFunds")
        if not isinstance(rows, list):
            raise StorageError("Script endpoint returned an unexpected payload for 'getFunds'")
        return [self._row_to_transaction(row, position) for position, row in enumerate(rows, start=1)]

    def insert(self, scope: Optional[str], transaction: FundTransaction) -> str:
        transaction_id = f"T-{uuid.uuid4().hex[:12]}"
        department = None if is_all_scopes(scope) else scope

        self._call("addFund", {
            "id": transaction_id,
            "date": transaction.date.isoformat(),
            "department": department or "",
            "type": transaction.direction.value,
            "content": transaction.description,
            "performer": transaction.performed_by,
            "amount": transaction.amount,
            "balanceAfter": transaction.balance_after,
        })

        # The sheet appends, so the new row's position is its sequence
        stored = self.get_by_id(transaction_id)
        if stored is None:
            raise StorageError(f"Row {transaction_id} missing from the sheet after addFund")

        transaction.id = transaction_id
        transaction.sequence = stored.sequence
        transaction.scope = department
        return transaction_id

    def update(self, transaction_id: str, patch: Dict[str, Any]) -> FundTransaction:
        data = {"id": transaction_id}
        for name, value in patch.items():
            if isinstance(value, date):
                value = value.isoformat()
            elif isinstance(value, TransactionDirection):
                value = value.value
            data[FIELDS[name]] = value

        self._call("updateFund", data)

        updated = self.get_by_id(transaction_id)
        if updated is None:
            raise NotFoundError(f"Transaction with ID {transaction_id} not found")
        return updated

    def delete(self, transaction_id: str) -> None:
        if self.get_by_id(transaction_id) is None:
            raise NotFoundError(f"Transaction with ID {transaction_id} not found")
        self._call("deleteFund", {"id": transaction_id})

    def query_latest(self, scope: Optional[str]) -> Optional[FundTransaction]:
        rows = self.query_all(scope)
        return rows[-1] if rows else None

    def query_all(
        self,
        scope: Optional[str] = None,
        date_range: Optional[DateRange] = None,
    ) -> List[FundTransaction]:
        return [
            row
            for row in self._fetch_rows()
            if (is_all_scopes(scope) or row.scope == scope)
            and (date_range is None or date_range.contains(row.date))
        ]

    def get_by_id(self, transaction_id: str) -> Optional[FundTransaction]:
        for row in self._fetch_rows():
            if row.id == transaction_id:
                return row
        return None

    def _row_to_transaction(self, row: Dict[str, Any], position: int) -> FundTransaction:
        """
        Convert a sheet row to FundTransaction.

        Sheets serialize dates as ISO timestamps and numbers as floats or
        strings, so both are normalized here.
        """
        try:
            return FundTransaction(
                id=str(row["id"]),
                sequence=position,
                date=self._parse_sheet_date(row["date"]),
                scope=row.get("department") or None,
                direction=TransactionDirection(row["type"]),
                description=str(row.get("content") or ""),
                performed_by=str(row.get("performer") or ""),
                amount=int(float(row.get("amount") or 0)),
                balance_after=int(float(row.get("balanceAfter") or 0)),
            )
        except (KeyError, ValueError) as e:
            raise StorageError(f"Malformed ledger row from script endpoint: {row!r}") from e

    def _parse_sheet_date(self, value: Any) -> date:
        """
        Calendar date of a sheet cell.

        Apps Script serializes a date cell as the UTC instant of local
        midnight (2023-10-01 in UTC+7 arrives as 2023-09-30T17:00:00.000Z),
        so timestamps are converted to the sheet's timezone first. Plain
        YYYY-MM-DD strings are taken as they are.
        """
        text = str(value).strip()
        if len(text) == 10:
            return date.fromisoformat(text)

        moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
        if moment.tzinfo is not None:
            moment = moment.astimezone(self.sheet_timezone)
        return moment.date()
