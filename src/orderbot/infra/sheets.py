"""Google Sheets order writer.

Each configured tab keeps its own header row; an order is mapped onto
whatever columns a tab has, by header name, and appended as one row.
Unknown headers stay blank so staff can keep manual columns (tracking
number, courier, receipts) in the same sheet.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from google.oauth2 import service_account
from googleapiclient.discovery import build

from orderbot.domain.orders import ExtractedOrder, ProductKey

logger = logging.getLogger(__name__)

SHEETS_SCOPES = ("https://www.googleapis.com/auth/spreadsheets",)
SHEET_COLUMNS = "A:AC"
AGENT_NAME = "WhatsApp Bot"
INITIAL_STATUS = "Pending"


class SheetWriteError(Exception):
    """Raised when an order could not be appended to any target sheet."""

    pass


def _quantity(product_key: ProductKey) -> Callable[[ExtractedOrder], Any]:
    def cell(order: ExtractedOrder) -> Any:
        quantity = order.quantity_of(product_key)
        return quantity if quantity > 0 else ""

    return cell


def _payment(order: ExtractedOrder) -> str:
    return order.payment_method.label if order.payment_method else ""


# Lower-cased header -> cell value. Headers not listed stay blank.
COLUMN_MAPPERS: dict[str, Callable[[ExtractedOrder], Any]] = {
    "order date": lambda order: order.order_date.isoformat(),
    "fbname": lambda order: order.group_name or "",
    "name": lambda order: order.customer_name,
    "payment method": _payment,
    "wash": _quantity(ProductKey.WASH),
    "femlift 30ml": _quantity(ProductKey.FEMLIFT_30ML),
    "femlift 10ml": _quantity(ProductKey.FEMLIFT_10ML),
    "wash 30ml": _quantity(ProductKey.WASH_30ML),
    "spray": _quantity(ProductKey.SPRAY),
    "remark": lambda order: order.remark,
    "remarks": lambda order: order.remark,
    "total paid (rm)": lambda order: order.total_paid or "",
    "shipment description": lambda order: order.product_code,
    "address": lambda order: order.address.line,
    "city": lambda order: order.address.city or "",
    "postcode": lambda order: order.address.postcode or "",
    "state": lambda order: order.address.state or "",
    "phone number": lambda order: order.phone_number,
    "new/repeat": lambda order: "repeat" if order.is_repeat_customer else "new",
    "agent by / under": lambda order: AGENT_NAME,
    "currency": lambda order: order.currency,
    "status": lambda order: INITIAL_STATUS,
}


def build_sheet_row(order: ExtractedOrder, headers: Sequence[str]) -> list[Any]:
    """Map an order onto a sheet's header row (case-insensitive, trimmed)."""
    row: list[Any] = []
    for header in headers:
        mapper = COLUMN_MAPPERS.get(str(header).strip().lower())
        row.append(mapper(order) if mapper else "")
    return row


@dataclass(frozen=True)
class SheetOutcome:
    sheet_name: str
    success: bool
    row_index: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class SheetAppendResult:
    """Per-sheet outcomes of appending one order."""

    outcomes: list[SheetOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[SheetOutcome]:
        return [o for o in self.outcomes if o.success]

    @property
    def success(self) -> bool:
        return bool(self.succeeded)

    @property
    def row_index(self) -> int | None:
        succeeded = self.succeeded
        return succeeded[0].row_index if succeeded else None


def build_sheets_service(credentials_json: str) -> Any:
    """Sheets v4 service authorized with a service-account key.

    Raises:
        ValueError: If credentials_json is not valid JSON.
    """
    try:
        info = json.loads(credentials_json)
    except json.JSONDecodeError as e:
        raise ValueError("GOOGLE_CREDENTIALS_JSON is not valid JSON") from e

    credentials = service_account.Credentials.from_service_account_info(info, scopes=list(SHEETS_SCOPES))
    return build("sheets", "v4", credentials=credentials, cache_discovery=False)


class GoogleSheetsWriter:
    """Append extracted orders to one or more tabs of a spreadsheet.

    Args:
        spreadsheet_id: Google Sheets spreadsheet ID.
        sheet_names: Tabs to append to; each needs a header row.
        service: Sheets v4 service (see build_sheets_service).
    """

    def __init__(self, spreadsheet_id: str, sheet_names: Sequence[str], service: Any):
        self._spreadsheet_id = spreadsheet_id
        self._sheet_names = list(sheet_names)
        self._service = service

    def append_order(self, order: ExtractedOrder) -> SheetAppendResult:
        """Append the order to every configured tab.

        Empty tabs (no header row) are skipped. A failing tab does not stop
        the others.

        Raises:
            SheetWriteError: If no tab accepted the row.
        """
        outcomes = [self._append_to_sheet(name, order) for name in self._sheet_names]
        result = SheetAppendResult(outcomes=[o for o in outcomes if o is not None])

        if not result.success:
            errors = ", ".join(o.error or "unknown" for o in result.outcomes) or "no sheet with a header row"
            raise SheetWriteError(f"failed to add order to all sheets: {errors}")

        logger.info(
            "order appended to sheets (%d/%d)",
            len(result.succeeded),
            len(result.outcomes),
        )
        return result

    def _append_to_sheet(self, sheet_name: str, order: ExtractedOrder) -> SheetOutcome | None:
        sheet_range = f"{sheet_name}!{SHEET_COLUMNS}"
        values = self._service.spreadsheets().values()
        try:
            existing = values.get(spreadsheetId=self._spreadsheet_id, range=sheet_range).execute()
            rows = existing.get("values", [])
            if not rows:
                logger.warning("sheet %s has no header row; skipped", sheet_name)
                return None

            row = build_sheet_row(order, rows[0])
            values.append(
                spreadsheetId=self._spreadsheet_id,
                range=sheet_range,
                valueInputOption="RAW",
                body={"values": [row]},
            ).execute()
        except Exception as e:
            logger.warning("failed to append order to sheet %s", sheet_name, exc_info=True)
            return SheetOutcome(sheet_name=sheet_name, success=False, error=str(e))

        return SheetOutcome(sheet_name=sheet_name, success=True, row_index=len(rows) + 1)
