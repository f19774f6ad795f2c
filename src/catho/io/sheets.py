# src/catho/io/sheets.py
from __future__ import annotations
import logging
from typing import Dict, List, Optional

try:
    import gspread
    HAS_GSPREAD = True
except ImportError:
    HAS_GSPREAD = False

from catho.models import CanonicalJobRecord

log = logging.getLogger(__name__)

DEFAULT_CREDENTIALS = "service_account.json"

# Sheet header -> record key
COLUMNS: Dict[str, str] = {
    "Catho ID": "id",
    "Job title": "title",
    "Company": "company",
    "City": "location",
    "Salary": "salary",
    "Employment type": "employment_type",
    "Benefits": "benefits",
    "Posting date": "date_posted",
    "URL": "url",
    "Source": "source",
    "Fetched at": "fetched_at",
}
REQUIRED_HEADERS = {"Catho ID", "Job title", "URL"}


def _open_spreadsheet(sheet_id: str, credentials_file: str):
    if not HAS_GSPREAD:
        raise RuntimeError("gspread not installed. `pip install gspread google-auth`")
    gc = gspread.service_account(filename=credentials_file)
    return gc.open_by_key(sheet_id)


def list_worksheets(sheet_id: str, credentials_file: str = DEFAULT_CREDENTIALS) -> List[tuple]:
    """(title, gid) for every tab; used to check that the service account has access."""
    sh = _open_spreadsheet(sheet_id, credentials_file)
    return [(ws.title, ws.id) for ws in sh.worksheets()]


def record_to_row(record: CanonicalJobRecord, headers: List[str]) -> List[str]:
    row = []
    for h in headers:
        key = COLUMNS.get(h)
        value = record.get(key) if key else None
        row.append("" if value is None else str(value))
    return row


class SheetsSink:
    """
    Append records to a worksheet whose first row holds the headers in COLUMNS.
    Unknown headers get empty cells; missing required headers raise.
    """

    def __init__(self, sheet_id: str, worksheet: str = "Jobs", credentials_file: str = DEFAULT_CREDENTIALS):
        self.sheet_id = sheet_id
        self.worksheet_title = worksheet
        self.credentials_file = credentials_file
        self._ws = None
        self._headers: Optional[List[str]] = None

    def _worksheet(self):
        if self._ws is not None:
            return self._ws
        sh = _open_spreadsheet(self.sheet_id, self.credentials_file)
        try:
            ws = sh.worksheet(self.worksheet_title)  # exact title; raises if not found
        except gspread.WorksheetNotFound as e:
            raise RuntimeError(f"Worksheet {self.worksheet_title!r} not found. Fix the tab name.") from e

        headers = ws.row_values(1)
        if not headers:
            raise RuntimeError(f"Header row is empty in {self.worksheet_title!r} worksheet.")
        missing = sorted(REQUIRED_HEADERS - set(headers))
        if missing:
            raise RuntimeError(f"{self.worksheet_title!r} is missing required header(s): {', '.join(missing)}")

        self._ws, self._headers = ws, headers
        return ws

    def persist_batch(self, records: List[CanonicalJobRecord]) -> None:
        if not records:
            return
        ws = self._worksheet()
        rows = [record_to_row(r, self._headers or []) for r in records]
        # RAW keeps values as-is (no date/number parsing by Sheets)
        ws.append_rows(rows, value_input_option="RAW")


class FanOutSink:
    """
    Write every batch to several sinks, in order.

    The first sink is the primary dataset and its errors propagate. A failing
    secondary sink (e.g. Sheets) is logged and counted in `failures`; the
    batch still counts as saved.
    """

    def __init__(self, primary, *secondary):
        self.primary = primary
        self.secondary = secondary
        self.failures = 0

    def persist_batch(self, records: List[CanonicalJobRecord]) -> None:
        self.primary.persist_batch(records)
        for sink in self.secondary:
            try:
                sink.persist_batch(records)
            except Exception:
                self.failures += 1
                log.exception("Secondary sink %s failed on %d record(s)", type(sink).__name__, len(records))
