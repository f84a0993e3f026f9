"""Export sinks for table rows: CSV, Excel, and Google Sheets."""
import csv
from pathlib import Path
from typing import Any, Dict, Iterable, List

from foundrylog.reporting.templates import TABLE_HEADERS


def ensure_output_dir(output_path: Path) -> None:
    """Create parent folders for sink outputs when missing."""

    output_path.parent.mkdir(parents=True, exist_ok=True)


def write_csv(rows: Iterable[Dict[str, Any]], output_path: Path) -> None:
    """Write table rows to a CSV file with consistent headers."""

    rows = list(rows)
    ensure_output_dir(output_path)
    with output_path.open("w", newline="", encoding="utf-8") as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=TABLE_HEADERS)
        writer.writeheader()
        writer.writerows(rows)


def write_excel(rows: Iterable[Dict[str, Any]], output_path: Path) -> None:
    """Write table rows to an Excel workbook using openpyxl."""

    rows = list(rows)
    if not rows:
        return

    try:
        from openpyxl import Workbook
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise ImportError("openpyxl is required for Excel sinks") from exc

    ensure_output_dir(output_path)
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "production_records"
    sheet.append(TABLE_HEADERS)
    for row in rows:
        sheet.append([row.get(header, "") for header in TABLE_HEADERS])
    workbook.save(output_path)


def push_to_google_sheets(
    rows: Iterable[Dict[str, Any]],
    spreadsheet_id: str,
    worksheet_title: str = "Sheet1",
    service_account_path: Path | None = None,
) -> None:
    """Replace a Google Sheets worksheet with the given rows using a service account."""

    rows = list(rows)
    if not rows:
        return

    try:
        import gspread
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise ImportError("gspread is required for Google Sheets sinks") from exc

    client = (
        gspread.service_account(filename=str(service_account_path))
        if service_account_path
        else gspread.service_account()
    )
    worksheet = client.open_by_key(spreadsheet_id).worksheet(worksheet_title)
    worksheet.clear()
    headers: List[str] = list(TABLE_HEADERS)
    worksheet.append_rows([headers] + [[row.get(h, "") for h in headers] for row in rows])
