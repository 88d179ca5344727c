"""Write exported quote rows to CSV, Excel, or a Google Sheets worksheet."""
from __future__ import annotations

import csv
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from quotedesk.core.utils import get_config_value, is_truthy, load_env_file
from quotedesk.export.templates import QUOTE_HEADERS

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_ACCOUNT_PATHS = [
    Path("secrets/service_account.json"),
    Path("credentials/service_account.json"),
]
DEFAULT_SHEETS_ENV_FILE = Path("secrets/sheets.env")
_SHEETS_ENV_LOADED = False


def _ensure_sheets_env() -> None:
    """Populate Google Sheets env vars from secrets/sheets.env."""

    global _SHEETS_ENV_LOADED
    if _SHEETS_ENV_LOADED:
        return
    _SHEETS_ENV_LOADED = True

    env_path = Path(os.getenv("GOOGLE_SHEETS_ENV_FILE", DEFAULT_SHEETS_ENV_FILE))
    load_env_file(env_path)


def _default_service_account_path() -> Optional[Path]:
    for candidate in DEFAULT_SERVICE_ACCOUNT_PATHS:
        if candidate.exists():
            return candidate
    return None


def resolve_sheets_target(
    spreadsheet_id: Optional[str] = None,
    worksheet_title: Optional[str] = None,
    service_account_path: Optional[Path] = None,
) -> Dict[str, Any]:
    """Fill a Sheets target from arguments first, then configuration."""

    _ensure_sheets_env()
    spreadsheet_id = spreadsheet_id or get_config_value("GOOGLE_SHEETS_SPREADSHEET_ID")
    if not spreadsheet_id:
        raise ValueError("spreadsheet_id is required when sink='sheets'")

    account_env = get_config_value("GOOGLE_SHEETS_SERVICE_ACCOUNT")
    account_path = (
        service_account_path
        or (Path(account_env) if account_env else None)
        or _default_service_account_path()
    )
    if not account_path:
        raise ValueError(
            "Provide --service-account pointing to your Google credentials or place a file at "
            f"{DEFAULT_SERVICE_ACCOUNT_PATHS[0]}"
        )

    return {
        "spreadsheet_id": spreadsheet_id,
        "worksheet_title": worksheet_title or get_config_value("GOOGLE_SHEETS_WORKSHEET", "Quotes"),
        "service_account_path": account_path,
    }


def auto_sheets_target() -> Optional[Dict[str, Any]]:
    """Return the configured Sheets target when automatic sync is switched on."""

    _ensure_sheets_env()
    if not is_truthy(get_config_value("GOOGLE_SHEETS_AUTO_SYNC", "0")):
        return None
    try:
        return resolve_sheets_target()
    except ValueError as exc:
        logger.warning("Auto Sheets sync is enabled but not configured: %s", exc)
        return None


def ensure_output_dir(output_path: Path) -> None:
    """Create parent folders for sink outputs when missing."""

    output_path.parent.mkdir(parents=True, exist_ok=True)


def write_csv(rows: Iterable[Dict[str, Any]], output_path: Path) -> int:
    """Write export rows to a CSV file; the header row is always written."""

    rows = list(rows)
    ensure_output_dir(output_path)
    with output_path.open("w", newline="", encoding="utf-8") as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=QUOTE_HEADERS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)
    logger.info("Wrote %d rows to %s", len(rows), output_path)
    return len(rows)


def write_excel(rows: Iterable[Dict[str, Any]], output_path: Path) -> int:
    """Write export rows to an Excel workbook using openpyxl."""

    rows = list(rows)
    if not rows:
        return 0

    try:
        from openpyxl import Workbook
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise ImportError("openpyxl is required for Excel sinks") from exc

    ensure_output_dir(output_path)
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "quotes"
    sheet.append(QUOTE_HEADERS)
    for row in rows:
        sheet.append([row.get(header, "") for header in QUOTE_HEADERS])
    workbook.save(output_path)
    logger.info("Wrote %d rows to %s", len(rows), output_path)
    return len(rows)


def push_to_google_sheets(
    rows: Iterable[Dict[str, Any]],
    spreadsheet_id: str,
    worksheet_title: str = "Quotes",
    service_account_path: Path | None = None,
) -> int:
    """Replace a worksheet's contents with the export rows."""

    rows = list(rows)
    if not rows:
        return 0

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
    headers: List[str] = list(QUOTE_HEADERS)
    worksheet.append_rows([headers] + [[row.get(h, "") for h in headers] for row in rows])
    logger.info(
        "Pushed %d rows to Google Sheets document %s (worksheet %s)",
        len(rows),
        spreadsheet_id,
        worksheet_title,
    )
    return len(rows)
