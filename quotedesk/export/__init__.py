"""Export destinations for quote requests."""
from quotedesk.export.sinks import (
    auto_sheets_target,
    ensure_output_dir,
    push_to_google_sheets,
    resolve_sheets_target,
    write_csv,
    write_excel,
)
from quotedesk.export.templates import QUOTE_HEADERS, quote_to_row, quotes_to_rows

__all__ = [
    "QUOTE_HEADERS",
    "auto_sheets_target",
    "ensure_output_dir",
    "push_to_google_sheets",
    "quote_to_row",
    "quotes_to_rows",
    "resolve_sheets_target",
    "write_csv",
    "write_excel",
]
