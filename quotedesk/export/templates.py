"""Spreadsheet layout for exported quote requests."""
from typing import Any, Dict, Iterable, List, Optional

from quotedesk.core.models import QuoteRequest


QUOTE_HEADERS = [
    "Quote_ID",
    "Job_ID",
    "Status",
    "Submitted",
    "Updated",
    "Client_Name",
    "Email",
    "Phone",
    "Project_Type",
    "Description",
    "Item_Part",
    "Size",
    "Budget",
    "Timeline",
    "Location",
    "Estimated_Cost",
    "Quote_Total",
    "Job_Hours",
    "Expires",
    "Comments",
    "Notes",
]


def _clean_text(value: Optional[str]) -> str:
    if not value:
        return ""
    return " ".join(value.split())


def _format_amount(value: Optional[float]) -> str:
    if value is None:
        return ""
    return f"{value:.2f}"


def _date_part(value: str) -> str:
    return value.split("T", 1)[0] if value else ""


def quote_to_row(quote: QuoteRequest) -> Dict[str, Any]:
    """Convert a QuoteRequest into the export template dictionary."""

    return {
        "Quote_ID": quote.id,
        "Job_ID": quote.job_id,
        "Status": quote.status,
        "Submitted": _date_part(quote.submitted_at),
        "Updated": _date_part(quote.updated_at),
        "Client_Name": _clean_text(quote.client_name),
        "Email": quote.client_email or "",
        "Phone": quote.client_phone or "",
        "Project_Type": _clean_text(quote.project_type),
        "Description": _clean_text(quote.project_description),
        "Item_Part": _clean_text(quote.item_part_name),
        "Size": _clean_text(quote.item_part_size),
        "Budget": _clean_text(quote.budget),
        "Timeline": _clean_text(quote.timeline),
        "Location": _clean_text(quote.location),
        "Estimated_Cost": _format_amount(quote.estimated_cost),
        "Quote_Total": _format_amount(quote.quote_total),
        "Job_Hours": _format_amount(quote.estimated_job_hours),
        "Expires": _clean_text(quote.quote_expiration_date),
        "Comments": len(quote.comments),
        "Notes": _clean_text(quote.notes),
    }


def quotes_to_rows(quotes: Iterable[QuoteRequest]) -> List[Dict[str, Any]]:
    return [quote_to_row(quote) for quote in quotes]
