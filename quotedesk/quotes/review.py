"""Review helpers used by the quotes service, the dashboard, and the CLI."""
from __future__ import annotations

from dataclasses import fields as dataclass_fields, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence

from quotedesk.core.models import QUOTE_STATUSES, QuoteRequest, QuoteStats
from quotedesk.mapping.coercion import now_iso

_QUOTE_FIELDS = {item.name for item in dataclass_fields(QuoteRequest)}


def apply_edits(quote: QuoteRequest, updates: Dict[str, Any]) -> QuoteRequest:
    """Return a quote with user-provided field updates applied."""

    unknown = sorted(set(updates) - _QUOTE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown quote field(s): {', '.join(unknown)}")

    # Only overwrite fields explicitly provided by the user; the id is fixed.
    updated_fields = {
        key: value for key, value in updates.items() if value is not None and key != "id"
    }
    updated_fields["updated_at"] = now_iso()
    return replace(quote, **updated_fields)


def mark_status(quote: QuoteRequest, status: str) -> QuoteRequest:
    """Return a copy of the quote carrying a new canonical status."""

    if status not in QUOTE_STATUSES:
        raise ValueError(f"Unknown quote status: {status!r}")
    return replace(quote, status=status, updated_at=now_iso())


def matches_search(quote: QuoteRequest, term: str) -> bool:
    """Case-insensitive substring match on name, email, description, and type."""

    needle = (term or "").strip().lower()
    if not needle:
        return True
    haystacks = [quote.client_name, quote.client_email, quote.project_description, quote.project_type]
    return any(needle in (value or "").lower() for value in haystacks)


def filter_quotes(
    quotes: Iterable[QuoteRequest],
    statuses: Optional[Sequence[str]] = None,
    term: str = "",
) -> List[QuoteRequest]:
    return [
        quote
        for quote in quotes
        if (not statuses or quote.status in statuses) and matches_search(quote, term)
    ]


def compute_stats(quotes: Iterable[QuoteRequest]) -> QuoteStats:
    """Count quotes per status and sum their estimated cost."""

    stats = QuoteStats()
    for quote in quotes:
        stats.total += 1
        setattr(stats, quote.status, getattr(stats, quote.status) + 1)
        if quote.estimated_cost:
            stats.total_value += quote.estimated_cost
    stats.total_value = round(stats.total_value, 2)
    return stats


def status_badge(status: str) -> str:
    """Return a color-coded label for queue preview."""

    mapping = {
        "pending": "🟡 Pending",
        "processing": "🔵 Processing",
        "approved": "🟢 Approved",
        "denied": "🔴 Denied",
    }
    return mapping.get(status, "⚪ Pending")


def quotes_to_rows(quotes: Iterable[QuoteRequest]) -> List[Dict[str, Any]]:
    """Convert quotes to dictionaries for tabular rendering."""

    def _sanitize(value: Any) -> Any:
        if isinstance(value, str):
            return " ".join(value.split())
        return value

    rows = []
    for quote in quotes:
        row = quote.to_dict()
        row["comments"] = len(quote.comments)
        rows.append({key: _sanitize(value) for key, value in row.items()})
    return rows
