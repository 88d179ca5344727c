"""Quote workflow: the service facade plus review helpers."""
from quotedesk.quotes.review import (
    apply_edits,
    compute_stats,
    filter_quotes,
    mark_status,
    matches_search,
    quotes_to_rows,
    status_badge,
)
from quotedesk.quotes.service import QuoteNotFoundError, QuotesService, parse_quote_id

__all__ = [
    "QuoteNotFoundError",
    "QuotesService",
    "apply_edits",
    "compute_stats",
    "filter_quotes",
    "mark_status",
    "matches_search",
    "parse_quote_id",
    "quotes_to_rows",
    "status_badge",
]
