"""Core building blocks for the quotedesk package."""
from quotedesk.core.config import HiSafeConfig
from quotedesk.core.logging import configure_logging
from quotedesk.core.models import (
    AUTHOR_TYPES,
    PLACEHOLDER_EMAIL,
    QUOTE_STATUSES,
    SYSTEM_AUTHOR,
    Comment,
    QuoteRequest,
    QuoteStats,
)

__all__ = [
    "AUTHOR_TYPES",
    "PLACEHOLDER_EMAIL",
    "QUOTE_STATUSES",
    "SYSTEM_AUTHOR",
    "Comment",
    "HiSafeConfig",
    "QuoteRequest",
    "QuoteStats",
    "configure_logging",
]
