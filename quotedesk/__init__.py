"""Quote request desk backed by HiSAFE work-management tasks."""
from quotedesk.auth import AuthRedirect, PKCEAuthenticator, TokenStore
from quotedesk.client import GatewayError, RequestGateway, TaskRepository, TaskRepositoryError
from quotedesk.core import (
    QUOTE_STATUSES,
    Comment,
    HiSafeConfig,
    QuoteRequest,
    QuoteStats,
    configure_logging,
)
from quotedesk.mapping import FieldMap, QuoteValidationError, quote_to_task_fields, task_to_quote
from quotedesk.quotes import QuoteNotFoundError, QuotesService

__all__ = [
    "QUOTE_STATUSES",
    "AuthRedirect",
    "Comment",
    "FieldMap",
    "GatewayError",
    "HiSafeConfig",
    "PKCEAuthenticator",
    "QuoteNotFoundError",
    "QuoteRequest",
    "QuoteStats",
    "QuoteValidationError",
    "QuotesService",
    "RequestGateway",
    "TaskRepository",
    "TaskRepositoryError",
    "TokenStore",
    "configure_logging",
    "quote_to_task_fields",
    "task_to_quote",
]
