"""Field mapping between HiSAFE task records and quote requests."""
from quotedesk.mapping.coercion import now_iso, to_iso_date, to_number, to_text
from quotedesk.mapping.comments import (
    append_comment,
    make_comment,
    parse_comments,
    serialize_comments,
)
from quotedesk.mapping.engine import (
    STATUS_FROM_UPSTREAM,
    build_description,
    build_notes,
    canonical_status,
    fallback_quote,
    quote_to_task_fields,
    resolve_status,
    rich_text,
    status_to_upstream,
    task_to_quote,
)
from quotedesk.mapping.fields import DEFAULT_FIELD_CANDIDATES, FieldMap, lookup, resolve
from quotedesk.mapping.validation import QuoteValidationError, is_valid_email, validate_quote

__all__ = [
    "DEFAULT_FIELD_CANDIDATES",
    "STATUS_FROM_UPSTREAM",
    "FieldMap",
    "QuoteValidationError",
    "append_comment",
    "build_description",
    "build_notes",
    "canonical_status",
    "fallback_quote",
    "is_valid_email",
    "lookup",
    "make_comment",
    "now_iso",
    "parse_comments",
    "quote_to_task_fields",
    "resolve",
    "resolve_status",
    "rich_text",
    "serialize_comments",
    "status_to_upstream",
    "task_to_quote",
    "to_iso_date",
    "to_number",
    "to_text",
    "validate_quote",
]
