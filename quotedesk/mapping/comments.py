"""Comment history stored as a JSON array inside one HiSAFE text field.

HiSAFE has no comment list of its own. The whole history is serialized into
the first comment field and rewritten on every append; readers still accept
legacy free text that predates the JSON format.
"""
from __future__ import annotations

import json
import logging
import uuid
from dataclasses import replace
from typing import Any, Iterable, List, Mapping, Optional

from quotedesk.core.models import AUTHOR_TYPES, SYSTEM_AUTHOR, Comment, QuoteRequest
from quotedesk.mapping.coercion import now_iso, to_text
from quotedesk.mapping.fields import FieldMap, lookup

logger = logging.getLogger(__name__)


def new_comment_id() -> str:
    return uuid.uuid4().hex[:12]


def _raw_text(value: Any) -> str:
    return value if isinstance(value, str) else to_text(value)


def _author_type(value: Any) -> str:
    text = to_text(value).lower()
    return text if text in AUTHOR_TYPES else "contractor"


def _comment_from_item(item: Any) -> Comment:
    if not isinstance(item, Mapping):
        return Comment(new_comment_id(), SYSTEM_AUTHOR, "contractor", to_text(item), now_iso())

    message = item.get("message")
    if message in (None, ""):
        message = item.get("text")
    return Comment(
        id=to_text(item.get("id")) or new_comment_id(),
        author=_raw_text(item.get("author")) or SYSTEM_AUTHOR,
        author_type=_author_type(item.get("authorType", item.get("author_type"))),
        message=_raw_text(message),
        timestamp=to_text(item.get("timestamp")) or now_iso(),
    )


def parse_comments(
    fields: Mapping[str, Any],
    field_map: Optional[FieldMap] = None,
    fallback_timestamp: Optional[str] = None,
) -> List[Comment]:
    """Collect comments from every configured comment source, in source order.

    Free text already carried into a JSON log (the first append migrates it)
    is read from the log only.
    """

    field_map = field_map or FieldMap()
    sources: List[Any] = []

    for key in field_map.keys_for("comments"):
        raw = lookup(fields, key)
        text = _raw_text(raw) if isinstance(raw, (str, Mapping)) else ""
        if not text.strip():
            continue

        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None

        if isinstance(parsed, list):
            sources.append([_comment_from_item(item) for item in parsed])
        else:
            logger.debug("Comment field %s is free text; keeping it as one comment", key)
            sources.append(text.strip())

    logged = {
        comment.message.strip() for source in sources if isinstance(source, list) for comment in source
    }
    comments: List[Comment] = []
    for source in sources:
        if isinstance(source, list):
            comments.extend(source)
        elif source not in logged:
            comments.append(
                Comment(
                    id=new_comment_id(),
                    author=SYSTEM_AUTHOR,
                    author_type="contractor",
                    message=source,
                    timestamp=fallback_timestamp or now_iso(),
                )
            )
    return comments


def serialize_comments(comments: Iterable[Comment]) -> str:
    return json.dumps([comment.to_dict() for comment in comments], ensure_ascii=False)


def make_comment(
    message: str,
    author: str,
    author_type: str = "contractor",
    now: Optional[str] = None,
) -> Comment:
    return Comment(
        id=new_comment_id(),
        author=(author or "").strip() or SYSTEM_AUTHOR,
        author_type=author_type if author_type in AUTHOR_TYPES else "contractor",
        message=message.strip(),
        timestamp=now or now_iso(),
    )


def append_comment(
    quote: QuoteRequest,
    message: str,
    author: str,
    author_type: str = "contractor",
) -> QuoteRequest:
    """Return a copy of ``quote`` with one more comment at the end."""

    comment = make_comment(message, author, author_type)
    return replace(quote, comments=[*quote.comments, comment], updated_at=comment.timestamp)
