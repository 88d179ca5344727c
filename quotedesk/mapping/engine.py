"""Translate HiSAFE task records into QuoteRequest objects and back."""
from __future__ import annotations

import logging
from dataclasses import fields as dataclass_fields, is_dataclass
from typing import Any, Dict, Mapping, Optional

from quotedesk.core.models import PLACEHOLDER_EMAIL, QUOTE_STATUSES, QuoteRequest
from quotedesk.mapping.coercion import now_iso, to_iso_date, to_number, to_text
from quotedesk.mapping.comments import parse_comments, serialize_comments
from quotedesk.mapping.fields import FieldMap, assign, lookup

logger = logging.getLogger(__name__)

STATUS_FROM_UPSTREAM = {
    "Awaiting Approval": "pending",
    "Awaiting Quote Generation": "processing",
    "Work in Progress": "processing",
    "In Progress": "processing",
    "Quote Complete": "approved",
    "Completed": "approved",
    "Closed": "approved",
    "Quote Denied": "denied",
    "Cancelled": "denied",
    "pending": "pending",
    "processing": "processing",
    "approved": "approved",
    "denied": "denied",
}
_STATUS_BY_LOWER = {name.lower(): status for name, status in STATUS_FROM_UPSTREAM.items()}

# Properties written back to HiSAFE under their first candidate key.
WRITABLE_FIELDS = (
    "client_name",
    "client_email",
    "client_phone",
    "project_type",
    "project_description",
    "budget",
    "timeline",
    "location",
    "estimated_cost",
    "notes",
    "item_part_name",
    "item_part_size",
    "estimated_job_hours",
    "quote_expiration_date",
    "quote_total",
)
STATUS_FIELD = "status"


def canonical_status(name: str) -> str:
    """Map an upstream status name to a canonical status; unknown names are pending."""

    cleaned = to_text(name)
    if cleaned in STATUS_FROM_UPSTREAM:
        return STATUS_FROM_UPSTREAM[cleaned]
    return _STATUS_BY_LOWER.get(cleaned.lower(), "pending")


def _status_name(task: Mapping[str, Any]) -> str:
    fields = task.get("fields")
    fields = fields if isinstance(fields, Mapping) else {}
    groups = (
        [fields.get("status"), fields.get("Status")],
        [task.get("status")],
    )
    for group in groups:
        for value in group:
            if isinstance(value, Mapping) and to_text(value.get("name")):
                return to_text(value.get("name"))
        for value in group:
            if isinstance(value, str) and value.strip():
                return value.strip()
    return ""


def resolve_status(task: Mapping[str, Any]) -> str:
    return canonical_status(_status_name(task))


def status_to_upstream(status: str, field_map: Optional[FieldMap] = None) -> Dict[str, Any]:
    if status not in QUOTE_STATUSES:
        raise ValueError(f"Unknown quote status: {status!r}")
    field_map = field_map or FieldMap()
    return dict(field_map.upstream_statuses[status])


def rich_text(value: str, operation: str = "replace") -> Dict[str, str]:
    """Shape a value the way HiSAFE rich-text fields expect it."""

    return {"value": value, "format": "text", "operation": operation}


def build_description(fields: Mapping[str, Any], field_map: FieldMap) -> str:
    """Assemble the project description from the item fields when needed."""

    description = to_text(field_map.get(fields, "project_description"))
    if not description:
        description = to_text(field_map.get(fields, "item_part_name"))
        size = to_text(field_map.get(fields, "item_part_size"))
        quantity = to_text(field_map.get(fields, "quantity"))
        if size:
            description = f"{description} ({size})" if description else size
        if quantity:
            description = f"{description} - Qty: {quantity}" if description else f"Qty: {quantity}"

    extended = to_text(field_map.get(fields, "extended_description"))
    if extended and extended != description:
        description = f"{description}\n\nAdditional Details:\n{extended}" if description else extended
    return description


def build_notes(fields: Mapping[str, Any], field_map: FieldMap) -> str:
    """Join every non-empty note source with ``" | "``, skipping repeats."""

    parts = []
    for key in field_map.keys_for("notes"):
        text = to_text(lookup(fields, key))
        if text and text not in parts:
            parts.append(text)
    return " | ".join(parts)


def _non_negative(value: Optional[float]) -> Optional[float]:
    return value if value is not None and value >= 0 else None


def task_to_quote(
    task: Mapping[str, Any],
    field_map: Optional[FieldMap] = None,
    now: Optional[str] = None,
) -> QuoteRequest:
    """Normalize one HiSAFE task into a QuoteRequest.

    Raises ``TypeError``/``ValueError`` only for records that are not task
    objects at all; every individual field degrades to a default instead.
    """

    if not isinstance(task, Mapping):
        raise TypeError(f"Expected a task mapping, got {type(task).__name__}")
    task_id = to_text(task.get("task_id"))
    if not task_id:
        raise ValueError("Task record has no task_id")
    fields = task.get("fields") or {}
    if not isinstance(fields, Mapping):
        raise TypeError(f"Task {task_id} has malformed fields: {type(fields).__name__}")

    field_map = field_map or FieldMap()
    stamp = now or now_iso()
    # Root values (present on full task fetches) lose to field-level values.
    view: Dict[str, Any] = {key: value for key, value in task.items() if key != "fields"}
    view.update(fields)

    def text(name: str) -> str:
        return to_text(field_map.get(view, name))

    def number(name: str) -> Optional[float]:
        return to_number(field_map.get(view, name, None))

    job_id = text("job_id")
    updated_at = to_iso_date(field_map.get(view, "updated_at", None), now=stamp)

    return QuoteRequest(
        id=task_id,
        client_name=text("client_name") or (f"Job {job_id}" if job_id else f"Task {task_id}"),
        client_email=text("client_email") or PLACEHOLDER_EMAIL,
        client_phone=text("client_phone"),
        project_type=text("project_type"),
        project_description=build_description(view, field_map),
        budget=text("budget"),
        timeline=text("timeline"),
        location=text("location"),
        status=resolve_status(task),
        submitted_at=to_iso_date(field_map.get(view, "submitted_at", None), now=stamp),
        updated_at=updated_at,
        estimated_cost=_non_negative(number("estimated_cost")),
        notes=build_notes(view, field_map),
        comments=parse_comments(view, field_map, fallback_timestamp=updated_at),
        job_id=job_id,
        item_part_name=text("item_part_name"),
        item_part_size=text("item_part_size"),
        estimated_job_hours=_non_negative(number("estimated_job_hours")),
        quote_expiration_date=text("quote_expiration_date"),
        quote_total=_non_negative(number("quote_total")),
    )


def fallback_quote(task: Any, error: Optional[BaseException] = None) -> QuoteRequest:
    """Minimal record from the root values the repository already copied."""

    root = task if isinstance(task, Mapping) else {}
    task_id = to_text(root.get("task_id")) or "unknown"
    brief = to_text(root.get("brief_description"))
    created = root.get("created_date")
    note = "Fallback mapping - original data may be incomplete"
    if error is not None:
        note = f"{note} ({error})"

    return QuoteRequest(
        id=task_id,
        client_name=brief or f"Task {task_id}",
        client_email=PLACEHOLDER_EMAIL,
        project_type="General",
        project_description=brief or "Project details not available",
        timeline=to_text(root.get("due_date")),
        status=canonical_status(to_text(root.get("status"))),
        submitted_at=to_iso_date(created),
        updated_at=to_iso_date(root.get("updated_date") or created),
        notes=note,
        job_id=to_text(root.get("job_id")),
    )


def quote_to_task_fields(updates: Any, field_map: Optional[FieldMap] = None) -> Dict[str, Any]:
    """Build the HiSAFE field map for a partial quote.

    Each property is written under its first candidate key only, so values
    round-trip through readers configured with the same field map, not
    necessarily through differently configured ones.
    """

    field_map = field_map or FieldMap()
    if is_dataclass(updates):
        values = {item.name: getattr(updates, item.name) for item in dataclass_fields(updates)}
    else:
        values = dict(updates)

    task_fields: Dict[str, Any] = {}
    for name in WRITABLE_FIELDS:
        value = values.get(name)
        key = field_map.primary_key(name)
        if value is None or key is None:
            continue
        assign(task_fields, key, value)

    if values.get("status") is not None:
        task_fields[STATUS_FIELD] = status_to_upstream(values["status"], field_map)

    if values.get("comments") is not None:
        comments_key = field_map.primary_key("comments")
        if comments_key:
            task_fields[comments_key] = rich_text(serialize_comments(values["comments"]))

    return task_fields
