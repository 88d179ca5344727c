"""Quote operations exposed to the dashboard and the CLI."""
from __future__ import annotations

import logging
from dataclasses import fields as dataclass_fields, is_dataclass
from typing import Any, Dict, List, Mapping, Optional

from quotedesk.auth.pkce import PKCEAuthenticator
from quotedesk.auth.token_store import TokenStore
from quotedesk.client.gateway import GatewayError, RequestGateway
from quotedesk.client.repository import TaskRepository, TaskRepositoryError
from quotedesk.core.config import HiSafeConfig
from quotedesk.core.models import QUOTE_STATUSES, QuoteRequest, QuoteStats
from quotedesk.mapping.coercion import now_iso, to_text
from quotedesk.mapping.comments import append_comment
from quotedesk.mapping.engine import fallback_quote, quote_to_task_fields, task_to_quote
from quotedesk.mapping.fields import FieldMap
from quotedesk.mapping.validation import QuoteValidationError, validate_quote
from quotedesk.quotes.review import apply_edits, compute_stats, filter_quotes, mark_status

logger = logging.getLogger(__name__)

# Failures on these writes keep the local result; everything else propagates.
UPSTREAM_WRITE_ERRORS = (GatewayError, TaskRepositoryError)

_QUOTE_FIELDS = {item.name for item in dataclass_fields(QuoteRequest)}


class QuoteNotFoundError(LookupError):
    """No HiSAFE task exists for the requested quote id."""


def parse_quote_id(quote_id: Any) -> int:
    try:
        return int(str(quote_id).strip())
    except ValueError:
        raise ValueError(f"Invalid quote ID: {quote_id!r}") from None


def _as_values(data: Any) -> Dict[str, Any]:
    if is_dataclass(data):
        return {item.name: getattr(data, item.name) for item in dataclass_fields(data)}
    return dict(data)


class QuotesService:
    """Combine the task repository and the field mapper into quote operations."""

    def __init__(
        self,
        repository: TaskRepository,
        field_map: Optional[FieldMap] = None,
        form_id: int = 1,
        fetch_details: bool = True,
        authenticator: Optional[PKCEAuthenticator] = None,
    ) -> None:
        self.repository = repository
        self.field_map = field_map or FieldMap()
        self.form_id = form_id
        self.fetch_details = fetch_details
        self.authenticator = authenticator
        self.alerts: List[str] = []

    @classmethod
    def from_config(cls, config: Optional[HiSafeConfig] = None, session: Any = None) -> "QuotesService":
        """Wire token store, authenticator, gateway, and repository together."""

        config = config or HiSafeConfig.from_env()
        authenticator = PKCEAuthenticator(config, TokenStore(config.state_dir), session=session)
        repository = TaskRepository(RequestGateway(config, authenticator))
        return cls(
            repository,
            field_map=FieldMap.from_config(config.field_map_path),
            form_id=config.form_id,
            fetch_details=config.fetch_task_details,
            authenticator=authenticator,
        )

    def list_quotes(self) -> List[QuoteRequest]:
        """Load every portal task; a task that fails to map becomes a fallback quote."""

        self.alerts = []
        quotes: List[QuoteRequest] = []
        for basic_task in self.repository.list_tasks():
            task = self._with_details(basic_task)
            try:
                quotes.append(task_to_quote(task, self.field_map))
            except Exception as exc:
                task_id = basic_task.get("task_id") if isinstance(basic_task, Mapping) else None
                logger.exception("Failed to map task %s", task_id)
                self.alerts.append(f"Failed to map task {task_id}: {exc}")
                quotes.append(fallback_quote(basic_task, exc))

        logger.info("Mapped %d quotes (%d alerts)", len(quotes), len(self.alerts))
        return quotes

    def _with_details(self, task: Any) -> Any:
        """Merge the full task record over a portal list row when available."""

        if not self.fetch_details or not isinstance(task, Mapping):
            return task
        task_id = task.get("task_id")
        try:
            complete = self.repository.get_task(parse_quote_id(task_id))
        except (ValueError, *UPSTREAM_WRITE_ERRORS) as exc:
            logger.warning("Using list data for task %s; full fetch failed: %s", task_id, exc)
            self.alerts.append(f"Details unavailable for task {task_id}")
            return task
        if not isinstance(complete, Mapping):
            return task

        basic_fields = task.get("fields") if isinstance(task.get("fields"), Mapping) else {}
        complete_fields = complete.get("fields") if isinstance(complete.get("fields"), Mapping) else {}
        merged = {**task, **complete}
        merged["task_id"] = task_id
        merged["status"] = complete.get("status") or task.get("status")
        merged["fields"] = {**basic_fields, **complete_fields}
        return merged

    def get_quote(self, quote_id: Any) -> Optional[QuoteRequest]:
        task_id = parse_quote_id(quote_id)
        try:
            task = self.repository.get_task(task_id)
        except GatewayError as exc:
            if exc.status == 404:
                return None
            raise
        if not task:
            return None
        return task_to_quote(task, self.field_map)

    def _require_quote(self, quote_id: Any) -> QuoteRequest:
        quote = self.get_quote(quote_id)
        if quote is None:
            raise QuoteNotFoundError(f"Quote {quote_id} not found")
        return quote

    def create_quote(self, data: Any) -> QuoteRequest:
        """Validate, write a new task, and return the quote under its HiSAFE id."""

        errors = validate_quote(data)
        if errors:
            raise QuoteValidationError(errors)

        values = {key: value for key, value in _as_values(data).items() if value is not None}
        values.setdefault("status", "pending")
        result = self.repository.create_task(self.form_id, quote_to_task_fields(values, self.field_map))
        new_id = to_text((result or {}).get("task_id") or (result or {}).get("id"))
        if not new_id:
            raise TaskRepositoryError("HiSAFE did not return an id for the created task")

        stamp = now_iso()
        known = {key: value for key, value in values.items() if key in _QUOTE_FIELDS}
        known.update(id=new_id, submitted_at=stamp, updated_at=stamp)
        logger.info("Created quote %s for %s", new_id, known.get("client_name"))
        return QuoteRequest(**known)

    def update_quote(self, quote_id: Any, updates: Dict[str, Any]) -> QuoteRequest:
        task_id = parse_quote_id(quote_id)
        merged = apply_edits(self._require_quote(quote_id), updates)
        errors = validate_quote(merged)
        if errors:
            raise QuoteValidationError(errors)

        changed = {key: value for key, value in updates.items() if value is not None and key != "id"}
        task_fields = quote_to_task_fields(changed, self.field_map)
        if task_fields:
            self.repository.patch_task(task_id, task_fields)
        logger.info("Updated quote %s (%s)", quote_id, ", ".join(sorted(changed)))
        return merged

    def update_status(
        self,
        quote_id: Any,
        status: str,
        current: Optional[QuoteRequest] = None,
    ) -> QuoteRequest:
        """Change a quote's status, keeping the local change if HiSAFE rejects it."""

        if status not in QUOTE_STATUSES:
            raise ValueError(f"Unknown quote status: {status!r}")
        task_id = parse_quote_id(quote_id)
        updated = mark_status(current or self._require_quote(quote_id), status)

        try:
            self.repository.patch_task(task_id, quote_to_task_fields({"status": status}, self.field_map))
        except UPSTREAM_WRITE_ERRORS as exc:
            logger.warning("Status of quote %s changed locally only; HiSAFE update failed: %s", quote_id, exc)
        return updated

    def add_comment(
        self,
        quote_id: Any,
        message: str,
        author: str = "User",
        author_type: str = "contractor",
    ) -> QuoteRequest:
        """Append a comment and rewrite the whole comment log upstream."""

        if not (message or "").strip():
            raise ValueError("Comment message is required")
        task_id = parse_quote_id(quote_id)
        updated = append_comment(self._require_quote(quote_id), message, author, author_type)

        try:
            self.repository.patch_task(
                task_id, quote_to_task_fields({"comments": updated.comments}, self.field_map)
            )
        except UPSTREAM_WRITE_ERRORS as exc:
            logger.warning("Comment on quote %s kept locally only; HiSAFE update failed: %s", quote_id, exc)
        return updated

    def search_quotes(self, term: str, quotes: Optional[List[QuoteRequest]] = None) -> List[QuoteRequest]:
        return filter_quotes(self.list_quotes() if quotes is None else quotes, term=term)

    def quotes_by_status(self, status: str, quotes: Optional[List[QuoteRequest]] = None) -> List[QuoteRequest]:
        return filter_quotes(self.list_quotes() if quotes is None else quotes, statuses=[status])

    def get_stats(self, quotes: Optional[List[QuoteRequest]] = None) -> QuoteStats:
        return compute_stats(self.list_quotes() if quotes is None else quotes)

    def test_connection(self) -> bool:
        try:
            self.repository.get_portal_metadata()
        except UPSTREAM_WRITE_ERRORS as exc:
            logger.error("HiSAFE connection test failed: %s", exc)
            return False
        logger.info("HiSAFE connection test succeeded")
        return True

    def current_user(self) -> Dict[str, Any]:
        try:
            return self.repository.get_current_user()
        except GatewayError as exc:
            logger.warning("Could not read the signed-in HiSAFE user: %s", exc)
            return {"name": None}
