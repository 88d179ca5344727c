"""Typed wrappers around the HiSAFE task and portal endpoints."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from quotedesk.client.gateway import RequestGateway

logger = logging.getLogger(__name__)

# Values the portal list view only carries inside ``fields``; copied to the
# record root so list rows and full task fetches look alike.
ROOT_COPY_FIELDS = (
    "status",
    "created_date",
    "updated_date",
    "due_date",
    "brief_description",
    "job_id",
    "owner",
    "assignee",
)


class TaskRepositoryError(Exception):
    """HiSAFE answered, but not with a shape the repository can use."""


class TaskRepository:
    """One method per upstream endpoint; no quote semantics live here."""

    def __init__(self, gateway: RequestGateway) -> None:
        self.gateway = gateway

    def get_task(self, task_id: int) -> Dict[str, Any]:
        return self.gateway.request("GET", f"task/{task_id}")

    def get_portal_metadata(self) -> Dict[str, Any]:
        return self.gateway.request("GET", "portal/metadata")

    def get_task_metadata(self, form_id: int) -> Dict[str, Any]:
        """Form layout and defaults HiSAFE uses when creating a task."""

        return self.gateway.request("GET", f"create-task/{form_id}") or {}

    def load_portal_data(self, series_ids: Optional[Iterable[int]] = None) -> Dict[str, Any]:
        ids = list(series_ids or [])
        if not ids:
            return self.gateway.request("GET", "portal/load") or {}
        query = "&".join(f"seriesId={series_id}" for series_id in ids)
        return self.gateway.request("GET", f"portal/load?{query}") or {}

    @staticmethod
    def series_ids_from_metadata(metadata: Optional[Dict[str, Any]]) -> List[int]:
        """Collect the dashboard series ids a portal exposes, in order."""

        series_ids: List[int] = []
        components = (metadata or {}).get("dashboardComponents") or []
        for component in components:
            for series in (component or {}).get("series") or []:
                series_id = (series or {}).get("id")
                if series_id and series_id not in series_ids:
                    series_ids.append(series_id)
        return series_ids

    def list_tasks(self, series_ids: Optional[Iterable[int]] = None) -> List[Dict[str, Any]]:
        """Return every task row of the portal's list components."""

        ids = list(series_ids or [])
        if not ids:
            ids = self.series_ids_from_metadata(self.get_portal_metadata())
            logger.info("Discovered %d dashboard series from portal metadata", len(ids))

        portal_data = self.load_portal_data(ids)
        tasks: List[Dict[str, Any]] = []
        for series_id, component in portal_data.items():
            if not isinstance(component, dict) or component.get("type") != "list":
                continue
            rows = component.get("listResult") or []
            logger.debug("Series %s returned %d tasks", series_id, len(rows))
            for row in rows:
                tasks.append(self._task_from_row(row))
        logger.info("Loaded %d tasks from HiSAFE", len(tasks))
        return tasks

    @staticmethod
    def _task_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
        fields = row.get("fields") or {}
        task = {"task_id": row.get("task_id"), "fields": fields}
        for key in ROOT_COPY_FIELDS:
            if key in fields:
                task[key] = fields[key]
        return task

    def create_task(self, form_id: int, fields: Dict[str, Any]) -> Dict[str, Any]:
        body = {"form_id": form_id, "fields": fields, "options": {}}
        return self.gateway.request("POST", "task", body) or {}

    def patch_task(
        self,
        task_id: int,
        fields: Dict[str, Any],
        edit_session_token: Optional[str] = None,
    ) -> Any:
        """Write already upstream-shaped field values to a task."""

        if not edit_session_token:
            current = self.get_task(task_id) or {}
            edit_session_token = current.get("editSessionToken")
        if not edit_session_token:
            raise TaskRepositoryError(f"Could not get edit session token for task {task_id}")

        body = {"fields": fields, "options": {"editSessionToken": edit_session_token}}
        return self.gateway.request("PATCH", f"task/{task_id}", body)

    def get_current_user(self) -> Dict[str, Any]:
        return self.gateway.request("GET", "self") or {}
