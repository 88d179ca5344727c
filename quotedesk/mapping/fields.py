"""Candidate field names used to locate each logical quote field.

Deployments of the HiSAFE quote portal do not agree on field names, so every
logical field has an ordered list of keys to try. The order is a priority
list: specific, newer names come before generic fallbacks, and lookups stop at
the first candidate carrying a value.
"""
from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_FIELD_CANDIDATES: Dict[str, List[str]] = {
    "client_name": ["Customer.Name", "Customer.name", "Customer Name", "customer_name", "Client Name", "owner.name"],
    "client_email": [
        "Customer.E-mail Address",
        "Customer.Email",
        "Customer.email",
        "Customer Email",
        "E-mail Address",
        "email",
    ],
    "client_phone": ["Customer.Phone", "Customer.phone", "Customer Phone", "Phone", "phone"],
    "project_type": ["Task Form", "Project Type", "project_type", "form_name"],
    "project_description": ["Project Description", "project_description"],
    "item_part_name": ["Item/Part Name", "Item Part Name", "item_part_name", "brief_description"],
    "item_part_size": ["Item/Part Size", "Item Part Size", "item_part_size", "Size"],
    "quantity": ["Quantity", "Qty", "quantity"],
    "extended_description": ["extended_description", "Extended Description", "Description"],
    "budget": ["Budget", "budget"],
    "timeline": ["Estimated Need by Date", "Need By Date", "due_date", "Timeline"],
    "location": ["Location", "Job Site", "location"],
    "estimated_cost": ["Quote Total", "Estimated Cost", "estimated_cost"],
    "estimated_job_hours": ["Estimated Job Hours", "Job Hours", "estimated_job_hours"],
    "quote_expiration_date": ["Quote Expiration Date", "Quote Expiration", "quote_expiration_date"],
    "quote_total": ["Quote Total", "quote_total"],
    "job_id": ["job_id", "Job ID", "Job Number"],
    "submitted_at": ["created_date", "Created Date", "Date Submitted"],
    "updated_at": ["updated_date", "Last Updated", "Updated Date"],
    "comments": ["Comments", "comments", "Comment Log"],
    "notes": ["Notes", "notes", "Internal Notes", "Special Instructions"],
}

# Canonical status -> the HiSAFE status object written back on status changes.
DEFAULT_UPSTREAM_STATUSES: Dict[str, Dict[str, Any]] = {
    "pending": {"id": 1, "name": "Awaiting Approval", "type": "Open"},
    "processing": {"id": 2, "name": "Work in Progress", "type": "InProgress"},
    "approved": {"id": 3, "name": "Quote Complete", "type": "Closed"},
    "denied": {"id": 4, "name": "Quote Denied", "type": "Closed"},
}

_MISSING = object()


def is_blank(value: Any) -> bool:
    """True for values that should not win a candidate lookup."""

    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (dict, list, tuple)):
        return len(value) == 0
    return False


def lookup(fields: Mapping[str, Any], key: str) -> Any:
    """Read ``key`` from ``fields``, following dotted paths into nested objects.

    A literal key wins over the nested interpretation, since HiSAFE field
    labels may themselves contain dots.
    """

    if key in fields:
        return fields[key]
    if "." not in key:
        return None

    current: Any = fields
    for part in key.split("."):
        if isinstance(current, Mapping):
            current = current.get(part, _MISSING)
        elif isinstance(current, list) and current and isinstance(current[0], Mapping):
            current = current[0].get(part, _MISSING)
        else:
            return None
        if current is _MISSING:
            return None
    return current


def resolve(fields: Mapping[str, Any], candidates: Sequence[str], default: Any = "") -> Any:
    """Return the first non-blank candidate value, or ``default``."""

    for key in candidates:
        value = lookup(fields, key)
        if not is_blank(value):
            return value
    return default


def assign(fields: Dict[str, Any], key: str, value: Any) -> None:
    """Write ``value`` under ``key``, creating nested objects for dotted keys."""

    if "." not in key:
        fields[key] = value
        return
    parts = key.split(".")
    current = fields
    for part in parts[:-1]:
        nested = current.get(part)
        if not isinstance(nested, dict):
            nested = {}
            current[part] = nested
        current = nested
    current[parts[-1]] = value


@dataclass
class FieldMap:
    """Deployment-specific candidate lists plus the status table."""

    candidates: Dict[str, List[str]] = field(default_factory=lambda: copy.deepcopy(DEFAULT_FIELD_CANDIDATES))
    upstream_statuses: Dict[str, Dict[str, Any]] = field(
        default_factory=lambda: copy.deepcopy(DEFAULT_UPSTREAM_STATUSES)
    )

    def keys_for(self, name: str) -> List[str]:
        return self.candidates.get(name, [])

    def primary_key(self, name: str) -> Optional[str]:
        keys = self.keys_for(name)
        return keys[0] if keys else None

    def get(self, fields: Mapping[str, Any], name: str, default: Any = "") -> Any:
        return resolve(fields, self.keys_for(name), default)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FieldMap":
        """Overlay overrides on the defaults; an override replaces a whole list."""

        field_map = cls()
        for name, keys in (data.get("fields") or {}).items():
            if isinstance(keys, str):
                keys = [keys]
            field_map.candidates[name] = list(keys)
        for status, upstream in (data.get("statuses") or {}).items():
            field_map.upstream_statuses[status] = dict(upstream)
        return field_map

    @classmethod
    def from_file(cls, path: Path) -> "FieldMap":
        with Path(path).open(encoding="utf-8") as handle:
            data = json.load(handle)
        logger.info("Loaded field map overrides from %s", path)
        return cls.from_dict(data)

    @classmethod
    def from_config(cls, path: Optional[Path]) -> "FieldMap":
        if path is None:
            return cls()
        return cls.from_file(path)
