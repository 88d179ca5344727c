"""Shape-tolerant coercion of HiSAFE field values.

HiSAFE delivers the same logical field as a bare string, an object such as
``{"id": 2, "name": "Work in Progress"}``, or a list of objects depending on
the form and the deployment. Every mapper goes through these three helpers
instead of special-casing individual fields.
"""
from __future__ import annotations

import json
import math
import re
from datetime import datetime, timezone
from typing import Any, Optional

from dateutil import parser as date_parser

_CURRENCY_NOISE = re.compile(r"[$€£¥₹\s,]")
_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ISO_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_TEXT_KEYS = ("name", "text", "value")


def format_iso(moment: datetime) -> str:
    """Render a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def now_iso() -> str:
    return format_iso(datetime.now(timezone.utc))


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_text(value: Any) -> str:
    """Coerce any field shape to a trimmed string; absent values become ``""``."""

    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return ""
        return _format_number(value)
    if isinstance(value, dict):
        for key in _TEXT_KEYS:
            candidate = value.get(key)
            if candidate not in (None, ""):
                return to_text(candidate)
        if not value:
            return ""
        try:
            return json.dumps(value, ensure_ascii=False).strip()
        except (TypeError, ValueError):
            return str(value).strip()
    if isinstance(value, (list, tuple)):
        parts = [to_text(item) for item in value]
        return ", ".join(part for part in parts if part)
    return str(value).strip()


def to_number(value: Any) -> Optional[float]:
    """Parse currency-formatted input; non-numeric input is absent, never zero."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    cleaned = _CURRENCY_NOISE.sub("", to_text(value))
    if not cleaned:
        return None
    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def to_iso_date(value: Any, now: Optional[str] = None) -> str:
    """Normalize a date-ish value to an ISO-8601 timestamp.

    Values that cannot be read fall back to ``now`` (the current time unless
    given), so one bad date never fails the whole record. A defaulted
    timestamp is not a historical fact.
    """

    fallback = now or now_iso()
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, datetime):
        return format_iso(value)
    if isinstance(value, (int, float)):
        try:
            return format_iso(datetime.fromtimestamp(value / 1000, tz=timezone.utc))
        except (OverflowError, OSError, ValueError):
            return fallback

    text = to_text(value)
    if not text:
        return fallback
    if _ISO_PREFIX.match(text) and ("T" in text or "Z" in text):
        return text
    if _DATE_ONLY.match(text):
        try:
            parsed = datetime.strptime(text, "%Y-%m-%d")
        except ValueError:
            return fallback
        return format_iso(parsed.replace(tzinfo=timezone.utc))
    try:
        return format_iso(date_parser.parse(text))
    except (ValueError, OverflowError):
        return fallback
