"""Small helpers shared by every component that talks HTTP to HiSAFE."""
from __future__ import annotations

import json
from typing import Any, Dict

from quotedesk.core.config import HiSafeConfig


def default_headers(config: HiSafeConfig) -> Dict[str, str]:
    """Headers HiSAFE expects on every call, before authorization is added."""

    return {
        "Content-Type": "application/json",
        "X-Timezone-IANA": config.timezone,
        "X-Locale": config.locale,
    }


def response_message(response: Any) -> str:
    """Best-effort error message from a failed response body.

    HiSAFE answers most failures with ``{"message": ...}``; anything else is
    surfaced as raw text.
    """

    message = response.text or ""
    if message.lstrip().startswith("{"):
        try:
            payload = json.loads(message)
        except ValueError:
            return message
        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
    return message


def decode_json(response: Any) -> Any:
    """Decode a successful response, treating an empty body as ``None``."""

    if not (response.text or "").strip():
        return None
    return response.json()
