"""Durable storage for the HiSAFE bearer token and pending PKCE verifiers."""
from __future__ import annotations

import json
import logging
import re
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

TOKEN_FILE_NAME = "hisafe_token.json"
VERIFIER_DIR_NAME = "verifiers"
_STATE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class TokenStore:
    """File-backed credential holder shared by every request in the process.

    The token survives restarts of the dashboard; verifier slots only need to
    survive the round trip through the HiSAFE sign-in page and are dropped as
    soon as they are used or expire.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    @property
    def token_path(self) -> Path:
        return self.directory / TOKEN_FILE_NAME

    @property
    def verifier_dir(self) -> Path:
        return self.directory / VERIFIER_DIR_NAME

    def load_token(self) -> Optional[dict]:
        try:
            with self.token_path.open(encoding="utf-8") as handle:
                tokens = json.load(handle)
        except (FileNotFoundError, json.JSONDecodeError):
            return None
        if not isinstance(tokens, dict) or not tokens.get("access_token"):
            return None
        return tokens

    def save_token(self, tokens: dict) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        payload = {
            "access_token": tokens["access_token"],
            "token_type": tokens.get("token_type") or "Bearer",
            "saved_at": datetime.now().isoformat(),
        }
        with self.token_path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle)

    def clear_token(self) -> None:
        self.token_path.unlink(missing_ok=True)

    def _verifier_path(self, state: str) -> Optional[Path]:
        if not state or not _STATE_PATTERN.match(state):
            return None
        return self.verifier_dir / f"{state}.json"

    def save_verifier(self, state: str, verifier: str) -> None:
        path = self._verifier_path(state)
        if path is None:
            raise ValueError(f"Unsupported state value: {state!r}")
        self.verifier_dir.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            json.dump({"verifier": verifier, "created_at": time.time()}, handle)

    def pop_verifier(self, state: str, ttl: float) -> Optional[str]:
        """Return and delete the verifier stored for ``state``, if still fresh."""

        path = self._verifier_path(state)
        if path is None:
            return None
        try:
            with path.open(encoding="utf-8") as handle:
                slot = json.load(handle)
        except (FileNotFoundError, json.JSONDecodeError):
            return None
        finally:
            path.unlink(missing_ok=True)

        if not isinstance(slot, dict):
            logger.warning("Ignoring malformed PKCE verifier slot for state %s", state)
            return None
        if time.time() - float(slot.get("created_at", 0)) > ttl:
            logger.info("Discarding expired PKCE verifier for state %s", state)
            return None
        return slot.get("verifier")

    def clear_verifiers(self) -> None:
        if not self.verifier_dir.exists():
            return
        for path in self.verifier_dir.glob("*.json"):
            path.unlink(missing_ok=True)

    def clear(self) -> None:
        self.clear_token()
        self.clear_verifiers()
