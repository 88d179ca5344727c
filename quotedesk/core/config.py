"""Runtime configuration for the HiSAFE connection."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import quote

from quotedesk.core.utils import get_config_value, is_truthy, load_env_file

logger = logging.getLogger(__name__)

DEFAULT_ENV_FILE = Path("secrets/hisafe.env")
DEFAULT_BASE_URL = "https://adhikari.forms.jobtraq.app"
_ENV_LOADED = False


def _ensure_env() -> None:
    """Populate HiSAFE env vars from secrets/hisafe.env once per process."""

    global _ENV_LOADED
    if _ENV_LOADED:
        return
    _ENV_LOADED = True

    env_path = Path(os.getenv("HISAFE_ENV_FILE", DEFAULT_ENV_FILE))
    load_env_file(env_path)


@dataclass
class HiSafeConfig:
    """Connection settings for one HiSAFE portal."""

    base_url: str = DEFAULT_BASE_URL
    client_id: str = ""
    portal_slug: str = "quotes"
    feature_type: str = "PORTAL"
    api_version: str = "9.0.0"
    redirect_uri: str = "http://localhost:8501/"
    timezone: str = "UTC"
    locale: str = "en-US"
    form_id: int = 1
    state_dir: Path = field(default_factory=lambda: Path(".quotedesk"))
    verifier_ttl_seconds: int = 600
    request_timeout: float = 30
    fetch_task_details: bool = True
    field_map_path: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "HiSafeConfig":
        """Build a config from Streamlit secrets, env vars, and secrets/hisafe.env."""

        _ensure_env()
        field_map = get_config_value("QUOTEDESK_FIELD_MAP")
        config = cls(
            base_url=get_config_value("HISAFE_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            client_id=get_config_value("HISAFE_CLIENT_ID"),
            portal_slug=get_config_value("HISAFE_PORTAL_SLUG", "quotes"),
            redirect_uri=get_config_value("HISAFE_REDIRECT_URI", "http://localhost:8501/"),
            timezone=get_config_value("HISAFE_TIMEZONE", "UTC"),
            locale=get_config_value("HISAFE_LOCALE", "en-US"),
            form_id=int(get_config_value("HISAFE_FORM_ID", "1") or 1),
            state_dir=Path(get_config_value("QUOTEDESK_STATE_DIR", ".quotedesk")),
            fetch_task_details=is_truthy(get_config_value("QUOTEDESK_FETCH_DETAILS", "1")),
            field_map_path=Path(field_map) if field_map else None,
        )
        if not config.client_id:
            logger.warning("HISAFE_CLIENT_ID is not set; sign-in will fail until it is configured.")
        return config

    def api_url(self, path: str) -> str:
        """Return the absolute API URL for a path relative to the versioned prefix."""

        prefix = f"{self.base_url}/api/{self.api_version}"
        return prefix + path if path.startswith("/") else f"{prefix}/{path}"

    def scope_params(self) -> Dict[str, str]:
        """Query parameters HiSAFE expects on every portal request."""

        return {"featureType": self.feature_type, "feature": self.portal_slug}

    def scope_query(self) -> str:
        return "&".join(f"{key}={quote(value)}" for key, value in self.scope_params().items())
