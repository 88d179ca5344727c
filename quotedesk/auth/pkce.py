"""OAuth2 Authorization Code + PKCE sign-in against HiSAFE."""
from __future__ import annotations

import base64
import hashlib
import json
import logging
import secrets
from typing import Mapping, Optional
from urllib.parse import urlencode

import requests

from quotedesk.auth.token_store import TokenStore
from quotedesk.core.config import HiSafeConfig
from quotedesk.core.http import decode_json, default_headers, response_message

logger = logging.getLogger(__name__)


class AuthRedirect(Exception):
    """The user has to be sent to ``url`` before anything else can happen.

    ``reason`` is set when the redirect is the fallback after a failed
    sign-in attempt, so the caller can show it instead of looping silently.
    """

    def __init__(self, url: str, reason: Optional[str] = None) -> None:
        super().__init__(reason or f"Authorization required: {url}")
        self.url = url
        self.reason = reason


def _encode_base64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def generate_verifier(length: int = 64) -> str:
    return _encode_base64url(secrets.token_bytes(length))


def generate_state(length: int = 8) -> str:
    return _encode_base64url(secrets.token_bytes(length))


def code_challenge(verifier: str) -> str:
    """S256 challenge: URL-safe base64 of SHA-256(verifier), without padding."""

    return _encode_base64url(hashlib.sha256(verifier.encode("ascii")).digest())


class PKCEAuthenticator:
    """Owns the bearer credential for one application session.

    The gateway holds a reference to this object and asks it for the
    ``Authorization`` header; whenever a credential is missing or rejected the
    authenticator raises :class:`AuthRedirect`.
    """

    def __init__(
        self,
        config: HiSafeConfig,
        store: TokenStore,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.session = session or requests.Session()
        self.authorization_header: Optional[str] = None

    def is_authenticated(self) -> bool:
        return bool(self.authorization_header) and self.store.load_token() is not None

    def authorize_url(self, confirm: bool = False) -> str:
        """Start a new sign-in attempt and return the HiSAFE authorize URL."""

        verifier = generate_verifier()
        state = generate_state()
        self.store.save_verifier(state, verifier)

        params = [
            ("feature_type", self.config.feature_type),
            ("feature_key", self.config.portal_slug),
            ("response_type", "code"),
            ("client_id", self.config.client_id),
            ("redirect_uri", self.config.redirect_uri),
            ("code_challenge_method", "S256"),
            ("code_challenge", code_challenge(verifier)),
            ("state", state),
            ("confirm", json.dumps(confirm)),
        ]
        return self.config.api_url("oauth2/authorize?" + urlencode(params))

    def ensure_authenticated(self, query_params: Optional[Mapping[str, str]] = None) -> None:
        """Make sure a bearer header is available, redirecting when it is not."""

        if self.authorization_header:
            return

        tokens = self.store.load_token()
        if tokens:
            self._apply(tokens)
            return

        params = query_params or {}
        code = params.get("code")
        state = params.get("state")
        if code and state:
            self.exchange_code(code, state)
            return

        raise AuthRedirect(self.authorize_url())

    def exchange_code(self, code: str, state: str) -> None:
        """Trade an authorization code for a bearer token."""

        verifier = self.store.pop_verifier(state, self.config.verifier_ttl_seconds)
        if not verifier:
            self._fail("No pending sign-in matches the returned state; please sign in again.")

        url = self.config.api_url("oauth2/token") + "?" + self.config.scope_query()
        body = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self.config.client_id,
            "code_verifier": verifier,
        }
        try:
            response = self.session.post(
                url,
                json=body,
                headers=default_headers(self.config),
                timeout=self.config.request_timeout,
            )
        except requests.RequestException as exc:
            self._fail(f"Token exchange failed: {exc}")

        if not 200 <= response.status_code <= 299:
            self._fail(f"Token exchange failed with {response.status_code}: {response_message(response)}")

        try:
            tokens = decode_json(response)
        except ValueError:
            tokens = None
        if not isinstance(tokens, dict) or not tokens.get("access_token"):
            self._fail("Token exchange returned no access token.")

        self.store.save_token(tokens)
        self._apply(tokens)
        logger.info("Signed in to HiSAFE portal %s", self.config.portal_slug)

    @staticmethod
    def strip_callback_params(params: Mapping[str, str]) -> dict:
        """Return the query parameters without the one-time ``code``/``state`` pair."""

        return {key: value for key, value in params.items() if key not in {"code", "state"}}

    def expire(self) -> None:
        """Forget the current credential after HiSAFE rejected it."""

        logger.info("HiSAFE session expired; clearing stored token")
        self.authorization_header = None
        self.store.clear_token()

    def logout(self) -> None:
        self._reset()
        logger.info("Logged out of HiSAFE")
        raise AuthRedirect(self.authorize_url(confirm=True))

    def force_reauth(self) -> None:
        self._reset()
        raise AuthRedirect(self.authorize_url(confirm=False))

    def _reset(self) -> None:
        self.authorization_header = None
        self.store.clear()

    def _apply(self, tokens: dict) -> None:
        token_type = tokens.get("token_type") or "Bearer"
        self.authorization_header = f"{token_type} {tokens['access_token']}"

    def _fail(self, reason: str) -> None:
        logger.error(reason)
        self.authorization_header = None
        self.store.clear_token()
        raise AuthRedirect(self.authorize_url(), reason=reason)
