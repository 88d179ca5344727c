"""Single chokepoint for every authenticated call to the HiSAFE API."""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import requests

from quotedesk.auth.pkce import AuthRedirect, PKCEAuthenticator
from quotedesk.core.config import HiSafeConfig
from quotedesk.core.http import decode_json, default_headers, response_message

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """HiSAFE answered with a non-2xx status, or could not be reached at all."""

    def __init__(self, status: Optional[int], message: str, url: str = "") -> None:
        label = status if status is not None else "no response"
        super().__init__(f"Request failed with {label}: {message}")
        self.status = status
        self.message = message
        self.url = url


class RequestGateway:
    """Attach scope parameters and the bearer header, then classify responses."""

    def __init__(
        self,
        config: HiSafeConfig,
        authenticator: PKCEAuthenticator,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self.authenticator = authenticator
        self.session = session or authenticator.session

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        on_401: Optional[Callable[[], Any]] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Raises :class:`AuthRedirect` when no credential is available or the
        credential was rejected (unless ``on_401`` supplies a value), and
        :class:`GatewayError` for every other failure.
        """

        self.authenticator.ensure_authenticated()

        separator = "&" if "?" in path else "?"
        url = self.config.api_url(path + separator + self.config.scope_query())
        headers = default_headers(self.config)
        headers["Authorization"] = self.authenticator.authorization_header or ""

        try:
            response = self.session.request(
                method,
                url,
                json=body,
                headers=headers,
                timeout=self.config.request_timeout,
            )
        except requests.RequestException as exc:
            logger.error("%s %s could not reach HiSAFE: %s", method, path, exc)
            raise GatewayError(None, str(exc), url) from exc

        if 200 <= response.status_code <= 299:
            try:
                return decode_json(response)
            except ValueError as exc:
                logger.error("%s %s returned a body that is not JSON", method, path)
                raise GatewayError(response.status_code, "invalid JSON body", url) from exc

        if response.status_code == 401:
            self.authenticator.expire()
            if on_401 is not None:
                logger.warning("%s %s was unauthorized; using fallback value", method, path)
                return on_401()
            raise AuthRedirect(self.authenticator.authorize_url())

        message = response_message(response)
        logger.error("%s %s failed with %s: %s", method, path, response.status_code, message)
        raise GatewayError(response.status_code, message, url)
