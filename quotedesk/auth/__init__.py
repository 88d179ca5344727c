"""Sign-in and credential storage for the HiSAFE API."""
from quotedesk.auth.pkce import (
    AuthRedirect,
    PKCEAuthenticator,
    code_challenge,
    generate_state,
    generate_verifier,
)
from quotedesk.auth.token_store import TokenStore

__all__ = [
    "AuthRedirect",
    "PKCEAuthenticator",
    "TokenStore",
    "code_challenge",
    "generate_state",
    "generate_verifier",
]
