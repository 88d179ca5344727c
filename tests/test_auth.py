"""Authorization Code + PKCE sign-in flow."""
from urllib.parse import parse_qs, urlsplit

import pytest

from conftest import FakeResponse
from quotedesk.auth.pkce import AuthRedirect, PKCEAuthenticator, code_challenge, generate_state, generate_verifier


def _query(url: str) -> dict:
    return {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}


def test_code_challenge_matches_rfc_7636_example():
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
    assert code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_random_values_are_unpadded_base64url():
    verifier = generate_verifier()
    assert len(verifier) == 86
    assert "=" not in verifier and "+" not in verifier and "/" not in verifier
    assert len(generate_state()) == 11
    assert generate_verifier() != verifier


def test_authorize_url_carries_pkce_parameters(authenticator, store):
    url = authenticator.authorize_url()
    params = _query(url)

    assert url.startswith("https://hisafe.test/api/9.0.0/oauth2/authorize?")
    assert params["feature_type"] == "PORTAL"
    assert params["feature_key"] == "quotes"
    assert params["response_type"] == "code"
    assert params["client_id"] == "client-123"
    assert params["redirect_uri"] == "http://localhost:8501/"
    assert params["code_challenge_method"] == "S256"
    assert params["confirm"] == "false"

    verifier = store.pop_verifier(params["state"], ttl=600)
    assert params["code_challenge"] == code_challenge(verifier)


def test_stored_token_is_used_without_network(authenticator, signed_in, session):
    authenticator.ensure_authenticated()

    assert authenticator.authorization_header == "Bearer stored-token"
    assert authenticator.is_authenticated()
    assert session.calls == []


def test_missing_credential_raises_redirect(authenticator):
    with pytest.raises(AuthRedirect) as excinfo:
        authenticator.ensure_authenticated()

    assert excinfo.value.reason is None
    assert "oauth2/authorize" in excinfo.value.url


def test_callback_exchanges_code_for_token(authenticator, store, session):
    state = _query(authenticator.authorize_url())["state"]
    session.responses.append(FakeResponse(200, {"access_token": "fresh", "token_type": "Bearer"}))

    authenticator.ensure_authenticated({"code": "auth-code", "state": state})

    call = session.calls[0]
    assert call["url"] == "https://hisafe.test/api/9.0.0/oauth2/token?featureType=PORTAL&feature=quotes"
    assert call["json"]["grant_type"] == "authorization_code"
    assert call["json"]["code"] == "auth-code"
    assert call["json"]["client_id"] == "client-123"
    assert call["json"]["code_verifier"]
    assert authenticator.authorization_header == "Bearer fresh"
    assert store.load_token()["access_token"] == "fresh"
    # the verifier slot is consumed
    assert store.pop_verifier(state, ttl=600) is None


def test_unknown_state_fails_with_reason(authenticator, session):
    with pytest.raises(AuthRedirect) as excinfo:
        authenticator.exchange_code("auth-code", "never-issued")

    assert "No pending sign-in" in excinfo.value.reason
    assert session.calls == []


def test_rejected_exchange_clears_partial_state(authenticator, store, session):
    state = _query(authenticator.authorize_url())["state"]
    session.responses.append(FakeResponse(400, {"message": "invalid_grant"}))

    with pytest.raises(AuthRedirect) as excinfo:
        authenticator.exchange_code("bad-code", state)

    assert excinfo.value.reason == "Token exchange failed with 400: invalid_grant"
    assert authenticator.authorization_header is None
    assert store.load_token() is None


def test_exchange_without_access_token_fails(authenticator, session):
    state = _query(authenticator.authorize_url())["state"]
    session.responses.append(FakeResponse(200, {"token_type": "Bearer"}))

    with pytest.raises(AuthRedirect) as excinfo:
        authenticator.exchange_code("code", state)

    assert "no access token" in excinfo.value.reason


def test_logout_forgets_token_and_asks_for_confirmation(authenticator, signed_in):
    authenticator.ensure_authenticated()

    with pytest.raises(AuthRedirect) as excinfo:
        authenticator.logout()

    assert _query(excinfo.value.url)["confirm"] == "true"
    assert authenticator.authorization_header is None
    assert signed_in.load_token() is None


def test_strip_callback_params_keeps_other_values():
    params = {"code": "c", "state": "s", "tab": "queue"}
    assert PKCEAuthenticator.strip_callback_params(params) == {"tab": "queue"}


def test_force_reauth_clears_pending_verifiers(authenticator, signed_in):
    authenticator.authorize_url()

    with pytest.raises(AuthRedirect) as excinfo:
        authenticator.force_reauth()

    assert _query(excinfo.value.url)["confirm"] == "false"
    assert signed_in.load_token() is None
    # only the verifier for the new redirect remains
    assert len(list(signed_in.verifier_dir.glob("*.json"))) == 1
