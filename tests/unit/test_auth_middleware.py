"""Unit tests for user authentication

Tests cover:
- Bearer token extraction
- Token cache short-circuits verification
- Audience validation
"""

from __future__ import annotations

import asyncio

import pytest

from draftwise.api.middleware import user_auth
from draftwise.api.middleware.user_auth import (
    AuthenticatedUser,
    _check_audience,
    clear_token_cache,
    extract_bearer_token,
    verify_google_token,
)
from draftwise.errors import Unauthenticated


@pytest.fixture(autouse=True)
def empty_token_cache():
    clear_token_cache()
    yield
    clear_token_cache()


def test_extract_bearer_token():
    assert extract_bearer_token("Bearer abc.def") == "abc.def"
    assert extract_bearer_token("bearer xyz") == "xyz"


@pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer", "Bearer a b"])
def test_extract_bearer_token_rejects_bad_headers(header):
    with pytest.raises(Unauthenticated):
        extract_bearer_token(header)


def test_cached_token_skips_network():
    user = AuthenticatedUser(id="123", email="a@example.com")
    user_auth._token_cache["cached-token"] = user

    assert asyncio.run(verify_google_token("cached-token")) is user


def test_audience_mismatch(monkeypatch):
    monkeypatch.setenv("GOOGLE_OAUTH_CLIENT_ID", "expected-client")

    with pytest.raises(Unauthenticated):
        _check_audience({"aud": "someone-else"})
    _check_audience({"aud": "expected-client"})


def test_audience_skipped_in_development(monkeypatch):
    monkeypatch.delenv("GOOGLE_OAUTH_CLIENT_ID", raising=False)
    monkeypatch.setattr(user_auth, "is_production", lambda: False)

    _check_audience({"aud": "anything"})


def test_missing_client_id_in_production_is_an_error(monkeypatch):
    monkeypatch.delenv("GOOGLE_OAUTH_CLIENT_ID", raising=False)
    monkeypatch.setattr(user_auth, "is_production", lambda: True)

    with pytest.raises(user_auth.DraftwiseError):
        _check_audience({"aud": "anything"})
