"""
User authentication for the Draftwise API.

Verifies Google OAuth bearer tokens and extracts the caller's identity. Every
resource the API touches is scoped to that identity's id.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

import httpx
from cachetools import TTLCache
from fastapi import Request

from draftwise.errors import DraftwiseError, Unauthenticated
from draftwise.infrastructure.settings import is_production
from draftwise.observability.logging import get_logger
from draftwise.observability.telemetry import counter

logger = get_logger(__name__)

GOOGLE_TOKEN_INFO_URL = "https://oauth2.googleapis.com/tokeninfo"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

# Shorter than Google's 1 hour token expiry so revoked tokens age out
_CACHE_MAX_SIZE = 1000
_CACHE_TTL_SECONDS = 600
_HTTP_TIMEOUT_SECONDS = 10.0


class AuthServiceUnavailable(DraftwiseError):
    """Authentication service unavailable."""

    status_code = 503
    code = "unavailable"


@dataclass
class AuthenticatedUser:
    id: str
    email: str
    name: str | None = None

    def __str__(self) -> str:
        return f"User({self.id})"


_token_cache: TTLCache[str, AuthenticatedUser] = TTLCache(
    maxsize=_CACHE_MAX_SIZE, ttl=_CACHE_TTL_SECONDS
)


def _check_audience(token_info: dict) -> None:
    expected_client_id = os.getenv("GOOGLE_OAUTH_CLIENT_ID")

    if not expected_client_id:
        if is_production():
            logger.error("GOOGLE_OAUTH_CLIENT_ID not configured in production!")
            raise DraftwiseError("Server misconfiguration: OAuth client ID not set")
        logger.warning("GOOGLE_OAUTH_CLIENT_ID not set - skipping audience validation (dev mode only)")
        return

    if token_info.get("aud", "") != expected_client_id:
        logger.warning("Token audience mismatch")
        raise Unauthenticated("Token not issued for this application")


async def verify_google_token(token: str) -> AuthenticatedUser:
    """
    Verify a Google OAuth access token and return the user behind it.

    Raises:
        Unauthenticated: token invalid, expired or issued for another client
        AuthServiceUnavailable: Google could not be reached
    """
    if token in _token_cache:
        return _token_cache[token]

    async with httpx.AsyncClient(timeout=_HTTP_TIMEOUT_SECONDS) as client:
        try:
            token_response = await client.get(GOOGLE_TOKEN_INFO_URL, params={"access_token": token})
            if token_response.status_code != 200:
                counter("auth.invalid_token")
                raise Unauthenticated("Invalid or expired token")

            _check_audience(token_response.json())

            userinfo_response = await client.get(
                GOOGLE_USERINFO_URL, headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.TimeoutException:
            logger.warning("Token validation timed out")
            raise AuthServiceUnavailable() from None
        except httpx.RequestError as e:
            logger.error("Token validation request failed: %s", e)
            raise AuthServiceUnavailable() from e

    if userinfo_response.status_code != 200:
        raise Unauthenticated("Failed to retrieve user information")

    userinfo = userinfo_response.json()
    user = AuthenticatedUser(
        id=userinfo["id"],
        email=userinfo.get("email", ""),
        name=userinfo.get("name"),
    )
    _token_cache[token] = user

    logger.info("Authenticated user: %s (cache size: %d)", user, len(_token_cache))
    return user


def extract_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise Unauthenticated("Missing authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise Unauthenticated("Invalid authorization header format. Expected: Bearer <token>")
    return parts[1]


async def get_current_user(request: Request) -> AuthenticatedUser:
    """FastAPI dependency: the authenticated caller."""
    token = extract_bearer_token(request.headers.get("Authorization"))
    return await verify_google_token(token)


def clear_token_cache() -> None:
    _token_cache.clear()
