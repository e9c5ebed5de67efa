# Provider client: authorization URL, code-for-token exchange, profile fetch.
# Created: 2026-10-07

from __future__ import annotations

import logging
import time
import urllib.parse
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from authflow.errors import AuthError, AuthErrorKind
from authflow.oauth.providers import ProviderConfig
from authflow.oauth.session import TokenRecord

logger = logging.getLogger(__name__)


class ProviderClient:
    """HTTP side of the authorization code flow.

    Pass *http_client* to reuse a client (tests inject one bound to the mock
    provider app); otherwise a short-lived client is opened per request.
    """

    def __init__(self, http_client: httpx.AsyncClient | None = None, timeout: float = 15):
        self._http = http_client
        self.timeout = timeout

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http is not None:
            yield self._http
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    def build_authorization_url(self, config: ProviderConfig, state: str) -> str:
        """Authorization URL the consent surface should open."""
        params = {
            "client_id": config.client_id,
            "redirect_uri": config.redirect_uri,
            "scope": config.scope,
            "state": state,
            "response_type": "code",
        }
        return f"{config.authorization_endpoint}?{urllib.parse.urlencode(params)}"

    async def exchange_code(self, config: ProviderConfig, code: str) -> TokenRecord:
        """Exchange an authorization code for an access token.

        Raises:
            AuthError: TOKEN_EXCHANGE_FAILED on transport errors, non-2xx
                responses, or a body without ``access_token``.
        """
        try:
            async with self._client() as client:
                resp = await client.post(
                    config.token_endpoint,
                    data={
                        "client_id": config.client_id,
                        "client_secret": config.client_secret,
                        "code": code,
                        "redirect_uri": config.redirect_uri,
                        "grant_type": "authorization_code",
                    },
                    headers={"Accept": "application/json"},
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Token exchange rejected by %s: HTTP %s", config.name, e.response.status_code
            )
            raise AuthError(
                AuthErrorKind.TOKEN_EXCHANGE_FAILED, _error_detail(e.response)
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Token exchange with %s failed: %s", config.name, e)
            raise AuthError(AuthErrorKind.TOKEN_EXCHANGE_FAILED, str(e)) from e

        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            detail = data.get("error", "no access_token in response") if isinstance(data, dict) else ""
            raise AuthError(AuthErrorKind.TOKEN_EXCHANGE_FAILED, str(detail))

        logger.info("OAuth token obtained from %s", config.name)
        return TokenRecord(
            provider=config.name,
            access_token=access_token,
            token_type=data.get("token_type", "Bearer"),
            expires_in=data.get("expires_in"),
            refresh_token=data.get("refresh_token"),
            scope=data.get("scope", config.scope),
            issued_at=time.time(),
        )

    async def fetch_profile(self, config: ProviderConfig, access_token: str) -> dict[str, Any]:
        """Fetch the raw user-info payload with a bearer token.

        Raises:
            AuthError: PROFILE_FETCH_FAILED on any failure.
        """
        try:
            async with self._client() as client:
                resp = await client.get(
                    config.userinfo_endpoint,
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/json",
                    },
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Profile fetch rejected by %s: HTTP %s", config.name, e.response.status_code
            )
            raise AuthError(
                AuthErrorKind.PROFILE_FETCH_FAILED, _error_detail(e.response)
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Profile fetch from %s failed: %s", config.name, e)
            raise AuthError(AuthErrorKind.PROFILE_FETCH_FAILED, str(e)) from e

        if not isinstance(data, dict):
            raise AuthError(AuthErrorKind.PROFILE_FETCH_FAILED, "profile is not a JSON object")
        return data


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return f"HTTP {resp.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {resp.status_code}"
