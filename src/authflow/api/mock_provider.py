# Mock OAuth provider router: fakes Google/GitHub authorize, token and profile endpoints.
# Created: 2026-10-09

from __future__ import annotations

import json
import logging
import time
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from authflow.api.backend import MockProviderBackend
from authflow.api.schemas import (
    AuthorizeResponse,
    CallbackResponse,
    ErrorResponse,
    HealthResponse,
    TokenResponse,
)
from authflow.oauth.providers import PROVIDERS

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Mock OAuth"])

_ERRORS: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


def get_backend(request: Request) -> MockProviderBackend:
    return request.app.state.backend


def _error(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error})


def _unknown_provider() -> JSONResponse:
    return _error(404, "Provider not found")


async def _read_body(request: Request) -> dict[str, Any]:
    """Accept both JSON and form-encoded bodies."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            data = await request.json()
        except json.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}
    form = await request.form()
    return {k: str(v) for k, v in form.items()}


@router.get("/oauth/{provider}/authorize", response_model=AuthorizeResponse, responses=_ERRORS)
async def authorize(
    provider: str,
    client_id: str = Query(""),
    redirect_uri: str = Query(""),
    state: str = Query(""),
    scope: str = Query(""),
    backend: MockProviderBackend = Depends(get_backend),
):
    """Acknowledge an authorization request.

    Does not redirect; the caller opens ``authUrl`` itself.
    """
    if not backend.supports(provider):
        return _unknown_provider()
    if not backend.client_id_valid(provider, client_id):
        return _error(400, "Invalid client_id")

    logger.info("%s authorization request (scope=%s)", provider, scope)
    if redirect_uri:
        logger.debug(
            "Would redirect to %s?%s",
            redirect_uri,
            urlencode({"code": f"{provider}-auth-code-{int(time.time() * 1000)}", "state": state}),
        )

    query = urlencode(
        {"client_id": client_id, "redirect_uri": redirect_uri, "state": state, "scope": scope}
    )
    base = PROVIDERS.get(provider, {}).get("auth_url", f"https://{provider}.example/authorize")
    return AuthorizeResponse(message="Authorization initiated", authUrl=f"{base}?{query}")


@router.post("/oauth/{provider}/token", response_model=TokenResponse, responses=_ERRORS)
async def token(
    provider: str,
    request: Request,
    backend: MockProviderBackend = Depends(get_backend),
):
    """Exchange any code for the provider's canned token."""
    if not backend.supports(provider):
        return _unknown_provider()

    body = await _read_body(request)
    logger.info(
        "%s token exchange (client_id=%s, grant_type=%s)",
        provider,
        body.get("client_id"),
        body.get("grant_type"),
    )
    if body.get("grant_type") != "authorization_code":
        return _error(400, "invalid_grant")

    return backend.issue_token(provider)


async def _profile(provider: str, request: Request, backend: MockProviderBackend):
    if not backend.supports(provider):
        return _unknown_provider()

    auth_header = request.headers.get("authorization", "")
    if not auth_header.startswith("Bearer "):
        return _error(401, "Unauthorized")

    user = backend.user_for_token(provider, auth_header[len("Bearer "):])
    if user is None:
        return _error(401, "Invalid token")
    return user


@router.get("/oauth/{provider}/userinfo", responses=_ERRORS)
async def userinfo(
    provider: str,
    request: Request,
    backend: MockProviderBackend = Depends(get_backend),
):
    """Profile for the bearer token (Google-style path)."""
    return await _profile(provider, request, backend)


@router.get("/oauth/{provider}/user", responses=_ERRORS)
async def user(
    provider: str,
    request: Request,
    backend: MockProviderBackend = Depends(get_backend),
):
    """Profile for the bearer token (GitHub-style path)."""
    return await _profile(provider, request, backend)


@router.get("/oauth/{provider}/callback", response_model=CallbackResponse, responses=_ERRORS)
async def callback(
    provider: str,
    code: str = Query(""),
    state: str = Query(""),
    error: str = Query(""),
    backend: MockProviderBackend = Depends(get_backend),
):
    """Echo the callback parameters. No exchange happens here."""
    if not backend.supports(provider):
        return _unknown_provider()

    logger.info("%s callback received (error=%s)", provider, error or "none")
    if error:
        return _error(400, error)
    if not code:
        return _error(400, "No authorization code provided")

    return CallbackResponse(
        provider=provider,
        code=code,
        state=state or None,
        message="OAuth callback received successfully",
    )


@router.get("/health", response_model=HealthResponse)
async def health(backend: MockProviderBackend = Depends(get_backend)):
    return HealthResponse(
        message="Mock OAuth Server is running",
        providers=backend.providers(),
        timestamp=datetime.now(UTC).isoformat(),
    )


@router.get("/mock/users/{provider}", responses=_ERRORS)
async def list_mock_users(provider: str, backend: MockProviderBackend = Depends(get_backend)):
    users = backend.list_users(provider)
    if users is None:
        return _unknown_provider()
    return users


@router.post("/mock/users/{provider}")
async def create_mock_user(
    provider: str,
    request: Request,
    backend: MockProviderBackend = Depends(get_backend),
):
    body = await _read_body(request)
    return backend.add_user(provider, body)
