# Mock provider response schemas.
# Created: 2026-10-09

from __future__ import annotations

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Error body used by every mock provider route."""

    error: str


class AuthorizeResponse(BaseModel):
    message: str
    authUrl: str


class TokenResponse(BaseModel):
    """OAuth2 token response."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_token: str | None = None
    scope: str


class CallbackResponse(BaseModel):
    success: bool = True
    provider: str
    code: str
    state: str | None = None
    message: str


class HealthResponse(BaseModel):
    status: str = "OK"
    message: str
    providers: list[str]
    timestamp: str
