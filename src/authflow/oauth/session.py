# Session/Identity Store: current user and per-provider OAuth tokens.
# Created: 2026-10-07

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from authflow.oauth.state import ACTION_KEY, CREATED_KEY, PROVIDER_KEY, STATE_KEY
from authflow.storage import KeyValueStorage

logger = logging.getLogger(__name__)

CURRENT_USER_KEY = "currentUser"
TOKEN_KEY_PREFIX = "oauth_token_"


@dataclass
class TokenRecord:
    """Provider access token plus metadata."""

    provider: str
    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None
    refresh_token: str | None = None
    scope: str = ""
    issued_at: float | None = None  # Unix timestamp
    extra: dict[str, Any] = field(default_factory=dict)


def _token_key(provider: str) -> str:
    return f"{TOKEN_KEY_PREFIX}{provider}"


class SessionStore:
    """Session-scoped identity state.

    The current user is stored as a plain dict so both OAuth users and local
    users fit; providers are independent of each other.
    """

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    def set_current_user(self, user: dict[str, Any]) -> None:
        self.storage.set(CURRENT_USER_KEY, user)

    def get_current_user(self) -> dict[str, Any] | None:
        user = self.storage.get(CURRENT_USER_KEY)
        if user is not None and not isinstance(user, dict):
            logger.error("Discarding malformed current user entry")
            self.storage.remove(CURRENT_USER_KEY)
            return None
        return user

    def clear_current_user(self) -> None:
        self.storage.remove(CURRENT_USER_KEY)

    def set_token(self, provider: str, record: TokenRecord) -> None:
        self.storage.set(_token_key(provider), asdict(record))
        logger.info("Stored OAuth token for %s", provider)

    def get_token(self, provider: str) -> TokenRecord | None:
        data = self.storage.get(_token_key(provider))
        if not data:
            return None
        try:
            return TokenRecord(**data)
        except TypeError as e:
            logger.warning("Failed to load token for %s: %s", provider, e)
            return None

    def clear_token(self, provider: str) -> None:
        self.storage.remove(_token_key(provider))

    def token_providers(self) -> list[str]:
        """Providers that currently have a stored token."""
        return [
            k[len(TOKEN_KEY_PREFIX):] for k in self.storage.keys() if k.startswith(TOKEN_KEY_PREFIX)
        ]

    def logout(self) -> None:
        """Clear the current user, every provider token and any pending flow."""
        self.clear_current_user()
        for provider in self.token_providers():
            self.clear_token(provider)
        for key in (STATE_KEY, ACTION_KEY, PROVIDER_KEY, CREATED_KEY):
            self.storage.remove(key)
        logger.info("Session cleared")
