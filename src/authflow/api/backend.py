# Mock provider backend: canned users and tokens behind the mock OAuth server.
# Created: 2026-10-09
#
# Development only. Tokens are fixed per provider and every authorization
# code is accepted.

from __future__ import annotations

import copy
import logging
import time
from typing import Any

logger = logging.getLogger(__name__)

MOCK_USERS: dict[str, dict[str, dict[str, Any]]] = {
    "google": {
        "google-user-123": {
            "id": "google-user-123",
            "email": "user@gmail.com",
            "name": "Google Test User",
            "picture": "https://via.placeholder.com/150",
            "verified_email": True,
            "provider": "google",
        },
        "google-admin-456": {
            "id": "google-admin-456",
            "email": "admin@gmail.com",
            "name": "Google Admin",
            "picture": "https://via.placeholder.com/150",
            "verified_email": True,
            "provider": "google",
        },
    },
    "github": {
        "github-user-789": {
            "id": "github-user-789",
            "login": "githubuser",
            "email": "user@github.com",
            "name": "GitHub Test User",
            "avatar_url": "https://via.placeholder.com/150",
            "html_url": "https://github.com/githubuser",
            "company": "Test Company",
            "location": "San Francisco, CA",
            "bio": "Software developer and open source enthusiast",
            "provider": "github",
        },
        "github-dev-101": {
            "id": "github-dev-101",
            "login": "githubdev",
            "email": "dev@github.com",
            "name": "GitHub Developer",
            "avatar_url": "https://via.placeholder.com/150",
            "html_url": "https://github.com/githubdev",
            "company": "Dev Corp",
            "location": "New York, NY",
            "bio": "Full-stack developer",
            "provider": "github",
        },
    },
}

MOCK_TOKENS: dict[str, dict[str, Any]] = {
    "google": {
        "access_token": "google-token-123",
        "token_type": "Bearer",
        "expires_in": 3600,
        "refresh_token": "google-refresh-123",
        "scope": "openid email profile",
    },
    "github": {
        "access_token": "github-token-456",
        "token_type": "Bearer",
        "expires_in": 3600,
        "refresh_token": "github-refresh-456",
        "scope": "user:email read:user",
    },
}

# Only Google validates the client id, matching the upstream mock behaviour
REGISTERED_CLIENT_IDS: dict[str, str] = {"google": "YOUR_GOOGLE_CLIENT_ID"}


class MockProviderBackend:
    """In-memory state of the mock OAuth provider."""

    def __init__(
        self,
        users: dict[str, dict[str, dict[str, Any]]] | None = None,
        tokens: dict[str, dict[str, Any]] | None = None,
        client_ids: dict[str, str] | None = None,
    ):
        self.users = copy.deepcopy(users if users is not None else MOCK_USERS)
        self.tokens = copy.deepcopy(tokens if tokens is not None else MOCK_TOKENS)
        self.client_ids = dict(client_ids if client_ids is not None else REGISTERED_CLIENT_IDS)

    def providers(self) -> list[str]:
        """Providers that speak the OAuth protocol (have a canned token)."""
        return list(self.tokens)

    def supports(self, provider: str) -> bool:
        return provider in self.tokens

    def client_id_valid(self, provider: str, client_id: str | None) -> bool:
        expected = self.client_ids.get(provider)
        return expected is None or client_id == expected

    def issue_token(self, provider: str) -> dict[str, Any]:
        """The canned token response; the code value is never checked."""
        return dict(self.tokens[provider])

    def user_for_token(self, provider: str, access_token: str) -> dict[str, Any] | None:
        token = self.tokens.get(provider)
        if token is None or token["access_token"] != access_token:
            return None
        users = self.users.get(provider) or {}
        return next(iter(users.values()), None)

    def list_users(self, provider: str) -> list[dict[str, Any]] | None:
        if provider not in self.users:
            return None
        return list(self.users[provider].values())

    def add_user(self, provider: str, data: dict[str, Any]) -> dict[str, Any]:
        user_id = f"{provider}-user-{int(time.time() * 1000)}"
        user = {**data, "id": user_id, "provider": provider}
        self.users.setdefault(provider, {})[user_id] = user
        logger.info("Created mock %s user %s", provider, user_id)
        return user
