# Provider Registry: static OAuth 2.0 configuration for Google and GitHub.
# Created: 2026-10-06

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field

from authflow.config import Settings
from authflow.errors import UnsupportedProviderError

logger = logging.getLogger(__name__)


# Real provider endpoints
PROVIDERS: dict[str, dict[str, str]] = {
    "google": {
        "auth_url": "https://accounts.google.com/o/oauth2/v2/auth",
        "token_url": "https://oauth2.googleapis.com/token",
        "userinfo_url": "https://www.googleapis.com/oauth2/v2/userinfo",
        "scope": "openid email profile",
    },
    "github": {
        "auth_url": "https://github.com/login/oauth/authorize",
        "token_url": "https://github.com/login/oauth/access_token",
        "userinfo_url": "https://api.github.com/user",
        "scope": "user:email read:user",
    },
}

# Profile path on the mock server, per provider
_MOCK_PROFILE_PATHS = {"google": "userinfo", "github": "user"}


@dataclass(frozen=True)
class ProviderConfig:
    """Immutable configuration for one OAuth provider."""

    name: str
    client_id: str
    client_secret: str = field(repr=False)
    redirect_uri: str
    scope: str
    authorization_endpoint: str
    token_endpoint: str
    userinfo_endpoint: str
    state_seed: str


def _new_state_seed(provider: str) -> str:
    return f"{provider}_auth_{secrets.token_hex(6)}"


class ProviderRegistry:
    """Lookup table of provider configurations.

    Built once at startup and never mutated afterwards.
    """

    def __init__(self, configs: list[ProviderConfig]):
        self._configs: dict[str, ProviderConfig] = {c.name: c for c in configs}

    def get(self, name: str) -> ProviderConfig:
        config = self._configs.get(name)
        if config is None:
            raise UnsupportedProviderError(name)
        return config

    def names(self) -> list[str]:
        return list(self._configs)

    def __contains__(self, name: object) -> bool:
        return name in self._configs

    @classmethod
    def from_settings(cls, settings: Settings) -> ProviderRegistry:
        """Build the Google + GitHub registry from settings.

        When ``settings.provider_base_url`` is set, every endpoint points at
        the mock provider server instead of the real one.
        """
        credentials = {
            "google": (
                settings.google_client_id,
                settings.google_client_secret.get_secret_value(),
            ),
            "github": (
                settings.github_client_id,
                settings.github_client_secret.get_secret_value(),
            ),
        }
        redirect_base = settings.redirect_base_url.rstrip("/")
        mock_base = settings.provider_base_url.rstrip("/") if settings.provider_base_url else None

        configs = []
        for name, endpoints in PROVIDERS.items():
            client_id, client_secret = credentials[name]
            if mock_base:
                auth_url = f"{mock_base}/oauth/{name}/authorize"
                token_url = f"{mock_base}/oauth/{name}/token"
                userinfo_url = f"{mock_base}/oauth/{name}/{_MOCK_PROFILE_PATHS[name]}"
            else:
                auth_url = endpoints["auth_url"]
                token_url = endpoints["token_url"]
                userinfo_url = endpoints["userinfo_url"]

            configs.append(
                ProviderConfig(
                    name=name,
                    client_id=client_id,
                    client_secret=client_secret,
                    redirect_uri=f"{redirect_base}/oauth/{name}/callback",
                    scope=endpoints["scope"],
                    authorization_endpoint=auth_url,
                    token_endpoint=token_url,
                    userinfo_endpoint=userinfo_url,
                    state_seed=_new_state_seed(name),
                )
            )

        logger.debug("Provider registry built: %s", ", ".join(PROVIDERS))
        return cls(configs)
