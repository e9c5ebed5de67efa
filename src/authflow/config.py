# Configuration: pydantic-settings backed, AUTHFLOW_* env vars + ~/.authflow/config.json.
# Created: 2026-10-06

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def get_config_dir() -> Path:
    """Get/create the config directory (~/.authflow)."""
    d = Path.home() / ".authflow"
    d.mkdir(exist_ok=True)
    return d


def get_config_path() -> Path:
    return get_config_dir() / "config.json"


class Settings(BaseSettings):
    """Runtime settings.

    Environment variables win over the JSON config file, which wins over the
    defaults below.
    """

    model_config = SettingsConfigDict(env_prefix="AUTHFLOW_", extra="ignore")

    # Development mode: skip the consent surface and network calls entirely
    mock_oauth: bool = True
    mock_delay: float = Field(default=1.0, ge=0)

    # Seconds an attempt may wait for the provider callback
    consent_timeout: float = Field(default=300.0, gt=0)

    google_client_id: str = "YOUR_GOOGLE_CLIENT_ID"
    google_client_secret: SecretStr = SecretStr("YOUR_GOOGLE_CLIENT_SECRET")
    github_client_id: str = "YOUR_GITHUB_CLIENT_ID"
    github_client_secret: SecretStr = SecretStr("YOUR_GITHUB_CLIENT_SECRET")

    # Redirect URIs are "<redirect_base_url>/oauth/<provider>/callback"
    redirect_base_url: str = "http://localhost:8765"
    # When set, every provider endpoint points at the mock server instead
    provider_base_url: str | None = None

    mock_server_host: str = "127.0.0.1"
    mock_server_port: int = 3001
    callback_port: int = 8765

    http_timeout: float = 15.0
    log_level: str = "INFO"

    @classmethod
    def load(cls) -> Settings:
        """Load settings from the config file, overridden by environment variables."""
        path = get_config_path()
        data: dict = {}
        if path.exists():
            try:
                data = json.loads(path.read_text())
            except (json.JSONDecodeError, OSError) as e:
                logger.warning("Failed to read config from %s: %s", path, e)
                data = {}
        # init kwargs take precedence over env in pydantic-settings, so only
        # pass file values the environment does not already override
        settings_from_env = cls()
        overridden = settings_from_env.model_fields_set
        file_values = {k: v for k, v in data.items() if k in cls.model_fields and k not in overridden}
        return cls(**file_values)

    def save(self) -> None:
        """Persist non-secret settings to the config file."""
        path = get_config_path()
        data = self.model_dump(exclude={"google_client_secret", "github_client_secret"})
        path.write_text(json.dumps(data, indent=2))
        logger.info("Saved settings to %s", path)


@lru_cache
def get_settings() -> Settings:
    """Get the cached settings instance."""
    return Settings.load()
