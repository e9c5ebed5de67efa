"""Service composition.

Created: 2026-10-10

``AuthApp`` wires storage, the session store, the user directory, local
accounts and the OAuth flow controller together. The entry point (CLI or a
test) builds one and passes it, or its parts, to whatever needs them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from authflow.accounts import AccountService, UserDirectory
from authflow.config import Settings, get_config_dir, get_settings
from authflow.oauth.flow import OAuthFlowController
from authflow.oauth.session import SessionStore
from authflow.storage import FileStorage, KeyValueStorage, MemoryStorage

logger = logging.getLogger(__name__)


@dataclass
class AuthApp:
    settings: Settings
    session: SessionStore
    directory: UserDirectory
    accounts: AccountService
    oauth: OAuthFlowController

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        *,
        session_storage: KeyValueStorage | None = None,
        local_storage: KeyValueStorage | None = None,
        **controller_kwargs: Any,
    ) -> AuthApp:
        """Build the service graph.

        Session state defaults to process memory and durable state to
        ``~/.authflow/local_storage.json``. Extra keyword arguments go to
        ``OAuthFlowController`` (e.g. ``client``, ``surface``).
        """
        settings = settings or get_settings()
        session_storage = session_storage if session_storage is not None else MemoryStorage()
        local_storage = local_storage if local_storage is not None else FileStorage()

        session = SessionStore(session_storage)
        directory = UserDirectory(local_storage)
        accounts = AccountService(session, directory, local_storage)
        oauth = OAuthFlowController.from_settings(settings, session, directory, **controller_kwargs)
        return cls(settings, session, directory, accounts, oauth)

    @classmethod
    def for_cli(cls, settings: Settings | None = None, **controller_kwargs: Any) -> AuthApp:
        """Variant whose session survives between CLI invocations until logout."""
        return cls.create(
            settings,
            session_storage=FileStorage(get_config_dir() / "session.json"),
            **controller_kwargs,
        )
