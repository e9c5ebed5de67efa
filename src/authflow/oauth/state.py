# State tokens: CSRF correlation handles for in-flight OAuth attempts.
# Created: 2026-10-06

from __future__ import annotations

import hmac
import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Literal

from authflow.oauth.providers import ProviderConfig
from authflow.storage import KeyValueStorage

logger = logging.getLogger(__name__)

Action = Literal["login", "signup"]

STATE_KEY = "oauth_state"
ACTION_KEY = "oauth_action"
PROVIDER_KEY = "oauth_provider"
CREATED_KEY = "oauth_state_created_at"


class StateTokenGenerator:
    """Issues opaque state tokens.

    Format: ``{state_seed}_{action}_{unix_ms}_{random}``. The random suffix
    makes the token unguessable; the rest only helps when reading logs.
    """

    def __init__(self, entropy_bytes: int = 16):
        self.entropy_bytes = entropy_bytes

    def generate(self, config: ProviderConfig, action: Action) -> str:
        stamp = int(time.time() * 1000)
        return f"{config.state_seed}_{action}_{stamp}_{secrets.token_urlsafe(self.entropy_bytes)}"


@dataclass
class FlowState:
    """One in-flight OAuth attempt."""

    provider: str
    action: Action
    token: str
    created_at: float = field(default_factory=time.time)
    window: Any = None  # consent surface handle; never persisted


class StateSlot:
    """Single-slot holder for the live FlowState.

    Storing a new state overwrites the previous one, so a late callback for
    the old token no longer matches.
    """

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage
        self._window: Any = None

    def store(self, state: FlowState) -> None:
        previous = self.storage.get(STATE_KEY)
        if previous:
            logger.info("Superseding pending %s attempt", self.storage.get(PROVIDER_KEY))
        self.storage.set(STATE_KEY, state.token)
        self.storage.set(ACTION_KEY, state.action)
        self.storage.set(PROVIDER_KEY, state.provider)
        self.storage.set(CREATED_KEY, state.created_at)
        self._window = state.window

    def attach_window(self, token: str, window: Any) -> None:
        """Record the consent surface opened for the live *token*."""
        if self.storage.get(STATE_KEY) == token:
            self._window = window

    def current(self) -> FlowState | None:
        token = self.storage.get(STATE_KEY)
        if not token:
            return None
        return FlowState(
            provider=self.storage.get(PROVIDER_KEY, ""),
            action=self.storage.get(ACTION_KEY, "login"),
            token=token,
            created_at=self.storage.get(CREATED_KEY, 0.0),
            window=self._window,
        )

    def matches(self, provider: str, action: str | None, token: str) -> bool:
        """True if *token* is the live token for *provider* (and *action*, if given)."""
        live = self.current()
        if live is None or not token:
            return False
        if live.provider != provider:
            return False
        if action is not None and live.action != action:
            return False
        return hmac.compare_digest(live.token.encode(), token.encode())

    def discard(self, token: str | None = None) -> None:
        """Invalidate the slot; with *token*, only if it is still the live one."""
        if token is not None and self.storage.get(STATE_KEY) != token:
            return
        for key in (STATE_KEY, ACTION_KEY, PROVIDER_KEY, CREATED_KEY):
            self.storage.remove(key)
        self._window = None
