# Tests for oauth/state.py
# Created: 2026-10-11

import pytest

from authflow.config import Settings
from authflow.oauth.providers import ProviderRegistry
from authflow.oauth.state import (
    ACTION_KEY,
    PROVIDER_KEY,
    STATE_KEY,
    FlowState,
    StateSlot,
    StateTokenGenerator,
)
from authflow.storage import MemoryStorage


@pytest.fixture
def registry():
    return ProviderRegistry.from_settings(Settings())


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def slot(storage):
    return StateSlot(storage)


class TestStateTokenGenerator:
    def test_format(self, registry):
        google = registry.get("google")
        token = StateTokenGenerator().generate(google, "signup")
        assert token.startswith(f"{google.state_seed}_signup_")
        stamp = token[len(google.state_seed) + len("_signup_"):].split("_", 1)[0]
        assert stamp.isdigit()

    def test_tokens_are_unique(self, registry):
        gen = StateTokenGenerator()
        google = registry.get("google")
        tokens = {gen.generate(google, "login") for _ in range(50)}
        assert len(tokens) == 50


class TestStateSlot:
    def test_empty(self, slot):
        assert slot.current() is None
        assert slot.matches("google", "login", "anything") is False

    def test_store_and_current(self, slot, storage):
        slot.store(FlowState(provider="google", action="login", token="tok-1"))
        live = slot.current()
        assert live.provider == "google"
        assert live.action == "login"
        assert live.token == "tok-1"
        assert storage.get(STATE_KEY) == "tok-1"
        assert storage.get(ACTION_KEY) == "login"
        assert storage.get(PROVIDER_KEY) == "google"

    def test_matches(self, slot):
        slot.store(FlowState(provider="github", action="signup", token="tok-1"))
        assert slot.matches("github", "signup", "tok-1")
        assert slot.matches("github", None, "tok-1")
        assert not slot.matches("github", "login", "tok-1")
        assert not slot.matches("google", "signup", "tok-1")
        assert not slot.matches("github", "signup", "tok-2")
        assert not slot.matches("github", "signup", "")

    def test_non_ascii_token_does_not_raise(self, slot):
        slot.store(FlowState(provider="google", action="login", token="tok-1"))
        assert slot.matches("google", "login", "tök-1") is False

    def test_store_supersedes(self, slot):
        slot.store(FlowState(provider="google", action="login", token="old"))
        slot.store(FlowState(provider="github", action="signup", token="new"))
        assert not slot.matches("google", "login", "old")
        assert slot.matches("github", "signup", "new")

    def test_discard(self, slot, storage):
        slot.store(FlowState(provider="google", action="login", token="tok-1"))
        slot.discard()
        assert slot.current() is None
        assert storage.keys() == []

    def test_discard_only_if_still_live(self, slot):
        slot.store(FlowState(provider="google", action="login", token="new"))
        slot.discard("old")
        assert slot.matches("google", "login", "new")
        slot.discard("new")
        assert slot.current() is None

    def test_attach_window(self, slot):
        window = object()
        slot.store(FlowState(provider="google", action="login", token="tok-1"))
        slot.attach_window("other", window)
        assert slot.current().window is None
        slot.attach_window("tok-1", window)
        assert slot.current().window is window
