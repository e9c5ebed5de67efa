# Tests for the development (mock) path of oauth/flow.py
# Created: 2026-10-12

import time

import pytest

from authflow.app import AuthApp
from authflow.config import Settings
from authflow.errors import AuthErrorKind
from authflow.oauth.flow import FlowPhase
from authflow.oauth.state import STATE_KEY
from authflow.storage import FileStorage, MemoryStorage

DELAY = 0.05


class _NeverSurface:
    """Fails the test if the mock path ever tries to show a consent page."""

    def open(self, url, name, on_dismiss):
        raise AssertionError("mock flow must not open a consent surface")


@pytest.fixture
def app(tmp_path):
    settings = Settings(mock_oauth=True, mock_delay=DELAY)
    return AuthApp.create(
        settings,
        session_storage=MemoryStorage(),
        local_storage=FileStorage(tmp_path / "local.json"),
        surface=_NeverSurface(),
    )


class TestMockFlow:
    async def test_google_login(self, app):
        result = await app.oauth.login("google")

        assert result.success
        assert result.provider == "google"
        assert result.action == "login"
        assert result.user.id == "google_123"
        assert result.user.email == "user@gmail.com"
        assert result.user.username == "user_google"
        assert app.session.get_current_user()["id"] == "google_123"
        assert app.oauth.phase == FlowPhase.COMPLETE

    async def test_github_signup(self, app):
        result = await app.oauth.signup("github")
        assert result.success
        assert result.user.id == "github_456"
        assert app.directory.find("github_456") is not None

    async def test_writes_token_record(self, app):
        await app.oauth.login("github")
        token = app.session.get_token("github")
        assert token is not None
        assert token.access_token == "mock-github-token"
        assert token.expires_in == 3600
        assert app.oauth.is_authenticated("github")
        assert not app.oauth.is_authenticated("google")
        assert app.oauth.is_authenticated()

    async def test_never_completes_before_delay(self, app):
        start = time.monotonic()
        await app.oauth.login("google")
        # Allow for the event loop's clock resolution
        assert time.monotonic() - start >= DELAY * 0.9

    async def test_no_state_token_used(self, app):
        await app.oauth.login("google")
        assert app.session.storage.get(STATE_KEY) is None

    async def test_signup_twice_conflicts(self, app):
        assert (await app.oauth.signup("google")).success
        result = await app.oauth.signup("google")
        assert not result.success
        assert result.error_kind == AuthErrorKind.ACCOUNT_ALREADY_EXISTS
        assert app.oauth.phase == FlowPhase.ERROR

    async def test_login_returns_existing_record(self, app):
        first = await app.oauth.signup("google")
        app.accounts.logout()

        second = await app.oauth.login("google")
        assert second.success
        assert second.user.created_at == first.user.created_at
        assert len(app.directory.all()) == 1

    async def test_login_without_account_registers_in_mock_mode(self, app):
        result = await app.oauth.login("github")
        assert result.success
        assert app.directory.find("github_456") is not None

    async def test_unsupported_provider(self, app):
        result = await app.oauth.login("facebook")
        assert not result.success
        assert result.error_kind == AuthErrorKind.UNSUPPORTED_PROVIDER
        assert app.session.get_current_user() is None

    async def test_logout_clears_oauth_session(self, app):
        await app.oauth.login("google")
        await app.oauth.login("github")
        app.accounts.logout()
        assert app.session.get_current_user() is None
        assert not app.oauth.is_authenticated()
