# OAuth Flow Controller: one login/signup attempt from consent to session write.
# Created: 2026-10-08
#
# Phases per attempt:
#   IDLE -> AWAITING_CONSENT -> EXCHANGING_CODE -> FETCHING_PROFILE -> COMPLETE
# with ERROR reachable from any non-idle phase.

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from authflow.accounts import UserDirectory
from authflow.config import Settings
from authflow.errors import AuthError, AuthErrorKind, PopupBlockedError
from authflow.oauth.client import ProviderClient
from authflow.oauth.consent import ConsentSurface, ConsentWindow, SystemBrowserSurface
from authflow.oauth.pending import PendingOperation
from authflow.oauth.profiles import (
    DEV_PROFILES,
    CanonicalUser,
    ProfileError,
    normalize,
    parse_profile,
)
from authflow.oauth.providers import ProviderConfig, ProviderRegistry
from authflow.oauth.session import SessionStore, TokenRecord
from authflow.oauth.state import Action, FlowState, StateSlot, StateTokenGenerator

logger = logging.getLogger(__name__)


class FlowPhase(str, Enum):
    IDLE = "idle"
    AWAITING_CONSENT = "awaiting_consent"
    EXCHANGING_CODE = "exchanging_code"
    FETCHING_PROFILE = "fetching_profile"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class CallbackMessage:
    """What the provider redirect carried back: ``code`` or ``error``, plus ``state``."""

    provider: str
    state: str
    code: str | None = None
    error: str | None = None


@dataclass
class FlowResult:
    """Outcome of one attempt. Mock and real attempts produce the same shape."""

    success: bool
    provider: str
    action: Action
    user: CanonicalUser | None = None
    error: AuthError | None = None

    @property
    def error_kind(self) -> AuthErrorKind | None:
        return self.error.kind if self.error else None


@dataclass
class _Attempt:
    provider: str
    action: Action
    token: str | None = None
    phase: FlowPhase = FlowPhase.IDLE
    pending: PendingOperation[CallbackMessage] | None = None
    window: ConsentWindow | None = None
    outcome: asyncio.Future[FlowResult] = field(
        default_factory=lambda: asyncio.get_running_loop().create_future()
    )

    def advance(self, phase: FlowPhase) -> None:
        logger.debug("%s %s: %s -> %s", self.provider, self.action, self.phase.value, phase.value)
        self.phase = phase


class OAuthFlowController:
    """Runs OAuth login/signup attempts.

    Public operations return a ``FlowResult`` instead of raising. Only one
    attempt's state token is live at a time; starting a new attempt makes any
    older attempt's callback fail state validation.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        session: SessionStore,
        directory: UserDirectory,
        *,
        client: ProviderClient | None = None,
        surface: ConsentSurface | None = None,
        state_slot: StateSlot | None = None,
        generator: StateTokenGenerator | None = None,
        mock: bool = False,
        mock_delay: float = 1.0,
        consent_timeout: float = 300.0,
        dev_profiles: dict[str, dict[str, Any]] | None = None,
    ):
        self.registry = registry
        self.session = session
        self.directory = directory
        self.client = client or ProviderClient()
        self.surface = surface or SystemBrowserSurface()
        self.slot = state_slot or StateSlot(session.storage)
        self.generator = generator or StateTokenGenerator()
        self.mock = mock
        self.mock_delay = mock_delay
        self.consent_timeout = consent_timeout
        self.dev_profiles = dev_profiles or DEV_PROFILES
        self._attempts: dict[str, _Attempt] = {}  # keyed by state token
        self._latest: _Attempt | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: SessionStore,
        directory: UserDirectory,
        **kwargs: Any,
    ) -> OAuthFlowController:
        kwargs.setdefault("client", ProviderClient(timeout=settings.http_timeout))
        return cls(
            ProviderRegistry.from_settings(settings),
            session,
            directory,
            mock=settings.mock_oauth,
            mock_delay=settings.mock_delay,
            consent_timeout=settings.consent_timeout,
            **kwargs,
        )

    @property
    def phase(self) -> FlowPhase:
        """Phase of the most recently started attempt."""
        return self._latest.phase if self._latest else FlowPhase.IDLE

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def login(self, provider: str) -> FlowResult:
        return await self._run(provider, "login")

    async def signup(self, provider: str) -> FlowResult:
        return await self._run(provider, "signup")

    def deliver(self, message: CallbackMessage) -> bool:
        """Hand a callback message to the attempt waiting on its state token.

        Returns False, and changes nothing, when no attempt is waiting on
        that token (unknown, expired or already answered).
        """
        attempt = self._attempts.get(message.state)
        if attempt is None or attempt.pending is None:
            logger.info("Ignoring %s callback for unknown or expired state", message.provider)
            return False
        return attempt.pending.resolve(message)

    async def handle_callback(
        self, provider: str, code: str | None, state: str, error: str | None = None
    ) -> FlowResult:
        """Complete a flow from a provider redirect.

        If an attempt is waiting on *state*, the message is delivered to it
        and its result returned; otherwise the callback is validated against
        the live state slot and completed here.
        """
        message = CallbackMessage(provider=provider, state=state, code=code, error=error)
        attempt = self._attempts.get(state)
        if attempt is not None and self.deliver(message):
            return await asyncio.shield(attempt.outcome)

        # Standalone attempt; ``phase`` keeps tracking the attempt started by login/signup
        live = self.slot.current()
        action: Action = live.action if live and live.provider == provider else "login"
        attempt = _Attempt(provider=provider, action=action, token=state)
        try:
            config = self.registry.get(provider)
            attempt.advance(FlowPhase.AWAITING_CONSENT)
            return await self._complete_from_callback(config, attempt, message)
        except AuthError as e:
            return self._fail(attempt, e)
        except Exception as e:
            return self._fail_unexpected(attempt, e)

    def is_authenticated(self, provider: str | None = None) -> bool:
        if provider:
            return self.session.get_token(provider) is not None
        return any(self.session.get_token(p) is not None for p in self.registry.names())

    # ------------------------------------------------------------------
    # Attempt driver
    # ------------------------------------------------------------------

    async def _run(self, provider: str, action: Action) -> FlowResult:
        attempt = _Attempt(provider=provider, action=action)
        self._latest = attempt
        result: FlowResult | None = None
        try:
            config = self.registry.get(provider)
            if self.mock:
                result = await self._run_mock(config, attempt)
            else:
                result = await self._run_real(config, attempt)
        except AuthError as e:
            result = self._fail(attempt, e)
        except Exception as e:
            result = self._fail_unexpected(attempt, e)
        finally:
            # handle_callback may be awaiting this attempt's outcome
            if not attempt.outcome.done():
                if result is None:
                    attempt.outcome.cancel()
                else:
                    attempt.outcome.set_result(result)
        return result

    async def _run_mock(self, config: ProviderConfig, attempt: _Attempt) -> FlowResult:
        """Development path: no consent surface, no network."""
        attempt.advance(FlowPhase.AWAITING_CONSENT)
        await asyncio.sleep(self.mock_delay)

        attempt.advance(FlowPhase.FETCHING_PROFILE)
        try:
            user = normalize(parse_profile(config.name, self.dev_profiles[config.name]))
        except (KeyError, ProfileError) as e:
            raise AuthError(AuthErrorKind.PROFILE_FETCH_FAILED, f"No mock profile: {e}") from e

        record = TokenRecord(
            provider=config.name,
            access_token=f"mock-{config.name}-token",
            expires_in=3600,
            scope=config.scope,
            issued_at=time.time(),
        )
        logger.info("Mock OAuth %s via %s", attempt.action, config.name)
        return self._finish(config, attempt, user, record)

    async def _run_real(self, config: ProviderConfig, attempt: _Attempt) -> FlowResult:
        token = self.generator.generate(config, attempt.action)
        self.slot.store(FlowState(provider=config.name, action=attempt.action, token=token))
        url = self.client.build_authorization_url(config, token)

        pending: PendingOperation[CallbackMessage] = PendingOperation(token)
        attempt.token = token
        attempt.pending = pending
        self._attempts[token] = attempt
        attempt.advance(FlowPhase.AWAITING_CONSENT)

        def on_dismiss() -> None:
            pending.resolve(
                CallbackMessage(
                    provider=config.name, state=token, error="Consent window closed by user"
                )
            )

        try:
            try:
                attempt.window = self.surface.open(url, f"{config.name}_oauth", on_dismiss)
                if attempt.window is None:
                    raise PopupBlockedError()
            except PopupBlockedError:
                self.slot.discard(token)
                raise
            except Exception as e:
                logger.warning("Consent surface for %s failed to open: %s", config.name, e)
                self.slot.discard(token)
                raise PopupBlockedError(f"Could not open the sign-in window: {e}") from e
            self.slot.attach_window(token, attempt.window)

            try:
                message = await pending.wait(timeout=self.consent_timeout)
            except TimeoutError:
                self.slot.discard(token)
                raise AuthError(
                    AuthErrorKind.TIMEOUT,
                    f"No response from {config.name} within {self.consent_timeout:g}s",
                ) from None
        finally:
            self._attempts.pop(token, None)
            if attempt.window is not None and not attempt.window.closed:
                attempt.window.close()

        return await self._complete_from_callback(config, attempt, message)

    async def _complete_from_callback(
        self, config: ProviderConfig, attempt: _Attempt, message: CallbackMessage
    ) -> FlowResult:
        if message.provider != config.name or not self.slot.matches(
            config.name, attempt.action, message.state
        ):
            logger.warning("Rejected %s callback with stale or unknown state", config.name)
            raise AuthError(AuthErrorKind.INVALID_STATE, "Invalid OAuth state parameter")
        # State tokens are single use
        self.slot.discard(message.state)

        if message.error:
            raise AuthError(AuthErrorKind.PROVIDER_DENIED, message.error)
        if not message.code:
            raise AuthError(AuthErrorKind.TOKEN_EXCHANGE_FAILED, "No authorization code provided")

        attempt.advance(FlowPhase.EXCHANGING_CODE)
        record = await self.client.exchange_code(config, message.code)

        attempt.advance(FlowPhase.FETCHING_PROFILE)
        payload = await self.client.fetch_profile(config, record.access_token)
        try:
            user = normalize(parse_profile(config.name, payload))
        except ProfileError as e:
            raise AuthError(AuthErrorKind.PROFILE_FETCH_FAILED, str(e)) from e

        return self._finish(config, attempt, user, record)

    def _finish(
        self,
        config: ProviderConfig,
        attempt: _Attempt,
        user: CanonicalUser,
        record: TokenRecord,
    ) -> FlowResult:
        """Apply the signup/login account rules, then write the session."""
        existing = self.directory.find(user.id)

        if attempt.action == "signup":
            if existing is not None:
                raise AuthError(
                    AuthErrorKind.ACCOUNT_ALREADY_EXISTS,
                    "Account already exists with this OAuth provider",
                )
            self.directory.save(user.to_dict())
        elif existing is not None:
            user = CanonicalUser.from_dict(existing)
        elif self.mock:
            self.directory.save(user.to_dict())
        else:
            raise AuthError(
                AuthErrorKind.ACCOUNT_NOT_FOUND, f"No account linked to this {config.name} identity"
            )

        self.session.set_token(config.name, record)
        self.session.set_current_user(user.to_dict())
        attempt.advance(FlowPhase.COMPLETE)
        logger.info("OAuth %s complete for %s via %s", attempt.action, user.id, config.name)
        return FlowResult(success=True, provider=config.name, action=attempt.action, user=user)

    def _fail(self, attempt: _Attempt, error: AuthError) -> FlowResult:
        attempt.advance(FlowPhase.ERROR)
        logger.warning("OAuth %s via %s failed: %s", attempt.action, attempt.provider, error)
        return FlowResult(
            success=False, provider=attempt.provider, action=attempt.action, error=error
        )

    def _fail_unexpected(self, attempt: _Attempt, exc: Exception) -> FlowResult:
        """Map a non-AuthError failure onto the step that was running."""
        logger.exception("Unexpected error in OAuth %s via %s", attempt.action, attempt.provider)
        if attempt.phase == FlowPhase.EXCHANGING_CODE:
            kind = AuthErrorKind.TOKEN_EXCHANGE_FAILED
        else:
            kind = AuthErrorKind.PROFILE_FETCH_FAILED
        return self._fail(attempt, AuthError(kind, str(exc)))
