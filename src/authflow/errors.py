# Error taxonomy shared by the OAuth flow and local accounts.
# Created: 2026-10-06

from __future__ import annotations

from enum import Enum


class AuthErrorKind(str, Enum):
    """Why a sign-in operation failed."""

    UNSUPPORTED_PROVIDER = "unsupported_provider"
    INVALID_STATE = "invalid_state"  # stale or forged callback
    PROVIDER_DENIED = "provider_denied"  # user or provider declined
    TOKEN_EXCHANGE_FAILED = "token_exchange_failed"
    PROFILE_FETCH_FAILED = "profile_fetch_failed"
    TIMEOUT = "timeout"
    ACCOUNT_ALREADY_EXISTS = "account_already_exists"
    ACCOUNT_NOT_FOUND = "account_not_found"
    POPUP_BLOCKED = "popup_blocked"
    INVALID_USER_DATA = "invalid_user_data"
    INVALID_CREDENTIALS = "invalid_credentials"


_USER_MESSAGES: dict[AuthErrorKind, str] = {
    AuthErrorKind.UNSUPPORTED_PROVIDER: "This sign-in provider is not supported.",
    AuthErrorKind.INVALID_STATE: "The sign-in response could not be verified. Please try again.",
    AuthErrorKind.PROVIDER_DENIED: "Sign-in was cancelled or denied by the provider.",
    AuthErrorKind.TOKEN_EXCHANGE_FAILED: "Could not complete sign-in with the provider.",
    AuthErrorKind.PROFILE_FETCH_FAILED: "Could not load your profile from the provider.",
    AuthErrorKind.TIMEOUT: "Sign-in timed out. Please try again.",
    AuthErrorKind.ACCOUNT_ALREADY_EXISTS: "An account already exists for this identity.",
    AuthErrorKind.ACCOUNT_NOT_FOUND: "No account found. Sign up first.",
    AuthErrorKind.POPUP_BLOCKED: "The sign-in window could not be opened. Allow popups and retry.",
    AuthErrorKind.INVALID_USER_DATA: "Please check the highlighted fields.",
    AuthErrorKind.INVALID_CREDENTIALS: "Invalid username or password.",
}


def user_message(kind: AuthErrorKind) -> str:
    """Human-readable text for a failure kind."""
    return _USER_MESSAGES[kind]


class AuthError(Exception):
    """A sign-in failure with a taxonomy kind and an optional detail string."""

    def __init__(self, kind: AuthErrorKind, detail: str = ""):
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)


class UnsupportedProviderError(AuthError):
    def __init__(self, provider: str):
        super().__init__(AuthErrorKind.UNSUPPORTED_PROVIDER, f"Unsupported OAuth provider: {provider}")
        self.provider = provider


class PopupBlockedError(AuthError):
    def __init__(self, detail: str = "Popup blocked. Please allow popups for this site."):
        super().__init__(AuthErrorKind.POPUP_BLOCKED, detail)
