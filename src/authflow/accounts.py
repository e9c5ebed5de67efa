"""Local accounts and the user directory.

Created: 2026-10-08

The directory is the durable list of known users, both local
(username/password) and OAuth-linked. It reads the ``signupUsers`` and
``loginUsers`` arrays, deduplicated by id, and writes to ``signupUsers``.

Passwords are stored as PBKDF2-SHA256 hashes, never in clear text, and are
stripped from every user dict handed back to callers.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
import secrets
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from authflow.errors import AuthError, AuthErrorKind
from authflow.oauth.session import SessionStore
from authflow.storage import KeyValueStorage

logger = logging.getLogger(__name__)

SIGNUP_USERS_KEY = "signupUsers"
LOGIN_USERS_KEY = "loginUsers"
REMEMBERED_USERNAME_KEY = "rememberedUsername"

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
_PBKDF2_ITERATIONS = 200_000


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(password: str, *, salt: str | None = None) -> str:
    """Return ``pbkdf2_sha256${iterations}${salt}${hex_digest}``."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), _PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${_PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$", 3)
        rounds = int(iterations)
    except (AttributeError, ValueError):
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), rounds)
    return hmac.compare_digest(digest.hex(), expected)


def public_user(user: dict[str, Any]) -> dict[str, Any]:
    """Copy of *user* without credential fields."""
    return {k: v for k, v in user.items() if k not in ("password", "password_hash")}


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_registration(email: str, username: str, password: str) -> dict[str, str]:
    """Return a field → message map; empty when the data is valid."""
    errors: dict[str, str] = {}

    if not email:
        errors["email"] = "Email is required"
    elif not _EMAIL_RE.match(email):
        errors["email"] = "Please enter a valid email address"

    if not username:
        errors["username"] = "Username is required"
    elif len(username) < 3:
        errors["username"] = "Username must be at least 3 characters long"
    elif not _USERNAME_RE.match(username):
        errors["username"] = "Username can only contain letters, numbers, and underscores"

    if not password:
        errors["password"] = "Password is required"
    elif len(password) < 8:
        errors["password"] = "Password must be at least 8 characters long"
    elif not (
        re.search(r"[a-z]", password) and re.search(r"[A-Z]", password) and re.search(r"\d", password)
    ):
        errors["password"] = (
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "and one number"
        )

    return errors


# ---------------------------------------------------------------------------
# User directory
# ---------------------------------------------------------------------------


class UserDirectory:
    """Durable list of known users, keyed by id."""

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    def all(self) -> list[dict[str, Any]]:
        signup_users = self.storage.get(SIGNUP_USERS_KEY, []) or []
        login_users = self.storage.get(LOGIN_USERS_KEY, []) or []
        seen: set[str] = set()
        users = []
        for user in [*signup_users, *login_users]:
            if not isinstance(user, dict) or "id" not in user or user["id"] in seen:
                continue
            seen.add(user["id"])
            users.append(user)
        return users

    def find(self, user_id: str) -> dict[str, Any] | None:
        return next((u for u in self.all() if u["id"] == user_id), None)

    def find_by_login(self, identifier: str) -> dict[str, Any] | None:
        """Find a local user by username or email."""
        return next(
            (
                u
                for u in self.all()
                if u.get("provider") == "local"
                and (u.get("username") == identifier or u.get("email") == identifier)
            ),
            None,
        )

    def exists(self, email: str, username: str) -> bool:
        return any(u.get("email") == email or u.get("username") == username for u in self.all())

    def save(self, user: dict[str, Any]) -> None:
        """Insert or replace *user* by id."""
        users = self.all()
        for i, existing in enumerate(users):
            if existing["id"] == user["id"]:
                users[i] = user
                break
        else:
            users.append(user)
        self.storage.set(SIGNUP_USERS_KEY, users)

    def remove(self, user_id: str) -> bool:
        users = self.all()
        remaining = [u for u in users if u["id"] != user_id]
        if len(remaining) == len(users):
            return False
        self.storage.set(SIGNUP_USERS_KEY, remaining)

        # loginUsers is merged on read, so the id has to go there too
        login_users = self.storage.get(LOGIN_USERS_KEY, []) or []
        kept = [u for u in login_users if not (isinstance(u, dict) and u.get("id") == user_id)]
        if len(kept) != len(login_users):
            self.storage.set(LOGIN_USERS_KEY, kept)
        return True


# ---------------------------------------------------------------------------
# Account service
# ---------------------------------------------------------------------------


@dataclass
class AuthResult:
    """Outcome of a local account operation."""

    success: bool
    user: dict[str, Any] | None = None
    error: AuthError | None = None
    message: str = ""

    @classmethod
    def ok(cls, user: dict[str, Any] | None = None, message: str = "") -> AuthResult:
        return cls(success=True, user=user, message=message)

    @classmethod
    def fail(cls, error: AuthError) -> AuthResult:
        return cls(success=False, error=error, message=error.detail)


class AccountService:
    """Local username/password accounts on top of the user directory."""

    def __init__(
        self,
        session: SessionStore,
        directory: UserDirectory,
        local_storage: KeyValueStorage,
    ):
        self.session = session
        self.directory = directory
        self.local_storage = local_storage

    def register_user(
        self, email: str, username: str, password: str, newsletter: bool = False
    ) -> AuthResult:
        """Create a local account and sign it in."""
        email, username = (email or "").strip(), (username or "").strip()

        errors = validate_registration(email, username, password or "")
        if errors:
            detail = "; ".join(errors.values())
            return AuthResult.fail(AuthError(AuthErrorKind.INVALID_USER_DATA, detail))

        if self.directory.exists(email, username):
            return AuthResult.fail(
                AuthError(
                    AuthErrorKind.ACCOUNT_ALREADY_EXISTS,
                    "User with this email or username already exists",
                )
            )

        user = {
            "id": f"local_{int(time.time() * 1000)}",
            "email": email,
            "username": username,
            "password_hash": hash_password(password),
            "role": "user",
            "provider": "local",
            "created_at": datetime.now(UTC).isoformat(),
            "newsletter": newsletter,
            "verified": False,
        }
        self.directory.save(user)
        visible = public_user(user)
        self.session.set_current_user(visible)
        logger.info("Registered local user %s", username)
        return AuthResult.ok(visible)

    def authenticate_user(
        self, identifier: str, password: str, remember: bool = False
    ) -> AuthResult:
        """Sign in with username or email plus password."""
        identifier = (identifier or "").strip()
        user = self.directory.find_by_login(identifier)
        if user is None or not verify_password(password or "", user.get("password_hash", "")):
            logger.info("Failed local sign-in for %s", identifier)
            return AuthResult.fail(
                AuthError(AuthErrorKind.INVALID_CREDENTIALS, "Invalid username or password")
            )

        visible = public_user(user)
        self.session.set_current_user(visible)
        if remember:
            self.local_storage.set(REMEMBERED_USERNAME_KEY, user["username"])
        logger.info("Local user %s signed in", user["username"])
        return AuthResult.ok(visible)

    def remembered_username(self) -> str | None:
        return self.local_storage.get(REMEMBERED_USERNAME_KEY)

    def forget_username(self) -> None:
        self.local_storage.remove(REMEMBERED_USERNAME_KEY)

    def current_user(self) -> dict[str, Any] | None:
        return self.session.get_current_user()

    def is_authenticated(self) -> bool:
        return self.session.get_current_user() is not None or bool(self.session.token_providers())

    def logout(self) -> None:
        self.session.logout()

    def update_user_profile(self, user_id: str, **updates: Any) -> AuthResult:
        """Merge *updates* into a stored user. Ids and credentials are not editable here."""
        user = self.directory.find(user_id)
        if user is None:
            return AuthResult.fail(AuthError(AuthErrorKind.ACCOUNT_NOT_FOUND, "User not found"))

        for key in ("id", "password", "password_hash"):
            updates.pop(key, None)
        user.update(updates)
        self.directory.save(user)

        visible = public_user(user)
        current = self.session.get_current_user()
        if current and current.get("id") == user_id:
            self.session.set_current_user(visible)
        return AuthResult.ok(visible)

    def delete_user_account(self, user_id: str) -> AuthResult:
        if not self.directory.remove(user_id):
            return AuthResult.fail(AuthError(AuthErrorKind.ACCOUNT_NOT_FOUND, "User not found"))

        current = self.session.get_current_user()
        if current and current.get("id") == user_id:
            self.logout()
        logger.info("Deleted account %s", user_id)
        return AuthResult.ok()

    def send_password_reset_email(self, email: str) -> AuthResult:
        # No mail transport in this demo
        logger.info("Password reset requested for %s", email)
        return AuthResult.ok(message="Password reset instructions sent to your email")

    def reset_password(self, token: str, new_password: str) -> AuthResult:
        # Token verification is not modelled; the request is only logged
        logger.info("Password reset submitted with token %s...", token[:6])
        return AuthResult.ok(message="Password reset successfully")
