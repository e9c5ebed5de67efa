# Profile normalization: provider user-info payloads → CanonicalUser.
# Created: 2026-10-07

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any


class ProfileError(ValueError):
    """Raised when a user-info payload is missing required fields."""


@dataclass(frozen=True)
class GoogleProfile:
    """Google userinfo (v2 or OpenID Connect) payload."""

    subject: str
    email: str
    name: str = ""
    picture: str = ""
    verified_email: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> GoogleProfile:
        subject = payload.get("sub") or payload.get("id")
        email = payload.get("email")
        if not subject or not email:
            raise ProfileError("Google profile requires an id and an email")
        return cls(
            subject=str(subject),
            email=str(email),
            name=payload.get("name") or "",
            picture=payload.get("picture") or "",
            verified_email=bool(payload.get("verified_email", payload.get("email_verified", False))),
        )


@dataclass(frozen=True)
class GithubProfile:
    """GitHub /user payload."""

    user_id: str
    login: str
    email: str | None = None
    name: str = ""
    avatar_url: str = ""
    html_url: str = ""
    company: str | None = None
    location: str | None = None
    bio: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> GithubProfile:
        user_id = payload.get("id")
        login = payload.get("login")
        if user_id in (None, "") or not login:
            raise ProfileError("GitHub profile requires an id and a login")
        return cls(
            user_id=str(user_id),
            login=str(login),
            email=payload.get("email") or None,
            name=payload.get("name") or "",
            avatar_url=payload.get("avatar_url") or "",
            html_url=payload.get("html_url") or "",
            company=payload.get("company"),
            location=payload.get("location"),
            bio=payload.get("bio"),
        )


ProviderProfile = GoogleProfile | GithubProfile


@dataclass(frozen=True)
class CanonicalUser:
    """Provider-independent identity record."""

    id: str
    email: str
    username: str
    name: str
    avatar_url: str
    provider: str
    verified: bool
    created_at: str
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CanonicalUser:
        return cls(
            id=data["id"],
            email=data.get("email", ""),
            username=data.get("username", ""),
            name=data.get("name", ""),
            avatar_url=data.get("avatar_url", ""),
            provider=data.get("provider", ""),
            verified=bool(data.get("verified", False)),
            created_at=data.get("created_at", ""),
            extra=dict(data.get("extra") or {}),
        )


def parse_profile(provider: str, payload: dict[str, Any]) -> ProviderProfile:
    """Parse a raw user-info payload into its provider-specific variant."""
    if provider == "google":
        return GoogleProfile.from_payload(payload)
    if provider == "github":
        return GithubProfile.from_payload(payload)
    raise ProfileError(f"No profile schema for provider: {provider}")


def normalize(profile: ProviderProfile, created_at: str | None = None) -> CanonicalUser:
    """Map a provider profile onto a CanonicalUser.

    Pure apart from ``created_at``, which defaults to now.
    """
    created_at = created_at or datetime.now(UTC).isoformat()

    if isinstance(profile, GoogleProfile):
        return CanonicalUser(
            id=f"google_{profile.subject}",
            email=profile.email,
            username=f"{profile.email.split('@')[0]}_google",
            name=profile.name,
            avatar_url=profile.picture,
            provider="google",
            verified=profile.verified_email,
            created_at=created_at,
        )

    if isinstance(profile, GithubProfile):
        # Users without a public email get GitHub's no-reply address
        email = profile.email or f"{profile.user_id}+{profile.login}@users.noreply.github.com"
        return CanonicalUser(
            id=f"github_{profile.user_id}",
            email=email,
            username=profile.login,
            name=profile.name,
            avatar_url=profile.avatar_url,
            provider="github",
            verified=True,
            created_at=created_at,
            extra={
                "html_url": profile.html_url,
                "company": profile.company,
                "location": profile.location,
                "bio": profile.bio,
            },
        )

    raise ProfileError(f"Unknown profile type: {type(profile).__name__}")


# Static development fixtures used by the mock path
DEV_PROFILES: dict[str, dict[str, Any]] = {
    "google": {
        "id": "123",
        "email": "user@gmail.com",
        "name": "Google User",
        "picture": "https://via.placeholder.com/150",
        "verified_email": True,
    },
    "github": {
        "id": 456,
        "login": "githubuser",
        "email": "user@github.com",
        "name": "GitHub User",
        "avatar_url": "https://via.placeholder.com/150",
        "html_url": "https://github.com/githubuser",
    },
}
