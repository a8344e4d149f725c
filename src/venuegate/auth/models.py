"""Auth domain models: identities, profiles, admin grants and the store snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class AuthEventKind(str, Enum):
    """Life-cycle notifications pushed by the backend's auth service."""
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


class AdminLevel(str, Enum):
    NONE = "none"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @classmethod
    def parse(cls, value: str | AdminLevel | None) -> AdminLevel:
        """Map a backend value (``None`` meaning no grant) onto the enum."""
        if value is None:
            return cls.NONE
        return cls(value)


class Domain(str, Enum):
    """Independently loading slices of the auth state."""
    AUTH = "auth"
    PROFILE = "profile"
    ADMIN = "admin"


@dataclass(frozen=True)
class TokenMetadata:
    access_token: str = ""
    refresh_token: str = ""
    expires_at: int | None = None


@dataclass(frozen=True)
class Identity:
    """Authenticated user as issued by the backend's auth service."""

    id: str
    email: str | None = None
    token: TokenMetadata = field(default_factory=TokenMetadata)


@dataclass(frozen=True)
class Session:
    """Session payload delivered with an auth event."""

    identity: Identity

    @property
    def user_id(self) -> str:
        return self.identity.id


@dataclass(frozen=True)
class Profile:
    """Application-level user record, one-to-one with an identity."""

    user_id: str
    full_name: str = ""
    role: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    is_admin: bool | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.full_name) and bool(self.role)

    def merged(self, fields: dict[str, Any]) -> Profile:
        """Copy with ``fields`` applied; unknown keys are ignored."""
        known = {k: v for k, v in fields.items() if k in _PROFILE_FIELDS and k != "user_id"}
        return Profile(**{**self.__dict__, **known})


_PROFILE_FIELDS = frozenset(Profile.__dataclass_fields__)


@dataclass(frozen=True)
class LoadingState:
    auth: bool = True
    profile: bool = False
    admin: bool = False

    @property
    def any(self) -> bool:
        return self.auth or self.profile or self.admin


@dataclass(frozen=True)
class ErrorState:
    auth: str | None = None
    profile: str | None = None
    admin: str | None = None

    @property
    def first(self) -> str | None:
        return self.auth or self.profile or self.admin


@dataclass(frozen=True)
class AuthState:
    """Immutable snapshot held by the auth store.

    Every transition produces a new instance, so readers never observe a
    half-applied update.
    """

    identity: Identity | None = None
    profile: Profile | None = None
    profile_loaded: bool = False
    admin_level: AdminLevel = AdminLevel.NONE
    loading: LoadingState = field(default_factory=LoadingState)
    error: ErrorState = field(default_factory=ErrorState)
    initialized: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @property
    def user_id(self) -> str | None:
        return self.identity.id if self.identity is not None else None
