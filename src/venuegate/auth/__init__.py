"""Auth state: models, the store and its derived selectors.

The event reconciler lives in :mod:`venuegate.auth.middleware` and is not
re-exported here, since it depends on the backend interfaces.
"""

from __future__ import annotations

from venuegate.auth.models import (
    AdminLevel,
    AuthEventKind,
    AuthState,
    Domain,
    ErrorState,
    Identity,
    LoadingState,
    Profile,
    Session,
    TokenMetadata,
)
from venuegate.auth.store import AuthStore

__all__ = [
    "AdminLevel",
    "AuthEventKind",
    "AuthState",
    "AuthStore",
    "Domain",
    "ErrorState",
    "Identity",
    "LoadingState",
    "Profile",
    "Session",
    "TokenMetadata",
]
