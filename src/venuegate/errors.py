"""Error taxonomy for the auth core.

None of these is fatal to the event path: the reconciler records them in the
store's error state and logs them. Only caller-initiated operations
(``fetch_profile``, ``refetch_admin_status``, ``update_profile``) raise.
"""

from __future__ import annotations


class VenueGateError(Exception):
    """Base class for all auth-core errors."""

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class SessionInitError(VenueGateError):
    """The one-shot startup session lookup failed."""


class ProfileFetchError(VenueGateError):
    """Loading the user profile failed."""


class ProfileUpdateError(VenueGateError):
    """Writing profile changes failed."""


class AdminFetchError(VenueGateError):
    """The admin-grant lookup failed at the transport level.

    A grant that simply does not exist is not an error.
    """


class ActivityLogError(VenueGateError):
    """Recording an activity entry failed. Diagnostic only."""


class StorageError(VenueGateError):
    """The local flag database is unavailable."""


class NotAuthenticatedError(VenueGateError):
    """A caller-initiated operation needs an active identity."""

    def __init__(self, message: str = "User not authenticated") -> None:
        super().__init__(message)


def describe(exc: BaseException, fallback: str) -> str:
    """Human-readable message for the store's error state."""
    if isinstance(exc, VenueGateError):
        return exc.message or fallback
    return str(exc) or fallback
