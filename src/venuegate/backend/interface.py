"""Backend protocol - the narrow surface the auth core consumes.

Any provider satisfying these interfaces is substitutable: a hosted auth SDK
in production, :mod:`venuegate.backend.memory` in tests and local
development.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from venuegate.auth.models import AdminLevel, AuthEventKind, Profile, Session

SessionCallback = Callable[[AuthEventKind, Session | None], Awaitable[None]]


@dataclass(frozen=True)
class VenueActivity:
    """Venue ownership and reported-event count for one user."""

    has_venues: bool
    events_reported: int


class Subscription(ABC):
    """Handle returned by :meth:`SessionSource.on_session_change`."""

    @abstractmethod
    def unsubscribe(self) -> None:
        ...


class SessionSource(ABC):
    """Abstract backend auth service pushing session life-cycle events."""

    @abstractmethod
    async def get_current_session(self) -> tuple[Session | None, str | None]:
        """One-shot startup lookup. Returns ``(session, error_message)``."""
        ...

    @abstractmethod
    def on_session_change(self, callback: SessionCallback) -> Subscription:
        """Register ``callback(kind, session)`` for every auth event."""
        ...

    @abstractmethod
    async def sign_out(self) -> None:
        ...


class DataAccess(ABC):
    """Abstract data-access layer over the backend's relational store.

    Implementations raise on transport failures. A missing row is not a
    failure: lookups return ``None``.
    """

    @abstractmethod
    async def fetch_profile_by_user_id(self, user_id: str) -> Profile | None:
        ...

    @abstractmethod
    async def update_profile(self, user_id: str, fields: dict[str, Any]) -> Profile:
        ...

    @abstractmethod
    async def fetch_admin_level_by_user_id(self, user_id: str) -> AdminLevel | None:
        """Admin grant for ``user_id``; ``None`` when the user holds none."""
        ...

    @abstractmethod
    async def fetch_venue_activity(self, user_id: str) -> VenueActivity:
        """Venue ownership and events reported, summed across the user's venues."""
        ...

    @abstractmethod
    async def record_activity(self, user_id: str, kind: str, metadata: dict[str, Any]) -> None:
        ...
