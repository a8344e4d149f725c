"""In-memory backend for testing and local development."""

from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from venuegate.auth.models import AdminLevel, AuthEventKind, Identity, Profile, Session
from venuegate.backend.interface import (
    DataAccess,
    SessionCallback,
    SessionSource,
    Subscription,
    VenueActivity,
)


class _ListSubscription(Subscription):
    def __init__(self, callbacks: list[SessionCallback], callback: SessionCallback) -> None:
        self._callbacks = callbacks
        self._callback = callback

    def unsubscribe(self) -> None:
        if self._callback in self._callbacks:
            self._callbacks.remove(self._callback)


class ScriptedSessionSource(SessionSource):
    """Session source driven explicitly by the caller.

    Events are delivered with :meth:`emit`, which awaits every subscriber in
    registration order so a test can script an exact event sequence.
    """

    def __init__(self, session: Session | None = None, startup_error: str | None = None) -> None:
        self.current: Session | None = session
        self.startup_error = startup_error
        self.sign_out_calls = 0
        self._callbacks: list[SessionCallback] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    async def get_current_session(self) -> tuple[Session | None, str | None]:
        if self.startup_error is not None:
            return None, self.startup_error
        return self.current, None

    def on_session_change(self, callback: SessionCallback) -> Subscription:
        self._callbacks.append(callback)
        return _ListSubscription(self._callbacks, callback)

    async def sign_out(self) -> None:
        self.sign_out_calls += 1
        self.current = None

    async def emit(self, kind: AuthEventKind, session: Session | None) -> None:
        if kind is AuthEventKind.SIGNED_OUT:
            self.current = None
        elif session is not None:
            self.current = session
        for callback in list(self._callbacks):
            await callback(kind, session)

    async def sign_in(self, identity: Identity) -> Session:
        session = Session(identity=identity)
        await self.emit(AuthEventKind.SIGNED_IN, session)
        return session


class InMemoryDataAccess(DataAccess):
    """Dict-backed data access with call counting and failure injection.

    ``failures`` maps a method name to an exception raised on every call;
    ``gates`` maps a method name to an :class:`asyncio.Event` the call waits
    on, which lets tests hold a fetch in flight.
    """

    def __init__(self) -> None:
        self.profiles: dict[str, Profile] = {}
        self.admin_levels: dict[str, AdminLevel] = {}
        self.venue_events: dict[str, list[int]] = {}
        self.activity: list[tuple[str, str, dict[str, Any]]] = []
        self.failures: dict[str, Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: Counter[str] = Counter()

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def add_venue(self, user_id: str, events: int = 0) -> None:
        self.venue_events.setdefault(user_id, []).append(events)

    def report_event(self, user_id: str, venue_index: int = 0) -> None:
        self.venue_events[user_id][venue_index] += 1

    # ------------------------------------------------------------------
    # DataAccess
    # ------------------------------------------------------------------

    async def fetch_profile_by_user_id(self, user_id: str) -> Profile | None:
        await self._enter("fetch_profile_by_user_id")
        return self.profiles.get(user_id)

    async def update_profile(self, user_id: str, fields: dict[str, Any]) -> Profile:
        await self._enter("update_profile")
        current = self.profiles.get(user_id) or Profile(user_id=user_id, created_at=_now())
        updated = replace(current.merged(fields), updated_at=_now())
        self.profiles[user_id] = updated
        return updated

    async def fetch_admin_level_by_user_id(self, user_id: str) -> AdminLevel | None:
        await self._enter("fetch_admin_level_by_user_id")
        return self.admin_levels.get(user_id)

    async def fetch_venue_activity(self, user_id: str) -> VenueActivity:
        await self._enter("fetch_venue_activity")
        venues = self.venue_events.get(user_id, [])
        return VenueActivity(has_venues=bool(venues), events_reported=sum(venues))

    async def record_activity(self, user_id: str, kind: str, metadata: dict[str, Any]) -> None:
        await self._enter("record_activity")
        self.activity.append((user_id, kind, metadata))

    async def _enter(self, method: str) -> None:
        self.calls[method] += 1
        gate = self.gates.get(method)
        if gate is not None:
            await gate.wait()
        failure = self.failures.get(method)
        if failure is not None:
            raise failure


def _now() -> datetime:
    return datetime.now(UTC)
