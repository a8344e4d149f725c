"""Event reconciliation: the sole subscriber to the backend session source.

Consumes the auth event stream, suppresses redundant redelivery and turns
each accepted event into store transitions. Profile and admin-grant fetches
for an identity are issued concurrently; each settles its own loading flag
and a failure on one side never blocks the other.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any, Coroutine

import structlog

from venuegate.auth.clock import Clock, MonotonicClock
from venuegate.auth.models import AdminLevel, AuthEventKind, Identity, Profile, Session
from venuegate.auth.store import AuthStore
from venuegate.backend.interface import DataAccess, SessionSource, Subscription
from venuegate.config import VenueGateConfig
from venuegate.errors import (
    ActivityLogError,
    AdminFetchError,
    NotAuthenticatedError,
    ProfileFetchError,
    ProfileUpdateError,
    SessionInitError,
    describe,
)

log = structlog.get_logger(__name__)

_SESSION_EVENTS = (AuthEventKind.INITIAL_SESSION, AuthEventKind.SIGNED_IN)
_REFRESH_EVENTS = (AuthEventKind.TOKEN_REFRESHED, AuthEventKind.USER_UPDATED)


class AuthEventReconciler:
    """Reconciles backend auth events against the auth store.

    Runs on a single asyncio event loop. Store transitions are synchronous,
    so the only interleaving is between fetch completions; those are closed
    by the store's identity epoch and the in-flight bookkeeping here, which
    is keyed on ``(user_id, epoch)`` so a sign-out and re-sign-in of the same
    user never reuses a fetch issued before the sign-out.
    """

    def __init__(
        self,
        store: AuthStore,
        source: SessionSource,
        data: DataAccess,
        config: VenueGateConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._source = source
        self._data = data
        self._config = config or VenueGateConfig()
        self._clock = clock or MonotonicClock()
        self._subscription: Subscription | None = None
        self._last_seen: tuple[tuple[AuthEventKind, str | None], float] | None = None
        self._loading_pairs: set[tuple[str, int]] = set()
        self._background: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None

    def start(self) -> bool:
        """Subscribe to the session source. Repeated calls are no-ops."""
        if self._subscription is not None:
            log.debug("auth_listener_already_started")
            return False
        self._subscription = self._source.on_session_change(self.handle_event)
        log.info("auth_listener_started")
        return True

    async def initialize(self) -> None:
        """Restore the startup session. Never raises; failures land in ``error.auth``."""
        self._store.begin_session_init()
        try:
            session, error = await self._source.get_current_session()
        except Exception as exc:
            session, error = None, describe(exc, "Failed to initialize auth")

        if error is not None:
            failure = SessionInitError(error)
            log.warning("session_init_failed", error=failure.message)
            self._store.fail_session_init(failure.message)
            return

        identity = session.identity if session is not None else None
        self._store.resolve_session_init(identity)
        log.info("session_initialized", user_id=identity.id if identity else None)
        if identity is not None:
            await self._ensure_user_data(identity.id)

    async def drain(self) -> None:
        """Wait for background side effects (activity records) to settle."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
            log.info("auth_listener_stopped")
        await self.drain()

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    async def handle_event(self, kind: AuthEventKind, session: Session | None) -> None:
        kind = AuthEventKind(kind)
        identity = session.identity if session is not None else None
        log.debug("auth_event", kind=kind.value, user_id=identity.id if identity else None)

        if self._suppressed(kind, identity):
            return

        if kind in _SESSION_EVENTS:
            await self._on_session(kind, identity)
        elif kind is AuthEventKind.SIGNED_OUT:
            self._on_signed_out()
        elif kind in _REFRESH_EVENTS:
            self._on_refresh(kind, identity)

    def _suppressed(self, kind: AuthEventKind, identity: Identity | None) -> bool:
        user_id = identity.id if identity is not None else None
        now = self._clock.now()

        # Browsers redeliver SIGNED_IN on tab refocus although nothing changed.
        if kind is AuthEventKind.SIGNED_IN and user_id is not None and user_id == self._store.state.user_id:
            log.debug("auth_event_suppressed", kind=kind.value, user_id=user_id, reason="already_active")
            return True

        key = (kind, user_id)
        if self._last_seen is not None:
            last_key, last_at = self._last_seen
            if last_key == key and now - last_at < self._config.debounce_window_s:
                log.debug("auth_event_suppressed", kind=kind.value, user_id=user_id, reason="debounced")
                return True

        self._last_seen = (key, now)
        return False

    async def _on_session(self, kind: AuthEventKind, identity: Identity | None) -> None:
        if identity is None:
            log.debug("auth_event_without_session", kind=kind.value)
            return

        if identity.id != self._store.state.user_id:
            self._store.set_identity(identity)

        if kind is AuthEventKind.SIGNED_IN:
            self._spawn(self._record_login(identity.id))

        await self._ensure_user_data(identity.id)

    def _on_signed_out(self) -> None:
        if self._store.state.identity is None:
            log.debug("signed_out_without_identity")
            return
        self._store.reset()
        log.info("user_signed_out")

    def _on_refresh(self, kind: AuthEventKind, identity: Identity | None) -> None:
        active = self._store.state.user_id
        if identity is None or identity.id != active:
            log.warning(
                "auth_event_identity_mismatch",
                kind=kind.value,
                user_id=identity.id if identity else None,
                active=active,
            )
            return
        self._store.set_identity(identity)
        log.debug("identity_refreshed", kind=kind.value, user_id=identity.id)

    # ------------------------------------------------------------------
    # Profile + admin grant
    # ------------------------------------------------------------------

    async def _ensure_user_data(self, user_id: str) -> None:
        state = self._store.state
        if state.user_id != user_id:
            return
        key = (user_id, self._store.epoch)
        if state.profile_loaded or key in self._loading_pairs:
            log.debug("user_data_cached", user_id=user_id)
            return

        self._loading_pairs.add(key)
        try:
            profile_result, admin_result = await asyncio.gather(
                self._load_profile(user_id),
                self._load_admin(user_id),
                return_exceptions=True,
            )
        finally:
            self._loading_pairs.discard(key)

        log.info(
            "user_data_settled",
            user_id=user_id,
            profile="failed" if isinstance(profile_result, BaseException) else "loaded",
            admin="failed" if isinstance(admin_result, BaseException) else "loaded",
        )

    async def _load_profile(self, user_id: str) -> Profile | None:
        epoch = self._store.begin_profile_fetch(user_id)
        try:
            profile = await self._data.fetch_profile_by_user_id(user_id)
        except Exception as exc:
            message = describe(exc, "Failed to fetch user profile")
            log.warning("profile_fetch_failed", user_id=user_id, error=message)
            self._store.fail_profile(user_id, message, epoch)
            raise ProfileFetchError(message) from exc
        self._store.resolve_profile(user_id, profile, epoch)
        return profile

    async def _load_admin(self, user_id: str) -> AdminLevel:
        epoch = self._store.begin_admin_fetch(user_id)
        try:
            level = await self._data.fetch_admin_level_by_user_id(user_id)
        except Exception as exc:
            message = describe(exc, "Failed to check admin status")
            log.warning("admin_fetch_failed", user_id=user_id, error=message)
            self._store.fail_admin_fetch(user_id, message, epoch)
            raise AdminFetchError(message) from exc
        self._store.resolve_admin_grant(user_id, level, epoch)
        return AdminLevel.parse(level)

    # ------------------------------------------------------------------
    # Caller-initiated operations
    # ------------------------------------------------------------------

    async def fetch_profile(self) -> Profile | None:
        """Re-fetch the active user's profile. Raises :class:`ProfileFetchError`."""
        return await self._load_profile(self._require_user())

    async def refetch_admin_status(self) -> AdminLevel:
        """Re-fetch the active user's admin grant. Raises :class:`AdminFetchError`."""
        return await self._load_admin(self._require_user())

    async def update_profile(self, fields: dict[str, Any]) -> Profile:
        """Write ``fields`` remotely, then merge them into the cached profile."""
        user_id = self._require_user()
        epoch = self._store.begin_profile_update()
        try:
            updated = await self._data.update_profile(user_id, fields)
        except Exception as exc:
            message = describe(exc, "Failed to update profile")
            log.warning("profile_update_failed", user_id=user_id, error=message)
            if self._store.epoch == epoch:
                self._store.fail_profile_update(message)
            raise ProfileUpdateError(message) from exc

        if self._store.epoch != epoch:
            log.info("stale_result_discarded", transition="update_profile", user_id=user_id, epoch=epoch)
            return updated
        self._store.update_profile(fields, fallback=updated)
        log.info("profile_updated", user_id=user_id, fields=sorted(fields))
        return updated

    async def logout(self) -> None:
        """Clear local state, then sign out of the backend."""
        self._store.reset()
        try:
            await self._source.sign_out()
        except Exception as exc:
            log.error("sign_out_failed", error=str(exc))
            return
        log.info("sign_out_completed")

    def _require_user(self) -> str:
        user_id = self._store.state.user_id
        if user_id is None:
            raise NotAuthenticatedError()
        return user_id

    # ------------------------------------------------------------------
    # Activity log
    # ------------------------------------------------------------------

    async def _record_login(self, user_id: str) -> None:
        metadata = {
            "timestamp": datetime.now(UTC).isoformat(),
            "user_agent": self._config.activity_user_agent,
            "event_type": AuthEventKind.SIGNED_IN.value,
        }
        try:
            await self._data.record_activity(user_id, "login", metadata)
        except Exception as exc:
            failure = ActivityLogError(describe(exc, "Failed to record login activity"))
            log.warning("activity_log_failed", user_id=user_id, error=failure.message)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
