"""Auth state store: the single authoritative auth record.

The store holds one immutable :class:`AuthState` and exposes atomic
transitions only. Each transition replaces the snapshot in one assignment and
then notifies subscribers, so concurrent readers on the event loop always see
a consistent state.

Resolve/fail transitions take the user id captured when the fetch was issued,
plus the identity epoch that ``begin_*`` returned. The epoch advances every
time the active identity is replaced or cleared, so a result is dropped when
its user is gone even if the same user signed back in since.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable

import structlog

from venuegate.auth.models import (
    AdminLevel,
    AuthState,
    Domain,
    ErrorState,
    Identity,
    LoadingState,
    Profile,
)

log = structlog.get_logger(__name__)

Listener = Callable[[AuthState, AuthState], None]


class AuthStore:
    """Holds the auth snapshot and applies transitions to it."""

    def __init__(self, initial: AuthState | None = None) -> None:
        self._state = initial or AuthState()
        self._listeners: list[Listener] = []
        self._version = 0
        self._epoch = 0

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def version(self) -> int:
        return self._version

    @property
    def epoch(self) -> int:
        """Identity generation; bumped whenever the active identity changes."""
        return self._epoch

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener(previous, current)``; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Session initialisation
    # ------------------------------------------------------------------

    def begin_session_init(self) -> None:
        s = self._state
        self._commit(
            replace(s, loading=replace(s.loading, auth=True), error=replace(s.error, auth=None)),
            "begin_session_init",
        )

    def resolve_session_init(self, identity: Identity | None) -> None:
        s = self._state
        if _same_user(s.identity, identity):
            base = s
        else:
            base = _cleared_user_data(s)
            self._advance_epoch()
        self._commit(
            replace(
                base,
                identity=identity,
                loading=replace(base.loading, auth=False),
                initialized=True,
            ),
            "resolve_session_init",
        )

    def fail_session_init(self, message: str) -> None:
        self._advance_epoch()
        s = _cleared_user_data(self._state)
        self._commit(
            replace(
                s,
                identity=None,
                loading=replace(s.loading, auth=False),
                error=replace(s.error, auth=message),
                initialized=True,
            ),
            "fail_session_init",
        )

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def set_identity(self, identity: Identity | None) -> None:
        """Install ``identity``; a different user (or none) clears all user data."""
        s = self._state
        if identity is not None and _same_user(s.identity, identity):
            self._commit(replace(s, identity=identity), "set_identity")
            return
        self._advance_epoch()
        self._commit(replace(_cleared_user_data(s), identity=identity), "set_identity")

    def reset(self) -> None:
        """Back to the empty state, keeping ``initialized`` so guards don't flash."""
        self._advance_epoch()
        self._commit(
            AuthState(
                loading=LoadingState(auth=False, profile=False, admin=False),
                initialized=True,
            ),
            "reset",
        )

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def begin_profile_fetch(self, user_id: str) -> int:
        """Mark the profile as loading; returns the epoch to hand back on resolve."""
        s = self._state
        if not self._is_active(user_id, None, "begin_profile_fetch"):
            return self._epoch
        self._commit(
            replace(s, loading=replace(s.loading, profile=True), error=replace(s.error, profile=None)),
            "begin_profile_fetch",
        )
        return self._epoch

    def resolve_profile(self, user_id: str, profile: Profile | None, epoch: int | None = None) -> None:
        s = self._state
        if not self._is_active(user_id, epoch, "resolve_profile"):
            return
        self._commit(
            replace(
                s,
                profile=profile,
                profile_loaded=True,
                loading=replace(s.loading, profile=False),
                error=replace(s.error, profile=None),
            ),
            "resolve_profile",
        )

    def fail_profile(self, user_id: str, message: str, epoch: int | None = None) -> None:
        s = self._state
        if not self._is_active(user_id, epoch, "fail_profile"):
            return
        # Sticky: a failed fetch still counts as fetched, retry is caller-initiated.
        self._commit(
            replace(
                s,
                profile_loaded=True,
                loading=replace(s.loading, profile=False),
                error=replace(s.error, profile=message),
            ),
            "fail_profile",
        )

    def begin_profile_update(self) -> int:
        s = self._state
        self._commit(
            replace(s, loading=replace(s.loading, profile=True), error=replace(s.error, profile=None)),
            "begin_profile_update",
        )
        return self._epoch

    def update_profile(self, fields: dict[str, Any], fallback: Profile | None = None) -> None:
        """Merge ``fields`` into the cached profile after a successful remote update.

        ``fallback`` is installed when no profile was cached yet.
        """
        s = self._state
        if s.profile is not None:
            profile: Profile | None = s.profile.merged(fields)
        else:
            profile = fallback
        self._commit(
            replace(
                s,
                profile=profile,
                profile_loaded=s.profile_loaded or profile is not None,
                loading=replace(s.loading, profile=False),
            ),
            "update_profile",
        )

    def fail_profile_update(self, message: str) -> None:
        s = self._state
        self._commit(
            replace(s, loading=replace(s.loading, profile=False), error=replace(s.error, profile=message)),
            "fail_profile_update",
        )

    # ------------------------------------------------------------------
    # Admin grant
    # ------------------------------------------------------------------

    def begin_admin_fetch(self, user_id: str) -> int:
        s = self._state
        if not self._is_active(user_id, None, "begin_admin_fetch"):
            return self._epoch
        self._commit(
            replace(s, loading=replace(s.loading, admin=True), error=replace(s.error, admin=None)),
            "begin_admin_fetch",
        )
        return self._epoch

    def resolve_admin_grant(
        self, user_id: str, level: AdminLevel | str | None, epoch: int | None = None
    ) -> None:
        s = self._state
        if not self._is_active(user_id, epoch, "resolve_admin_grant"):
            return
        self._commit(
            replace(
                s,
                admin_level=AdminLevel.parse(level),
                loading=replace(s.loading, admin=False),
                error=replace(s.error, admin=None),
            ),
            "resolve_admin_grant",
        )

    def fail_admin_fetch(self, user_id: str, message: str, epoch: int | None = None) -> None:
        s = self._state
        if not self._is_active(user_id, epoch, "fail_admin_fetch"):
            return
        self._commit(
            replace(s, loading=replace(s.loading, admin=False), error=replace(s.error, admin=message)),
            "fail_admin_fetch",
        )

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    def clear_error(self, domain: Domain | str) -> None:
        s = self._state
        field_name = Domain(domain).value
        self._commit(replace(s, error=replace(s.error, **{field_name: None})), "clear_error")

    def clear_all_errors(self) -> None:
        self._commit(replace(self._state, error=ErrorState()), "clear_all_errors")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _is_active(self, user_id: str, epoch: int | None, transition: str) -> bool:
        active = self._state.user_id
        if active != user_id or (epoch is not None and epoch != self._epoch):
            log.info(
                "stale_result_discarded",
                transition=transition,
                user_id=user_id,
                active=active,
                epoch=epoch,
                current_epoch=self._epoch,
            )
            return False
        return True

    def _advance_epoch(self) -> None:
        self._epoch += 1

    def _commit(self, new_state: AuthState, transition: str) -> None:
        previous = self._state
        self._state = new_state
        self._version += 1
        log.debug("auth_transition", transition=transition, version=self._version)
        for listener in list(self._listeners):
            listener(previous, new_state)


def _same_user(a: Identity | None, b: Identity | None) -> bool:
    return a is not None and b is not None and a.id == b.id


def _cleared_user_data(s: AuthState) -> AuthState:
    """``s`` with every identity-attributable field back at its empty value."""
    return replace(
        s,
        profile=None,
        profile_loaded=False,
        admin_level=AdminLevel.NONE,
        loading=replace(s.loading, profile=False, admin=False),
        error=replace(s.error, profile=None, admin=None),
    )
