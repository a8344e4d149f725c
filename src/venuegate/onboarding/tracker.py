"""Onboarding progress tracker and modal controller.

Combines venue/event counts from the data-access layer with the auth store to
compute the user's onboarding progress, decide whether the onboarding modal
shows on the current route, and raise the completion celebration once.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import structlog

from venuegate.auth.models import AuthState
from venuegate.auth.selectors import select_has_complete_profile, select_is_fully_loaded
from venuegate.auth.store import AuthStore
from venuegate.backend.interface import DataAccess
from venuegate.config import VenueGateConfig
from venuegate.errors import describe
from venuegate.flags.onboarding import OnboardingFlags
from venuegate.onboarding.progress import (
    OnboardingPhase,
    OnboardingProgress,
    OnboardingStatus,
    classify_status,
    completed_between,
)

log = structlog.get_logger(__name__)


class OnboardingTracker:
    """Drives ``show_onboarding`` / ``show_completion`` for the active user.

    Re-evaluates on route changes (:meth:`on_route_change`), when the auth
    store settles for a user (after :meth:`attach`), and on demand
    (:meth:`refresh_progress`). Switching identity clears all tracked state
    synchronously, inside the store transition that switched it.
    """

    def __init__(
        self,
        store: AuthStore,
        data: DataAccess,
        flags: OnboardingFlags,
        config: VenueGateConfig | None = None,
    ) -> None:
        self._store = store
        self._data = data
        self._flags = flags
        self._config = config or VenueGateConfig()
        self._route = "/"
        self._previous: OnboardingProgress | None = None
        self._celebrated = False
        self._generation = 0
        self._checks_in_flight = 0
        self._pending: set[asyncio.Task[Any]] = set()
        self._unsubscribe: Callable[[], None] | None = None

        self.progress = self._empty_progress()
        self.show_onboarding = False
        self.show_completion = False

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def attach(self) -> None:
        """Follow the auth store: reset on identity switch, re-check when it settles."""
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self._on_store_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def wait_idle(self) -> None:
        """Wait until checks scheduled by store changes have finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _on_store_change(self, previous: AuthState, current: AuthState) -> None:
        if previous.user_id != current.user_id:
            self._reset_for(current.user_id)

        settled_now = _ready(current)
        settled_before = previous.user_id == current.user_id and _ready(previous)
        if settled_now and not settled_before:
            self._schedule_check()

    def _schedule_check(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.debug("onboarding_check_not_scheduled", reason="no_running_loop")
            return
        task = loop.create_task(self.refresh_progress())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _reset_for(self, user_id: str | None) -> None:
        self._previous = None
        self._celebrated = False
        self._generation += 1
        self.progress = self._empty_progress()
        self.show_onboarding = False
        self.show_completion = False
        log.debug("onboarding_state_reset", user_id=user_id)

    # ------------------------------------------------------------------
    # Controller surface
    # ------------------------------------------------------------------

    @property
    def route(self) -> str:
        return self._route

    @property
    def is_loading(self) -> bool:
        return self._checks_in_flight > 0

    @property
    def status(self) -> OnboardingStatus:
        return classify_status(select_has_complete_profile(self._store.state), self.progress)

    @property
    def phase(self) -> OnboardingPhase:
        if not select_has_complete_profile(self._store.state):
            return OnboardingPhase.FORM_INCOMPLETE
        if not self.progress.is_complete:
            return OnboardingPhase.AWAITING_DATA
        if self.show_completion:
            return OnboardingPhase.COMPLETE_CELEBRATION_PENDING
        return OnboardingPhase.COMPLETE_CELEBRATION_SHOWN

    async def on_route_change(self, path: str) -> None:
        self._route = path
        if self._config.is_public_route(path):
            self.show_onboarding = False
        await self.refresh_progress()

    async def close_onboarding(self) -> None:
        self.show_onboarding = False
        await self._flags.mark_onboarding_seen()

    async def close_completion(self) -> None:
        self.show_completion = False
        await self._flags.mark_completion_seen()

    async def refresh_progress(self) -> None:
        """Recompute progress now, e.g. after the user reported an event."""
        self._checks_in_flight += 1
        try:
            await self._check()
        finally:
            self._checks_in_flight -= 1

    # ------------------------------------------------------------------
    # Progress computation
    # ------------------------------------------------------------------

    async def _check(self) -> None:
        state = self._store.state
        user_id = state.user_id
        if user_id is None:
            self.show_onboarding = False
            self.show_completion = False
            return
        if not _ready(state):
            log.debug("onboarding_check_deferred", user_id=user_id)
            return

        self._generation += 1
        generation = self._generation
        try:
            activity = await self._data.fetch_venue_activity(user_id)
            onboarding_seen = await self._flags.onboarding_seen()
            completion_seen = await self._flags.completion_seen()
        except Exception as exc:
            log.warning("onboarding_check_failed", user_id=user_id, error=describe(exc, "Failed to check progress"))
            return

        if generation != self._generation or self._store.state.user_id != user_id:
            log.debug("onboarding_check_superseded", user_id=user_id)
            return

        progress = OnboardingProgress.from_activity(activity, self._config.total_events_required)
        if progress != self._previous:
            if completed_between(self._previous, progress) and not completion_seen and not self._celebrated:
                self._celebrated = True
                self.show_completion = True
                log.info("onboarding_completed", user_id=user_id, events_reported=progress.events_reported)
            self._previous = progress
            self.progress = progress
            log.debug(
                "onboarding_progress_updated",
                user_id=user_id,
                has_venues=progress.has_venues,
                events_reported=progress.events_reported,
                is_complete=progress.is_complete,
            )

        self.show_onboarding = self._should_show(progress, onboarding_seen, completion_seen)

    def _should_show(self, progress: OnboardingProgress, onboarding_seen: bool, completion_seen: bool) -> bool:
        if self._config.is_public_route(self._route):
            return False
        if not onboarding_seen:
            return True
        return not progress.is_complete and not completion_seen

    def _empty_progress(self) -> OnboardingProgress:
        return OnboardingProgress(total_events_required=self._config.total_events_required)


def _ready(state: AuthState) -> bool:
    """Signed in, nothing loading, and the profile fetch has settled at least once."""
    return state.user_id is not None and state.profile_loaded and select_is_fully_loaded(state)
