"""Explicitly constructed container wiring the auth core together."""

from __future__ import annotations

from typing import Any

import structlog

from venuegate.auth.clock import Clock
from venuegate.auth.guards import AccessClass, RouteOutcome, access_decision, resolve_route
from venuegate.auth.middleware import AuthEventReconciler
from venuegate.auth.models import AdminLevel, Profile
from venuegate.auth.selectors import AccessDecision, AuthView, select_auth_view, select_needs_onboarding
from venuegate.auth.store import AuthStore
from venuegate.backend.interface import DataAccess, SessionSource
from venuegate.config import VenueGateConfig
from venuegate.flags.base import FlagStore
from venuegate.flags.detector import detect_flag_store
from venuegate.flags.onboarding import OnboardingFlags
from venuegate.onboarding.tracker import OnboardingTracker

log = structlog.get_logger(__name__)


class AuthContainer:
    """One store, one reconciler, one tracker and one flag store per application.

    Build it once at startup and pass it to consumers; there is no module-level
    singleton.

    Usage::

        container = AuthContainer(session_source, data_access)
        await container.start()
        view = container.view()
        await container.close()
    """

    def __init__(
        self,
        session_source: SessionSource,
        data_access: DataAccess,
        config: VenueGateConfig | None = None,
        flag_store: FlagStore | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config or VenueGateConfig()
        self.store = AuthStore()
        self.flag_store = flag_store if flag_store is not None else detect_flag_store(self.config)
        self.flags = OnboardingFlags(self.flag_store)
        self.reconciler = AuthEventReconciler(
            self.store, session_source, data_access, config=self.config, clock=clock
        )
        self.onboarding = OnboardingTracker(self.store, data_access, self.flags, config=self.config)
        self._started = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Open the flag store, restore the session, then subscribe to auth events."""
        if self._started:
            log.debug("container_already_started")
            return
        self._started = True
        await self.flag_store.initialize()
        self.onboarding.attach()
        await self.reconciler.initialize()
        self.reconciler.start()
        log.info("container_started", user_id=self.store.state.user_id)

    async def settle(self) -> None:
        """Wait for background work: activity records and scheduled progress checks."""
        await self.reconciler.drain()
        await self.onboarding.wait_idle()

    async def close(self) -> None:
        await self.reconciler.close()
        self.onboarding.detach()
        await self.onboarding.wait_idle()
        await self.flag_store.close()
        self._started = False
        log.info("container_closed")

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def view(self) -> AuthView:
        return select_auth_view(self.store.state)

    def needs_onboarding(self) -> bool:
        return select_needs_onboarding(self.store.state)

    def access(self, access_class: AccessClass = AccessClass.PLAIN) -> AccessDecision:
        return access_decision(self.store.state, access_class)

    def route(self, access_class: AccessClass = AccessClass.PLAIN) -> RouteOutcome:
        return resolve_route(self.store.state, access_class, self.config)

    # ------------------------------------------------------------------
    # Caller-initiated operations
    # ------------------------------------------------------------------

    async def fetch_profile(self) -> Profile | None:
        return await self.reconciler.fetch_profile()

    async def refetch_admin_status(self) -> AdminLevel:
        return await self.reconciler.refetch_admin_status()

    async def update_profile(self, fields: dict[str, Any]) -> Profile:
        return await self.reconciler.update_profile(fields)

    async def logout(self) -> None:
        await self.reconciler.logout()
