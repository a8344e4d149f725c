"""The two persisted onboarding flags."""

from __future__ import annotations

import structlog

from venuegate.flags.base import FlagStore

log = structlog.get_logger(__name__)

ONBOARDING_SEEN_KEY = "onboarding-seen"
COMPLETION_SEEN_KEY = "onboarding-complete-seen"


class OnboardingFlags:
    """Typed access to the "onboarding seen" and "completion seen" flags.

    The two keys are independent: marking one never touches the other.
    """

    def __init__(self, store: FlagStore) -> None:
        self._store = store

    async def onboarding_seen(self) -> bool:
        return await self._store.get(ONBOARDING_SEEN_KEY)

    async def completion_seen(self) -> bool:
        return await self._store.get(COMPLETION_SEEN_KEY)

    async def mark_onboarding_seen(self) -> None:
        await self._store.set(ONBOARDING_SEEN_KEY, True)
        log.info("onboarding_marked_seen")

    async def mark_completion_seen(self) -> None:
        await self._store.set(COMPLETION_SEEN_KEY, True)
        log.info("onboarding_completion_marked_seen")
