"""Onboarding progress snapshots and funnel classification."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from venuegate.backend.interface import VenueActivity

DEFAULT_EVENTS_REQUIRED = 3


class OnboardingStatus(str, Enum):
    """Where a user stands in the profile -> venue -> events funnel."""
    PROFILE_INCOMPLETE = "profile_incomplete"
    VENUE_NEEDED = "venue_needed"
    EVENTS_NEEDED = "events_needed"
    COMPLETE = "complete"


class OnboardingPhase(str, Enum):
    """Tracker state for the signed-in user."""
    FORM_INCOMPLETE = "form_incomplete"
    AWAITING_DATA = "awaiting_data"
    COMPLETE_CELEBRATION_PENDING = "complete_celebration_pending"
    COMPLETE_CELEBRATION_SHOWN = "complete_celebration_shown"


@dataclass(frozen=True)
class OnboardingProgress:
    """Live progress snapshot. Never persisted."""

    has_venues: bool = False
    events_reported: int = 0
    total_events_required: int = DEFAULT_EVENTS_REQUIRED

    @property
    def is_complete(self) -> bool:
        return self.has_venues and self.events_reported >= self.total_events_required

    @property
    def events_remaining(self) -> int:
        return max(0, self.total_events_required - self.events_reported)

    @classmethod
    def from_activity(cls, activity: VenueActivity, required: int = DEFAULT_EVENTS_REQUIRED) -> OnboardingProgress:
        # Events only count once the user manages a venue.
        events = activity.events_reported if activity.has_venues else 0
        return cls(has_venues=activity.has_venues, events_reported=events, total_events_required=required)


def completed_between(previous: OnboardingProgress | None, current: OnboardingProgress) -> bool:
    """True on the incomplete -> complete edge; a first snapshot never counts."""
    return previous is not None and not previous.is_complete and current.is_complete


def classify_status(profile_complete: bool, progress: OnboardingProgress) -> OnboardingStatus:
    if not profile_complete:
        return OnboardingStatus.PROFILE_INCOMPLETE
    if not progress.has_venues:
        return OnboardingStatus.VENUE_NEEDED
    if not progress.is_complete:
        return OnboardingStatus.EVENTS_NEEDED
    return OnboardingStatus.COMPLETE
