"""Onboarding funnel: progress snapshots, the tracker, and admin aggregates."""

from __future__ import annotations

from venuegate.onboarding.progress import (
    OnboardingPhase,
    OnboardingProgress,
    OnboardingStatus,
    classify_status,
    completed_between,
)
from venuegate.onboarding.tracker import OnboardingTracker

__all__ = [
    "OnboardingPhase",
    "OnboardingProgress",
    "OnboardingStatus",
    "OnboardingTracker",
    "classify_status",
    "completed_between",
]
