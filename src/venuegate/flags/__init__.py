"""Persisted local flags gating repeat display of onboarding modals."""

from __future__ import annotations

from venuegate.flags.base import FlagStore
from venuegate.flags.detector import detect_flag_store
from venuegate.flags.memory import InMemoryFlagStore
from venuegate.flags.onboarding import COMPLETION_SEEN_KEY, ONBOARDING_SEEN_KEY, OnboardingFlags

__all__ = [
    "COMPLETION_SEEN_KEY",
    "FlagStore",
    "InMemoryFlagStore",
    "ONBOARDING_SEEN_KEY",
    "OnboardingFlags",
    "detect_flag_store",
]
