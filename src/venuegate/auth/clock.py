"""Clocks for the event debounce window."""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> float: ...


class MonotonicClock:
    """Wall-clock seconds from ``time.monotonic``."""

    def now(self) -> float:
        return time.monotonic()


class ManualClock:
    """Logical clock that only moves when told to. Used by tests."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds
