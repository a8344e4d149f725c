"""Protocol for pluggable persisted-flag backends."""

from __future__ import annotations

from typing import Protocol


class FlagStore(Protocol):
    """Durable boolean flags keyed by a fixed string, like browser local storage."""

    async def initialize(self) -> None: ...
    async def get(self, key: str) -> bool: ...
    async def set(self, key: str, value: bool = True) -> None: ...
    async def clear(self, key: str) -> None: ...
    async def close(self) -> None: ...
