"""In-memory flag store for testing and development."""

from __future__ import annotations


class InMemoryFlagStore:
    """Flags that live only as long as the process."""

    def __init__(self, initial: dict[str, bool] | None = None) -> None:
        self._flags: dict[str, bool] = dict(initial or {})

    async def initialize(self) -> None:
        pass

    async def get(self, key: str) -> bool:
        return self._flags.get(key, False)

    async def set(self, key: str, value: bool = True) -> None:
        self._flags[key] = value

    async def clear(self, key: str) -> None:
        self._flags.pop(key, None)

    async def close(self) -> None:
        pass

    def snapshot(self) -> dict[str, bool]:
        return dict(self._flags)
