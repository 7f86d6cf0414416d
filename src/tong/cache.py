"""Request-scoped cache — Cache protocol and InMemoryCache."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Cache(Protocol):
    """Pluggable key/value store whose contents live for one request."""

    async def get(self, key: str) -> Any | None: ...
    async def set(self, key: str, value: Any) -> None: ...
    async def delete(self, key: str) -> None: ...


class InMemoryCache:
    """Default dict-backed cache. A fresh instance is created per request."""

    def __init__(self) -> None:
        self._items: dict[str, Any] = {}

    async def get(self, key: str) -> Any | None:
        return self._items.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._items[key] = value

    async def delete(self, key: str) -> None:
        self._items.pop(key, None)
