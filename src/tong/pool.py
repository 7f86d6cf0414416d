"""ContextPool — reuse of Context objects across requests."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from starlette.requests import Request
from starlette.types import Send

from tong.cache import Cache
from tong.context import Context
from tong.exceptions import InvalidArgument


class ContextPool:
    """Free list of contexts. Single event loop only."""

    def __init__(self, factory: Callable[[], Context], *, max_size: int = 256) -> None:
        self._factory = factory
        self._max_size = max_size
        self._idle: list[Context] = []
        self._leased: set[int] = set()

    @property
    def idle(self) -> int:
        return len(self._idle)

    @property
    def in_use(self) -> int:
        return len(self._leased)

    def acquire(self) -> Context:
        ctx = self._idle.pop() if self._idle else self._factory()
        self._leased.add(id(ctx))
        return ctx

    def release(self, ctx: Context) -> None:
        if id(ctx) not in self._leased:
            raise InvalidArgument("Context was not acquired from this pool")
        self._leased.discard(id(ctx))
        ctx.clear()
        if len(self._idle) < self._max_size:
            self._idle.append(ctx)

    @asynccontextmanager
    async def checkout(
        self, request: Request, send: Send, logger: Any, cache: Cache
    ) -> AsyncIterator[Context]:
        """Acquire and reset a context; close and release it on exit."""
        ctx = self.acquire()
        ctx.reset(request, send, logger, cache)
        try:
            yield ctx
        finally:
            try:
                await ctx.close()
            finally:
                self.release(ctx)
