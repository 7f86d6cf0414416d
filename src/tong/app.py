"""Tong — ASGI application wiring the context pool to handlers."""

from __future__ import annotations

import inspect
import time
from collections.abc import Callable

import structlog
from starlette.requests import Request
from starlette.types import Receive, Scope, Send

from tong._types import EventHandler, HandlerFunc
from tong.binding import Binder, DefaultBinder
from tong.cache import Cache, InMemoryCache
from tong.config import TongConfig
from tong.context import Context
from tong.exceptions import TongException, WriteError
from tong.handlers import error_handler
from tong.pool import ContextPool


class Tong:
    """Minimal ASGI application.

    Routes are matched exactly on ``(method, path)``. Each HTTP request gets
    a pooled ``Context`` for the duration of the handler call.
    """

    def __init__(
        self,
        *,
        binder: Binder | None = None,
        config: TongConfig | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
        cache_factory: Callable[[], Cache] = InMemoryCache,
    ) -> None:
        self.binder: Binder = binder or DefaultBinder()
        self.config = config or TongConfig()
        self.logger = logger or structlog.get_logger("tong")
        self._cache_factory = cache_factory
        self._routes: dict[tuple[str, str], HandlerFunc] = {}
        self._startup: list[EventHandler] = []
        self._shutdown: list[EventHandler] = []
        self.pool = ContextPool(self._new_context, max_size=self.config.pool_size)

    def _new_context(self) -> Context:
        return Context(self.binder, config=self.config)

    # -- registration -----------------------------------------------------

    def add_route(self, method: str, path: str, handler: HandlerFunc) -> None:
        self._routes[(method.upper(), path)] = handler

    def route(
        self, path: str, *, methods: tuple[str, ...] = ("GET",)
    ) -> Callable[[HandlerFunc], HandlerFunc]:
        """Register the decorated handler for ``path`` under each method."""

        def decorator(func: HandlerFunc) -> HandlerFunc:
            for method in methods:
                self.add_route(method, path, func)
            return func

        return decorator

    def lookup(self, method: str, path: str) -> HandlerFunc | None:
        return self._routes.get((method.upper(), path))

    def on_startup(self, func: EventHandler) -> EventHandler:
        self._startup.append(func)
        return func

    def on_shutdown(self, func: EventHandler) -> EventHandler:
        self._shutdown.append(func)
        return func

    # -- ASGI -------------------------------------------------------------

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
        elif scope["type"] == "http":
            await self._handle_http(scope, receive, send)
        else:
            raise NotImplementedError(f"Unsupported scope type {scope['type']}")

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        await receive()  # lifespan.startup
        await _run_events(self._startup)
        await send({"type": "lifespan.startup.complete"})
        await receive()  # lifespan.shutdown
        await _run_events(self._shutdown)
        await send({"type": "lifespan.shutdown.complete"})

    async def _handle_http(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        method = request.method
        path = scope["path"]
        request_logger = self.logger.bind(method=method, path=path)
        started = time.perf_counter()

        async with self.pool.checkout(
            request, send, request_logger, self._cache_factory()
        ) as ctx:
            handler = self.lookup(method, path)
            ctx.set_route(path if handler is not None else "", handler)
            await self._dispatch(ctx)

            duration_ms = (time.perf_counter() - started) * 1000
            request_logger.info(
                "request completed",
                status=ctx.response.status,
                size=ctx.response.size,
                duration_ms=round(duration_ms, 3),
            )

    async def _dispatch(self, ctx: Context) -> None:
        try:
            await ctx.handler(ctx)
        except WriteError as exc:
            ctx.logger.warning("response write failed", error=str(exc.cause or exc))
            return
        except TongException as exc:
            ctx.logger.info(
                "handler raised", error=exc.detail, status=exc.status_code
            )
            await self._write_error(ctx, exc)
        except Exception as exc:
            ctx.logger.exception("unhandled handler error")
            await self._write_error(
                ctx, TongException("Internal Server Error", cause=exc)
            )

        try:
            await ctx.response.finish()
        except WriteError as exc:
            ctx.logger.warning("response write failed", error=str(exc.cause or exc))

    async def _write_error(self, ctx: Context, exc: TongException) -> None:
        if not ctx.response.discard():
            # Status already on the wire; nothing sensible left to send.
            return
        try:
            await error_handler(ctx, exc)
        except WriteError as write_exc:
            ctx.logger.warning(
                "response write failed", error=str(write_exc.cause or write_exc)
            )


async def _run_events(handlers: list[EventHandler]) -> None:
    for func in handlers:
        result = func()
        if inspect.isawaitable(result):
            await result
