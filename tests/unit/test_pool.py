"""Tests for ContextPool."""

from __future__ import annotations

from typing import Any

import pytest
import structlog

from tong.cache import InMemoryCache
from tong.context import Context
from tong.exceptions import InvalidArgument
from tong.handlers import not_found_handler
from tong.pool import ContextPool


class TestAcquireRelease:
    def test_creates_when_empty(self) -> None:
        pool = ContextPool(Context)
        ctx = pool.acquire()
        assert isinstance(ctx, Context)
        assert pool.in_use == 1
        assert pool.idle == 0

    def test_reuses_released_context(self) -> None:
        pool = ContextPool(Context)
        ctx = pool.acquire()
        pool.release(ctx)
        assert pool.idle == 1
        assert pool.acquire() is ctx

    def test_release_clears_context(self, make_context: Any) -> None:
        pool = ContextPool(lambda: make_context())
        ctx = pool.acquire()
        ctx.set_route("/x", None)
        pool.release(ctx)
        assert ctx.request is None
        assert ctx.request_cache is None
        assert ctx.handler is not_found_handler

    def test_idle_list_is_bounded(self) -> None:
        pool = ContextPool(Context, max_size=1)
        first, second = pool.acquire(), pool.acquire()
        pool.release(first)
        pool.release(second)
        assert pool.idle == 1

    def test_release_foreign_context_raises(self) -> None:
        pool = ContextPool(Context)
        with pytest.raises(InvalidArgument):
            pool.release(Context())

    def test_double_release_raises(self) -> None:
        pool = ContextPool(Context)
        ctx = pool.acquire()
        pool.release(ctx)
        with pytest.raises(InvalidArgument):
            pool.release(ctx)


class TestCheckout:
    async def test_resets_and_releases(self, make_request: Any, recorder: Any) -> None:
        pool = ContextPool(Context)
        request = make_request(path="/a")
        cache = InMemoryCache()
        async with pool.checkout(
            request, recorder, structlog.get_logger("t"), cache
        ) as ctx:
            assert ctx.request is request
            assert ctx.request_cache is cache
            assert pool.in_use == 1
        assert pool.in_use == 0
        assert pool.idle == 1
        assert ctx.request is None

    async def test_releases_on_error(self, make_request: Any, recorder: Any) -> None:
        pool = ContextPool(Context)
        with pytest.raises(RuntimeError):
            async with pool.checkout(
                make_request(), recorder, structlog.get_logger("t"), InMemoryCache()
            ):
                raise RuntimeError("handler blew up")
        assert pool.in_use == 0
        assert pool.idle == 1

    async def test_closes_uploaded_files(
        self, make_request: Any, recorder: Any, multipart_body: Any
    ) -> None:
        pool = ContextPool(Context)
        request = make_request(
            method="POST",
            headers={"Content-Type": "multipart/form-data; boundary=zz"},
            body=multipart_body("zz", {}, {"f": ("f.bin", b"\x00\x01")}),
        )
        async with pool.checkout(
            request, recorder, structlog.get_logger("t"), InMemoryCache()
        ) as ctx:
            upload = await ctx.form_file("f")
            assert upload is not None
        assert upload.file.closed
