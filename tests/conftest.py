"""Shared pytest fixtures for tong tests."""

from __future__ import annotations

from typing import Any

import pytest
import structlog
from starlette.requests import Request
from starlette.types import Message

from tong.binding import DefaultBinder
from tong.cache import InMemoryCache
from tong.config import TongConfig
from tong.context import Context


class RecordingSend:
    """ASGI send callable that records every message."""

    def __init__(self, *, fail_with: Exception | None = None) -> None:
        self.messages: list[Message] = []
        self._fail_with = fail_with

    async def __call__(self, message: Message) -> None:
        if self._fail_with is not None:
            raise self._fail_with
        self.messages.append(message)

    @property
    def start(self) -> Message | None:
        for message in self.messages:
            if message["type"] == "http.response.start":
                return message
        return None

    @property
    def status(self) -> int | None:
        start = self.start
        return start["status"] if start is not None else None

    @property
    def headers(self) -> dict[str, str]:
        start = self.start
        if start is None:
            return {}
        return {k.decode().lower(): v.decode() for k, v in start["headers"]}

    @property
    def body(self) -> bytes:
        return b"".join(
            m["body"] for m in self.messages if m["type"] == "http.response.body"
        )


@pytest.fixture
def make_request() -> Any:
    """Factory for Starlette Request objects backed by an in-memory body."""

    def _make(
        method: str = "GET",
        path: str = "/",
        headers: dict[str, str] | None = None,
        query_string: str = "",
        body: bytes = b"",
        disconnect: bool = False,
    ) -> Request:
        scope: dict[str, Any] = {
            "type": "http",
            "method": method,
            "path": path,
            "query_string": query_string.encode(),
            "headers": [
                (k.lower().encode(), v.encode()) for k, v in (headers or {}).items()
            ],
            "root_path": "",
        }
        messages: list[Message] = []
        if not disconnect:
            messages.append({"type": "http.request", "body": body, "more_body": False})

        async def receive() -> Message:
            if messages:
                return messages.pop(0)
            return {"type": "http.disconnect"}

        return Request(scope, receive)

    return _make


@pytest.fixture
def recorder() -> RecordingSend:
    return RecordingSend()


@pytest.fixture
def make_context(make_request: Any, recorder: RecordingSend) -> Any:
    """Factory for a Context reset onto a fresh request and ``recorder``."""

    def _make(
        *,
        config: TongConfig | None = None,
        send: RecordingSend | None = None,
        **request_kwargs: Any,
    ) -> Context:
        ctx = Context(DefaultBinder(), config=config)
        ctx.reset(
            make_request(**request_kwargs),
            send or recorder,
            structlog.get_logger("tests"),
            InMemoryCache(),
        )
        return ctx

    return _make


@pytest.fixture
def multipart_body() -> Any:
    """Encoder for multipart/form-data bodies."""

    def _encode(
        boundary: str,
        fields: dict[str, str],
        files: dict[str, tuple[str, bytes]] | None = None,
    ) -> bytes:
        parts: list[bytes] = []
        for name, value in fields.items():
            parts.append(
                f"--{boundary}\r\n"
                f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode()
                + value.encode()
                + b"\r\n"
            )
        for name, (filename, content) in (files or {}).items():
            parts.append(
                f"--{boundary}\r\n"
                f'Content-Disposition: form-data; name="{name}"; '
                f'filename="{filename}"\r\n'
                "Content-Type: application/octet-stream\r\n\r\n".encode()
                + content
                + b"\r\n"
            )
        parts.append(f"--{boundary}--\r\n".encode())
        return b"".join(parts)

    return _encode


@pytest.fixture
def make_send() -> Any:
    """Factory for RecordingSend instances, optionally failing on send."""
    return RecordingSend
