"""Response — streaming writer over the ASGI send callable."""

from __future__ import annotations

import logging

import anyio
from starlette.datastructures import MutableHeaders
from starlette.types import Message, Send

from tong.exceptions import WriteError

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (
    OSError,
    RuntimeError,
    anyio.BrokenResourceError,
    anyio.ClosedResourceError,
)


class Response:
    """Tracks status, headers and commit state for one response cycle.

    The status line and headers are sent lazily with the first body chunk
    (or by ``finish``); until then both may still change.
    """

    def __init__(self, send: Send | None = None) -> None:
        self.reset(send)

    def reset(self, send: Send | None) -> None:
        self._send = send
        self.headers = MutableHeaders()
        self.status = 200
        self.size = 0
        self.committed = False
        self._status_written = False
        self._finished = False

    def write_header(self, code: int) -> None:
        if self._status_written:
            logger.warning(
                "superfluous write_header call: %d (status already %d)",
                code,
                self.status,
            )
            return
        self.status = code
        self._status_written = True

    async def write(self, data: bytes) -> int:
        if not self.committed:
            await self._commit()
        await self._emit(
            {"type": "http.response.body", "body": data, "more_body": True}
        )
        self.size += len(data)
        return len(data)

    async def finish(self) -> None:
        if self._finished:
            return
        if not self.committed:
            await self._commit()
        self._finished = True
        await self._emit(
            {"type": "http.response.body", "body": b"", "more_body": False}
        )

    async def _commit(self) -> None:
        self._status_written = True
        self.committed = True
        await self._emit(
            {
                "type": "http.response.start",
                "status": self.status,
                "headers": list(self.headers.raw),
            }
        )

    async def _emit(self, message: Message) -> None:
        if self._send is None:
            raise WriteError("Response is not bound to a connection")
        try:
            await self._send(message)
        except _TRANSPORT_ERRORS as exc:
            raise WriteError(cause=exc) from exc

    def discard(self) -> bool:
        """Drop the pending status and headers. Returns False once committed."""
        if self.committed:
            return False
        self.reset(self._send)
        return True
