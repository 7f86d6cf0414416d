"""Shared type aliases."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tong.context import Context

HandlerFunc = Callable[["Context"], Awaitable[None]]
EventHandler = Callable[[], Any]
