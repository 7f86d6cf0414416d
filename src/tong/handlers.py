"""Built-in handlers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tong.exceptions import TongException

if TYPE_CHECKING:
    from tong.context import Context

NOT_FOUND_BODY = "404 page not found\n"


async def not_found_handler(ctx: Context) -> None:
    await ctx.string(404, NOT_FOUND_BODY)


async def error_handler(ctx: Context, exc: TongException) -> None:
    """Write ``exc`` as a plain-text response with its status code."""
    await ctx.string(exc.status_code, exc.detail)
