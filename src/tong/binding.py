"""Binding — Binder protocol and the pydantic-backed DefaultBinder."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

from pydantic import TypeAdapter, ValidationError
from starlette.requests import ClientDisconnect

from tong.exceptions import BindError
from tong.mime import (
    HEADER_CONTENT_TYPE,
    MIME_JSON,
    MIME_MULTIPART_POST_FORM,
    MIME_POST_FORM,
    media_type,
)

if TYPE_CHECKING:
    from tong.context import Context

T = TypeVar("T")

_QUERY_METHODS = frozenset({"GET", "HEAD", "DELETE"})


@runtime_checkable
class Binder(Protocol):
    """Populates an instance of ``target`` from the request held by ``ctx``."""

    async def bind(self, target: type[T], ctx: Context) -> T: ...


class DefaultBinder:
    """Dispatches on method and content type, validates with pydantic.

    GET, HEAD and DELETE bind from the query string. Other methods bind from
    the body: JSON, URL-encoded and multipart forms are supported.
    """

    def __init__(self) -> None:
        self._adapters: dict[Any, TypeAdapter[Any]] = {}

    async def bind(self, target: type[T], ctx: Context) -> T:
        request = ctx.request
        if request is None:
            raise BindError("Context is not bound to a request", status_code=500)

        adapter = self._adapter(target)
        content_type = media_type(request.headers.get(HEADER_CONTENT_TYPE, ""))

        try:
            if request.method in _QUERY_METHODS:
                return adapter.validate_python(_collapse(ctx.query_params()))
            if content_type == MIME_JSON or content_type.endswith("+json"):
                try:
                    body = await request.body()
                except ClientDisconnect as exc:
                    raise BindError("Client disconnected", cause=exc) from exc
                return adapter.validate_json(body)
            if content_type in (MIME_POST_FORM, MIME_MULTIPART_POST_FORM):
                return adapter.validate_python(_collapse(await ctx.form_params()))
        except ValidationError as exc:
            raise BindError(
                f"Cannot bind request to {_name(target)}: "
                f"{exc.error_count()} validation error(s)",
                cause=exc,
            ) from exc

        raise BindError(
            f"Unsupported media type: {content_type or '(none)'}", status_code=415
        )

    def _adapter(self, target: Any) -> TypeAdapter[Any]:
        adapter = self._adapters.get(target)
        if adapter is None:
            adapter = TypeAdapter(target)
            self._adapters[target] = adapter
        return adapter


def _collapse(params: dict[str, list[str]]) -> dict[str, Any]:
    """Single-valued keys become scalars; repeated keys stay lists."""
    return {
        key: values[0] if len(values) == 1 else values
        for key, values in params.items()
    }


def _name(target: Any) -> str:
    return getattr(target, "__name__", repr(target))
