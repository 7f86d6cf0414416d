"""Context — per-request state, parameter accessors and response writers."""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from starlette.datastructures import FormData, UploadFile
from starlette.formparsers import FormParser, MultiPartException, MultiPartParser
from starlette.requests import ClientDisconnect, Request
from starlette.types import Send

from tong._types import HandlerFunc
from tong.cache import Cache
from tong.config import TongConfig
from tong.exceptions import EncodeError, InvalidArgument, ParseError
from tong.handlers import not_found_handler
from tong.mime import (
    HEADER_CONTENT_TYPE,
    HEADER_LOCATION,
    MIME_APPLICATION_JSON_CHARSET_UTF8,
    MIME_MULTIPART_POST_FORM,
    MIME_POST_FORM,
    MIME_TEXT_PLAIN_CHARSET_UTF8,
    media_type,
)
from tong.response import Response

if TYPE_CHECKING:
    from tong.binding import Binder

T = TypeVar("T")

logger = logging.getLogger(__name__)

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

_INT_LITERAL = re.compile(r"[+-]?[0-9]+")
_FLOAT_LITERAL = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
    r"|(?P<special>inf(?:inity)?|nan))",
    re.IGNORECASE,
)
_INT64_MIN, _INT64_MAX = -(1 << 63), (1 << 63) - 1
_BAD_ESCAPE = re.compile(rb"%(?![0-9A-Fa-f]{2})")


class Context:
    """Per-request object handed to handlers.

    Instances are pooled: ``reset`` rebinds every per-request field and
    ``clear`` drops them again when the context goes back to the pool.
    Handlers must not keep a reference past the end of the request.
    """

    def __init__(
        self, binder: Binder | None = None, *, config: TongConfig | None = None
    ) -> None:
        if binder is None:
            from tong.binding import DefaultBinder

            binder = DefaultBinder()
        self._binder = binder
        self._config = config or TongConfig()
        self._response = Response()
        self.clear()

    # -- lifecycle --------------------------------------------------------

    def reset(self, request: Request, send: Send, logger: Any, cache: Cache) -> None:
        self._request: Request | None = request
        self._response.reset(send)
        self._path = ""
        self._handler: HandlerFunc = not_found_handler
        self._logger: Any = logger
        self._request_cache: Cache | None = cache
        self._form: FormData | None = None

    def set_route(self, path: str, handler: HandlerFunc | None) -> None:
        """Record the router's match. A missing handler means not found."""
        self._path = path
        self._handler = handler if handler is not None else not_found_handler

    def clear(self) -> None:
        self._request = None
        self._response.reset(None)
        self._path = ""
        self._handler = not_found_handler
        self._logger = structlog.get_logger("tong")
        self._request_cache = None
        self._form = None

    async def close(self) -> None:
        """Close uploaded files held by the parsed form, if any."""
        if self._form is not None:
            await self._form.close()

    # -- accessors --------------------------------------------------------

    @property
    def request(self) -> Request | None:
        return self._request

    @property
    def response(self) -> Response:
        return self._response

    @property
    def path(self) -> str:
        return self._path

    @property
    def handler(self) -> HandlerFunc:
        return self._handler

    @property
    def request_cache(self) -> Cache | None:
        return self._request_cache

    @property
    def logger(self) -> Any:
        return self._logger

    @property
    def binder(self) -> Binder:
        return self._binder

    @property
    def config(self) -> TongConfig:
        return self._config

    # -- writers ----------------------------------------------------------

    def write_content_type(self, value: str) -> None:
        headers = self._response.headers
        if not headers.get(HEADER_CONTENT_TYPE):
            headers[HEADER_CONTENT_TYPE] = value

    async def blob(self, code: int, content_type: str, data: bytes) -> None:
        self._response.write_header(code)
        self.write_content_type(content_type)
        await self._response.write(data)

    async def json(self, code: int, value: Any, indent: str = "") -> None:
        """Stream ``value`` as JSON.

        Output is flushed every ``config.json_chunk_size`` characters, so an
        encoding failure in a large payload can surface after earlier chunks
        were already sent.
        """
        if indent:
            encoder = json.JSONEncoder(
                ensure_ascii=False, allow_nan=False, indent=indent
            )
        else:
            encoder = json.JSONEncoder(
                ensure_ascii=False, allow_nan=False, separators=(",", ":")
            )

        self.write_content_type(MIME_APPLICATION_JSON_CHARSET_UTF8)
        self._response.write_header(code)

        pending: list[str] = []
        size = 0
        for chunk in _iterencode(encoder, value):
            pending.append(chunk)
            size += len(chunk)
            if size >= self._config.json_chunk_size:
                await self._response.write("".join(pending).encode("utf-8"))
                pending.clear()
                size = 0
        pending.append("\n")
        await self._response.write("".join(pending).encode("utf-8"))

    async def string(self, code: int, value: str) -> None:
        await self.blob(code, MIME_TEXT_PLAIN_CHARSET_UTF8, value.encode("utf-8"))

    def redirect(self, code: int, url: str) -> None:
        if isinstance(code, bool) or not isinstance(code, int):
            raise InvalidArgument(f"redirect code must be an int, got {code!r}")
        if not 300 <= code <= 308:
            raise InvalidArgument(f"redirect code must be in [300, 308], got {code}")
        self._response.headers[HEADER_LOCATION] = url
        self._response.write_header(code)

    # -- query parameters -------------------------------------------------

    def query_int(self, key: str, default: int) -> int:
        return _parse_or_default(self._query_value(key), _to_int, default)

    def query_float(self, key: str, default: float) -> float:
        return _parse_or_default(self._query_value(key), _to_float, default)

    def query_string(self, key: str, default: str) -> str:
        value = self._query_value(key)
        return value if value != "" else default

    def query_int_strict(self, key: str) -> int | None:
        """Return ``None`` when absent; raise InvalidArgument when malformed."""
        return _parse_strict(key, self._query_value(key), _to_int)

    def query_float_strict(self, key: str) -> float | None:
        return _parse_strict(key, self._query_value(key), _to_float)

    def query_params(self) -> dict[str, list[str]]:
        params: dict[str, list[str]] = {}
        for key, value in self._require_request().query_params.multi_items():
            params.setdefault(key, []).append(value)
        return params

    def _query_value(self, key: str) -> str:
        values = self._require_request().query_params.getlist(key)
        return values[0] if values else ""

    # -- post form --------------------------------------------------------

    async def post_int(self, key: str, default: int) -> int:
        return _parse_or_default(await self._post_value(key), _to_int, default)

    async def post_float(self, key: str, default: float) -> float:
        return _parse_or_default(await self._post_value(key), _to_float, default)

    async def post_string(self, key: str, default: str) -> str:
        value = await self._post_value(key)
        return value if value != "" else default

    async def post_int_strict(self, key: str) -> int | None:
        return _parse_strict(key, await self._post_value(key, strict=True), _to_int)

    async def post_float_strict(self, key: str) -> float | None:
        return _parse_strict(
            key, await self._post_value(key, strict=True), _to_float
        )

    async def form_params(self) -> dict[str, list[str]]:
        """Return the parsed body fields merged with the URL query values.

        URL-encoded bodies list body values before query values for a key.
        Multipart bodies list query values first, then the multipart fields.
        """
        form = await self._post_form()
        request = self._require_request()
        body = [(k, v) for k, v in form.multi_items() if isinstance(v, str)]
        query = request.query_params.multi_items()
        content_type = request.headers.get(HEADER_CONTENT_TYPE, "")
        if content_type.startswith(MIME_MULTIPART_POST_FORM):
            pairs = [*query, *body]
        else:
            pairs = [*body, *query]
        params: dict[str, list[str]] = {}
        for key, value in pairs:
            params.setdefault(key, []).append(value)
        return params

    async def form_file(self, key: str) -> UploadFile | None:
        form = await self._post_form()
        for name, value in form.multi_items():
            if name == key and isinstance(value, UploadFile):
                return value
        return None

    async def _post_value(self, key: str, *, strict: bool = False) -> str:
        try:
            form = await self._post_form()
        except ParseError as exc:
            if strict:
                raise
            logger.debug("post form unreadable for %r: %s", key, exc.detail)
            return ""
        for name, value in form.multi_items():
            if name == key and isinstance(value, str):
                return value
        return ""

    async def _post_form(self) -> FormData:
        if self._form is None:
            self._form = await self._parse_form()
        return self._form

    async def _parse_form(self) -> FormData:
        request = self._require_request()
        content_type = request.headers.get(HEADER_CONTENT_TYPE, "")
        try:
            if content_type.startswith(MIME_MULTIPART_POST_FORM):
                parser = MultiPartParser(
                    request.headers,
                    request.stream(),
                    max_files=self._config.max_files,
                    max_fields=self._config.max_fields,
                )
                parser.max_part_size = self._config.multipart_memory
                parser.spool_max_size = self._config.multipart_memory
                return await parser.parse()
            is_form = media_type(content_type) == MIME_POST_FORM
            if is_form and request.method in _BODY_METHODS:
                _check_urlencoded(await request.body())
                return await FormParser(request.headers, request.stream()).parse()
        except (MultiPartException, ClientDisconnect, KeyError, ValueError) as exc:
            raise ParseError(f"Cannot parse form body: {exc}", cause=exc) from exc
        return FormData()

    # -- binding ----------------------------------------------------------

    async def bind(self, target: type[T]) -> T:
        return await self._binder.bind(target, self)

    def _require_request(self) -> Request:
        if self._request is None:
            raise InvalidArgument("Context is not bound to a request")
        return self._request


def _iterencode(encoder: json.JSONEncoder, value: Any) -> Iterator[str]:
    try:
        yield from encoder.iterencode(value)
    except (TypeError, ValueError) as exc:
        raise EncodeError(
            f"Cannot encode {type(value).__name__} as JSON: {exc}", cause=exc
        ) from exc


def _to_int(raw: str) -> int:
    """Parse a base-10 ASCII integer that fits in a signed 64-bit word."""
    if _INT_LITERAL.fullmatch(raw) is None:
        raise ValueError(f"invalid int literal: {raw!r}")
    value = int(raw)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"int out of range: {raw!r}")
    return value


def _to_float(raw: str) -> float:
    match = _FLOAT_LITERAL.fullmatch(raw)
    if match is None:
        raise ValueError(f"invalid float literal: {raw!r}")
    value = float(raw)
    # "1e999" overflows to inf; only the spelled-out forms may.
    if math.isinf(value) and match.group("special") is None:
        raise ValueError(f"float out of range: {raw!r}")
    return value


def _parse_or_default(raw: str, parse: Callable[[str], T], default: T) -> T:
    if raw == "":
        return default
    try:
        return parse(raw)
    except ValueError:
        return default


def _parse_strict(key: str, raw: str, parse: Callable[[str], T]) -> T | None:
    if raw == "":
        return None
    try:
        return parse(raw)
    except ValueError as exc:
        raise InvalidArgument(
            f"Parameter {key!r} is malformed: {exc}", status_code=400
        ) from None


def _check_urlencoded(body: bytes) -> None:
    """Reject bad percent escapes and ``;`` separators in a form body."""
    for pair in body.split(b"&"):
        name = pair.split(b"=", 1)[0]
        if b";" in name:
            raise ValueError("invalid semicolon separator in form body")
        if _BAD_ESCAPE.search(pair):
            raise ValueError(f"invalid URL escape in form field {pair[:32]!r}")
