"""Tong - a small ASGI framework built around a pooled per-request context."""

from tong.app import Tong
from tong.binding import Binder, DefaultBinder
from tong.cache import Cache, InMemoryCache
from tong.config import DEFAULT_MULTIPART_MEMORY, TongConfig
from tong.context import Context
from tong.exceptions import (
    BindError,
    EncodeError,
    InvalidArgument,
    ParseError,
    TongException,
    WriteError,
)
from tong.handlers import not_found_handler
from tong.mime import (
    MIME_APPLICATION_JSON_CHARSET_UTF8,
    MIME_HTML,
    MIME_JSON,
    MIME_MSGPACK,
    MIME_MSGPACK2,
    MIME_MULTIPART_POST_FORM,
    MIME_PLAIN,
    MIME_POST_FORM,
    MIME_PROTOBUF,
    MIME_TEXT_PLAIN_CHARSET_UTF8,
    MIME_XML,
    MIME_XML2,
    MIME_YAML,
)
from tong.pool import ContextPool
from tong.response import Response

__all__ = [
    "DEFAULT_MULTIPART_MEMORY",
    "MIME_APPLICATION_JSON_CHARSET_UTF8",
    "MIME_HTML",
    "MIME_JSON",
    "MIME_MSGPACK",
    "MIME_MSGPACK2",
    "MIME_MULTIPART_POST_FORM",
    "MIME_PLAIN",
    "MIME_POST_FORM",
    "MIME_PROTOBUF",
    "MIME_TEXT_PLAIN_CHARSET_UTF8",
    "MIME_XML",
    "MIME_XML2",
    "MIME_YAML",
    "BindError",
    "Binder",
    "Cache",
    "Context",
    "ContextPool",
    "DefaultBinder",
    "EncodeError",
    "InMemoryCache",
    "InvalidArgument",
    "ParseError",
    "Response",
    "Tong",
    "TongConfig",
    "TongException",
    "WriteError",
    "not_found_handler",
]
