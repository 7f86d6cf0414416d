"""MIME types and header names used by the context writers."""

from __future__ import annotations

MIME_JSON = "application/json"
MIME_HTML = "text/html"
MIME_XML = "application/xml"
MIME_XML2 = "text/xml"
MIME_PLAIN = "text/plain"
MIME_POST_FORM = "application/x-www-form-urlencoded"
MIME_MULTIPART_POST_FORM = "multipart/form-data"
MIME_PROTOBUF = "application/x-protobuf"
MIME_MSGPACK = "application/x-msgpack"
MIME_MSGPACK2 = "application/msgpack"
MIME_YAML = "application/x-yaml"

MIME_APPLICATION_JSON_CHARSET_UTF8 = "application/json; charset=UTF-8"
MIME_TEXT_PLAIN_CHARSET_UTF8 = "text/plain; charset=UTF-8"

HEADER_CONTENT_TYPE = "Content-Type"
HEADER_LOCATION = "Location"


def media_type(content_type: str) -> str:
    """Return the bare, lower-cased media type of a Content-Type value."""
    return content_type.split(";", 1)[0].strip().lower()
