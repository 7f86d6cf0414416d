"""TongException hierarchy for request handling failures."""

from __future__ import annotations


class TongException(Exception):
    """Base for all framework exceptions."""

    def __init__(
        self,
        detail: str,
        *,
        status_code: int = 500,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code
        self.cause = cause


class InvalidArgument(TongException):
    """Caller-supplied value outside the accepted domain."""


class ParseError(TongException):
    """Malformed request body or I/O failure while reading it (400)."""

    def __init__(
        self, detail: str = "Malformed request body", *, cause: Exception | None = None
    ) -> None:
        super().__init__(detail, status_code=400, cause=cause)


class EncodeError(TongException):
    """Payload cannot be serialized to the target format (500)."""

    def __init__(
        self, detail: str = "Cannot encode response", *, cause: Exception | None = None
    ) -> None:
        super().__init__(detail, status_code=500, cause=cause)


class WriteError(TongException):
    """Underlying transport write failed; never retried."""

    def __init__(
        self, detail: str = "Response write failed", *, cause: Exception | None = None
    ) -> None:
        super().__init__(detail, status_code=500, cause=cause)


class BindError(TongException):
    """Binder could not populate the destination (400 by default)."""

    def __init__(
        self,
        detail: str = "Cannot bind request",
        *,
        status_code: int = 400,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(detail, status_code=status_code, cause=cause)
