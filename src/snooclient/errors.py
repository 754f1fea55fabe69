"""Errors raised by the Reddit client.

Every error is a direct subclass of :class:`RedditError` and carries the same
:class:`~snooclient.schemas.ErrorContext` payload, so callers can either catch
a specific class or branch on ``err.kind``::

    try:
        await client.do(request, Listing)
    except RedditError as err:
        match err.kind:
            case ErrorKind.RATE_LIMIT:
                wait_until(err.rate.reset)
            case _:
                raise
"""

from __future__ import annotations

import enum
from typing import ClassVar

from snooclient.schemas import ErrorContext, Rate


class ErrorKind(str, enum.Enum):
    """The kinds of failure the client reports."""

    INTERNAL = "internal"
    JSON = "json"
    RESPONSE = "response"
    RATE_LIMIT = "rate_limit"
    AUTH = "auth"


class RedditError(Exception):
    """Base exception for Reddit client errors."""

    kind: ClassVar[ErrorKind] = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        url: str | None = None,
        status_code: int | None = None,
        data: bytes | None = None,
        rate: Rate | None = None,
    ) -> None:
        self.context = ErrorContext(
            message=message,
            method=method,
            url=url,
            status_code=status_code,
            data=data,
            rate=rate,
        )
        super().__init__(self._describe())

    @property
    def message(self) -> str:
        return self.context.message

    @property
    def method(self) -> str | None:
        return self.context.method

    @property
    def url(self) -> str | None:
        return self.context.url

    @property
    def status_code(self) -> int | None:
        return self.context.status_code

    @property
    def data(self) -> bytes | None:
        return self.context.data

    @property
    def rate(self) -> Rate | None:
        return self.context.rate

    def _describe(self) -> str:
        ctx = self.context
        parts: list[str] = []
        if ctx.method and ctx.url:
            parts.append(f"{ctx.method} {ctx.url}")
        if ctx.status_code is not None:
            parts.append(f"(status {ctx.status_code})")
        parts.append(ctx.message)
        return " ".join(parts)


class InternalError(RedditError):
    """Raised when a request cannot be built or encoded locally."""

    kind = ErrorKind.INTERNAL


class JSONError(RedditError):
    """Raised when a response body cannot be decoded.

    The undecodable bytes are kept in ``data`` for inspection.
    """

    kind = ErrorKind.JSON

    def _describe(self) -> str:
        description = super()._describe()
        if self.context.data:
            excerpt = self.context.data[:200].decode("utf-8", errors="replace")
            description = f"{description}\n{excerpt}"
        return description


class ResponseError(RedditError):
    """Raised for non-200 responses and transport failures."""

    kind = ErrorKind.RESPONSE


class RateLimitError(RedditError):
    """Raised when the rate limit budget is spent.

    ``rate`` holds the snapshot that caused it; callers can wait until
    ``rate.reset`` before resubmitting.
    """

    kind = ErrorKind.RATE_LIMIT

    def _describe(self) -> str:
        description = super()._describe()
        if self.context.rate is not None:
            rate = self.context.rate
            description = (
                f"{description} [remaining={rate.remaining} used={rate.used} "
                f"reset={rate.reset.isoformat() if rate.reset else None}]"
            )
        return description


class AuthError(RedditError):
    """Raised when the token endpoint rejects the credentials.

    Treat as fatal; the client never retries with other credentials.
    """

    kind = ErrorKind.AUTH
