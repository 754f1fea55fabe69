"""Reddit API client: request gating, sending, classification and decoding.

The pipeline for every call is::

    build_request -> rate limit gate -> bearer token -> send
        -> rate update -> classify -> decode into the destination
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, TypeVar, overload, runtime_checkable

import httpx
import structlog
from pydantic import BaseModel, PydanticUserError, TypeAdapter, ValidationError

from snooclient.auth import TokenManager
from snooclient.core.config import LIBRARY_NAME, LIBRARY_VERSION, Settings
from snooclient.errors import (
    InternalError,
    JSONError,
    RateLimitError,
    ResponseError,
)
from snooclient.rate import RateLimiter, parse_rate, parse_remaining
from snooclient.request import Params, build_request, encode_form
from snooclient.schemas import APIResponse, Credentials, ListingOptions, Rate
from snooclient.things import Listing

log = structlog.get_logger()

HEADER_AUTHORIZATION = "Authorization"
HEADER_USER_AGENT = "User-Agent"

T = TypeVar("T")

RequestCompletedCallback = Callable[[httpx.Request, httpx.Response], None]


@runtime_checkable
class ByteSink(Protocol):
    """Anything the raw response body can be written to."""

    def write(self, data: bytes, /) -> Any: ...


def default_user_agent(username: str = "") -> str:
    """Build the default user agent, naming the acting user when known."""
    user_agent = f"python:{LIBRARY_NAME}:v{LIBRARY_VERSION}"
    if username:
        user_agent += f" (by /u/{username})"
    return user_agent


class RedditClient:
    """Reddit API client.

    Use :meth:`readonly_client` for anonymous access to the public host, or pass
    credentials for the OAuth host. The client is safe to share between
    concurrent tasks; the only shared state is the rate snapshot and the
    cached token.
    """

    def __init__(
        self,
        credentials: Credentials | None = None,
        *,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        user_agent: str | None = None,
        on_request_completed: RequestCompletedCallback | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            credentials: OAuth credentials. None makes a read-only client that
                talks to the public host without a token.
            settings: Hosts, timeouts and user agent override. A fresh
                Settings is loaded from the environment when omitted.
            http_client: Transport to use. The client only closes transports
                it created itself.
            user_agent: User agent override.
            on_request_completed: Called with every request and its response,
                before the response is classified.
        """
        self.settings = settings or Settings()
        self.credentials = credentials
        self.on_request_completed = on_request_completed

        self.readonly = credentials is None
        self.base_url = httpx.URL(
            self.settings.reddit_readonly_base_url if self.readonly else self.settings.reddit_base_url
        )
        self.readonly_base_url = httpx.URL(self.settings.reddit_readonly_base_url)

        username = credentials.username if credentials else ""
        self.user_agent = user_agent or self.settings.reddit_user_agent or default_user_agent(username)

        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self.settings.request_timeout)
        self._rate_limiter = RateLimiter()

        self._tokens: TokenManager | None = None
        if credentials is not None:
            self._tokens = TokenManager(
                credentials,
                self._http,
                token_url=self.settings.reddit_token_url,
                user_agent=self.user_agent,
                expiry_margin=self.settings.token_expiry_margin,
                timeout=self.settings.request_timeout,
            )

    @classmethod
    def readonly_client(cls, **kwargs: Any) -> RedditClient:
        """Create a client for anonymous, read-only access."""
        return cls(None, **kwargs)

    @classmethod
    def from_env(cls, settings: Settings | None = None, **kwargs: Any) -> RedditClient:
        """Create an authenticated client from REDDIT_* environment variables.

        Raises:
            InternalError: If the client ID or secret is not configured.
        """
        settings = settings or Settings()
        if not settings.reddit_client_id or not settings.reddit_client_secret:
            raise InternalError(
                "REDDIT_CLIENT_ID and REDDIT_CLIENT_SECRET environment variables must be set"
            )
        return cls(Credentials.from_settings(settings), settings=settings, **kwargs)

    async def __aenter__(self) -> RedditClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying transport if the client created it."""
        if self._owns_http:
            await self._http.aclose()

    @property
    def rate(self) -> Rate:
        """The rate limit reported by the most recent response."""
        return self._rate_limiter.rate

    @property
    def token_manager(self) -> TokenManager | None:
        return self._tokens

    # -------------------------------------------------------------------------
    # Request building
    # -------------------------------------------------------------------------

    def build_request(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        params: Params | None = None,
        modhash: str | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Request:
        """Build a request against this client's base host.

        See :func:`snooclient.request.build_request` for the body rules.
        """
        request_headers = {HEADER_USER_AGENT: self.user_agent}
        if headers:
            request_headers.update(headers)
        return build_request(
            method,
            path,
            body,
            base_url=self.base_url,
            readonly_base_url=self.readonly_base_url,
            params=params,
            modhash=modhash,
            headers=request_headers,
            timeout=timeout,
        )

    # -------------------------------------------------------------------------
    # Response pipeline
    # -------------------------------------------------------------------------

    @overload
    async def do(self, request: httpx.Request, destination: type[T]) -> APIResponse[T]: ...

    @overload
    async def do(self, request: httpx.Request, destination: TypeAdapter[T]) -> APIResponse[T]: ...

    @overload
    async def do(
        self, request: httpx.Request, destination: ByteSink | None = None
    ) -> APIResponse[None]: ...

    async def do(self, request: httpx.Request, destination: Any = None) -> APIResponse[Any]:
        """Send a request and decode its response.

        Args:
            request: A request, usually from :meth:`build_request`.
            destination: Where the body goes. An object with ``write()``
                receives the raw bytes; a type or ``TypeAdapter`` receives the
                decoded JSON; None leaves the body undecoded.

        Returns:
            The decoded data, the HTTP response and the rate it reported.

        Raises:
            RateLimitError: If the budget is known to be spent (nothing is
                sent), or the response reports it spent.
            AuthError: If a token cannot be obtained.
            ResponseError: On a non-200 status or a transport failure.
            JSONError: If the body cannot be decoded into ``destination``.
            InternalError: If the body cannot be written to the sink.
        """
        method = request.method
        url = str(request.url)

        self._rate_limiter.check_before_send(method, url)

        if self._tokens is not None:
            token = await self._tokens.get_token()
            request.headers[HEADER_AUTHORIZATION] = f"bearer {token}"
        request.headers.setdefault(HEADER_USER_AGENT, self.user_agent)

        log.debug("Sending Reddit API request", method=method, url=url)
        try:
            response = await self._http.send(request, stream=True)
        except httpx.HTTPError as e:
            raise ResponseError(f"Request failed: {e}", method=method, url=url) from e

        try:
            return await self._handle_response(request, response, destination)
        finally:
            await self._close(response)

    async def _handle_response(
        self,
        request: httpx.Request,
        response: httpx.Response,
        destination: Any,
    ) -> APIResponse[Any]:
        method = request.method
        url = str(request.url)

        rate = parse_rate(response.headers)
        self._rate_limiter.update(rate)

        if self.on_request_completed is not None:
            self.on_request_completed(request, response)

        # Reddit can report an exhausted budget on a 200
        if parse_remaining(response.headers) == 0:
            raise RateLimitError(
                "API rate limit has been exceeded"
                + (f" until {rate.reset.isoformat()}" if rate.reset else ""),
                method=method,
                url=url,
                status_code=response.status_code,
                rate=rate,
            )

        if response.status_code != 200:
            body = await self._read(response, method, url)
            if response.status_code == 401 and self._tokens is not None:
                self._tokens.clear()
            raise ResponseError(
                body[:200].decode("utf-8", errors="replace") or response.reason_phrase,
                method=method,
                url=url,
                status_code=response.status_code,
                data=body,
            )

        if isinstance(destination, ByteSink) and not isinstance(destination, type):
            await self._copy(response, destination, method, url)
            return APIResponse(data=None, response=response, rate=rate)

        body = await self._read(response, method, url)
        if destination is None:
            return APIResponse(data=None, response=response, rate=rate)

        data = self._decode(body, destination, method, url)
        return APIResponse(data=data, response=response, rate=rate)

    @staticmethod
    async def _read(response: httpx.Response, method: str, url: str) -> bytes:
        try:
            return await response.aread()
        except httpx.HTTPError as e:
            raise ResponseError(
                f"Failed reading response body: {e}",
                method=method,
                url=url,
                status_code=response.status_code,
            ) from e

    @staticmethod
    async def _copy(response: httpx.Response, sink: ByteSink, method: str, url: str) -> None:
        try:
            async for chunk in response.aiter_bytes():
                sink.write(chunk)
        except httpx.HTTPError as e:
            raise ResponseError(
                f"Failed reading response body: {e}",
                method=method,
                url=url,
                status_code=response.status_code,
            ) from e
        except (OSError, TypeError, ValueError) as e:
            raise InternalError(f"Failed writing response body: {e}", method=method, url=url) from e

    @staticmethod
    def _decode(body: bytes, destination: Any, method: str, url: str) -> Any:
        try:
            if isinstance(destination, type) and issubclass(destination, BaseModel):
                return destination.model_validate_json(body)
            if not isinstance(destination, TypeAdapter):
                destination = TypeAdapter(destination)
            return destination.validate_json(body)
        except ValidationError as e:
            raise JSONError(
                f"Failed decoding response: {e}",
                method=method,
                url=url,
                status_code=200,
                data=body,
            ) from e
        except PydanticUserError as e:
            raise InternalError(
                f"Cannot decode into {destination!r}: {e}", method=method, url=url
            ) from e

    @staticmethod
    async def _close(response: httpx.Response) -> None:
        # The body has been consumed by now; a failed close cannot change the result
        try:
            await response.aclose()
        except (httpx.HTTPError, OSError) as e:
            log.warning("Failed closing response body", url=str(response.request.url), error=str(e))

    # -------------------------------------------------------------------------
    # Helpers for endpoint wrappers
    # -------------------------------------------------------------------------

    async def get(
        self,
        path: str,
        destination: Any = None,
        *,
        params: Params | None = None,
        timeout: float | None = None,
    ) -> APIResponse[Any]:
        """GET ``path`` and decode the body into ``destination``."""
        request = self.build_request("GET", path, params=params, timeout=timeout)
        return await self.do(request, destination)

    async def get_listing(
        self,
        path: str,
        options: ListingOptions | None = None,
        *,
        timeout: float | None = None,
    ) -> Listing:
        """GET a listing endpoint.

        Args:
            path: Listing path, e.g. ``r/python/new``.
            options: Paging options.
            timeout: Request timeout in seconds.

        Returns:
            The decoded listing.
        """
        result = await self.get(path, Listing, params=options, timeout=timeout)
        return result.data

    async def post_form(
        self,
        path: str,
        form: Mapping[str, Any] | bytes | None = None,
        *,
        modhash: str | None = None,
        timeout: float | None = None,
    ) -> APIResponse[None]:
        """POST a form-urlencoded body, ignoring the response body."""
        body = form if form is None or isinstance(form, bytes) else encode_form(form)
        request = self.build_request("POST", path, body, modhash=modhash, timeout=timeout)
        return await self.do(request)
