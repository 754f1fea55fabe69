"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Awaitable, Callable

import httpx
import pytest
import pytest_asyncio

from snooclient.client import RedditClient
from snooclient.core.config import Settings
from snooclient.schemas import Credentials

TOKEN_PATH = "/api/v1/access_token"

# Handlers may be async to hold a request in flight
Handler = Callable[[httpx.Request], httpx.Response | Awaitable[httpx.Response]]


class FakeReddit:
    """Fake transport that records requests and answers with a handler.

    Token requests are answered with a fixed bearer token unless the test
    installs its own ``token_handler``.
    """

    def __init__(self, handler: Handler | None = None) -> None:
        self.handler = handler or (lambda request: httpx.Response(200, json={}))
        self.token_handler: Handler = lambda request: httpx.Response(
            200,
            json={
                "access_token": "token1",
                "token_type": "bearer",
                "expires_in": 3600,
                "scope": "*",
            },
        )
        self.requests: list[httpx.Request] = []
        self.token_requests: list[httpx.Request] = []

    @property
    def api_calls(self) -> int:
        """Number of non-token requests that reached the transport."""
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response | Awaitable[httpx.Response]:
        if request.url.path == TOKEN_PATH:
            self.token_requests.append(request)
            return self.token_handler(request)
        self.requests.append(request)
        return self.handler(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def settings() -> Settings:
    """Settings that ignore the environment and .env files."""
    return Settings(
        _env_file=None,
        reddit_client_id="test_id",
        reddit_client_secret="test_secret",
        reddit_username="",
        reddit_password="",
        reddit_user_agent="",
        reddit_base_url="https://oauth.reddit.com",
        reddit_readonly_base_url="https://reddit.com",
        reddit_token_url="https://www.reddit.com/api/v1/access_token",
        request_timeout=5.0,
        token_expiry_margin=60,
    )


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(client_id="test_id", client_secret="test_secret")


@pytest.fixture
def fake_reddit() -> FakeReddit:
    return FakeReddit()


@pytest_asyncio.fixture
async def http_client(fake_reddit: FakeReddit) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=fake_reddit.transport()) as client:
        yield client


@pytest.fixture
def reddit(
    credentials: Credentials, settings: Settings, http_client: httpx.AsyncClient
) -> RedditClient:
    """An authenticated client wired to the fake transport."""
    return RedditClient(credentials, settings=settings, http_client=http_client)


@pytest.fixture
def readonly_reddit(settings: Settings, http_client: httpx.AsyncClient) -> RedditClient:
    """A read-only client wired to the fake transport."""
    return RedditClient.readonly_client(settings=settings, http_client=http_client)
