"""Schemas shared by the request/response pipeline."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from snooclient.core.config import Settings

T = TypeVar("T")


class Credentials(BaseModel):
    """Credentials used to obtain an OAuth2 bearer token.

    The password grant is used when both username and password are set,
    otherwise the client credentials grant.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., description="OAuth client ID")
    client_secret: str = Field(..., repr=False, description="OAuth client secret")
    username: str = Field(default="", description="Reddit username for the password grant")
    password: str = Field(default="", repr=False, description="Reddit password")

    @property
    def uses_password_grant(self) -> bool:
        """Whether the token request should use the password grant."""
        return bool(self.username and self.password)

    @classmethod
    def from_settings(cls, settings: Settings) -> Credentials:
        """Build credentials from loaded settings."""
        return cls(
            client_id=settings.reddit_client_id,
            client_secret=settings.reddit_client_secret,
            username=settings.reddit_username,
            password=settings.reddit_password,
        )


class Token(BaseModel):
    """A bearer token and the moment it stops being usable."""

    access_token: str = Field(..., repr=False)
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the token has expired."""
        now = now or datetime.now(UTC)
        return now >= self.expires_at


class Rate(BaseModel):
    """Snapshot of the rate limit reported by the most recent response."""

    model_config = ConfigDict(frozen=True)

    # Requests left in the current window
    remaining: int = 0
    # Requests made in the current window
    used: int = 0
    # When the window resets (None when the server did not say)
    reset: datetime | None = None

    def is_exhausted(self, now: datetime | None = None) -> bool:
        """Whether the budget is spent and the window has not reset yet."""
        if self.reset is None or self.remaining != 0:
            return False
        now = now or datetime.now(UTC)
        return now < self.reset


class ErrorContext(BaseModel):
    """Context carried by every error the client raises."""

    message: str
    method: str | None = None
    url: str | None = None
    status_code: int | None = None
    data: bytes | None = None
    rate: Rate | None = None


class APIResponse(BaseModel, Generic[T]):
    """A decoded payload together with the HTTP response it came from."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    data: T | None = None
    response: httpx.Response
    rate: Rate

    @property
    def status_code(self) -> int:
        return self.response.status_code


class ListingOptions(BaseModel):
    """Query parameters accepted by endpoints that return a listing.

    Unset fields are left out of the query string.
    """

    # Maximum number of items to return (server default 25, max 100)
    limit: int | None = None
    # Fullname of the item to page after
    after: str | None = None
    # Fullname of the item to page before
    before: str | None = None
    count: int | None = None
    show: str | None = None
    sr_detail: bool | None = None
