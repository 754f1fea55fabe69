"""snooclient - the request/response core of a Reddit API client."""

from snooclient.auth import TokenManager
from snooclient.client import ByteSink, RedditClient, default_user_agent
from snooclient.core.config import LIBRARY_VERSION, Settings
from snooclient.errors import (
    AuthError,
    ErrorKind,
    InternalError,
    JSONError,
    RateLimitError,
    RedditError,
    ResponseError,
)
from snooclient.rate import RateLimiter, parse_rate
from snooclient.request import build_request, encode_form
from snooclient.schemas import APIResponse, Credentials, ErrorContext, ListingOptions, Rate, Token
from snooclient.things import (
    THING_KINDS,
    Account,
    Award,
    Comment,
    Link,
    Listing,
    Message,
    More,
    Subreddit,
    Thing,
    parse_thing,
    parse_thing_json,
)

__version__ = LIBRARY_VERSION

__all__ = [
    "THING_KINDS",
    "APIResponse",
    "Account",
    "AuthError",
    "Award",
    "ByteSink",
    "Comment",
    "Credentials",
    "ErrorContext",
    "ErrorKind",
    "InternalError",
    "JSONError",
    "Link",
    "Listing",
    "ListingOptions",
    "Message",
    "More",
    "Rate",
    "RateLimitError",
    "RateLimiter",
    "RedditClient",
    "RedditError",
    "ResponseError",
    "Settings",
    "Subreddit",
    "Thing",
    "Token",
    "TokenManager",
    "build_request",
    "default_user_agent",
    "encode_form",
    "parse_rate",
    "parse_thing",
    "parse_thing_json",
]
