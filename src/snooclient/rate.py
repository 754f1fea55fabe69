"""Rate limit bookkeeping from Reddit's x-ratelimit-* headers."""

from __future__ import annotations

import math
import threading
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta

import structlog

from snooclient.errors import RateLimitError
from snooclient.schemas import Rate

log = structlog.get_logger()

HEADER_RATELIMIT_REMAINING = "x-ratelimit-remaining"
HEADER_RATELIMIT_USED = "x-ratelimit-used"
HEADER_RATELIMIT_RESET = "x-ratelimit-reset"


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is None:
        # Plain dicts are case sensitive, httpx.Headers is not
        value = next((v for k, v in headers.items() if k.lower() == name), None)
    return value.strip() if value else None


def parse_remaining(headers: Mapping[str, str]) -> float | None:
    """Parse the remaining request count, or None if the header is absent.

    Reddit sends it as a float ("598.0").
    """
    value = _header(headers, HEADER_RATELIMIT_REMAINING)
    if value is None:
        return None
    try:
        remaining = float(value)
    except ValueError:
        return None
    return remaining if math.isfinite(remaining) else None


def parse_rate(headers: Mapping[str, str], now: datetime | None = None) -> Rate:
    """Build a Rate from response headers.

    Missing or malformed headers fall back to 0 (or no reset). The reset
    header is a number of seconds, converted to an absolute time anchored on
    ``now`` truncated to the second.

    Args:
        headers: Response headers.
        now: Reference time, defaults to the current UTC time.

    Returns:
        The parsed Rate snapshot.
    """
    remaining = int(parse_remaining(headers) or 0)

    used = 0
    if (value := _header(headers, HEADER_RATELIMIT_USED)) is not None:
        try:
            used = int(value)
        except ValueError:
            used = 0

    reset: datetime | None = None
    if (value := _header(headers, HEADER_RATELIMIT_RESET)) is not None:
        try:
            seconds = int(value)
        except ValueError:
            seconds = 0
        if seconds:
            now = (now or datetime.now(UTC)).replace(microsecond=0)
            try:
                reset = now + timedelta(seconds=seconds)
            except OverflowError:
                reset = None

    return Rate(remaining=remaining, used=used, reset=reset)


class RateLimiter:
    """Holds the latest Rate and refuses requests known to be over budget.

    The lock only guards reads and writes of the snapshot. It is never held
    while a request is in flight, so two callers can both pass the check and
    go one request over budget; the server stays the authority.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rate = Rate()

    @property
    def rate(self) -> Rate:
        """Return the current snapshot."""
        with self._lock:
            return self._rate

    def update(self, rate: Rate) -> None:
        """Replace the stored snapshot."""
        with self._lock:
            self._rate = rate
        log.debug(
            "Rate limit updated",
            remaining=rate.remaining,
            used=rate.used,
            reset=rate.reset.isoformat() if rate.reset else None,
        )

    def check_before_send(
        self,
        method: str,
        url: str,
        now: datetime | None = None,
    ) -> None:
        """Raise if the last known rate says this request would be rejected.

        Args:
            method: HTTP method of the pending request.
            url: URL of the pending request.
            now: Reference time, defaults to the current UTC time.

        Raises:
            RateLimitError: If no requests remain and the window has not reset.
        """
        rate = self.rate
        if rate.reset is None or not rate.is_exhausted(now):
            return

        log.warning(
            "Rate limit exhausted, not sending request",
            method=method,
            url=url,
            reset=rate.reset.isoformat(),
        )
        raise RateLimitError(
            f"API rate limit still exceeded until {rate.reset.isoformat()}, "
            "not making remote request",
            method=method,
            url=url,
            status_code=429,
            rate=rate,
        )
