"""OAuth2 token management for the authenticated Reddit host."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import httpx
import structlog

from snooclient.errors import AuthError
from snooclient.schemas import Credentials, Token

log = structlog.get_logger()

GRANT_CLIENT_CREDENTIALS = "client_credentials"
GRANT_PASSWORD = "password"

DEFAULT_EXPIRES_IN = 3600


class TokenManager:
    """Exchanges credentials for a bearer token and refreshes it on expiry."""

    def __init__(
        self,
        credentials: Credentials,
        http_client: httpx.AsyncClient,
        *,
        token_url: str,
        user_agent: str,
        expiry_margin: int = 60,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the token manager.

        Args:
            credentials: Client ID/secret and optional username/password.
            http_client: Transport used for the token request.
            token_url: The OAuth2 access token endpoint.
            user_agent: User agent string for the token request.
            expiry_margin: Seconds before expiry at which the token is renewed.
            timeout: Token request timeout in seconds.
        """
        self.credentials = credentials
        self.token_url = token_url
        self.user_agent = user_agent
        self.expiry_margin = expiry_margin
        self.timeout = timeout
        self._http = http_client
        self._token: Token | None = None
        self._lock = asyncio.Lock()

    @property
    def token(self) -> Token | None:
        """The cached token, if any."""
        return self._token

    @property
    def grant_type(self) -> str:
        if self.credentials.uses_password_grant:
            return GRANT_PASSWORD
        return GRANT_CLIENT_CREDENTIALS

    def clear(self) -> None:
        """Clear the cached token, forcing re-authentication."""
        self._token = None

    async def get_token(self) -> str:
        """Get a valid access token, refreshing if necessary.

        Returns:
            A valid access token.

        Raises:
            AuthError: If authentication fails.
        """
        token = self._token
        if token and not token.is_expired():
            return token.access_token

        async with self._lock:
            # Another task may have refreshed while we waited
            token = self._token
            if token and not token.is_expired():
                return token.access_token

            self._token = await self._request_token()
            return self._token.access_token

    async def _request_token(self) -> Token:
        data = {"grant_type": self.grant_type}
        if self.credentials.uses_password_grant:
            data["username"] = self.credentials.username
            data["password"] = self.credentials.password

        now = datetime.now(UTC)
        try:
            response = await self._http.post(
                self.token_url,
                auth=(self.credentials.client_id, self.credentials.client_secret),
                data=data,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
        except httpx.RequestError as e:
            raise AuthError(
                f"Authentication request failed: {e}", method="POST", url=self.token_url
            ) from e

        if response.status_code in (401, 403):
            raise AuthError(
                "Invalid Reddit credentials",
                method="POST",
                url=self.token_url,
                status_code=response.status_code,
            )
        if response.status_code != 200:
            raise AuthError(
                f"Authentication failed: {response.text[:200]}",
                method="POST",
                url=self.token_url,
                status_code=response.status_code,
                data=response.content,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise AuthError(
                "Token response is not valid JSON",
                method="POST",
                url=self.token_url,
                status_code=response.status_code,
                data=response.content,
            ) from e

        # Bad passwords come back as 200 {"error": "invalid_grant"}
        if not isinstance(payload, dict) or "error" in payload or "access_token" not in payload:
            error = payload.get("error") if isinstance(payload, dict) else None
            raise AuthError(
                f"Authentication failed: {error or 'no access token in response'}",
                method="POST",
                url=self.token_url,
                status_code=response.status_code,
                data=response.content,
            )

        try:
            expires_in = int(payload.get("expires_in", DEFAULT_EXPIRES_IN))
            token = Token(
                access_token=payload["access_token"],
                expires_at=now + timedelta(seconds=max(expires_in - self.expiry_margin, 0)),
            )
        except (TypeError, ValueError, OverflowError) as e:
            # ValidationError is a ValueError
            raise AuthError(
                f"Malformed token response: {e}",
                method="POST",
                url=self.token_url,
                status_code=response.status_code,
                data=response.content,
            ) from e

        log.debug("Reddit OAuth token refreshed", grant=self.grant_type, expires_in=expires_in)
        return token
