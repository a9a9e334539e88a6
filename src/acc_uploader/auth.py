"""OAuth token issuance for Autodesk Platform Services.

Two flows are supported:

- 2-legged (client credentials): the application's own token, cached in a
  CredentialStore and refreshed shortly before it expires.
- 3-legged (authorization code): tokens for a specific end user. These are
  returned to the caller, who owns their persistence; they never touch the
  shared store.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import urlencode

import httpx

from acc_uploader.config import AccConfig
from acc_uploader.credentials import CredentialStore
from acc_uploader.exceptions import AuthenticationError, ConfigError
from acc_uploader.models import AuthContext

logger = logging.getLogger(__name__)

# Refresh the cached token this long before it actually expires
EXPIRY_BUFFER = timedelta(minutes=5)

DEFAULT_APP_SCOPES: tuple[str, ...] = (
    "data:read",
    "data:write",
    "data:create",
    "bucket:read",
    "bucket:create",
)

DEFAULT_USER_SCOPES: tuple[str, ...] = ("data:read", "data:write", "data:create")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Executes OAuth grants against the authorization endpoint."""

    def __init__(
        self,
        config: AccConfig,
        http_client: httpx.AsyncClient,
        store: CredentialStore | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the issuer.

        Args:
            config: Client settings (client id/secret, callback URL, scopes)
            http_client: Client used for grant requests; no auth is attached to it
            store: Cache for the 2-legged token; a private one is created if omitted
            clock: Returns the current time; injectable for tests
        """
        self._config = config
        self._http = http_client
        self._store = store if store is not None else CredentialStore()
        self._clock = clock

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def token_url(self) -> str:
        return f"{self._config.auth_url}/token"

    @property
    def authorize_url(self) -> str:
        return f"{self._config.auth_url}/authorize"

    def _scopes(self, defaults: Sequence[str]) -> str:
        return " ".join(self._config.scopes or defaults)

    async def get_token(self) -> str:
        """Return a valid 2-legged access token, requesting one if needed.

        Returns:
            Access token, reused from the cache while it has more than five
            minutes left

        Raises:
            AuthenticationError: If the client credentials grant fails
        """
        token = self._store.valid_token(self._clock(), EXPIRY_BUFFER)
        if token is not None:
            return token

        context = await self._grant(
            {
                "client_id": self._config.client_id,
                "client_secret": self._config.client_secret,
                "grant_type": "client_credentials",
                "scope": self._scopes(DEFAULT_APP_SCOPES),
            },
            description="client credentials",
        )
        self._store.replace(context)
        logger.info("Authenticated with Autodesk using client credentials")
        return context.access_token

    def invalidate(self) -> None:
        """Drop the cached 2-legged token."""
        self._store.invalidate()

    def build_authorization_url(self, state: str | None = None) -> str:
        """Build the 3-legged authorization URL the user must visit.

        Args:
            state: Optional opaque value echoed back to the callback

        Returns:
            The authorize URL; identical inputs always give the same URL
        """
        params = {
            "response_type": "code",
            "client_id": self._config.client_id,
            "redirect_uri": self._callback_url(),
            "scope": self._scopes(DEFAULT_USER_SCOPES),
        }
        if state:
            params["state"] = state
        return f"{self.authorize_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> AuthContext:
        """Exchange an authorization code for a user token.

        Raises:
            AuthenticationError: If the exchange fails
        """
        return await self._grant(
            {
                "client_id": self._config.client_id,
                "client_secret": self._config.client_secret,
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self._callback_url(),
            },
            description="authorization code exchange",
        )

    async def refresh(self, refresh_token: str) -> AuthContext:
        """Refresh a user token.

        The supplied refresh token is kept when the response does not rotate it.

        Raises:
            AuthenticationError: If the refresh fails
        """
        return await self._grant(
            {
                "client_id": self._config.client_id,
                "client_secret": self._config.client_secret,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
            description="token refresh",
            fallback_refresh_token=refresh_token,
        )

    def _callback_url(self) -> str:
        if not self._config.callback_url:
            raise ConfigError("ACC_CALLBACK_URL is required for the authorization code flow")
        return self._config.callback_url

    async def _grant(
        self,
        form: dict[str, str],
        *,
        description: str,
        fallback_refresh_token: str | None = None,
    ) -> AuthContext:
        """POST a form-encoded grant and turn the response into an AuthContext."""
        try:
            response = await self._http.post(
                self.token_url,
                data=form,
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Autodesk {description} request failed: {e}")
            raise AuthenticationError(f"Failed to reach the authorization server: {e}") from e

        if not response.is_success:
            logger.error(f"Autodesk {description} rejected with status {response.status_code}")
            raise AuthenticationError(
                f"Autodesk {description} failed with status {response.status_code}: {response.text}"
            )

        try:
            payload: dict[str, Any] = response.json()
        except ValueError as e:
            raise AuthenticationError(f"Invalid token response from Autodesk: {e}") from e

        if not payload.get("access_token"):
            raise AuthenticationError("Token response missing access_token")

        return AuthContext.from_token_response(
            payload, self._clock(), fallback_refresh_token=fallback_refresh_token
        )
