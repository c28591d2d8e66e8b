"""Google OAuth helpers: access-token refresh and profile lookup."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
from loguru import logger

from qumail.application.ports.oauth import RefreshedToken
from qumail.domain.errors import HostedUnavailable


def classify_http_error(e: httpx.HTTPError) -> HostedUnavailable:
    if isinstance(e, httpx.HTTPStatusError):
        status = e.response.status_code
        details = f"HTTP {status}: {e.response.text[:200]}"
        if status in (400, 401, 403):
            return HostedUnavailable("auth", details=details)
        return HostedUnavailable("unreachable", details=details)
    return HostedUnavailable("unreachable", details=str(e) or type(e).__name__)


class GoogleOAuthClient:
    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        token_url: str = "https://oauth2.googleapis.com/token",
        userinfo_url: str = "https://www.googleapis.com/oauth2/v1/userinfo",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.userinfo_url = userinfo_url
        self.timeout = timeout
        self._transport = transport

    async def refresh(self, refresh_token: str) -> RefreshedToken:
        """Exchange a refresh token for a new access token."""
        if not self.client_id or not self.client_secret:
            raise HostedUnavailable("auth", details="Google client credentials are not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.token_url,
                    data={
                        "grant_type": "refresh_token",
                        "refresh_token": refresh_token,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                    },
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Google token refresh failed: {e}")
            raise classify_http_error(e) from e
        except ValueError as e:
            raise HostedUnavailable("unreachable", details="invalid JSON from token endpoint") from e

        if not data.get("access_token"):
            raise HostedUnavailable("auth", details="token endpoint returned no access_token")

        expires_in = data.get("expires_in")
        try:
            expiry = (
                datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))
                if expires_in is not None
                else None
            )
        except (TypeError, ValueError) as e:
            raise HostedUnavailable("unreachable", details=f"bad expires_in {expires_in!r}") from e
        return RefreshedToken(access_token=data["access_token"], expiry=expiry)

    async def userinfo(self, access_token: str) -> dict[str, Any]:
        """Profile (email, name, picture) of the token's owner."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(
                    self.userinfo_url,
                    params={"alt": "json"},
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Google userinfo lookup failed: {e}")
            raise classify_http_error(e) from e
        except ValueError as e:
            raise HostedUnavailable("unreachable", details="invalid JSON from userinfo endpoint") from e
