"""Two-step NPSSO exchange against the PlayStation Network identity service.

NPSSO -> authorization code -> access credential. The client holds no state;
caching belongs to the session store and retries to nobody.

psnawp (`PSNAWP(npsso)`) performs the same exchange, but synchronously over
`requests` inside its constructor, outside the shared AsyncClient and its
timeouts. It exposes no public accessor for the raw access token that is stable
across releases, and the raw JWT is what carries the `account_id` claim. The
client id, Basic auth value, redirect URI and scope default to the well-known
PSN mobile app values and are all overridable through settings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlparse

import httpx

from psn_trophies.core.config import settings
from psn_trophies.core.exceptions import IdentityServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessCredential:
    """Bearer token issued by the identity service"""

    access_token: str
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None

    def __repr__(self) -> str:
        return f"AccessCredential(access_token=****, expires_in={self.expires_in})"

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "AccessCredential":
        return cls(
            access_token=data["access_token"],
            expires_in=data.get("expires_in"),
            refresh_token=data.get("refresh_token"),
        )


class IdentityClient:
    """httpx implementation of the NPSSO exchange"""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        auth_base_url: str = settings.PSN_AUTH_BASE_URL,
        client_id: str = settings.PSN_CLIENT_ID,
        client_auth: str = settings.PSN_CLIENT_AUTH,
        redirect_uri: str = settings.PSN_REDIRECT_URI,
        scope: str = settings.PSN_SCOPE,
    ):
        self._http = http_client
        self.auth_base_url = auth_base_url.rstrip("/")
        self.client_id = client_id
        self.client_auth = client_auth
        self.redirect_uri = redirect_uri
        self.scope = scope

    async def exchange(self, npsso: str) -> AccessCredential:
        """Exchange an NPSSO secret for an access credential.

        Raises:
            IdentityServiceError: either step failed or answered unexpectedly
        """
        code = await self.exchange_npsso_for_code(npsso)
        return await self.exchange_code_for_credential(code)

    async def exchange_npsso_for_code(self, npsso: str) -> str:
        """Step 1: trade the NPSSO cookie for a one-time authorization code"""
        params = {
            "access_type": "offline",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": self.scope,
        }
        try:
            resp = await self._http.get(
                f"{self.auth_base_url}/authorize",
                params=params,
                headers={"Cookie": f"npsso={npsso}"},
                follow_redirects=False,
            )
        except httpx.HTTPError as e:
            raise IdentityServiceError(
                f"Authorization request failed: {e}", cause=e
            ) from e

        if resp.status_code >= 400:
            raise IdentityServiceError(
                f"Authorization request failed: HTTP {resp.status_code}",
                upstream_status=resp.status_code,
            )

        location = resp.headers.get("location", "")
        codes = parse_qs(urlparse(location).query).get("code")
        if not codes:
            # The service redirects without a code when the NPSSO is stale
            raise IdentityServiceError(
                "Authorization code missing from redirect; the NPSSO is invalid or expired",
                upstream_status=resp.status_code,
            )
        return codes[0]

    async def exchange_code_for_credential(self, code: str) -> AccessCredential:
        """Step 2: trade the authorization code for an access credential"""
        data = {
            "code": code,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
            "token_format": "jwt",
        }
        try:
            resp = await self._http.post(
                f"{self.auth_base_url}/token",
                data=data,
                headers={"Authorization": f"Basic {self.client_auth}"},
            )
            resp.raise_for_status()
            payload: Dict[str, Any] = resp.json()
        except httpx.HTTPStatusError as e:
            raise IdentityServiceError(
                f"Token request failed: HTTP {e.response.status_code}",
                upstream_status=e.response.status_code,
                cause=e,
            ) from e
        except httpx.HTTPError as e:
            raise IdentityServiceError(f"Token request failed: {e}", cause=e) from e
        except ValueError as e:
            raise IdentityServiceError(
                "Token response was not valid JSON",
                upstream_status=resp.status_code,
                cause=e,
            ) from e

        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise IdentityServiceError(
                "Token response carried no access_token",
                upstream_status=resp.status_code,
            )

        logger.debug("Access credential obtained from identity service")
        return AccessCredential.from_response(payload)
