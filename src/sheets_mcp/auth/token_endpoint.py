# src/sheets_mcp/auth/token_endpoint.py

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from ..config import SCOPES
from ..error_handler import RemoteExchangeError
from .models import ClientSecret, Grant

lib_logger = logging.getLogger("sheets_mcp")


class TokenEndpoint:
    """
    Thin client for Google's OAuth2 endpoints.

    Builds the consent URL and performs the two token exchanges (authorization
    code and refresh token). Everything that talks to the identity provider
    goes through here; callers decide when to call it.

    Args:
        secret: OAuth client identity
        redirect_uri: Callback URI registered for this client
        scopes: Scopes to request (defaults to the spreadsheets scope)
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (used by tests)
    """

    AUTH_URI: str = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URI: str = "https://oauth2.googleapis.com/token"

    def __init__(
        self,
        secret: ClientSecret,
        redirect_uri: str,
        scopes: Optional[List[str]] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret = secret
        self.redirect_uri = redirect_uri
        self.scopes = list(scopes or SCOPES)
        self._timeout = timeout
        self._transport = transport

    def authorization_url(self) -> str:
        """Consent URL requesting offline access and a forced consent prompt."""
        return f"{self.AUTH_URI}?" + urlencode(
            {
                "client_id": self.secret.client_id,
                "redirect_uri": self.redirect_uri,
                "response_type": "code",
                "scope": " ".join(self.scopes),
                "access_type": "offline",
                "prompt": "consent",
            }
        )

    async def exchange_code(self, code: str) -> Grant:
        """
        Exchange an authorization code for a new Grant.

        Raises:
            RemoteExchangeError: If the endpoint rejects the code or is unreachable
        """
        data = await self._post(
            {
                "code": code.strip(),
                "client_id": self.secret.client_id,
                "client_secret": self.secret.client_secret,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            }
        )
        lib_logger.debug("Authorization code exchanged for tokens")
        return self._to_grant(data)

    async def refresh(self, grant: Grant) -> Grant:
        """
        Renew a grant using its refresh token.

        Raises:
            RemoteExchangeError: If the grant has no refresh token, or the
                endpoint rejects it or is unreachable
        """
        if not grant.refresh_token:
            raise RemoteExchangeError("Grant has no refresh_token to renew with")

        data = await self._post(
            {
                "refresh_token": grant.refresh_token,
                "client_id": self.secret.client_id,
                "client_secret": self.secret.client_secret,
                "grant_type": "refresh_token",
            }
        )
        lib_logger.debug("Access token refreshed")
        return self._to_grant(data, previous_refresh_token=grant.refresh_token)

    @staticmethod
    def _to_grant(
        data: Dict[str, Any], previous_refresh_token: Optional[str] = None
    ) -> Grant:
        try:
            return Grant.from_token_response(
                data, previous_refresh_token=previous_refresh_token
            )
        except (ValueError, TypeError) as e:
            raise RemoteExchangeError(
                f"Token endpoint returned an unusable token response: {e}"
            ) from e

    async def _post(self, form: Dict[str, str]) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(self.TOKEN_URI, data=form)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            error_code = None
            detail = e.response.text
            try:
                body = e.response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                error_code = body.get("error")
                detail = body.get("error_description") or error_code or detail
            raise RemoteExchangeError(
                f"Token endpoint returned HTTP {status_code}: {detail}",
                status_code=status_code,
                error_code=error_code,
            ) from e
        except httpx.RequestError as e:
            raise RemoteExchangeError(
                f"Failed to connect to token endpoint: {e}"
            ) from e
        except ValueError as e:
            raise RemoteExchangeError(
                f"Token endpoint returned an unreadable response: {e}"
            ) from e

        if not isinstance(data, dict) or "access_token" not in data:
            raise RemoteExchangeError("Token endpoint response has no access_token")
        return data
