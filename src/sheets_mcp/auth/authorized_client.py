# src/sheets_mcp/auth/authorized_client.py

import asyncio
import logging
from typing import Callable, Dict, Optional

from ..error_handler import RefreshError, RemoteExchangeError
from .models import ClientSecret, Grant
from .token_endpoint import TokenEndpoint

lib_logger = logging.getLogger("sheets_mcp")


class AuthorizedClient:
    """
    Handle that turns the current Grant into bearer headers for API calls.

    Bound to one ClientSecret and, at any instant, one Grant. When the grant is
    about to expire it is renewed through the token endpoint and the
    replacement is handed to on_grant_renewed (normally TokenStore.write).
    Obtain instances from the CredentialManager; do not cache them elsewhere.
    """

    REFRESH_EXPIRY_BUFFER_SECONDS: int = 60

    def __init__(
        self,
        secret: ClientSecret,
        grant: Grant,
        endpoint: TokenEndpoint,
        on_grant_renewed: Optional[Callable[[Grant], None]] = None,
    ):
        self._secret = secret
        self._grant = grant
        self._endpoint = endpoint
        self._on_grant_renewed = on_grant_renewed
        self._refresh_lock = asyncio.Lock()

    @property
    def client_id(self) -> str:
        return self._secret.client_id

    @property
    def grant(self) -> Grant:
        return self._grant

    def _needs_refresh(self) -> bool:
        return self._grant.is_expired(
            buffer_ms=self.REFRESH_EXPIRY_BUFFER_SECONDS * 1000
        )

    async def get_access_token(self) -> str:
        """
        Return a usable access token, renewing the grant first if needed.

        Raises:
            RefreshError: If the grant is expired and cannot be renewed
        """
        if not self._needs_refresh():
            return self._grant.access_token

        async with self._refresh_lock:
            # Another caller may have renewed while we waited
            if not self._needs_refresh():
                return self._grant.access_token

            if not self._grant.refresh_token:
                raise RefreshError(
                    "Access token expired and no refresh token is available. "
                    "Restart with --reauthorize to sign in again."
                )

            lib_logger.info("Access token is about to expire, refreshing...")
            try:
                renewed = await self._endpoint.refresh(self._grant)
            except RemoteExchangeError as e:
                raise RefreshError(f"Token refresh failed: {e}") from e

            self._grant = renewed
            if self._on_grant_renewed is not None:
                self._on_grant_renewed(renewed)
            return renewed.access_token

    async def get_auth_header(self) -> Dict[str, str]:
        token = await self.get_access_token()
        return {"Authorization": f"Bearer {token}"}
