# src/sheets_mcp/auth/models.py

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


def now_ms() -> int:
    """Current time as epoch milliseconds, the unit used by expiry_date."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ClientSecret:
    """OAuth client identity of this installed application."""

    client_id: str
    client_secret: str = field(repr=False)
    redirect_uris: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Grant:
    """
    A live authorization: access token, optional refresh token and expiry.

    Grants are replaced, never edited. A grant without a refresh_token cannot be
    renewed once it expires and forces a fresh authorization.

    Attributes:
        access_token: Bearer token for API calls
        refresh_token: Token used to renew the grant without user consent
        expiry_date: Expiry as epoch milliseconds (None means "never checked")
    """

    access_token: str = field(repr=False)
    refresh_token: Optional[str] = field(default=None, repr=False)
    expiry_date: Optional[int] = None
    scope: Optional[str] = None
    token_type: Optional[str] = None
    id_token: Optional[str] = field(default=None, repr=False)

    def is_expired(self, now: Optional[int] = None, buffer_ms: int = 0) -> bool:
        """True once now >= expiry_date - buffer. A grant without expiry never expires."""
        if self.expiry_date is None:
            return False
        current = now_ms() if now is None else now
        return current >= self.expiry_date - buffer_ms

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"access_token": self.access_token}
        for key in ("refresh_token", "expiry_date", "scope", "token_type", "id_token"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Grant":
        """
        Build a Grant from the persisted token-file shape.

        Raises:
            ValueError: If access_token is missing or expiry_date is not numeric
        """
        if not isinstance(data, dict):
            raise ValueError("Token data must be a JSON object")
        access_token = data.get("access_token")
        if not access_token or not isinstance(access_token, str):
            raise ValueError("Token data has no access_token")

        expiry = data.get("expiry_date")
        return cls(
            access_token=access_token,
            refresh_token=data.get("refresh_token") or None,
            expiry_date=int(float(expiry)) if expiry is not None else None,
            scope=data.get("scope"),
            token_type=data.get("token_type"),
            id_token=data.get("id_token"),
        )

    @classmethod
    def from_token_response(
        cls,
        data: Dict[str, Any],
        previous_refresh_token: Optional[str] = None,
        issued_at: Optional[int] = None,
    ) -> "Grant":
        """
        Build a Grant from a token endpoint response.

        Converts expires_in (seconds) into an absolute expiry_date. Refresh
        responses usually omit refresh_token, so the previous one is carried over.
        """
        if "access_token" not in data:
            raise ValueError("Token response has no access_token")

        issued = now_ms() if issued_at is None else issued_at
        expires_in = data.get("expires_in")
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or previous_refresh_token,
            expiry_date=issued + int(float(expires_in)) * 1000
            if expires_in is not None
            else None,
            scope=data.get("scope"),
            token_type=data.get("token_type"),
            id_token=data.get("id_token"),
        )
