# src/sheets_mcp/auth/__init__.py

from .authorized_client import AuthorizedClient
from .browser import attempt_open
from .credential_manager import (
    CredentialManager,
    ManagerState,
    get_credential_manager,
)
from .models import ClientSecret, Grant
from .redirect_listener import RedirectListener
from .secret_loader import SecretLoader
from .token_endpoint import TokenEndpoint
from .token_store import TokenStore

__all__ = [
    "AuthorizedClient",
    "attempt_open",
    "CredentialManager",
    "ManagerState",
    "get_credential_manager",
    "ClientSecret",
    "Grant",
    "RedirectListener",
    "SecretLoader",
    "TokenEndpoint",
    "TokenStore",
]
