# src/sheets_mcp/__init__.py

from .auth import (
    AuthorizedClient,
    CredentialManager,
    ManagerState,
    get_credential_manager,
)
from .error_handler import (
    AuthorizationTimeoutError,
    ConfigurationError,
    ListenerError,
    RefreshError,
    RemoteExchangeError,
    SheetsApiError,
    SheetsAuthError,
    format_error,
)
from .sheets import Color, SheetsClient

__version__ = "0.1.0"

__all__ = [
    "AuthorizedClient",
    "CredentialManager",
    "ManagerState",
    "get_credential_manager",
    "AuthorizationTimeoutError",
    "ConfigurationError",
    "ListenerError",
    "RefreshError",
    "RemoteExchangeError",
    "SheetsApiError",
    "SheetsAuthError",
    "format_error",
    "Color",
    "SheetsClient",
]
