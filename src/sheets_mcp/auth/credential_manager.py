# src/sheets_mcp/auth/credential_manager.py

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from rich.console import Console
from rich.markup import escape as rich_escape
from rich.panel import Panel
from rich.text import Text

from ..config import get_authorization_timeout, get_callback_port, get_redirect_uri
from ..error_handler import RefreshError, RemoteExchangeError, SheetsAuthError
from .authorized_client import AuthorizedClient
from .browser import attempt_open
from .models import ClientSecret, Grant
from .redirect_listener import RedirectListener
from .secret_loader import SecretLoader
from .token_endpoint import TokenEndpoint
from .token_store import TokenStore

lib_logger = logging.getLogger("sheets_mcp")

EndpointFactory = Callable[[ClientSecret, str], TokenEndpoint]
ListenerFactory = Callable[[int], RedirectListener]


class ManagerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    AUTHORIZING = "authorizing"
    REFRESHING = "refreshing"
    AUTHORIZED = "authorized"


def _default_listener(port: int) -> RedirectListener:
    return RedirectListener(port=port, timeout=get_authorization_timeout())


class CredentialManager:
    """
    Owns the single AuthorizedClient of this process.

    On first use it loads the client secret, reads the stored grant and then
    either adopts it, refreshes it, or runs a fresh browser authorization.
    First-time initialization is serialized: concurrent first callers wait for
    the one in-flight sequence instead of racing two listeners on the same port.

    States:
        UNINITIALIZED -> AUTHORIZING -> AUTHORIZED
        UNINITIALIZED -> REFRESHING -> AUTHORIZED
        REFRESHING -> AUTHORIZING (refresh failed)

    Args:
        secret_loader: Source of the OAuth client identity
        token_store: Persistence for the grant
        endpoint_factory: Builds the token endpoint for (secret, redirect_uri)
        listener_factory: Builds a redirect listener for a port
        open_browser: Fire-and-forget URL opener
        port: Callback port (defaults to SHEETS_MCP_OAUTH_PORT or 8080)
        console: Where the operator prompt is printed (stderr by default)
    """

    def __init__(
        self,
        secret_loader: Optional[SecretLoader] = None,
        token_store: Optional[TokenStore] = None,
        endpoint_factory: EndpointFactory = TokenEndpoint,
        listener_factory: ListenerFactory = _default_listener,
        open_browser: Callable[[str], None] = attempt_open,
        port: Optional[int] = None,
        console: Optional[Console] = None,
    ):
        self.secret_loader = secret_loader or SecretLoader()
        self.token_store = token_store or TokenStore()
        self._endpoint_factory = endpoint_factory
        self._listener_factory = listener_factory
        self._open_browser = open_browser
        self._port = port
        # stdout carries the MCP protocol, so the operator prompt goes to stderr
        self._console = console or Console(stderr=True)

        self._client: Optional[AuthorizedClient] = None
        self._state = ManagerState.UNINITIALIZED
        self._init_lock = asyncio.Lock()

    @property
    def state(self) -> ManagerState:
        return self._state

    async def get_client(self) -> AuthorizedClient:
        """
        Return the process-wide AuthorizedClient, creating it on first use.

        Raises:
            ConfigurationError: Missing paths or an unusable client secret file
            ListenerError: The fresh authorization failed
        """
        if self._client is not None:
            return self._client

        async with self._init_lock:
            if self._client is not None:
                return self._client

            try:
                self._client = await self._initialize()
            finally:
                if self._client is None:
                    self._state = ManagerState.UNINITIALIZED
            self._state = ManagerState.AUTHORIZED
            return self._client

    async def validate(self) -> bool:
        """Startup health check: True if an authorized client could be obtained."""
        try:
            await self.get_client()
        except SheetsAuthError as e:
            lib_logger.error(f"Authentication failed: {e}")
            return False
        lib_logger.info("Authentication OK")
        return True

    async def _initialize(self) -> AuthorizedClient:
        secret = self.secret_loader.load()
        port = self._port or get_callback_port()
        endpoint = self._endpoint_factory(secret, get_redirect_uri(port))

        grant = self.token_store.read()
        if grant is None:
            lib_logger.info("No stored token found, authorization is required")
            grant = await self._authorize(endpoint, port)
        elif not grant.is_expired():
            lib_logger.info("Stored token is valid")
        elif grant.refresh_token:
            lib_logger.info("Stored token has expired, refreshing...")
            try:
                grant = await self._refresh(endpoint, grant)
            except RefreshError as e:
                lib_logger.warning(f"{e}. Re-authorization is required.")
                grant = await self._authorize(endpoint, port)
        else:
            lib_logger.info(
                "Stored token has expired and has no refresh token, authorization is required"
            )
            grant = await self._authorize(endpoint, port)

        return AuthorizedClient(
            secret, grant, endpoint, on_grant_renewed=self.token_store.write
        )

    async def _refresh(self, endpoint: TokenEndpoint, grant: Grant) -> Grant:
        self._state = ManagerState.REFRESHING
        try:
            renewed = await endpoint.refresh(grant)
        except RemoteExchangeError as e:
            raise RefreshError(f"Token refresh failed: {e}") from e

        self.token_store.write(renewed)
        return renewed

    async def _authorize(self, endpoint: TokenEndpoint, port: int) -> Grant:
        self._state = ManagerState.AUTHORIZING
        auth_url = endpoint.authorization_url()
        listener = self._listener_factory(port)

        def announce() -> None:
            self._show_authorization_prompt(auth_url)
            self._open_browser(auth_url)

        grant = await listener.run(endpoint.exchange_code, on_listening=announce)
        self.token_store.write(grant)
        lib_logger.info("Authorization completed")
        return grant

    def _show_authorization_prompt(self, auth_url: str) -> None:
        self._console.print(
            Panel(
                Text(
                    "Authorization is required.\n"
                    "1. Your browser will open to sign in and grant access to Google Sheets.\n"
                    "2. If it does not open, visit the URL below manually."
                ),
                title="Google Sheets OAuth Setup",
                style="bold blue",
            )
        )
        # OAuth URLs contain characters rich would treat as markup
        self._console.print(
            f"[bold]URL:[/bold] [link={auth_url}]{rich_escape(auth_url)}[/link]\n"
        )


_manager: Optional[CredentialManager] = None


def get_credential_manager() -> CredentialManager:
    """Get the process-wide CredentialManager instance."""
    global _manager
    if _manager is None:
        _manager = CredentialManager()
    return _manager
