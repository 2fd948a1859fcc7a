# src/sheets_mcp/auth/redirect_listener.py
"""
Local OAuth callback server.

Starts a temporary HTTP endpoint that receives the browser redirect carrying
the authorization code, answers it with a human-readable page, and shuts down
as soon as a single outcome (a code or an error) is known.
"""

import asyncio
import html
import logging
from http import HTTPStatus
from typing import Awaitable, Callable, Optional, Set, Tuple, Union
from urllib.parse import parse_qs, urlparse

from ..config import CALLBACK_PATH, DEFAULT_AUTHORIZATION_TIMEOUT
from ..error_handler import (
    AuthorizationTimeoutError,
    ListenerError,
    RemoteExchangeError,
)
from .models import Grant

lib_logger = logging.getLogger("sheets_mcp")

REQUEST_READ_TIMEOUT = 10.0

SUCCESS_PAGE = """<!DOCTYPE html>
<html>
<head><title>Authorization Complete</title></head>
<body style="font-family: sans-serif; text-align: center; padding: 50px;">
    <h1>Authorization complete</h1>
    <p>You can close this window and return to your terminal.</p>
</body>
</html>
"""

ERROR_PAGE = """<!DOCTYPE html>
<html>
<head><title>Authorization Failed</title></head>
<body style="font-family: sans-serif; text-align: center; padding: 50px;">
    <h1>Authorization failed</h1>
    <p>{error}</p>
    <p>Please close this window and check the terminal for details.</p>
</body>
</html>
"""

# A code string, or the exception that ends the attempt
Outcome = Union[str, BaseException]


class RedirectListener:
    """
    One-shot receiver for the authorization-code redirect.

    Each instance produces exactly one outcome and never outlives it: the
    socket is released whether the flow succeeds, fails or times out.

    Usage:
        listener = RedirectListener(port=8080)
        grant = await listener.run(endpoint.exchange_code, on_listening=announce)

    Args:
        port: Local port to bind (must match the registered redirect URI)
        host: Interface to bind
        path: Callback path that carries the code
        timeout: Seconds to wait for the redirect before giving up
    """

    def __init__(
        self,
        port: int,
        host: str = "127.0.0.1",
        path: str = CALLBACK_PATH,
        timeout: float = DEFAULT_AUTHORIZATION_TIMEOUT,
    ):
        self.port = port
        self.host = host
        self.path = path
        self.timeout = timeout
        self._server: Optional[asyncio.AbstractServer] = None
        self._outcome: Optional[asyncio.Future] = None
        self._writers: Set[asyncio.StreamWriter] = set()

    @property
    def is_listening(self) -> bool:
        return self._server is not None and self._server.is_serving()

    async def start(self) -> None:
        """
        Bind the callback socket.

        Raises:
            ListenerError: If the port cannot be bound (in use, permission denied)
        """
        if self._server is not None or self._outcome is not None:
            raise ListenerError("Redirect listener can only be started once")

        self._outcome = asyncio.get_running_loop().create_future()
        try:
            self._server = await asyncio.start_server(
                self._handle_connection, self.host, self.port
            )
        except OSError as e:
            self._outcome.cancel()
            raise ListenerError(
                f"Failed to start the callback server on {self.host}:{self.port}: {e}"
            ) from e

        # Port 0 asks the OS for a free port; report the real one
        self.port = self._server.sockets[0].getsockname()[1]
        lib_logger.debug(
            f"Callback server listening on http://{self.host}:{self.port}{self.path}"
        )

    async def wait_for_code(self) -> str:
        """
        Wait for the single outcome of this listener.

        Raises:
            AuthorizationTimeoutError: If no redirect arrives within the timeout
            ListenerError: If the redirect reported an error
        """
        if self._outcome is None:
            raise ListenerError("Redirect listener is not started")
        try:
            return await asyncio.wait_for(self._outcome, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise AuthorizationTimeoutError(self.timeout) from None

    async def close(self) -> None:
        """Release the socket. Safe to call more than once."""
        server, self._server = self._server, None
        if server is None:
            return

        server.close()
        # Idle browser connections would otherwise keep wait_closed() pending
        for writer in list(self._writers):
            writer.close()
        await server.wait_closed()

        if self._outcome is not None and not self._outcome.done():
            self._outcome.cancel()
        lib_logger.debug("Callback server closed")

    async def run(
        self,
        exchange: Callable[[str], Awaitable[Grant]],
        on_listening: Optional[Callable[[], None]] = None,
    ) -> Grant:
        """
        Complete one authorization: bind, wait for the code, close, exchange.

        The listener is closed before the exchange starts, so a failing
        exchange never leaves the port bound.

        Args:
            exchange: Coroutine function turning an authorization code into a Grant
            on_listening: Called once the socket is bound (show the URL, open a browser)

        Raises:
            ListenerError: Bind failure, denied consent, timeout, or failed exchange
        """
        await self.start()
        try:
            if on_listening is not None:
                on_listening()
            code = await self.wait_for_code()
        finally:
            await self.close()

        lib_logger.info("Authorization code received, exchanging it for tokens...")
        try:
            return await exchange(code)
        except RemoteExchangeError as e:
            raise ListenerError(f"Token exchange failed: {e}") from e

    def _resolve(self, outcome: Outcome) -> None:
        if self._outcome is None or self._outcome.done():
            return
        if isinstance(outcome, BaseException):
            self._outcome.set_exception(outcome)
        else:
            self._outcome.set_result(outcome)

    def _route(self, target: str) -> Tuple[int, str, Optional[Outcome]]:
        """Map a request target to (status, html body, outcome)."""
        parsed = urlparse(target)
        if parsed.path != self.path:
            return 404, "Not Found", None

        params = parse_qs(parsed.query)
        if "error" in params:
            error = params["error"][0]
            description = params.get("error_description", [error])[0]
            return (
                400,
                ERROR_PAGE.format(error=html.escape(description)),
                ListenerError(f"Authorization was denied: {error}"),
            )

        code = params.get("code", [""])[0]
        if not code:
            return 400, "Missing authorization code", None

        return 200, SUCCESS_PAGE, code

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        self._writers.add(writer)
        outcome: Optional[Outcome] = None
        try:
            try:
                target = await asyncio.wait_for(
                    self._read_request_target(reader), timeout=REQUEST_READ_TIMEOUT
                )
            except (asyncio.TimeoutError, ConnectionError):
                lib_logger.debug("Callback connection closed before a full request arrived")
                return

            if target is None:
                await self._respond(writer, 400, "Bad Request")
                return

            try:
                status, body, outcome = self._route(target)
            except Exception as e:
                lib_logger.error(f"Error in OAuth callback handler: {e}")
                outcome = ListenerError(f"Callback handling failed: {e}")
                status, body = 500, "Authorization error"

            await self._respond(writer, status, body)
        except ConnectionError as e:
            # The browser went away; a received code is still usable
            lib_logger.debug(f"Could not answer callback request: {e}")
        finally:
            writer.close()
            self._writers.discard(writer)
            if outcome is not None:
                self._resolve(outcome)

    @staticmethod
    async def _read_request_target(reader: asyncio.StreamReader) -> Optional[str]:
        request_line = await reader.readline()
        if not request_line:
            raise ConnectionError("Connection closed without a request")
        # Drain headers; the request body is never needed
        while True:
            line = await reader.readline()
            if line in (b"\r\n", b"\n", b""):
                break

        parts = request_line.decode("latin-1").split()
        if len(parts) < 2:
            return None
        return parts[1]

    @staticmethod
    async def _respond(writer: asyncio.StreamWriter, status: int, body: str) -> None:
        payload = body.encode("utf-8")
        content_type = (
            "text/html; charset=utf-8"
            if body.lstrip().startswith("<")
            else "text/plain; charset=utf-8"
        )
        head = (
            f"HTTP/1.1 {status} {HTTPStatus(status).phrase}\r\n"
            f"Content-Type: {content_type}\r\n"
            f"Content-Length: {len(payload)}\r\n"
            "Connection: close\r\n"
            "\r\n"
        )
        writer.write(head.encode("ascii") + payload)
        await writer.drain()
