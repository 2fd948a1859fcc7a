# src/sheets_mcp/config.py
"""
Environment-driven configuration.

Values are read and validated at the point of use, not at import time, so a
missing TOKEN_PATH only matters once something actually needs to write a token.
"""

import os
import logging

from .error_handler import ConfigurationError

lib_logger = logging.getLogger("sheets_mcp")

CLIENT_SECRET_PATH_ENV = "CLIENT_SECRET_PATH"
TOKEN_PATH_ENV = "TOKEN_PATH"
OAUTH_PORT_ENV = "SHEETS_MCP_OAUTH_PORT"
AUTH_TIMEOUT_ENV = "SHEETS_MCP_AUTH_TIMEOUT"

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

DEFAULT_CALLBACK_PORT = 8080
CALLBACK_PATH = "/callback"
DEFAULT_AUTHORIZATION_TIMEOUT = 300.0  # 5 minutes for the user to finish consent


def get_env_path(env_name: str) -> str:
    """
    Return the path stored in an environment variable.

    Raises:
        ConfigurationError: If the variable is unset or empty
    """
    value = os.getenv(env_name)
    if not value:
        raise ConfigurationError(f"{env_name} is not set")
    return value


def get_callback_port() -> int:
    """
    Get the OAuth callback port, checking the environment first.

    Falls back to DEFAULT_CALLBACK_PORT when the override is missing or invalid.
    The port must match the redirect URI registered with the identity provider.
    """
    env_value = os.getenv(OAUTH_PORT_ENV)
    if env_value:
        try:
            port = int(env_value)
            if 0 < port < 65536:
                return port
        except ValueError:
            pass
        lib_logger.warning(
            f"Invalid {OAUTH_PORT_ENV} value: {env_value}, using default {DEFAULT_CALLBACK_PORT}"
        )
    return DEFAULT_CALLBACK_PORT


def get_redirect_uri(port: int) -> str:
    return f"http://localhost:{port}{CALLBACK_PATH}"


def get_authorization_timeout() -> float:
    """Seconds to wait for the browser redirect before giving up."""
    env_value = os.getenv(AUTH_TIMEOUT_ENV)
    if env_value:
        try:
            timeout = float(env_value)
            if timeout > 0:
                return timeout
        except ValueError:
            pass
        lib_logger.warning(
            f"Invalid {AUTH_TIMEOUT_ENV} value: {env_value}, using default {DEFAULT_AUTHORIZATION_TIMEOUT:.0f}s"
        )
    return DEFAULT_AUTHORIZATION_TIMEOUT
