"""
Pytest configuration and fixtures for the test suite.
"""
import asyncio
import io
import json
import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest
from rich.console import Console

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from sheets_mcp.auth.credential_manager import CredentialManager
from sheets_mcp.auth.models import Grant, now_ms
from sheets_mcp.auth.secret_loader import SecretLoader
from sheets_mcp.auth.token_store import TokenStore
from sheets_mcp.config import (
    AUTH_TIMEOUT_ENV,
    CLIENT_SECRET_PATH_ENV,
    OAUTH_PORT_ENV,
    TOKEN_PATH_ENV,
)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test"
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's real configuration out of every test."""
    for var in (CLIENT_SECRET_PATH_ENV, TOKEN_PATH_ENV, OAUTH_PORT_ENV, AUTH_TIMEOUT_ENV):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def client_secret_data():
    """Sample client secret file contents for an installed application."""
    return {
        "installed": {
            "client_id": "test-client-id.apps.googleusercontent.com",
            "client_secret": "test-client-secret",
            "redirect_uris": ["http://localhost"],
        }
    }


@pytest.fixture
def secret_file(tmp_path, client_secret_data):
    """Write a valid client secret file and return its path."""
    path = tmp_path / "client_secret.json"
    path.write_text(json.dumps(client_secret_data), encoding="utf-8")
    return path


@pytest.fixture
def token_path(tmp_path):
    """Token file location inside a directory that does not exist yet."""
    return tmp_path / "credentials" / "token.json"


def make_grant(
    access_token="access-1",
    refresh_token="refresh-1",
    expires_in_seconds=3600,
    **kwargs,
):
    """Build a Grant expiring relative to now (negative = already expired, None = no expiry)."""
    expiry = None
    if expires_in_seconds is not None:
        expiry = now_ms() + expires_in_seconds * 1000
    return Grant(
        access_token=access_token,
        refresh_token=refresh_token,
        expiry_date=expiry,
        **kwargs,
    )


@pytest.fixture
def grant_factory():
    return make_grant


class FakeListener:
    """
    Stand-in for RedirectListener that "receives" a fixed code.

    Records every run so tests can count fresh-authorization attempts.
    """

    def __init__(self, code="auth-code", error=None, delay=0.0):
        self.code = code
        self.error = error
        self.delay = delay
        self.runs = 0
        self.ports = []

    def factory(self, port):
        self.ports.append(port)
        return self

    async def run(self, exchange, on_listening=None):
        self.runs += 1
        if on_listening is not None:
            on_listening()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return await exchange(self.code)


@pytest.fixture
def fake_listener():
    return FakeListener()


@pytest.fixture
def fake_endpoint():
    """Token endpoint double: exchange and refresh are AsyncMocks."""
    endpoint = MagicMock()
    endpoint.authorization_url.return_value = (
        "https://accounts.google.com/o/oauth2/v2/auth?client_id=test&scope=x"
    )
    endpoint.exchange_code = AsyncMock(
        return_value=make_grant(access_token="fresh-access", refresh_token="fresh-refresh")
    )
    endpoint.refresh = AsyncMock(
        return_value=make_grant(access_token="refreshed-access", refresh_token="refresh-1")
    )
    return endpoint


@pytest.fixture
def console_output():
    return io.StringIO()


@pytest.fixture
def manager(secret_file, token_path, fake_endpoint, fake_listener, console_output):
    """CredentialManager wired to temp files and in-memory collaborators."""
    return CredentialManager(
        secret_loader=SecretLoader(secret_file),
        token_store=TokenStore(token_path),
        endpoint_factory=lambda secret, redirect_uri: fake_endpoint,
        listener_factory=fake_listener.factory,
        open_browser=MagicMock(),
        port=8080,
        console=Console(file=console_output, width=200),
    )
