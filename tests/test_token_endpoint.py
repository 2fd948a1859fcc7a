"""
OAuth token endpoint client tests, run against httpx.MockTransport.
"""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from sheets_mcp.auth.models import ClientSecret, Grant
from sheets_mcp.auth.token_endpoint import TokenEndpoint
from sheets_mcp.error_handler import RemoteExchangeError

REDIRECT_URI = "http://localhost:8080/callback"


@pytest.fixture
def secret():
    return ClientSecret(client_id="cid", client_secret="csecret")


def _endpoint(secret, handler):
    return TokenEndpoint(secret, REDIRECT_URI, transport=httpx.MockTransport(handler))


def _form(request):
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


class TestAuthorizationUrl:
    def test_requests_offline_access_and_consent(self, secret):
        url = TokenEndpoint(secret, REDIRECT_URI).authorization_url()
        query = parse_qs(urlparse(url).query)

        assert url.startswith(TokenEndpoint.AUTH_URI)
        assert query["client_id"] == ["cid"]
        assert query["redirect_uri"] == [REDIRECT_URI]
        assert query["response_type"] == ["code"]
        assert query["scope"] == ["https://www.googleapis.com/auth/spreadsheets"]
        assert query["access_type"] == ["offline"]
        assert query["prompt"] == ["consent"]


class TestExchangeCode:
    @pytest.mark.asyncio
    async def test_code_is_exchanged_for_grant(self, secret):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["form"] = _form(request)
            return httpx.Response(
                200,
                json={
                    "access_token": "new-access",
                    "refresh_token": "new-refresh",
                    "expires_in": 3599,
                    "token_type": "Bearer",
                },
            )

        grant = await _endpoint(secret, handler).exchange_code("ABC")

        assert seen["url"] == TokenEndpoint.TOKEN_URI
        assert seen["form"] == {
            "code": "ABC",
            "client_id": "cid",
            "client_secret": "csecret",
            "redirect_uri": REDIRECT_URI,
            "grant_type": "authorization_code",
        }
        assert grant.access_token == "new-access"
        assert grant.refresh_token == "new-refresh"
        assert grant.expiry_date is not None
        assert not grant.is_expired()

    @pytest.mark.asyncio
    async def test_rejected_code_carries_oauth_error(self, secret):
        def handler(request):
            return httpx.Response(
                400,
                json={"error": "invalid_grant", "error_description": "Bad Request"},
            )

        with pytest.raises(RemoteExchangeError) as exc_info:
            await _endpoint(secret, handler).exchange_code("ABC")

        assert exc_info.value.status_code == 400
        assert exc_info.value.error_code == "invalid_grant"

    @pytest.mark.asyncio
    async def test_non_json_error_body(self, secret):
        def handler(request):
            return httpx.Response(502, text="upstream down")

        with pytest.raises(RemoteExchangeError, match="upstream down"):
            await _endpoint(secret, handler).exchange_code("ABC")

    @pytest.mark.asyncio
    async def test_network_failure(self, secret):
        def handler(request):
            raise httpx.ConnectError("name resolution failed", request=request)

        with pytest.raises(RemoteExchangeError, match="Failed to connect"):
            await _endpoint(secret, handler).exchange_code("ABC")

    @pytest.mark.asyncio
    async def test_response_without_access_token(self, secret):
        def handler(request):
            return httpx.Response(200, json={"token_type": "Bearer"})

        with pytest.raises(RemoteExchangeError, match="no access_token"):
            await _endpoint(secret, handler).exchange_code("ABC")


class TestRefresh:
    @pytest.mark.asyncio
    async def test_refresh_keeps_refresh_token(self, secret):
        seen = {}

        def handler(request):
            seen["form"] = _form(request)
            return httpx.Response(200, json={"access_token": "renewed", "expires_in": 3600})

        old = Grant(access_token="stale", refresh_token="keep-me", expiry_date=1)
        grant = await _endpoint(secret, handler).refresh(old)

        assert seen["form"]["grant_type"] == "refresh_token"
        assert seen["form"]["refresh_token"] == "keep-me"
        assert grant.access_token == "renewed"
        assert grant.refresh_token == "keep-me"

    @pytest.mark.asyncio
    async def test_refresh_without_refresh_token(self, secret):
        def handler(request):
            raise AssertionError("no request expected")

        with pytest.raises(RemoteExchangeError):
            await _endpoint(secret, handler).refresh(Grant(access_token="a"))

    @pytest.mark.asyncio
    async def test_non_numeric_expires_in(self, secret):
        def handler(request):
            return httpx.Response(200, json={"access_token": "renewed", "expires_in": "soon"})

        old = Grant(access_token="stale", refresh_token="keep-me", expiry_date=1)

        with pytest.raises(RemoteExchangeError, match="unusable token response"):
            await _endpoint(secret, handler).refresh(old)
