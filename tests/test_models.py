"""
Grant model tests.
"""

import pytest

from sheets_mcp.auth.models import Grant


class TestGrantExpiry:
    def test_future_expiry_is_valid(self):
        grant = Grant(access_token="a", expiry_date=2_000)

        assert grant.is_expired(now=1_000) is False

    def test_expiry_boundary_counts_as_expired(self):
        grant = Grant(access_token="a", expiry_date=1_000)

        assert grant.is_expired(now=1_000) is True

    def test_buffer_expires_early(self):
        grant = Grant(access_token="a", expiry_date=10_000)

        assert grant.is_expired(now=5_000, buffer_ms=6_000) is True
        assert grant.is_expired(now=5_000, buffer_ms=1_000) is False

    def test_no_expiry_never_expires(self):
        assert Grant(access_token="a").is_expired(now=10**15) is False


class TestGrantFromTokenResponse:
    def test_expires_in_becomes_absolute_expiry(self):
        grant = Grant.from_token_response(
            {"access_token": "a", "refresh_token": "r", "expires_in": 3599},
            issued_at=1_000_000,
        )

        assert grant.expiry_date == 1_000_000 + 3_599_000
        assert grant.refresh_token == "r"

    def test_previous_refresh_token_is_carried_over(self):
        grant = Grant.from_token_response(
            {"access_token": "b", "expires_in": 60}, previous_refresh_token="old-refresh"
        )

        assert grant.refresh_token == "old-refresh"

    def test_missing_access_token_is_rejected(self):
        with pytest.raises(ValueError):
            Grant.from_token_response({"expires_in": 60})


class TestGrantFromDict:
    def test_numeric_string_expiry_is_accepted(self):
        assert Grant.from_dict({"access_token": "a", "expiry_date": "1700"}).expiry_date == 1700

    def test_missing_access_token_is_rejected(self):
        with pytest.raises(ValueError):
            Grant.from_dict({"refresh_token": "r"})

    def test_secrets_are_hidden_from_repr(self):
        text = repr(Grant(access_token="secret-access", refresh_token="secret-refresh"))

        assert "secret-access" not in text
        assert "secret-refresh" not in text
