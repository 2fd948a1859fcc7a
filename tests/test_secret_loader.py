"""
Client secret loading tests.
"""

import json

import pytest

from sheets_mcp.auth.secret_loader import SecretLoader
from sheets_mcp.error_handler import ConfigurationError


def _write(tmp_path, content):
    path = tmp_path / "secret.json"
    path.write_text(content if isinstance(content, str) else json.dumps(content))
    return path


class TestSecretLoader:
    def test_installed_block_is_returned_unchanged(self, secret_file):
        secret = SecretLoader(secret_file).load()

        assert secret.client_id == "test-client-id.apps.googleusercontent.com"
        assert secret.client_secret == "test-client-secret"
        assert secret.redirect_uris == ("http://localhost",)

    def test_web_block_is_accepted(self, tmp_path):
        path = _write(tmp_path, {"web": {"client_id": "web-id", "client_secret": "web-secret"}})

        secret = SecretLoader(path).load()

        assert secret.client_id == "web-id"
        assert secret.client_secret == "web-secret"
        assert secret.redirect_uris == ()

    def test_path_is_read_from_environment_at_load_time(self, monkeypatch, secret_file):
        loader = SecretLoader()
        monkeypatch.setenv("CLIENT_SECRET_PATH", str(secret_file))

        assert loader.load().client_secret == "test-client-secret"

    def test_unset_path_fails(self):
        with pytest.raises(ConfigurationError, match="CLIENT_SECRET_PATH is not set"):
            SecretLoader().load()

    def test_missing_file_fails(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            SecretLoader(tmp_path / "nope.json").load()

    def test_invalid_json_fails(self, tmp_path):
        path = _write(tmp_path, "{not json")

        with pytest.raises(ConfigurationError, match="not valid JSON"):
            SecretLoader(path).load()

    @pytest.mark.parametrize(
        "content",
        [
            {"other": {"client_id": "a", "client_secret": "b"}},
            {"installed": "not-an-object"},
            ["installed"],
        ],
    )
    def test_neither_installed_nor_web_fails(self, tmp_path, content):
        path = _write(tmp_path, content)

        with pytest.raises(ConfigurationError, match="invalid format"):
            SecretLoader(path).load()

    def test_missing_client_secret_fails(self, tmp_path):
        path = _write(tmp_path, {"installed": {"client_id": "only-id"}})

        with pytest.raises(ConfigurationError, match="missing client_id or client_secret"):
            SecretLoader(path).load()

    def test_non_utf8_content_fails(self, tmp_path):
        path = tmp_path / "secret.json"
        path.write_bytes(b'{"installed": {"client_id": "\xff\xfe"}}')

        with pytest.raises(ConfigurationError, match="not valid JSON"):
            SecretLoader(path).load()
