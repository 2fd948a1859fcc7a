# src/sheets_mcp/auth/secret_loader.py

import json
import logging
from pathlib import Path
from typing import Optional, Union

from ..config import CLIENT_SECRET_PATH_ENV, get_env_path
from ..error_handler import ConfigurationError
from .models import ClientSecret

lib_logger = logging.getLogger("sheets_mcp")


class SecretLoader:
    """
    Loads the OAuth client id/secret pair from a Google client secret file.

    The file is the JSON downloaded from the cloud console, with the credential
    block under either an "installed" or a "web" key.

    Args:
        path: Explicit file path. When omitted, CLIENT_SECRET_PATH is read at
            load time.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self._path = Path(path) if path else None

    def _resolve_path(self) -> Path:
        if self._path is not None:
            return self._path
        return Path(get_env_path(CLIENT_SECRET_PATH_ENV))

    def load(self) -> ClientSecret:
        """
        Read and validate the client secret file.

        Raises:
            ConfigurationError: If the path is unset, the file is missing or
                unreadable, the JSON is invalid, or no usable credential block exists
        """
        path = self._resolve_path()
        if not path.is_file():
            raise ConfigurationError(f"Client secret file not found: {path}")

        try:
            parsed = json.loads(path.read_text(encoding="utf-8"))
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError
            raise ConfigurationError(
                f"Client secret file is not valid JSON: {path} ({e})"
            ) from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read client secret file {path}: {e}") from e

        block = None
        if isinstance(parsed, dict):
            block = parsed.get("installed") or parsed.get("web")
        if not isinstance(block, dict):
            raise ConfigurationError(
                "Client secret file has an invalid format: expected an 'installed' or 'web' block"
            )

        client_id = block.get("client_id")
        client_secret = block.get("client_secret")
        if not client_id or not client_secret:
            raise ConfigurationError(
                "Client secret file is missing client_id or client_secret"
            )

        redirect_uris = block.get("redirect_uris") or []
        lib_logger.debug(f"Loaded OAuth client secret from '{path.name}'")
        return ClientSecret(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uris=tuple(redirect_uris),
        )
