# src/sheets_mcp/auth/token_store.py

import json
import os
import logging
from pathlib import Path
from typing import Optional, Union

from ..config import TOKEN_PATH_ENV, get_env_path
from ..error_handler import ConfigurationError
from ..utils.resilient_io import write_json_atomic
from .models import Grant

lib_logger = logging.getLogger("sheets_mcp")


class TokenStore:
    """
    File-backed persistence for the current Grant.

    A missing path, a missing file and a corrupt file all read as "no grant";
    each of them routes the caller to a fresh authorization.

    Args:
        path: Explicit token file path. When omitted, TOKEN_PATH is read at
            each call.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self._path = Path(path) if path else None

    def _optional_path(self) -> Optional[Path]:
        if self._path is not None:
            return self._path
        value = os.getenv(TOKEN_PATH_ENV)
        return Path(value) if value else None

    def read(self) -> Optional[Grant]:
        path = self._optional_path()
        if path is None or not path.exists():
            return None

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return Grant.from_dict(data)
        except (OSError, ValueError, TypeError) as e:
            # json.JSONDecodeError is a ValueError
            lib_logger.warning(f"Ignoring unreadable token file '{path}': {e}")
            return None

    def write(self, grant: Grant) -> None:
        """
        Persist a grant, replacing any previous one.

        Raises:
            ConfigurationError: If no token path is configured or the file
                cannot be written
        """
        path = self._path or Path(get_env_path(TOKEN_PATH_ENV))
        try:
            write_json_atomic(path, grant.to_dict(), lib_logger, secure_permissions=True)
        except OSError as e:
            raise ConfigurationError(f"Cannot write token file {path}: {e}") from e
        lib_logger.info(f"Token saved to {path}")

    def clear(self) -> bool:
        """Delete the persisted grant. Returns True if a file was removed."""
        path = self._optional_path()
        if path is None or not path.exists():
            return False
        path.unlink()
        lib_logger.info(f"Deleted stored token at {path}")
        return True
