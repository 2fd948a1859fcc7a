# src/sheets_mcp/utils/resilient_io.py
"""
Atomic file writes for credential files.

A reader never sees a half-written file: content goes to a temp file in the
same directory, gets its permissions, and is then moved over the target.
"""

import json
import os
import shutil
import tempfile
import logging
from pathlib import Path
from typing import Any, Dict, Union


def write_json_atomic(
    path: Union[str, Path],
    data: Dict[str, Any],
    logger: logging.Logger,
    indent: int = 2,
    secure_permissions: bool = False,
) -> None:
    """
    Write JSON data to a file atomically, creating parent directories as needed.

    Args:
        path: File path to write to
        data: JSON-serializable data
        logger: Logger for diagnostics
        indent: JSON indentation level (default: 2)
        secure_permissions: Set file permissions to 0o600 (default: False)

    Raises:
        OSError: If the directory cannot be created or the file cannot be written
        TypeError: If data is not JSON-serializable
    """
    path = Path(path)
    content = json.dumps(data, indent=indent)

    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_fd = None
    tmp_path = None
    try:
        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=path.parent, prefix=".tmp_", suffix=".json", text=True
        )
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
            tmp_fd = None
            f.write(content)

        # Before the move, so the target is never briefly world-readable
        if secure_permissions:
            try:
                os.chmod(tmp_path, 0o600)
            except (OSError, AttributeError):
                # Windows may not support chmod
                logger.debug(f"Could not restrict permissions on {path.name}")

        shutil.move(tmp_path, path)
        tmp_path = None
    finally:
        if tmp_fd is not None:
            try:
                os.close(tmp_fd)
            except OSError:
                pass
        if tmp_path and os.path.exists(tmp_path):
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
