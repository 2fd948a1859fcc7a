# src/sheets_mcp/utils/paths.py
"""
Path helpers for files that live next to the server rather than in the package.

- PyInstaller EXE -> the directory containing the executable
- Script/Library  -> the current working directory
"""

import sys
from pathlib import Path
from typing import Optional, Union


def get_default_root() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).parent
    return Path.cwd()


def get_logs_dir(root: Optional[Union[Path, str]] = None) -> Path:
    """
    Get the logs directory, creating it if needed.

    Args:
        root: Optional root directory. If None, uses get_default_root().
    """
    base = Path(root) if root else get_default_root()
    logs_dir = base / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


def get_data_file(filename: str, root: Optional[Union[Path, str]] = None) -> Path:
    """Path to a file in the root directory (e.g. ".env"); the file is not created."""
    base = Path(root) if root else get_default_root()
    return base / filename
