# src/sheets_mcp/utils/__init__.py

from .headless_detection import is_headless_environment
from .paths import get_default_root, get_logs_dir, get_data_file
from .resilient_io import write_json_atomic

__all__ = [
    "is_headless_environment",
    "get_default_root",
    "get_logs_dir",
    "get_data_file",
    "write_json_atomic",
]
