# src/sheets_mcp/sheets/__init__.py

from .client import Color, SheetsClient

__all__ = ["Color", "SheetsClient"]
