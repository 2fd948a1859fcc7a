"""
MCP server surface tests: tool registration and error reporting.
"""

import json
from unittest.mock import MagicMock

import pytest
from mcp.server.fastmcp.exceptions import ToolError

from sheets_mcp.error_handler import (
    ConfigurationError,
    RemoteExchangeError,
    SheetsApiError,
    format_error,
)
from sheets_mcp.server import create_server, handle_tool_call

EXPECTED_TOOLS = {
    "get_sheet_metadata",
    "read_values",
    "append_values",
    "update_values",
    "add_sheet",
    "delete_sheet",
    "rename_sheet",
    "set_dropdown",
    "set_dropdown_range",
    "set_checkbox",
    "get_validations",
    "delete_validation",
    "add_conditional_format",
    "get_conditional_formats",
    "delete_conditional_format",
}


class TestFormatError:
    @pytest.mark.parametrize(
        "error, expected",
        [
            (SheetsApiError("Requested entity was not found."), "Spreadsheet not found"),
            (SheetsApiError("Sheets API error (HTTP 403): denied"), "Permission denied"),
            (RemoteExchangeError("Token endpoint returned HTTP 400: invalid_grant"), "Authentication error"),
            (RemoteExchangeError("Failed to connect to token endpoint"), "Network error"),
        ],
    )
    def test_known_patterns(self, error, expected):
        assert format_error(error).startswith(expected)

    def test_unknown_message_passes_through(self):
        assert format_error(ConfigurationError("TOKEN_PATH is not set")) == "TOKEN_PATH is not set"

    def test_empty_message_uses_type_name(self):
        assert format_error(ValueError()) == "ValueError"


class TestHandleToolCall:
    @pytest.mark.asyncio
    async def test_result_is_pretty_json(self):
        async def work():
            return {"title": "Résumé", "sheets": []}

        text = await handle_tool_call(work())

        assert json.loads(text) == {"title": "Résumé", "sheets": []}
        assert "Résumé" in text
        assert "\n  " in text

    @pytest.mark.asyncio
    async def test_failure_becomes_tool_error(self):
        async def work():
            raise SheetsApiError("Sheets API error (HTTP 403): The caller does not have permission")

        with pytest.raises(ToolError, match="Permission denied"):
            await handle_tool_call(work())


class TestCreateServer:
    @pytest.mark.asyncio
    async def test_all_tools_are_registered(self):
        server = create_server(MagicMock())

        tools = await server.list_tools()

        assert {tool.name for tool in tools} == EXPECTED_TOOLS
        assert all(tool.description for tool in tools)
