# src/sheets_mcp/server.py

import json
import logging
from typing import Any, Awaitable, Dict, List, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from .auth.credential_manager import CredentialManager
from .error_handler import format_error
from .sheets.client import Color, SheetsClient

lib_logger = logging.getLogger("sheets_mcp")

SERVER_NAME = "google-sheets-mcp"


async def handle_tool_call(call: Awaitable[Dict[str, Any]]) -> str:
    """
    Await a tool's work and render its result as pretty-printed JSON.

    Any failure is reported to the MCP client as a tool error carrying the
    friendly text from format_error; the server itself keeps running.
    """
    try:
        result = await call
    except Exception as e:
        lib_logger.error(f"Tool call failed: {e}")
        raise ToolError(format_error(e)) from e
    return json.dumps(result, indent=2, ensure_ascii=False)


def create_server(
    manager: CredentialManager, sheets: Optional[SheetsClient] = None
) -> FastMCP:
    """Build the MCP server with every spreadsheet tool bound to one credential manager."""
    sheets = sheets or SheetsClient(manager)
    mcp = FastMCP(SERVER_NAME)

    @mcp.tool()
    async def get_sheet_metadata(spreadsheet_id: str) -> str:
        """Get the spreadsheet title and the ID and title of every sheet."""
        return await handle_tool_call(sheets.get_sheet_metadata(spreadsheet_id))

    @mcp.tool()
    async def read_values(spreadsheet_id: str, range: str) -> str:
        """Read cell values from a range in A1 notation (e.g. "Sheet1!A1:C10")."""
        return await handle_tool_call(sheets.read_values(spreadsheet_id, range))

    @mcp.tool()
    async def append_values(
        spreadsheet_id: str, range: str, values: List[List[str]]
    ) -> str:
        """Append rows after the last row of data in a range."""
        return await handle_tool_call(sheets.append_values(spreadsheet_id, range, values))

    @mcp.tool()
    async def update_values(
        spreadsheet_id: str, range: str, values: List[List[str]]
    ) -> str:
        """Overwrite the cells of a range. Values are parsed as if typed by a user."""
        return await handle_tool_call(sheets.update_values(spreadsheet_id, range, values))

    @mcp.tool()
    async def add_sheet(spreadsheet_id: str, title: str) -> str:
        """Add a new sheet (tab) to the spreadsheet."""
        return await handle_tool_call(sheets.add_sheet(spreadsheet_id, title))

    @mcp.tool()
    async def delete_sheet(spreadsheet_id: str, sheet_id: int) -> str:
        """Delete a sheet (tab) by its numeric sheet ID."""
        return await handle_tool_call(sheets.delete_sheet(spreadsheet_id, sheet_id))

    @mcp.tool()
    async def rename_sheet(spreadsheet_id: str, sheet_id: int, new_title: str) -> str:
        """Rename a sheet (tab)."""
        return await handle_tool_call(
            sheets.rename_sheet(spreadsheet_id, sheet_id, new_title)
        )

    @mcp.tool()
    async def set_dropdown(
        spreadsheet_id: str,
        sheet_id: int,
        start_row_index: int,
        end_row_index: int,
        start_column_index: int,
        end_column_index: int,
        values: List[str],
    ) -> str:
        """Restrict a cell range to a dropdown of fixed values. Indices are 0-based, end exclusive."""
        return await handle_tool_call(
            sheets.set_dropdown(
                spreadsheet_id,
                sheet_id,
                start_row_index,
                end_row_index,
                start_column_index,
                end_column_index,
                values,
            )
        )

    @mcp.tool()
    async def set_dropdown_range(
        spreadsheet_id: str,
        sheet_id: int,
        start_row_index: int,
        end_row_index: int,
        start_column_index: int,
        end_column_index: int,
        source_range: str,
    ) -> str:
        """Restrict a cell range to a dropdown fed by another range (e.g. "Sheet2!A1:A10")."""
        return await handle_tool_call(
            sheets.set_dropdown_range(
                spreadsheet_id,
                sheet_id,
                start_row_index,
                end_row_index,
                start_column_index,
                end_column_index,
                source_range,
            )
        )

    @mcp.tool()
    async def set_checkbox(
        spreadsheet_id: str,
        sheet_id: int,
        start_row_index: int,
        end_row_index: int,
        start_column_index: int,
        end_column_index: int,
    ) -> str:
        """Turn a cell range into checkboxes."""
        return await handle_tool_call(
            sheets.set_checkbox(
                spreadsheet_id,
                sheet_id,
                start_row_index,
                end_row_index,
                start_column_index,
                end_column_index,
            )
        )

    @mcp.tool()
    async def get_validations(spreadsheet_id: str, sheet_id: int) -> str:
        """List the data validation rules of every validated cell in a sheet."""
        return await handle_tool_call(sheets.get_validations(spreadsheet_id, sheet_id))

    @mcp.tool()
    async def delete_validation(
        spreadsheet_id: str,
        sheet_id: int,
        start_row_index: int,
        end_row_index: int,
        start_column_index: int,
        end_column_index: int,
    ) -> str:
        """Remove data validation (dropdowns, checkboxes) from a cell range."""
        return await handle_tool_call(
            sheets.delete_validation(
                spreadsheet_id,
                sheet_id,
                start_row_index,
                end_row_index,
                start_column_index,
                end_column_index,
            )
        )

    @mcp.tool()
    async def add_conditional_format(
        spreadsheet_id: str,
        sheet_id: int,
        start_row_index: int,
        end_row_index: int,
        start_column_index: int,
        end_column_index: int,
        formula: str,
        background_color: Optional[Color] = None,
        text_color: Optional[Color] = None,
    ) -> str:
        """
        Add a custom-formula conditional format rule (e.g. formula '=$E2=TRUE').

        Colors use RGB components between 0 and 1.
        """
        return await handle_tool_call(
            sheets.add_conditional_format(
                spreadsheet_id,
                sheet_id,
                start_row_index,
                end_row_index,
                start_column_index,
                end_column_index,
                formula,
                background_color=background_color,
                text_color=text_color,
            )
        )

    @mcp.tool()
    async def get_conditional_formats(spreadsheet_id: str, sheet_id: int) -> str:
        """List the conditional format rules of a sheet with their indices."""
        return await handle_tool_call(
            sheets.get_conditional_formats(spreadsheet_id, sheet_id)
        )

    @mcp.tool()
    async def delete_conditional_format(
        spreadsheet_id: str, sheet_id: int, index: int
    ) -> str:
        """Delete a conditional format rule by its index (see get_conditional_formats)."""
        return await handle_tool_call(
            sheets.delete_conditional_format(spreadsheet_id, sheet_id, index)
        )

    return mcp
