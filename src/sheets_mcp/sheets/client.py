# src/sheets_mcp/sheets/client.py

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field

from ..auth.credential_manager import CredentialManager
from ..error_handler import SheetsApiError

lib_logger = logging.getLogger("sheets_mcp")

_SHEETS_BASE = "https://sheets.googleapis.com/v4/spreadsheets"


class Color(BaseModel):
    """RGB color with each component in [0, 1] (red = {red: 1, green: 0, blue: 0})."""

    red: Optional[float] = Field(default=None, ge=0, le=1)
    green: Optional[float] = Field(default=None, ge=0, le=1)
    blue: Optional[float] = Field(default=None, ge=0, le=1)

    def to_api(self) -> Dict[str, float]:
        return self.model_dump(exclude_none=True)


def _grid_range(
    sheet_id: int,
    start_row_index: int,
    end_row_index: int,
    start_column_index: int,
    end_column_index: int,
) -> Dict[str, int]:
    return {
        "sheetId": sheet_id,
        "startRowIndex": start_row_index,
        "endRowIndex": end_row_index,
        "startColumnIndex": start_column_index,
        "endColumnIndex": end_column_index,
    }


def _find_sheet(data: Dict[str, Any], sheet_id: int) -> Dict[str, Any]:
    for sheet in data.get("sheets", []):
        if sheet.get("properties", {}).get("sheetId") == sheet_id:
            return sheet
    return {}


class SheetsClient:
    """
    HTTP client for the Google Sheets API v4.

    Every call asks the credential manager for the authorized client, so the
    bearer token is always the current one.

    Args:
        manager: Source of the AuthorizedClient
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (used by tests)
    """

    def __init__(
        self,
        manager: CredentialManager,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._manager = manager
        self._timeout = timeout
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        client = await self._manager.get_client()
        headers = await client.get_auth_header()

        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as http:
            resp = await http.request(
                method, f"{_SHEETS_BASE}/{path}", params=params, json=json, headers=headers
            )

        if resp.is_error:
            message = resp.text
            try:
                message = resp.json().get("error", {}).get("message") or message
            except (ValueError, AttributeError):
                pass
            lib_logger.debug(f"Sheets API {method} {path} failed: HTTP {resp.status_code}")
            raise SheetsApiError(
                f"Sheets API error (HTTP {resp.status_code}): {message}",
                status_code=resp.status_code,
            )
        return resp.json() if resp.content else {}

    async def _batch_update(
        self, spreadsheet_id: str, requests: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"{quote(spreadsheet_id, safe='')}:batchUpdate",
            json={"requests": requests},
        )

    @staticmethod
    def _values_path(spreadsheet_id: str, range_: str, suffix: str = "") -> str:
        return f"{quote(spreadsheet_id, safe='')}/values/{quote(range_, safe='')}{suffix}"

    # -- metadata and values ------------------------------------------------

    async def get_sheet_metadata(self, spreadsheet_id: str) -> Dict[str, Any]:
        """Spreadsheet title and the id/title of every sheet tab."""
        data = await self._request(
            "GET",
            quote(spreadsheet_id, safe=""),
            params={
                "fields": "properties.title,sheets.properties.title,sheets.properties.sheetId"
            },
        )
        return {
            "title": data.get("properties", {}).get("title"),
            "sheets": [
                {
                    "sheetId": sheet.get("properties", {}).get("sheetId"),
                    "title": sheet.get("properties", {}).get("title"),
                }
                for sheet in data.get("sheets", [])
            ],
        }

    async def read_values(self, spreadsheet_id: str, range_: str) -> Dict[str, Any]:
        """Read a range as formatted values (formula results, not formulas)."""
        data = await self._request(
            "GET",
            self._values_path(spreadsheet_id, range_),
            params={"valueRenderOption": "FORMATTED_VALUE"},
        )
        return {"range": data.get("range"), "values": data.get("values", [])}

    async def append_values(
        self, spreadsheet_id: str, range_: str, values: List[List[str]]
    ) -> Dict[str, Any]:
        data = await self._request(
            "POST",
            self._values_path(spreadsheet_id, range_, ":append"),
            params={"valueInputOption": "USER_ENTERED"},
            json={"values": values},
        )
        updates = data.get("updates", {})
        return {
            "updatedRange": updates.get("updatedRange"),
            "updatedRows": updates.get("updatedRows"),
            "updatedColumns": updates.get("updatedColumns"),
            "updatedCells": updates.get("updatedCells"),
        }

    async def update_values(
        self, spreadsheet_id: str, range_: str, values: List[List[str]]
    ) -> Dict[str, Any]:
        data = await self._request(
            "PUT",
            self._values_path(spreadsheet_id, range_),
            params={"valueInputOption": "USER_ENTERED"},
            json={"values": values},
        )
        return {
            "updatedRange": data.get("updatedRange"),
            "updatedRows": data.get("updatedRows"),
            "updatedColumns": data.get("updatedColumns"),
            "updatedCells": data.get("updatedCells"),
        }

    # -- sheet tabs ---------------------------------------------------------

    async def add_sheet(self, spreadsheet_id: str, title: str) -> Dict[str, Any]:
        data = await self._batch_update(
            spreadsheet_id, [{"addSheet": {"properties": {"title": title}}}]
        )
        replies = data.get("replies") or [{}]
        properties = replies[0].get("addSheet", {}).get("properties", {})
        return {"sheetId": properties.get("sheetId"), "title": properties.get("title", title)}

    async def delete_sheet(self, spreadsheet_id: str, sheet_id: int) -> Dict[str, Any]:
        await self._batch_update(spreadsheet_id, [{"deleteSheet": {"sheetId": sheet_id}}])
        return {"success": True, "deletedSheetId": sheet_id}

    async def rename_sheet(
        self, spreadsheet_id: str, sheet_id: int, new_title: str
    ) -> Dict[str, Any]:
        await self._batch_update(
            spreadsheet_id,
            [
                {
                    "updateSheetProperties": {
                        "properties": {"sheetId": sheet_id, "title": new_title},
                        "fields": "title",
                    }
                }
            ],
        )
        return {"success": True, "sheetId": sheet_id, "title": new_title}

    # -- data validation ----------------------------------------------------

    async def _set_validation(
        self, spreadsheet_id: str, grid: Dict[str, int], rule: Optional[Dict[str, Any]]
    ) -> None:
        request: Dict[str, Any] = {"range": grid}
        # No rule clears the validation on the range
        if rule is not None:
            request["rule"] = rule
        await self._batch_update(spreadsheet_id, [{"setDataValidation": request}])

    async def set_dropdown(
        self,
        spreadsheet_id: str,
        sheet_id: int,
        start_row_index: int,
        end_row_index: int,
        start_column_index: int,
        end_column_index: int,
        values: List[str],
    ) -> Dict[str, Any]:
        grid = _grid_range(
            sheet_id, start_row_index, end_row_index, start_column_index, end_column_index
        )
        await self._set_validation(
            spreadsheet_id,
            grid,
            {
                "condition": {
                    "type": "ONE_OF_LIST",
                    "values": [{"userEnteredValue": v} for v in values],
                },
                "showCustomUi": True,
                "strict": True,
            },
        )
        return {"success": True, "range": grid, "values": values}

    async def set_dropdown_range(
        self,
        spreadsheet_id: str,
        sheet_id: int,
        start_row_index: int,
        end_row_index: int,
        start_column_index: int,
        end_column_index: int,
        source_range: str,
    ) -> Dict[str, Any]:
        grid = _grid_range(
            sheet_id, start_row_index, end_row_index, start_column_index, end_column_index
        )
        await self._set_validation(
            spreadsheet_id,
            grid,
            {
                "condition": {
                    "type": "ONE_OF_RANGE",
                    "values": [{"userEnteredValue": f"={source_range}"}],
                },
                "showCustomUi": True,
                "strict": True,
            },
        )
        return {"success": True, "range": grid, "sourceRange": source_range}

    async def set_checkbox(
        self,
        spreadsheet_id: str,
        sheet_id: int,
        start_row_index: int,
        end_row_index: int,
        start_column_index: int,
        end_column_index: int,
    ) -> Dict[str, Any]:
        grid = _grid_range(
            sheet_id, start_row_index, end_row_index, start_column_index, end_column_index
        )
        await self._set_validation(
            spreadsheet_id,
            grid,
            {"condition": {"type": "BOOLEAN"}, "showCustomUi": True},
        )
        return {"success": True, "range": grid}

    async def get_validations(self, spreadsheet_id: str, sheet_id: int) -> Dict[str, Any]:
        """List every validated cell of a sheet with its rule type and values."""
        data = await self._request(
            "GET",
            quote(spreadsheet_id, safe=""),
            params={
                "fields": "sheets(properties.sheetId,data.rowData.values.dataValidation)",
                "includeGridData": "true",
            },
        )
        sheet = _find_sheet(data, sheet_id)
        grid_data = (sheet.get("data") or [{}])[0]

        validations = []
        for row_index, row in enumerate(grid_data.get("rowData", [])):
            for column_index, cell in enumerate(row.get("values", [])):
                validation = cell.get("dataValidation")
                if not validation:
                    continue
                condition = validation.get("condition", {})
                validations.append(
                    {
                        "row": row_index,
                        "column": column_index,
                        "type": condition.get("type"),
                        "values": [
                            v.get("userEnteredValue") for v in condition.get("values", [])
                        ],
                    }
                )
        return {"sheetId": sheet_id, "validations": validations}

    async def delete_validation(
        self,
        spreadsheet_id: str,
        sheet_id: int,
        start_row_index: int,
        end_row_index: int,
        start_column_index: int,
        end_column_index: int,
    ) -> Dict[str, Any]:
        grid = _grid_range(
            sheet_id, start_row_index, end_row_index, start_column_index, end_column_index
        )
        await self._set_validation(spreadsheet_id, grid, None)
        return {"success": True, "range": grid}

    # -- conditional formatting ---------------------------------------------

    async def add_conditional_format(
        self,
        spreadsheet_id: str,
        sheet_id: int,
        start_row_index: int,
        end_row_index: int,
        start_column_index: int,
        end_column_index: int,
        formula: str,
        background_color: Optional[Color] = None,
        text_color: Optional[Color] = None,
    ) -> Dict[str, Any]:
        """Add a custom-formula rule at index 0 (highest priority)."""
        grid = _grid_range(
            sheet_id, start_row_index, end_row_index, start_column_index, end_column_index
        )
        cell_format: Dict[str, Any] = {}
        if background_color is not None:
            cell_format["backgroundColor"] = background_color.to_api()
        if text_color is not None:
            cell_format["textFormat"] = {"foregroundColor": text_color.to_api()}

        await self._batch_update(
            spreadsheet_id,
            [
                {
                    "addConditionalFormatRule": {
                        "rule": {
                            "ranges": [grid],
                            "booleanRule": {
                                "condition": {
                                    "type": "CUSTOM_FORMULA",
                                    "values": [{"userEnteredValue": formula}],
                                },
                                "format": cell_format,
                            },
                        },
                        "index": 0,
                    }
                }
            ],
        )
        return {
            "success": True,
            "range": grid,
            "formula": formula,
            "backgroundColor": background_color.to_api() if background_color else None,
            "textColor": text_color.to_api() if text_color else None,
        }

    async def get_conditional_formats(
        self, spreadsheet_id: str, sheet_id: int
    ) -> Dict[str, Any]:
        data = await self._request(
            "GET",
            quote(spreadsheet_id, safe=""),
            params={"fields": "sheets(properties.sheetId,conditionalFormats)"},
        )
        sheet = _find_sheet(data, sheet_id)

        rules = []
        for index, rule in enumerate(sheet.get("conditionalFormats", [])):
            boolean_rule = rule.get("booleanRule", {})
            condition_values = boolean_rule.get("condition", {}).get("values") or [{}]
            fmt = boolean_rule.get("format", {})
            rules.append(
                {
                    "index": index,
                    "ranges": rule.get("ranges"),
                    "formula": condition_values[0].get("userEnteredValue"),
                    "backgroundColor": fmt.get("backgroundColor"),
                    "textColor": fmt.get("textFormat", {}).get("foregroundColor"),
                }
            )
        return {"sheetId": sheet_id, "rules": rules}

    async def delete_conditional_format(
        self, spreadsheet_id: str, sheet_id: int, index: int
    ) -> Dict[str, Any]:
        await self._batch_update(
            spreadsheet_id,
            [{"deleteConditionalFormatRule": {"sheetId": sheet_id, "index": index}}],
        )
        return {"success": True, "sheetId": sheet_id, "deletedIndex": index}
