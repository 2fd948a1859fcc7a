# src/sheets_mcp/error_handler.py

import re
import logging
from typing import Optional, List, Tuple

lib_logger = logging.getLogger("sheets_mcp")


class SheetsAuthError(Exception):
    """Base class for every credential lifecycle failure."""

    pass


class ConfigurationError(SheetsAuthError):
    """
    Raised when a required path is unset or the client secret file is unusable.

    Always fatal: the caller's operation is aborted and nothing is retried.
    """

    pass


class ListenerError(SheetsAuthError):
    """
    Raised when a fresh authorization attempt fails.

    Covers port bind failures, a denied consent redirect, and a failed
    code-for-token exchange. Fatal for the attempt; there is no further fallback.
    """

    pass


class AuthorizationTimeoutError(ListenerError):
    """Raised when no authorization redirect arrives within the bounded wait."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"No authorization redirect received within {timeout:.0f}s. "
            "Please try again and complete the consent flow in time."
        )


class RefreshError(SheetsAuthError):
    """
    Raised when renewing an expired grant with its refresh token fails.

    Recoverable: the credential manager absorbs it exactly once by falling
    back to a fresh authorization.
    """

    pass


class RemoteExchangeError(SheetsAuthError):
    """
    Raised when the token endpoint rejects a code or refresh token, or cannot be reached.

    Attributes:
        status_code: HTTP status returned by the endpoint (None for network errors)
        error_code: OAuth error code from the response body (e.g. "invalid_grant")
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class SheetsApiError(Exception):
    """Raised when a call to the Sheets API returns an error response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


# Ordered: the first matching pattern wins.
ERROR_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (
        re.compile(r"not found", re.IGNORECASE),
        "Spreadsheet not found. Check the spreadsheet ID.",
    ),
    (
        re.compile(r"permission|403", re.IGNORECASE),
        "Permission denied. Check that your account can access this spreadsheet.",
    ),
    (
        re.compile(r"invalid_grant|401", re.IGNORECASE),
        "Authentication error: the stored credentials are no longer valid.",
    ),
    (
        re.compile(r"ENOTFOUND|network|connect", re.IGNORECASE),
        "Network error: check your internet connection.",
    ),
]


def format_error(error: BaseException) -> str:
    """
    Convert an exception into operator-friendly text.

    Known failure shapes are replaced by a short explanation; anything else
    falls through with its original message.
    """
    message = str(error) or error.__class__.__name__
    for pattern, friendly in ERROR_PATTERNS:
        if pattern.search(message):
            return friendly
    return message
