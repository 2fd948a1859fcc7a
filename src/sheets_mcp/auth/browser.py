# src/sheets_mcp/auth/browser.py

import logging
import webbrowser

from ..utils.headless_detection import is_headless_environment

lib_logger = logging.getLogger("sheets_mcp")


def attempt_open(url: str) -> None:
    """
    Ask the host's default URL opener to show the consent page.

    Fire-and-forget: the result is never reported and no failure escapes.
    The caller always prints the URL as well, so a headless host can finish
    the flow by hand.
    """
    if is_headless_environment():
        lib_logger.info("Not opening a browser in a headless environment")
        return

    try:
        if webbrowser.open(url):
            lib_logger.info("Browser opened for authorization")
        else:
            lib_logger.warning("No browser available. Please open the URL manually.")
    except Exception as e:
        lib_logger.warning(
            f"Failed to open browser automatically: {e}. Please open the URL manually."
        )
