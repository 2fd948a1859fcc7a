# src/sheets_mcp/__main__.py

import argparse
import asyncio
import logging
import sys

import colorlog
from dotenv import load_dotenv

from .auth.credential_manager import get_credential_manager
from .server import create_server
from .utils.paths import get_data_file, get_logs_dir

lib_logger = logging.getLogger("sheets_mcp")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sheets-mcp", description="Google Sheets MCP server (stdio)"
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Check (and if needed complete) authorization, then exit.",
    )
    parser.add_argument(
        "--reauthorize",
        action="store_true",
        help="Delete the stored token and run the browser authorization again.",
    )
    parser.add_argument(
        "--log-to-file",
        action="store_true",
        help="Also write logs to logs/sheets_mcp.log.",
    )
    return parser.parse_args(argv)


def setup_logging(log_to_file: bool = False) -> None:
    # stdout is the MCP transport; every log line goes to stderr
    console_handler = colorlog.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s%(message)s",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(console_handler)

    if log_to_file:
        file_handler = logging.FileHandler(
            get_logs_dir() / "sheets_mcp.log", encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root_logger.addHandler(file_handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def _serve(args: argparse.Namespace) -> int:
    manager = get_credential_manager()

    if args.reauthorize:
        manager.token_store.clear()

    # Authorize before serving so a browser flow never starts mid-session
    if not await manager.validate():
        return 1
    if args.validate_only:
        return 0

    lib_logger.info("Google Sheets MCP server running on stdio")
    await create_server(manager).run_stdio_async()
    return 0


def main(argv=None) -> None:
    args = parse_args(argv)
    load_dotenv(get_data_file(".env"))
    setup_logging(log_to_file=args.log_to_file)

    try:
        exit_code = asyncio.run(_serve(args))
    except KeyboardInterrupt:
        lib_logger.info("Shutting down")
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
