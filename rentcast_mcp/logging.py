from __future__ import annotations

"""Centralised Loguru configuration.

Use setup_logger() at program start. Idempotent – repeated calls are no-ops.

Logs never go to stdout: with the stdio transport stdout carries the MCP
message stream and any stray line would corrupt it.
"""
import sys
from pathlib import Path
from typing import Literal

from loguru import logger

from rentcast_mcp.settings import Settings, get_settings

_INITIALISED = False


def setup_logger(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] | None = None,
    settings: Settings | None = None,
) -> None:
    """Configure Loguru sinks once per process.

    If *level* is *None* the level derived from ``settings.LOG_LEVEL`` /
    ``settings.DEBUG`` is used.  The function is idempotent – subsequent calls
    are ignored.
    """

    global _INITIALISED
    if _INITIALISED:
        return

    settings = settings or get_settings()
    if level is None:
        level = settings.effective_log_level  # type: ignore[assignment]

    logger.remove()  # remove default stderr sink

    if settings.LOG_FILE:
        Path(settings.LOG_FILE).parent.mkdir(parents=True, exist_ok=True)
        logger.add(settings.LOG_FILE, level="DEBUG", rotation="1 MB", retention="10 days")

    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> [MCP] <level>{message}</level>",
        colorize=True,
    )

    logger.info("Logger initialised (level: {})", level)

    _INITIALISED = True
