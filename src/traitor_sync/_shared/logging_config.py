# Area: Shared
"""
traitor_sync._shared.logging_config — Structured logging setup
==============================================================

Configures dual logging for the ``traitor_sync`` logger tree:
terminal (colored) + file (JSON). Also reports integrity errors,
which halt a session, in a block that stands out on the terminal.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Union

from .logging_formatters import JSONFormatter, TerminalFormatter

if TYPE_CHECKING:
    from ..errors import IntegrityError

# Package logger
logger = logging.getLogger("traitor_sync")


def setup_logging(
    log_file_path: str = "traitor_sync.log",
    level: Union[int, str] = logging.INFO,
) -> None:
    """
    Configure logging for the package.

    Parameters
    ----------
    log_file_path : str
        Path to the JSON log file. An empty string disables file logging.
    level : int or str
        Logging level, e.g. logging.DEBUG or "DEBUG".
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    pkg_logger = logging.getLogger("traitor_sync")
    pkg_logger.setLevel(level)

    # Remove existing handlers
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()

    terminal_handler = logging.StreamHandler(sys.stdout)
    terminal_handler.setLevel(level)
    terminal_handler.setFormatter(TerminalFormatter(
        fmt="%(asctime)s │ %(levelname)s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    ))
    pkg_logger.addHandler(terminal_handler)

    if log_file_path:
        try:
            log_path = Path(log_file_path)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(JSONFormatter())
            pkg_logger.addHandler(file_handler)
        except OSError as e:
            pkg_logger.warning(f"Could not create log file: {e}")

    # Prevent propagation to root logger
    pkg_logger.propagate = False


def log_integrity_error(error: "IntegrityError") -> None:
    """
    Report an integrity error: the formatted block goes to stderr, a
    CRITICAL record goes to the log handlers.
    """
    print(error.format_error_log(), file=sys.stderr)
    logger.critical(
        f"Session halted: {error}",
        extra={"session_id": error.session_id},
    )
