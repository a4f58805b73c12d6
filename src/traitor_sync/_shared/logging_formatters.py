# Area: Shared
"""
traitor_sync._shared.logging_formatters — Logging formatters
============================================================

Colored terminal output and one-JSON-object-per-line file output.
Records may carry ``session_id`` and ``player`` extras; both
formatters show them when present.
"""

from __future__ import annotations

import copy
import json
import logging
from datetime import datetime, timezone

CONTEXT_FIELDS = ("session_id", "player")


class TerminalFormatter(logging.Formatter):
    """Colored formatter for terminal output."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Color a copy so other handlers still see the plain level name
        colored = copy.copy(record)
        color = self.COLORS.get(record.levelname, self.RESET)
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        line = super().format(colored)
        context = [
            f"{name}={getattr(record, name)}"
            for name in CONTEXT_FIELDS if getattr(record, name, None)
        ]
        return f"{line} [{' '.join(context)}]" if context else line


class JSONFormatter(logging.Formatter):
    """JSON formatter for file output."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_data[name] = value
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)
