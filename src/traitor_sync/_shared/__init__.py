# Area: Shared
"""
Shared utilities used by every layer.

This package contains:
- Logging configuration
- Terminal and JSON log formatters
"""

from .logging_config import log_integrity_error, setup_logging
from .logging_formatters import JSONFormatter, TerminalFormatter

__all__ = [
    "log_integrity_error",
    "setup_logging",
    "JSONFormatter",
    "TerminalFormatter",
]
