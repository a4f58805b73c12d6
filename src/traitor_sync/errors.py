"""
traitor_sync.errors — Custom exception classes
===============================================

Defines the exception hierarchy for session synchronization errors.
Errors that halt a session store full context for structured logging.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
import json


class TraitorSyncError(Exception):
    """Base exception for all traitor_sync package errors."""
    pass


class ConfigurationError(TraitorSyncError, ValueError):
    """Raised for invalid settings; nothing is written to the store."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = errors or []
        super().__init__(message)


class AuthorizationError(TraitorSyncError):
    """Raised when a non-host attempts a host-only action."""

    def __init__(self, action: str, actor: Optional[str] = None,
                 message: Optional[str] = None):
        self.action = action
        self.actor = actor
        who = f"'{actor}'" if actor else "this client"
        super().__init__(message or f"{who} is not allowed to {action}")


class MeetingLimitError(AuthorizationError):
    """Raised when a player has no emergency meetings left."""

    def __init__(self, actor: str, used: int, limit: int):
        self.used = used
        self.limit = limit
        super().__init__(
            "call an emergency meeting", actor,
            message=f"'{actor}' has used {used} of {limit} emergency meetings",
        )


class InvalidTransitionError(TraitorSyncError, ValueError):
    """Raised when a stage transition is not valid from the current stage."""
    pass


class MergePolicyError(TraitorSyncError, ValueError):
    """Raised when a write would overwrite a field it must merge or never touch."""
    pass


class InvalidVoteError(TraitorSyncError, ValueError):
    """Raised when a vote names a target that cannot receive votes."""
    pass


class IncompleteVoteError(TraitorSyncError):
    """Raised when a tally is requested before every alive player voted."""

    def __init__(self, submitted: int, alive: int):
        self.submitted = submitted
        self.alive = alive
        super().__init__(f"Only {submitted} of {alive} alive players have voted")


class SessionNotFoundError(TraitorSyncError, LookupError):
    """Raised when a room code or session id does not exist in the store."""
    pass


class PlayerNotFoundError(TraitorSyncError, LookupError):
    """Raised when a player record does not exist in the store."""
    pass


class JoinRejectedError(TraitorSyncError):
    """Raised when a room cannot accept a new player."""

    def __init__(self, room_code: str, reason: str):
        self.room_code = room_code
        self.reason = reason
        super().__init__(f"Cannot join room {room_code}: {reason}")


class TransientStoreError(TraitorSyncError):
    """Raised by stores for network or storage failures worth retrying."""
    pass


class ConcurrencyAnomaly(TraitorSyncError):
    """
    Raised by stores for duplicate work (re-inserting an existing player).

    Callers treat it as an idempotent no-op, not as a failure.
    """

    def __init__(self, message: str, existing: Any = None):
        self.existing = existing
        super().__init__(message)


class IntegrityError(TraitorSyncError):
    """Raised when an invariant that should be unreachable is broken."""

    def __init__(self, message: str, session_id: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.session_id = session_id
        self.details = details or {}
        super().__init__(message)

    def format_error_log(self) -> str:
        return _format_error_block(
            error_type="INTEGRITY_VIOLATION",
            message=str(self),
            session_id=self.session_id,
            details=self.details,
        )


def _format_error_block(
    error_type: str,
    message: str,
    session_id: Optional[str],
    details: Dict[str, Any],
) -> str:
    """Format a structured error block for fatal session errors."""
    from datetime import datetime, timezone

    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

    lines = [
        "",
        "=" * 64,
        " INTEGRITY ERROR — SESSION HALTED",
        "=" * 64,
        f" Timestamp:    {timestamp}",
        f" Error Type:   {error_type}",
        f" Session:      {session_id or 'unknown'}",
        f" Message:      {message}",
    ]

    if details:
        lines.append("")
        lines.append(" ── DETAILS " + "─" * 52)
        lines.append(_indent_json(details))

    lines.append("")
    lines.append("=" * 64)
    lines.append("")

    return "\n".join(lines)


def _indent_json(data: Dict[str, Any], indent: int = 2) -> str:
    """Format JSON with indentation for error logs."""
    try:
        formatted = json.dumps(data, indent=indent, default=str)
        return "\n".join(" " + line for line in formatted.split("\n"))
    except (TypeError, ValueError):
        return f" {repr(data)}"
