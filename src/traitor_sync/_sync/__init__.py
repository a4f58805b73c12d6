# Area: Sync
"""
Sync layer - keeps one client consistent with the shared session.

This package handles:
- Routing feed changes to revision-guarded handlers
- Outgoing writes split by merge class
- Host-only tally and game-end duties
- Kick detection and vote submission with retry
- Lobby and in-game actions of one client
"""

from .changes import (
    LocalChange, MeetingReadyChange, PlayerFieldsChange, RosterBatchChange,
    SessionFieldsChange, VoteChange,
)
from .context import SessionContext
from .engine import SyncEngine
from .handler_base import BaseChangeHandler, UpdateOutcome
from .kick_monitor import KickMonitor
from .router import UpdateRouter
from .vote_submitter import VoteReceipt, submit_vote_with_retry

__all__ = [
    "LocalChange",
    "MeetingReadyChange",
    "PlayerFieldsChange",
    "RosterBatchChange",
    "SessionFieldsChange",
    "VoteChange",
    "SessionContext",
    "SyncEngine",
    "BaseChangeHandler",
    "UpdateOutcome",
    "KickMonitor",
    "UpdateRouter",
    "VoteReceipt",
    "submit_vote_with_retry",
]
