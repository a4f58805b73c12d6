"""
traitor_sync — Multi-device session sync for traitor/ally party games
=====================================================================

Every player's device runs one SyncEngine against a shared session
store. The engine mirrors the session and roster from the store's
change feed, writes the player's own actions with the right merge
rules, and lets the host tally votes and end the game exactly once.

Quick Start:
    from traitor_sync import InMemorySessionStore, LocalChangeFeed, create_sync_engine
    feed = LocalChangeFeed()
    store = InMemorySessionStore(feed)
    host = create_sync_engine(store, feed)
    room = await host.create_game("Ada", {"meeting_room": "Kitchen"})

Presentation callbacks:
    from traitor_sync import SessionListener
    class Screen(SessionListener): ...  # Override what you need
"""

from .callbacks import SessionListener
from .factory import create_sync_engine
from ._config import SyncConfig, load_config
from ._session import (
    GameSettings,
    MeetingType,
    Player,
    Role,
    RoomConfig,
    Session,
    SessionStateMachine,
    Stage,
    StageEvent,
    TaskDescriptor,
    TaskRef,
    VoteResult,
    Winner,
)
from ._rules import (
    Assignment,
    VoteTally,
    WinResult,
    assign_roles_and_tasks,
    check_game_over,
    evaluate_win,
    tally_votes,
)
from ._store import (
    ChangeFeed,
    InMemorySessionStore,
    LocalChangeFeed,
    PlayerChange,
    SessionChange,
    SessionStore,
    SQLiteSessionStore,
)
from ._sync import (
    MeetingReadyChange,
    PlayerFieldsChange,
    RosterBatchChange,
    SessionFieldsChange,
    SyncEngine,
    VoteChange,
    VoteReceipt,
)
from ._shared import setup_logging
from .errors import (
    TraitorSyncError,
    AuthorizationError,
    ConcurrencyAnomaly,
    ConfigurationError,
    IncompleteVoteError,
    IntegrityError,
    InvalidTransitionError,
    InvalidVoteError,
    JoinRejectedError,
    MeetingLimitError,
    MergePolicyError,
    PlayerNotFoundError,
    SessionNotFoundError,
    TransientStoreError,
)

__all__ = [
    # Main classes
    "SyncEngine",
    "SessionListener",
    "create_sync_engine",
    "SyncConfig",
    "load_config",
    "setup_logging",
    # Session model
    "GameSettings",
    "MeetingType",
    "Player",
    "Role",
    "RoomConfig",
    "Session",
    "SessionStateMachine",
    "Stage",
    "StageEvent",
    "TaskDescriptor",
    "TaskRef",
    "VoteResult",
    "Winner",
    # Rules
    "Assignment",
    "VoteTally",
    "WinResult",
    "assign_roles_and_tasks",
    "check_game_over",
    "evaluate_win",
    "tally_votes",
    # Store
    "ChangeFeed",
    "InMemorySessionStore",
    "LocalChangeFeed",
    "PlayerChange",
    "SessionChange",
    "SessionStore",
    "SQLiteSessionStore",
    # Local changes
    "MeetingReadyChange",
    "PlayerFieldsChange",
    "RosterBatchChange",
    "SessionFieldsChange",
    "VoteChange",
    "VoteReceipt",
    # Errors
    "TraitorSyncError",
    "AuthorizationError",
    "ConcurrencyAnomaly",
    "ConfigurationError",
    "IncompleteVoteError",
    "IntegrityError",
    "InvalidTransitionError",
    "InvalidVoteError",
    "JoinRejectedError",
    "MeetingLimitError",
    "MergePolicyError",
    "PlayerNotFoundError",
    "SessionNotFoundError",
    "TransientStoreError",
]
__version__ = "1.0.0"
