# Area: Store
"""
Store layer - the authoritative session record and its change feed.

This package handles:
- SessionStore / ChangeFeed contracts and change records
- Merge classes of session and player fields
- In-memory and SQLite store implementations
- An in-process change feed with redelivery and reordering
"""

from .interfaces import ChangeFeed, PlayerChange, SessionChange, SessionStore
from .merge_policy import (
    AGGREGATE_SESSION_FIELDS, IMMUTABLE_SESSION_FIELDS, PLAYER_WRITABLE_FIELDS,
    SINGLE_WRITER_SESSION_FIELDS, check_player_fields, check_session_fields,
)
from .record import SessionRecord
from .feed import LocalChangeFeed
from .memory import InMemorySessionStore
from .sqlite_store import SQLiteSessionStore, init_database

__all__ = [
    "ChangeFeed",
    "PlayerChange",
    "SessionChange",
    "SessionStore",
    "AGGREGATE_SESSION_FIELDS",
    "IMMUTABLE_SESSION_FIELDS",
    "PLAYER_WRITABLE_FIELDS",
    "SINGLE_WRITER_SESSION_FIELDS",
    "check_player_fields",
    "check_session_fields",
    "SessionRecord",
    "LocalChangeFeed",
    "InMemorySessionStore",
    "SQLiteSessionStore",
    "init_database",
]
