# Area: Store
"""
traitor_sync._store.sqlite_store — SQLite SessionStore
======================================================

Durable SessionStore on SQLite. Every procedure runs as one
``BEGIN IMMEDIATE`` transaction on its own connection, so concurrent
clients sharing the database file serialize on the write lock instead
of losing each other's updates. Blocking calls run in a worker thread.
"""

import asyncio
import copy
import json
import logging
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..errors import ConcurrencyAnomaly, SessionNotFoundError, TransientStoreError
from .._session.enums import UpdateKind
from .._session.models import name_key
from .._session.room_code import normalize_room_code
from ..types import PlayerRow, SessionRow, VoteResultRow
from .feed import LocalChangeFeed
from .interfaces import Change, PlayerChange, SessionChange
from .record import SessionRecord

logger = logging.getLogger("traitor_sync.store.sqlite")

# Path to schema file
SCHEMA_PATH = Path(__file__).parent / "schema.sql"

Mutation = Callable[[SessionRecord], List[Change]]


def get_connection(db_path: str) -> sqlite3.Connection:
    """
    Get a database connection.

    Transactions are opened explicitly, so the connection runs in
    autocommit mode between them.
    """
    conn = sqlite3.connect(db_path, timeout=5.0, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_database(db_path: str) -> None:
    """Create the tables if they do not exist yet."""
    conn = get_connection(db_path)
    try:
        with open(SCHEMA_PATH, "r") as f:
            schema = f.read()
        conn.executescript(schema)
        logger.info(f"Database initialized at {db_path}")
    finally:
        conn.close()


class SQLiteSessionStore:
    """
    SessionStore backed by a SQLite file.

    Args:
        db_path: Path to the database file (created on first use)
        feed: Feed that receives every committed change
    """

    def __init__(self, db_path: str = "traitor_sync.db",
                 feed: Optional[LocalChangeFeed] = None):
        self.db_path = db_path
        self.feed = feed
        init_database(db_path)

    def _get_conn(self) -> sqlite3.Connection:
        return get_connection(self.db_path)

    async def _run(self, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except sqlite3.OperationalError as e:
            raise TransientStoreError(f"SQLite store unavailable: {e}") from e

    def _publish(self, changes: List[Change]) -> None:
        if self.feed is None:
            return
        for change in changes:
            self.feed.publish(change)

    # ── Row loading / saving ──────────────────────────────────

    def _load(self, conn: sqlite3.Connection, session_id: str) -> SessionRecord:
        row = conn.execute(
            "SELECT data, seq FROM sessions WHERE id = ?", (session_id,)
        ).fetchone()
        if row is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        players = {
            r["name_key"]: json.loads(r["data"])
            for r in conn.execute(
                "SELECT name_key, data FROM players WHERE session_id = ? ORDER BY rowid",
                (session_id,),
            )
        }
        return SessionRecord(json.loads(row["data"]), players, row["seq"])

    def _save(self, conn: sqlite3.Connection, record: SessionRecord,
              changes: List[Change]) -> None:
        session_id = record.session["id"]
        for change in changes:
            if isinstance(change, SessionChange):
                conn.execute(
                    "UPDATE sessions SET data = ? WHERE id = ?",
                    (json.dumps(change.new), session_id),
                )
            elif change.kind == UpdateKind.PLAYER_INSERT:
                conn.execute(
                    "INSERT INTO players (session_id, name_key, data) VALUES (?, ?, ?)",
                    (session_id, name_key(change.name), json.dumps(change.new)),
                )
            elif change.kind == UpdateKind.PLAYER_UPDATE:
                conn.execute(
                    "UPDATE players SET data = ? WHERE session_id = ? AND name_key = ?",
                    (json.dumps(change.new), session_id, name_key(change.name)),
                )
            elif change.kind == UpdateKind.PLAYER_DELETE:
                conn.execute(
                    "DELETE FROM players WHERE session_id = ? AND name_key = ?",
                    (session_id, name_key(change.name)),
                )
        conn.execute("UPDATE sessions SET seq = ? WHERE id = ?", (record.seq, session_id))

    def _transaction(self, session_id: str,
                     mutate: Mutation) -> Tuple[List[Change], SessionRow]:
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                record = self._load(conn, session_id)
                changes = mutate(record)
                self._save(conn, record, changes)
                conn.commit()
            except BaseException:
                conn.rollback()
                raise
            return changes, copy.deepcopy(record.session)
        finally:
            conn.close()

    async def _mutate(self, session_id: str,
                      mutate: Mutation) -> Tuple[List[Change], SessionRow]:
        changes, session = await self._run(self._transaction, session_id, mutate)
        self._publish(changes)
        return changes, session

    # ── SessionStore ──────────────────────────────────────────

    def _create(self, session: SessionRow) -> str:
        room_code = normalize_room_code(session["room_code"])
        row = copy.deepcopy(session)
        row["id"] = session.get("id") or uuid.uuid4().hex
        row["room_code"] = room_code
        row["revision"] = 1
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO sessions (id, room_code, seq, data) VALUES (?, ?, ?, ?)",
                (row["id"], room_code, 1, json.dumps(row)),
            )
        except sqlite3.IntegrityError as e:
            raise ConcurrencyAnomaly(f"Room code {room_code} already in use") from e
        finally:
            conn.close()
        logger.info(f"Created session {row['id']} (room {room_code})")
        return row["id"]

    async def create(self, session: SessionRow) -> str:
        return await self._run(self._create, session)

    def _fetch(self, where: str, value: str) -> Tuple[SessionRow, List[PlayerRow]]:
        conn = self._get_conn()
        try:
            row = conn.execute(f"SELECT id FROM sessions WHERE {where} = ?", (value,)).fetchone()
            if row is None:
                raise SessionNotFoundError(f"No session with {where} {value}")
            return self._load(conn, row["id"]).snapshot()
        finally:
            conn.close()

    async def fetch_by_room_code(self, room_code: str) -> Tuple[SessionRow, List[PlayerRow]]:
        return await self._run(self._fetch, "room_code", normalize_room_code(room_code))

    async def fetch_session(self, session_id: str) -> Tuple[SessionRow, List[PlayerRow]]:
        return await self._run(self._fetch, "id", session_id)

    def _fetch_player(self, session_id: str, name: str) -> Optional[PlayerRow]:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT data FROM players WHERE session_id = ? AND name_key = ?",
                (session_id, name_key(name)),
            ).fetchone()
            return json.loads(row["data"]) if row else None
        finally:
            conn.close()

    async def fetch_player(self, session_id: str, name: str) -> Optional[PlayerRow]:
        return await self._run(self._fetch_player, session_id, name)

    async def update_session_fields(self, session_id: str,
                                    partial: Dict[str, Any]) -> SessionRow:
        _, session = await self._mutate(session_id, lambda r: [r.update_session(partial)])
        return session

    async def update_player_fields(self, session_id: str, name: str,
                                   partial: Dict[str, Any]) -> PlayerRow:
        changes, _ = await self._mutate(
            session_id, lambda r: [r.update_player(name, partial)]
        )
        return changes[0].new

    async def insert_player(self, session_id: str, player: PlayerRow) -> PlayerRow:
        changes, _ = await self._mutate(session_id, lambda r: [r.insert_player(player)])
        return changes[0].new

    async def delete_player(self, session_id: str, name: str) -> None:
        await self._mutate(session_id, lambda r: [r.delete_player(name)])

    async def merge_vote(self, session_id: str, voter: str, target: str) -> Dict[str, str]:
        _, session = await self._mutate(session_id, lambda r: [r.merge_vote(voter, target)])
        return dict(session["votes"])

    async def merge_meeting_ready(self, session_id: str, name: str) -> Dict[str, bool]:
        _, session = await self._mutate(session_id, lambda r: [r.merge_meeting_ready(name)])
        return dict(session["meeting_ready"])

    async def clear_meeting_state(self, session_id: str,
                                  fields: Optional[Dict[str, Any]] = None) -> SessionRow:
        _, session = await self._mutate(session_id, lambda r: [r.clear_meeting_state(fields)])
        return session

    async def batch_update_players(self, session_id: str,
                                   updates: Dict[str, Dict[str, Any]]) -> List[PlayerRow]:
        changes, _ = await self._mutate(session_id, lambda r: r.batch_update_players(updates))
        return [change.new for change in changes]

    async def record_tally(self, session_id: str, meeting_id: str,
                           result: VoteResultRow) -> Tuple[SessionRow, bool]:
        def mutate(record: SessionRecord) -> List[Change]:
            change = record.record_tally(meeting_id, result)
            return [change] if change else []

        changes, session = await self._mutate(session_id, mutate)
        return session, bool(changes)
