# Area: Store
"""
traitor_sync._store.memory — In-memory SessionStore
===================================================

Keeps every session in process memory. Each coroutine runs without
awaiting between read and write, which makes every procedure atomic
with respect to other clients on the same event loop.
"""

import copy
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from ..errors import ConcurrencyAnomaly, SessionNotFoundError
from .._session.room_code import normalize_room_code
from ..types import PlayerRow, SessionRow, VoteResultRow
from .feed import LocalChangeFeed
from .interfaces import Change
from .record import SessionRecord

logger = logging.getLogger("traitor_sync.store.memory")


class InMemorySessionStore:
    """
    SessionStore backed by dicts.

    Args:
        feed: Feed that receives every change; None disables publishing
    """

    def __init__(self, feed: Optional[LocalChangeFeed] = None):
        self.feed = feed
        self._records: Dict[str, SessionRecord] = {}
        self._room_codes: Dict[str, str] = {}

    def _record(self, session_id: str) -> SessionRecord:
        record = self._records.get(session_id)
        if record is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return record

    def _publish(self, *changes: Change) -> None:
        if self.feed is None:
            return
        for change in changes:
            self.feed.publish(change)

    async def create(self, session: SessionRow) -> str:
        room_code = normalize_room_code(session["room_code"])
        if room_code in self._room_codes:
            raise ConcurrencyAnomaly(f"Room code {room_code} already in use")
        session_id = session.get("id") or uuid.uuid4().hex
        row = copy.deepcopy(session)
        row["id"] = session_id
        row["room_code"] = room_code
        record = SessionRecord(row)
        row["revision"] = record.next_revision()
        self._records[session_id] = record
        self._room_codes[room_code] = session_id
        logger.info(f"Created session {session_id} (room {room_code})")
        return session_id

    async def fetch_by_room_code(self, room_code: str) -> Tuple[SessionRow, List[PlayerRow]]:
        code = normalize_room_code(room_code)
        session_id = self._room_codes.get(code)
        if session_id is None:
            raise SessionNotFoundError(f"No session with room code {code}")
        return self._record(session_id).snapshot()

    async def fetch_session(self, session_id: str) -> Tuple[SessionRow, List[PlayerRow]]:
        return self._record(session_id).snapshot()

    async def fetch_player(self, session_id: str, name: str) -> Optional[PlayerRow]:
        return self._record(session_id).get_player(name)

    async def update_session_fields(self, session_id: str,
                                    partial: Dict[str, Any]) -> SessionRow:
        change = self._record(session_id).update_session(partial)
        self._publish(change)
        return copy.deepcopy(change.new)

    async def update_player_fields(self, session_id: str, name: str,
                                   partial: Dict[str, Any]) -> PlayerRow:
        change = self._record(session_id).update_player(name, partial)
        self._publish(change)
        return copy.deepcopy(change.new)

    async def insert_player(self, session_id: str, player: PlayerRow) -> PlayerRow:
        change = self._record(session_id).insert_player(player)
        self._publish(change)
        return copy.deepcopy(change.new)

    async def delete_player(self, session_id: str, name: str) -> None:
        change = self._record(session_id).delete_player(name)
        self._publish(change)

    async def merge_vote(self, session_id: str, voter: str, target: str) -> Dict[str, str]:
        change = self._record(session_id).merge_vote(voter, target)
        self._publish(change)
        return dict(change.new["votes"])

    async def merge_meeting_ready(self, session_id: str, name: str) -> Dict[str, bool]:
        change = self._record(session_id).merge_meeting_ready(name)
        self._publish(change)
        return dict(change.new["meeting_ready"])

    async def clear_meeting_state(self, session_id: str,
                                  fields: Optional[Dict[str, Any]] = None) -> SessionRow:
        change = self._record(session_id).clear_meeting_state(fields)
        self._publish(change)
        return copy.deepcopy(change.new)

    async def batch_update_players(self, session_id: str,
                                   updates: Dict[str, Dict[str, Any]]) -> List[PlayerRow]:
        changes = self._record(session_id).batch_update_players(updates)
        self._publish(*changes)
        return [copy.deepcopy(change.new) for change in changes]

    async def record_tally(self, session_id: str, meeting_id: str,
                           result: VoteResultRow) -> Tuple[SessionRow, bool]:
        record = self._record(session_id)
        change = record.record_tally(meeting_id, result)
        if change is None:
            return copy.deepcopy(record.session), False
        self._publish(change)
        return copy.deepcopy(change.new), True
