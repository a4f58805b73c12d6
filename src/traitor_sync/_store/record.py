# Area: Store
"""
traitor_sync._store.record — Row-level mutations of one session
===============================================================

SessionRecord holds the stored rows of one session and applies every
SessionStore mutation to them, stamping the next revision and returning
the change records to publish. The in-memory store keeps records
around; the SQLite store loads one per transaction and writes it back.
"""

import copy
from typing import Any, Dict, List, Optional, Tuple

from ..errors import ConcurrencyAnomaly, PlayerNotFoundError
from .._session.enums import UpdateKind
from .._session.models import name_key
from ..types import PlayerRow, SessionRow, VoteResultRow
from .interfaces import PlayerChange, SessionChange
from .merge_policy import check_player_fields, check_session_fields

MEETING_RESET: Dict[str, Any] = {
    "meeting_id": None,
    "meeting_type": None,
    "meeting_caller": None,
    "voting_started": False,
    "votes": {},
    "meeting_ready": {},
    "votes_tallied": False,
    "vote_result": None,
}


class SessionRecord:
    """
    Rows of one session plus its revision sequence.

    Attributes:
        session: The session row
        players: Player rows keyed by case-insensitive name
        seq: Last revision handed out for this session
    """

    def __init__(self, session: SessionRow, players: Optional[Dict[str, PlayerRow]] = None,
                 seq: int = 0):
        self.session = session
        self.players = players if players is not None else {}
        self.seq = seq

    def next_revision(self) -> int:
        self.seq += 1
        return self.seq

    def snapshot(self) -> Tuple[SessionRow, List[PlayerRow]]:
        return copy.deepcopy(self.session), [copy.deepcopy(p) for p in self.players.values()]

    def get_player(self, name: str) -> Optional[PlayerRow]:
        row = self.players.get(name_key(name))
        return copy.deepcopy(row) if row is not None else None

    def _require_player(self, name: str) -> PlayerRow:
        row = self.players.get(name_key(name))
        if row is None:
            raise PlayerNotFoundError(f"Player '{name}' not in session {self.session['id']}")
        return row

    # ── Session mutations ─────────────────────────────────────

    def _write_session(self, partial: Dict[str, Any]) -> SessionChange:
        old = copy.deepcopy(self.session)
        self.session.update(copy.deepcopy(partial))
        self.session["revision"] = self.next_revision()
        return SessionChange(self.session["id"], copy.deepcopy(self.session), old)

    def update_session(self, partial: Dict[str, Any]) -> SessionChange:
        check_session_fields(partial)
        return self._write_session(partial)

    def merge_vote(self, voter: str, target: str) -> SessionChange:
        votes = dict(self.session.get("votes") or {})
        votes[voter] = target
        return self._write_session({"votes": votes})

    def merge_meeting_ready(self, name: str) -> SessionChange:
        ready = dict(self.session.get("meeting_ready") or {})
        ready[name] = True
        return self._write_session({"meeting_ready": ready})

    def clear_meeting_state(self, fields: Optional[Dict[str, Any]] = None) -> SessionChange:
        if fields:
            check_session_fields(fields)
        partial = dict(MEETING_RESET)
        partial.update(fields or {})
        return self._write_session(partial)

    def record_tally(self, meeting_id: str,
                     result: VoteResultRow) -> Optional[SessionChange]:
        """
        Compare-and-set the tally for ``meeting_id``.

        Returns:
            The change if this call recorded the result, None if a
            result was already recorded for the meeting

        Raises:
            ConcurrencyAnomaly: If ``meeting_id`` is not the current meeting
        """
        if self.session.get("meeting_id") != meeting_id:
            raise ConcurrencyAnomaly(
                f"Tally for meeting {meeting_id} but current meeting is "
                f"{self.session.get('meeting_id')}",
                existing=copy.deepcopy(self.session),
            )
        if self.session.get("votes_tallied"):
            return None
        return self._write_session({"votes_tallied": True, "vote_result": result})

    # ── Player mutations ──────────────────────────────────────

    def insert_player(self, player: PlayerRow) -> PlayerChange:
        key = name_key(player["name"])
        if key in self.players:
            raise ConcurrencyAnomaly(
                f"Player '{player['name']}' already in session {self.session['id']}",
                existing=copy.deepcopy(self.players[key]),
            )
        row = copy.deepcopy(player)
        row["revision"] = self.next_revision()
        self.players[key] = row
        return PlayerChange(UpdateKind.PLAYER_INSERT, self.session["id"],
                            copy.deepcopy(row), None, row["revision"])

    def update_player(self, name: str, partial: Dict[str, Any]) -> PlayerChange:
        check_player_fields(partial)
        row = self._require_player(name)
        old = copy.deepcopy(row)
        row.update(copy.deepcopy(partial))
        row["revision"] = self.next_revision()
        return PlayerChange(UpdateKind.PLAYER_UPDATE, self.session["id"],
                            copy.deepcopy(row), old, row["revision"])

    def delete_player(self, name: str) -> PlayerChange:
        row = self._require_player(name)
        del self.players[name_key(name)]
        return PlayerChange(UpdateKind.PLAYER_DELETE, self.session["id"],
                            None, copy.deepcopy(row), self.next_revision())

    def batch_update_players(self, updates: Dict[str, Dict[str, Any]]) -> List[PlayerChange]:
        # Validate everything first so a bad entry leaves no partial batch
        for name, partial in updates.items():
            check_player_fields(partial)
            self._require_player(name)
        return [self.update_player(name, partial) for name, partial in updates.items()]
