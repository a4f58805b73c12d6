# Area: Store
"""
traitor_sync._store.interfaces — Store and change feed contracts
================================================================

The SyncEngine talks to exactly two collaborators:

- SessionStore: the authoritative record of one session and its roster.
  Plain field updates overwrite; merge_vote, merge_meeting_ready,
  clear_meeting_state, batch_update_players and record_tally are atomic
  store-side procedures.
- ChangeFeed: at-least-once, unordered notifications of every store
  mutation, delivered as SessionChange / PlayerChange records.

Every row a store returns or publishes carries the per-session revision
of the write that produced it.
"""

from dataclasses import dataclass
from typing import (
    Any, Awaitable, Callable, Dict, List, Optional, Protocol, Tuple, Union,
)

from .._session.enums import UpdateKind
from ..types import PlayerRow, SessionRow, VoteResultRow


@dataclass(frozen=True)
class SessionChange:
    """A session row was written."""
    session_id: str
    new: SessionRow
    old: Optional[SessionRow] = None

    @property
    def kind(self) -> UpdateKind:
        return UpdateKind.SESSION_UPDATE

    @property
    def revision(self) -> int:
        return self.new["revision"]


@dataclass(frozen=True)
class PlayerChange:
    """
    A player row was inserted, updated or deleted.

    ``new`` is None for deletes; ``old`` is None for inserts.
    """
    kind: UpdateKind
    session_id: str
    new: Optional[PlayerRow]
    old: Optional[PlayerRow]
    revision: int

    @property
    def name(self) -> str:
        row = self.new if self.new is not None else self.old
        return row["name"] if row else ""


Change = Union[SessionChange, PlayerChange]
ChangeCallback = Callable[[Any], Optional[Awaitable[None]]]


class SessionStore(Protocol):
    """Authoritative session storage. All methods are coroutines."""

    async def create(self, session: SessionRow) -> str:
        """Store a new session; raises ConcurrencyAnomaly if the room code is taken."""
        ...

    async def fetch_by_room_code(self, room_code: str) -> Tuple[SessionRow, List[PlayerRow]]:
        """Raises SessionNotFoundError for an unknown code."""
        ...

    async def fetch_session(self, session_id: str) -> Tuple[SessionRow, List[PlayerRow]]:
        """Raises SessionNotFoundError for an unknown id."""
        ...

    async def fetch_player(self, session_id: str, name: str) -> Optional[PlayerRow]:
        """Return the player row, or None if no such player exists."""
        ...

    async def update_session_fields(self, session_id: str,
                                    partial: Dict[str, Any]) -> SessionRow:
        """Overwrite single-writer fields; raises MergePolicyError for others."""
        ...

    async def update_player_fields(self, session_id: str, name: str,
                                   partial: Dict[str, Any]) -> PlayerRow:
        ...

    async def insert_player(self, session_id: str, player: PlayerRow) -> PlayerRow:
        """Raises ConcurrencyAnomaly (with the existing row) on a duplicate name."""
        ...

    async def delete_player(self, session_id: str, name: str) -> None:
        ...

    async def merge_vote(self, session_id: str, voter: str, target: str) -> Dict[str, str]:
        """Set exactly one ledger entry; returns the merged ledger."""
        ...

    async def merge_meeting_ready(self, session_id: str, name: str) -> Dict[str, bool]:
        """Mark exactly one player ready; returns the merged readiness map."""
        ...

    async def clear_meeting_state(self, session_id: str,
                                  fields: Optional[Dict[str, Any]] = None) -> SessionRow:
        """Reset meeting-scoped state, applying ``fields`` in the same write."""
        ...

    async def batch_update_players(self, session_id: str,
                                   updates: Dict[str, Dict[str, Any]]) -> List[PlayerRow]:
        """Apply several player partials atomically."""
        ...

    async def record_tally(self, session_id: str, meeting_id: str,
                           result: VoteResultRow) -> Tuple[SessionRow, bool]:
        """
        Record a meeting's tally unless one is already recorded.

        Returns:
            (session row, True if this call recorded the result)
        """
        ...


class ChangeFeed(Protocol):
    """Push notifications of store mutations."""

    def subscribe_session(self, session_id: str, on_change: ChangeCallback) -> Any:
        ...

    def subscribe_players(self, session_id: str, on_insert: ChangeCallback,
                          on_update: ChangeCallback, on_delete: ChangeCallback) -> Any:
        ...

    def unsubscribe(self, handle: Any) -> None:
        ...
