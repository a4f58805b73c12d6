"""
traitor_sync.types — TypedDict schemas for stored rows
======================================================

This module documents the exact structure of the rows a SessionStore
persists and the change feed carries. Stores serialize sessions and
players to these shapes; ``Session.from_row`` / ``Player.from_row``
read them back.

Use __annotations__ to inspect fields:

    >>> PlayerRow.__annotations__
    {'name': str, 'role': str, 'alive': bool, ...}
"""

from typing import Dict, List, Optional, TypedDict


class TaskRefRow(TypedDict):
    """One task instance, identified by its room and name."""
    room: str               # e.g., "Kitchen"
    name: str               # e.g., "Water Pressure Test: Run the sink for 3 seconds."


class VoteResultRow(TypedDict):
    """Published outcome of one meeting's vote.

    Fields
    ------
    vote_counts : Dict[str, int]
        Votes per target, including "skip".
    eliminated_player : Optional[str]
        Name of the ejected player, or None for a tie / skip / no votes.
    is_tie : bool
        True when two or more targets shared the top non-skip count.
    """
    vote_counts: Dict[str, int]
    eliminated_player: Optional[str]
    is_tie: bool


class PlayerRow(TypedDict):
    """Stored player record."""
    name: str
    role: str               # "unassigned" | "ally" | "traitor"
    alive: bool
    tasks: List[TaskRefRow]
    tasks_completed: int
    emergency_meetings_used: int
    ready: bool
    revision: int


class SessionRow(TypedDict):
    """Stored session record.

    ``settings`` is the JSON dump of ``GameSettings``. Meeting-scoped
    fields are reset by ``clear_meeting_state``.
    """
    id: str
    room_code: str          # e.g., "K7QX"
    stage: str              # "setup" | "waiting" | "playing" | "meeting" | "ended"
    settings: dict
    host_name: Optional[str]
    winner: Optional[str]   # "allies" | "traitors"
    win_reason: Optional[str]
    meetings_used: int
    meeting_id: Optional[str]
    meeting_type: Optional[str]
    meeting_caller: Optional[str]
    voting_started: bool
    votes: Dict[str, str]
    meeting_ready: Dict[str, bool]
    votes_tallied: bool
    vote_result: Optional[VoteResultRow]
    new_game_invitation: bool
    revision: int
