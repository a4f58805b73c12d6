# Area: Session
"""
traitor_sync._session.models — Session and Player Dataclasses
=============================================================

Client-side projections of the records a SessionStore owns. Rows
travel as plain dicts (see ``traitor_sync.types``); these dataclasses
convert to and from that shape.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..errors import ConfigurationError
from .enums import MeetingType, Role, Stage, Winner
from .settings import GameSettings


RESERVED_NAMES = frozenset({"skip"})


def name_key(name: str) -> str:
    """Case-insensitive identity of a player name."""
    return name.strip().casefold()


def validate_player_name(name: str) -> str:
    """
    Return the stripped name.

    Raises:
        ConfigurationError: If the name is empty or reserved for votes
    """
    cleaned = (name or "").strip()
    if not cleaned:
        raise ConfigurationError("Player name cannot be empty")
    if name_key(cleaned) in RESERVED_NAMES:
        raise ConfigurationError(f"'{cleaned}' cannot be used as a player name")
    return cleaned


@dataclass(frozen=True)
class TaskRef:
    """A task instance, identified by the room it lives in and its name."""

    room: str
    name: str

    def to_row(self) -> dict:
        return {"room": self.room, "name": self.name}

    @classmethod
    def from_row(cls, row: dict) -> "TaskRef":
        return cls(room=row["room"], name=row["name"])


@dataclass(frozen=True)
class VoteResult:
    """
    Outcome of one meeting's vote.

    Attributes:
        vote_counts: Votes per target, "skip" included
        eliminated_player: Ejected player, or None
        is_tie: Two or more targets shared the top non-skip count
    """

    vote_counts: Dict[str, int]
    eliminated_player: Optional[str]
    is_tie: bool

    def to_dict(self) -> dict:
        return {
            "vote_counts": dict(self.vote_counts),
            "eliminated_player": self.eliminated_player,
            "is_tie": self.is_tie,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["VoteResult"]:
        if not data:
            return None
        return cls(
            vote_counts=dict(data.get("vote_counts", {})),
            eliminated_player=data.get("eliminated_player"),
            is_tie=bool(data.get("is_tie", False)),
        )


@dataclass
class Player:
    """
    One member of a session roster.

    Attributes:
        name: Display name, unique within the session ignoring case
        role: Hidden role, fixed from game start until the next game
        alive: False once voted out or eliminated by the host
        tasks: Ordered task list, no duplicates
        tasks_completed: Progress counter, 0..len(tasks)
        emergency_meetings_used: Emergency meetings called this game
        ready: Lobby readiness flag
        revision: Store revision of the last write to this row
    """

    name: str
    role: Role = Role.UNASSIGNED
    alive: bool = True
    tasks: List[TaskRef] = field(default_factory=list)
    tasks_completed: int = 0
    emergency_meetings_used: int = 0
    ready: bool = False
    revision: int = 0

    @property
    def key(self) -> str:
        return name_key(self.name)

    def to_row(self) -> dict:
        return {
            "name": self.name,
            "role": self.role.value,
            "alive": self.alive,
            "tasks": [task.to_row() for task in self.tasks],
            "tasks_completed": self.tasks_completed,
            "emergency_meetings_used": self.emergency_meetings_used,
            "ready": self.ready,
            "revision": self.revision,
        }

    @classmethod
    def from_row(cls, row: dict) -> "Player":
        return cls(
            name=row["name"],
            role=Role(row.get("role", Role.UNASSIGNED.value)),
            alive=bool(row.get("alive", True)),
            tasks=[TaskRef.from_row(task) for task in row.get("tasks", [])],
            tasks_completed=int(row.get("tasks_completed", 0)),
            emergency_meetings_used=int(row.get("emergency_meetings_used", 0)),
            ready=bool(row.get("ready", False)),
            revision=int(row.get("revision", 0)),
        )


@dataclass
class Session:
    """
    One game session as mirrored by a client.

    The room code never changes after creation. Meeting-scoped fields
    (meeting_id through vote_result) are reset by ``clear_meeting``.
    """

    id: str
    room_code: str
    stage: Stage = Stage.SETUP
    settings: GameSettings = field(default_factory=GameSettings)
    host_name: Optional[str] = None
    winner: Optional[Winner] = None
    win_reason: Optional[str] = None
    meetings_used: int = 0

    # Meeting sub-state
    meeting_id: Optional[str] = None
    meeting_type: Optional[MeetingType] = None
    meeting_caller: Optional[str] = None
    voting_started: bool = False
    votes: Dict[str, str] = field(default_factory=dict)
    meeting_ready: Dict[str, bool] = field(default_factory=dict)
    votes_tallied: bool = False
    vote_result: Optional[VoteResult] = None

    new_game_invitation: bool = False
    revision: int = 0

    def is_host(self, name: Optional[str]) -> bool:
        if not name or not self.host_name:
            return False
        return name_key(name) == name_key(self.host_name)

    def clear_meeting(self) -> None:
        self.meeting_id = None
        self.meeting_type = None
        self.meeting_caller = None
        self.voting_started = False
        self.votes = {}
        self.meeting_ready = {}
        self.votes_tallied = False
        self.vote_result = None

    def copy(self) -> "Session":
        return copy.deepcopy(self)

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "room_code": self.room_code,
            "stage": self.stage.value,
            "settings": self.settings.model_dump(),
            "host_name": self.host_name,
            "winner": self.winner.value if self.winner else None,
            "win_reason": self.win_reason,
            "meetings_used": self.meetings_used,
            "meeting_id": self.meeting_id,
            "meeting_type": self.meeting_type.value if self.meeting_type else None,
            "meeting_caller": self.meeting_caller,
            "voting_started": self.voting_started,
            "votes": dict(self.votes),
            "meeting_ready": dict(self.meeting_ready),
            "votes_tallied": self.votes_tallied,
            "vote_result": self.vote_result.to_dict() if self.vote_result else None,
            "new_game_invitation": self.new_game_invitation,
            "revision": self.revision,
        }

    @classmethod
    def from_row(cls, row: dict) -> "Session":
        winner = row.get("winner")
        meeting_type = row.get("meeting_type")
        return cls(
            id=row["id"],
            room_code=row["room_code"],
            stage=Stage(row.get("stage", Stage.SETUP.value)),
            settings=GameSettings.model_validate(row.get("settings") or {}),
            host_name=row.get("host_name"),
            winner=Winner(winner) if winner else None,
            win_reason=row.get("win_reason"),
            meetings_used=int(row.get("meetings_used", 0)),
            meeting_id=row.get("meeting_id"),
            meeting_type=MeetingType(meeting_type) if meeting_type else None,
            meeting_caller=row.get("meeting_caller"),
            voting_started=bool(row.get("voting_started", False)),
            votes=dict(row.get("votes") or {}),
            meeting_ready=dict(row.get("meeting_ready") or {}),
            votes_tallied=bool(row.get("votes_tallied", False)),
            vote_result=VoteResult.from_dict(row.get("vote_result")),
            new_game_invitation=bool(row.get("new_game_invitation", False)),
            revision=int(row.get("revision", 0)),
        )
