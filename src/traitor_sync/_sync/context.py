# Area: Sync
"""
traitor_sync._sync.context — Per-client session context
=======================================================

Everything one client knows about the session it is in. Owned by a
single SyncEngine; nothing here is shared between engines.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .._rules.vote_tally import VoteTally
from .._session.enums import Stage
from .._session.models import Player, Session, name_key
from .._session.state_machine import SessionStateMachine


@dataclass
class SessionContext:
    """
    Local projection of one session.

    Attributes:
        my_name: This client's player name (kept after leaving, for invitations)
        session: Cached session row, None when not in a session
        players: Cached roster keyed by case-insensitive name
        state_machine: Local stage tracker
        exiting: Set while this client is leaving voluntarily
        halted: Set once an integrity error stopped the session
        halt_error: The error that halted the session
        pending_removals: Deletes deferred until the meeting ends (key -> revision)
        tombstones: Revision of the last delete seen per player key
        vote_tally: Exactly-once tally for the current meeting
        announced_meeting: Meeting whose result was already announced
        my_vote: Vote this client submitted in the current meeting
        previous_name: Name before the last rename
        pending_invitation: Room code of a new-game invitation not yet accepted
        subscriptions: Feed handles to release on leave
    """

    my_name: Optional[str] = None
    session: Optional[Session] = None
    players: Dict[str, Player] = field(default_factory=dict)
    state_machine: SessionStateMachine = field(default_factory=SessionStateMachine)
    exiting: bool = False
    halted: bool = False
    halt_error: Optional[Exception] = None
    pending_removals: Dict[str, int] = field(default_factory=dict)
    tombstones: Dict[str, int] = field(default_factory=dict)
    vote_tally: Optional[VoteTally] = None
    announced_meeting: Optional[str] = None
    my_vote: Optional[str] = None
    previous_name: Optional[str] = None
    pending_invitation: Optional[str] = None
    subscriptions: List[Any] = field(default_factory=list)

    @property
    def joined(self) -> bool:
        return self.session is not None and self.my_name is not None

    @property
    def session_id(self) -> Optional[str]:
        return self.session.id if self.session else None

    @property
    def stage(self) -> Stage:
        return self.state_machine.current_stage

    @property
    def is_host(self) -> bool:
        return self.session is not None and self.session.is_host(self.my_name)

    @property
    def me(self) -> Optional[Player]:
        if self.my_name is None:
            return None
        return self.players.get(name_key(self.my_name))

    @property
    def roster(self) -> List[Player]:
        return list(self.players.values())

    def find_player(self, name: str) -> Optional[Player]:
        return self.players.get(name_key(name))

    def is_me(self, name: str) -> bool:
        return self.my_name is not None and name_key(name) == name_key(self.my_name)

    def reset(self) -> None:
        """Forget the session (return to menu). Keeps my_name and any invitation."""
        self.session = None
        self.players = {}
        self.state_machine.reset()
        self.exiting = False
        self.pending_removals = {}
        self.tombstones = {}
        self.vote_tally = None
        self.announced_meeting = None
        self.my_vote = None
        self.previous_name = None
        self.subscriptions = []
