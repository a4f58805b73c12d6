# Area: Presentation Callbacks
"""
traitor_sync.callbacks — Presentation callbacks
===============================================

The presentation layer subclasses SessionListener and overrides the
callbacks it cares about. The engine fires them without waiting on
them: a coroutine callback is scheduled on the running loop, and any
exception a callback raises is logged and otherwise ignored.

    class Screen(SessionListener):
        def on_stage_changed(self, old, new):
            render(new)

    engine = create_sync_engine(store, feed, listener=Screen())
"""

from typing import Any, List

from ._session.enums import Stage
from ._session.models import Player, VoteResult


class SessionListener:
    """
    Base class for presentation callbacks. Every method is a no-op.
    """

    # ──────────────────────────────────────────────────────────────
    # Stage and roster
    # ──────────────────────────────────────────────────────────────
    def on_stage_changed(self, old: Stage, new: Stage) -> Any:
        """Called after the local stage changed, locally or via the feed."""

    def on_roster_changed(self, players: List[Player]) -> Any:
        """
        Called with the current roster after a player joined, left,
        was updated, or a deferred removal was applied.
        """

    # ──────────────────────────────────────────────────────────────
    # Meetings
    # ──────────────────────────────────────────────────────────────
    def on_vote_result(self, result: VoteResult) -> Any:
        """Called once per meeting when its tally is published."""

    # ──────────────────────────────────────────────────────────────
    # Leaving the session involuntarily
    # ──────────────────────────────────────────────────────────────
    def on_kicked(self, room_code: str) -> Any:
        """Called when the host removed this client from the room."""

    def on_new_game_invitation(self, room_code: str) -> Any:
        """
        Called when the host reset the room for a new game. Accept
        with ``SyncEngine.accept_invitation()``.
        """

    def on_session_halted(self, error: Exception) -> Any:
        """Called once when an integrity error halted the session."""
