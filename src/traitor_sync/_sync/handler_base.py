# Area: Sync
"""
traitor_sync._sync.handler_base — Base Change Handler
=====================================================

Abstract base class for change handlers, plus the UpdateOutcome every
handler returns. Handlers only mutate the SessionContext; the engine
turns outcomes into callbacks and follow-up writes.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from .._session.enums import Stage
from .._session.models import Player, VoteResult, name_key
from .context import SessionContext

logger = logging.getLogger("traitor_sync.sync.handler")


@dataclass
class UpdateOutcome:
    """
    What applying one change did to the local context.

    Attributes:
        applied: False for stale, duplicate or foreign changes
        stage_change: (old, new) if the local stage moved
        roster_changed: The visible roster changed
        self_removed: This client's own player row was deleted
        vote_result: A meeting result published for the first time
        task_progress: Some player's tasks_completed changed
    """

    applied: bool = False
    stage_change: Optional[Tuple[Stage, Stage]] = None
    roster_changed: bool = False
    self_removed: bool = False
    vote_result: Optional[VoteResult] = None
    task_progress: bool = False


class BaseChangeHandler(ABC):
    """
    Base class for handlers of feed changes.

    Provides helpers for:
    - Ignoring changes of other sessions or after leaving
    - Revision checks against the cached player row and tombstones
    - Applying deferred removals
    """

    def __init__(self, context: SessionContext):
        self.context = context

    @abstractmethod
    def handle(self, change: Any) -> UpdateOutcome:
        pass

    def is_relevant(self, change: Any) -> bool:
        ctx = self.context
        return ctx.joined and not ctx.exiting and change.session_id == ctx.session_id

    def is_newer_player_revision(self, name: str, revision: int) -> bool:
        """True if ``revision`` beats both the cached row and the last delete."""
        key = name_key(name)
        cached = self.context.players.get(key)
        if cached is not None and cached.revision >= revision:
            return False
        return self.context.tombstones.get(key, 0) < revision

    def upsert_player(self, row: dict) -> Tuple[Optional[Player], Player]:
        """Store a player row; returns (previous, current)."""
        player = Player.from_row(row)
        previous = self.context.players.get(player.key)
        self.context.players[player.key] = player
        self.context.pending_removals.pop(player.key, None)
        return previous, player

    def apply_pending_removals(self) -> bool:
        """Drop players whose removal waited for the meeting to end."""
        ctx = self.context
        removed = False
        for key, revision in list(ctx.pending_removals.items()):
            cached = ctx.players.get(key)
            if cached is not None and cached.revision < revision:
                del ctx.players[key]
                removed = True
                logger.info(f"Applied deferred removal of {cached.name}")
        ctx.pending_removals = {}
        return removed

    def log_handling(self, kind: str, revision: int) -> None:
        logger.debug(f"Handling {kind} (revision {revision})")
