# Area: Sync
"""
traitor_sync._sync.handler_player_update — Player Update Handler
================================================================

Overwrites a cached player row with a newer one. An update for a
player whose insert has not arrived yet is applied as an insert.
"""

import logging

from .._store.interfaces import PlayerChange
from .handler_base import BaseChangeHandler, UpdateOutcome

logger = logging.getLogger("traitor_sync.sync.handler.player_update")


class PlayerUpdateHandler(BaseChangeHandler):
    """Handler for player_update changes."""

    def handle(self, change: PlayerChange) -> UpdateOutcome:
        if not self.is_relevant(change):
            return UpdateOutcome()
        if not self.is_newer_player_revision(change.name, change.revision):
            logger.debug(f"Dropping update of {change.name} (revision {change.revision})")
            return UpdateOutcome()

        self.log_handling("player_update", change.revision)
        previous, player = self.upsert_player(change.new)
        if previous is None:
            logger.info(f"Update for unknown player {player.name}, adding to roster")

        task_progress = previous is None or previous.tasks_completed != player.tasks_completed
        if previous is not None and previous.alive and not player.alive:
            logger.info(f"{player.name} was eliminated")
        return UpdateOutcome(applied=True, roster_changed=True, task_progress=task_progress)
