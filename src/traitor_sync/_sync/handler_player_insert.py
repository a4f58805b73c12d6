# Area: Sync
"""
traitor_sync._sync.handler_player_insert — Player Insert Handler
================================================================

Adds a joined player to the local roster.
"""

import logging

from .._store.interfaces import PlayerChange
from .handler_base import BaseChangeHandler, UpdateOutcome

logger = logging.getLogger("traitor_sync.sync.handler.player_insert")


class PlayerInsertHandler(BaseChangeHandler):
    """Handler for player_insert changes."""

    def handle(self, change: PlayerChange) -> UpdateOutcome:
        if not self.is_relevant(change):
            return UpdateOutcome()
        if not self.is_newer_player_revision(change.name, change.revision):
            logger.debug(f"Dropping insert of {change.name} (revision {change.revision})")
            return UpdateOutcome()

        self.log_handling("player_insert", change.revision)
        previous, player = self.upsert_player(change.new)
        self.context.tombstones.pop(player.key, None)
        if previous is None:
            logger.info(f"{player.name} joined")
        return UpdateOutcome(applied=True, roster_changed=True)
