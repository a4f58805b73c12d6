# Area: Sync
"""
traitor_sync._sync.handler_player_delete — Player Delete Handler
================================================================

Removes a player from the local roster. During a meeting the removal
is deferred until the meeting ends, so the alive count used for vote
completion stays the same for the whole meeting. The deletion of this
client's own row is never deferred.
"""

import logging

from .._session.enums import Stage
from .._session.models import name_key
from .._store.interfaces import PlayerChange
from .handler_base import BaseChangeHandler, UpdateOutcome

logger = logging.getLogger("traitor_sync.sync.handler.player_delete")


class PlayerDeleteHandler(BaseChangeHandler):
    """Handler for player_delete changes."""

    def handle(self, change: PlayerChange) -> UpdateOutcome:
        ctx = self.context
        if not self.is_relevant(change):
            return UpdateOutcome()
        if not self.is_newer_player_revision(change.name, change.revision):
            logger.debug(f"Dropping delete of {change.name} (revision {change.revision})")
            return UpdateOutcome()

        self.log_handling("player_delete", change.revision)
        key = name_key(change.name)
        ctx.tombstones[key] = change.revision

        if ctx.is_me(change.name):
            logger.warning(f"Own player row {change.name} was deleted")
            return UpdateOutcome(applied=True, self_removed=True)

        if key not in ctx.players:
            return UpdateOutcome(applied=True)

        if ctx.stage == Stage.MEETING:
            ctx.pending_removals[key] = change.revision
            logger.info(f"Deferring removal of {change.name} until the meeting ends")
            return UpdateOutcome(applied=True)

        del ctx.players[key]
        logger.info(f"{change.name} left")
        return UpdateOutcome(applied=True, roster_changed=True)
