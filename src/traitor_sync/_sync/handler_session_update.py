# Area: Sync
"""
traitor_sync._sync.handler_session_update — Session Update Handler
==================================================================

Applies a newer session row to the local context: follows the stage,
starts a fresh tally gate per meeting, applies deferred removals once
the meeting is over, and announces each meeting result once.
"""

import logging

from .._rules.vote_tally import VoteTally
from .._session.enums import Stage
from .._session.models import Session
from .._store.interfaces import SessionChange
from .handler_base import BaseChangeHandler, UpdateOutcome

logger = logging.getLogger("traitor_sync.sync.handler.session_update")


class SessionUpdateHandler(BaseChangeHandler):
    """
    Handler for session_update changes.

    Rows with a revision at or below the cached one are duplicates or
    arrived out of order and are dropped.
    """

    def handle(self, change: SessionChange) -> UpdateOutcome:
        ctx = self.context
        if not self.is_relevant(change):
            return UpdateOutcome()
        if change.revision <= ctx.session.revision:
            logger.debug(
                f"Dropping session revision {change.revision} "
                f"(have {ctx.session.revision})"
            )
            return UpdateOutcome()

        self.log_handling("session_update", change.revision)
        previous = ctx.session
        session = Session.from_row(change.new)
        ctx.session = session
        outcome = UpdateOutcome(applied=True)

        outcome.stage_change = ctx.state_machine.follow(session.stage)

        if session.meeting_id != previous.meeting_id:
            ctx.my_vote = None
            ctx.vote_tally = VoteTally(session.meeting_id) if session.meeting_id else None

        if session.stage != Stage.MEETING and ctx.pending_removals:
            outcome.roster_changed = self.apply_pending_removals()

        if (session.vote_result is not None and session.meeting_id
                and ctx.announced_meeting != session.meeting_id):
            ctx.announced_meeting = session.meeting_id
            if ctx.vote_tally is not None and not ctx.vote_tally.tallied:
                ctx.vote_tally.adopt(session.vote_result)
            outcome.vote_result = session.vote_result

        if session.host_name != previous.host_name:
            logger.info(f"Host is now {session.host_name}")

        return outcome
