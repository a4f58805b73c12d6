# Area: Sync
"""
traitor_sync._sync.gameplay — In-game actions
=============================================

Game start, meetings, voting, task progress and host eliminations.
Mixed into SyncEngine.
"""

import logging
import uuid
from typing import Dict

from .._rules.assigner import Assignment, assign_roles_and_tasks
from .._rules.vote_tally import SKIP
from .._session.enums import MeetingType, Role, Stage
from .._session.models import name_key
from ..errors import (
    InvalidTransitionError, InvalidVoteError, PlayerNotFoundError, TransientStoreError,
)
from .changes import MeetingReadyChange, PlayerFieldsChange, VoteChange
from .vote_submitter import VoteReceipt

logger = logging.getLogger("traitor_sync.sync.gameplay")


class GameplayActionsMixin:
    """Game, meeting and task actions of SyncEngine."""

    # ── Game start ────────────────────────────────────────────

    async def start_game(self) -> Dict[str, Assignment]:
        """
        Assign roles and tasks to the lobby roster and start playing (host only).

        Returns:
            Assignment per player name

        Raises:
            AuthorizationError: Not the host
            InvalidTransitionError: Not in the lobby
            ConfigurationError: Roster size or traitor count out of range
        """
        self._require_joined()
        ctx = self.context
        roster = ctx.roster
        ctx.state_machine.guard_start(ctx.session, ctx.my_name, len(roster))
        settings = ctx.session.settings

        assignments = assign_roles_and_tasks(
            [p.name for p in roster],
            settings.traitor_count,
            settings.tasks_per_player,
            settings.rooms,
            rng=self.rng,
            unique_probability=self.config.unique_task_probability,
        )
        updates = {
            name: {
                "role": assignment.role.value,
                "tasks": [task.to_row() for task in assignment.tasks],
                "alive": True,
                "tasks_completed": 0,
                "emergency_meetings_used": 0,
                "ready": False,
            }
            for name, assignment in assignments.items()
        }
        rows = await self.store.batch_update_players(ctx.session_id, updates)
        for row in rows:
            await self._apply_player_row(row)

        session_row = await self.store.clear_meeting_state(ctx.session_id, {
            "stage": Stage.PLAYING.value,
            "winner": None,
            "win_reason": None,
            "meetings_used": 0,
            "new_game_invitation": False,
        })
        await self._apply_session_row(session_row)
        logger.info(f"Game started with {len(roster)} players")
        return assignments

    # ── Meetings ──────────────────────────────────────────────

    async def call_meeting(self, meeting_type: MeetingType = MeetingType.EMERGENCY) -> str:
        """
        Call an emergency meeting or report a body.

        Returns:
            The new meeting id

        Raises:
            InvalidTransitionError: Not playing
            AuthorizationError: Caller is eliminated and not the host
            MeetingLimitError: Emergency meetings used up
        """
        self._require_joined()
        ctx = self.context
        me = ctx.me
        if me is None:
            raise PlayerNotFoundError(f"{ctx.my_name} is no longer in this session")
        ctx.state_machine.guard_call_meeting(ctx.session, me, meeting_type)
        used = me.emergency_meetings_used

        # Open the meeting before spending the caller's emergency meeting
        meeting_id = uuid.uuid4().hex
        session_row = await self.store.clear_meeting_state(ctx.session_id, {
            "stage": Stage.MEETING.value,
            "meeting_id": meeting_id,
            "meeting_type": meeting_type.value,
            "meeting_caller": me.name,
            "meetings_used": ctx.session.meetings_used + 1,
        })
        await self._apply_session_row(session_row)
        logger.info(f"{me.name} called a {meeting_type.value} meeting ({meeting_id})")

        if meeting_type == MeetingType.EMERGENCY:
            try:
                row = await self.store.update_player_fields(
                    ctx.session_id, me.name, {"emergency_meetings_used": used + 1},
                )
                await self._apply_player_row(row)
            except TransientStoreError as e:
                logger.warning(f"Emergency meeting count for {me.name} not written: {e}")

        await self.acknowledge_meeting()
        return meeting_id

    async def acknowledge_meeting(self) -> bool:
        """Mark this client as present in the current meeting."""
        self._require_joined()
        ctx = self.context
        if ctx.stage != Stage.MEETING:
            raise InvalidTransitionError("No meeting in progress")
        return await self.propose_local_change(MeetingReadyChange(ctx.my_name))

    async def start_voting(self, force: bool = False) -> None:
        """
        Open the vote (host only) once every alive player acknowledged the meeting.

        Raises:
            InvalidTransitionError: No meeting, or players not ready and not forced
        """
        self._require_host("start voting")
        ctx = self.context
        session = ctx.session
        if ctx.stage != Stage.MEETING:
            raise InvalidTransitionError("No meeting in progress")
        if session.voting_started:
            return

        ready = {name_key(name) for name, flag in session.meeting_ready.items() if flag}
        waiting = [
            p.name for p in ctx.roster
            if p.alive and p.key not in ready and p.key not in ctx.pending_removals
        ]
        if waiting and not force:
            raise InvalidTransitionError(f"Waiting for {', '.join(waiting)}")

        row = await self.store.update_session_fields(ctx.session_id, {"voting_started": True})
        await self._apply_session_row(row)
        logger.info(f"Voting started for meeting {session.meeting_id}")

    async def submit_vote(self, target: str) -> VoteReceipt:
        """
        Vote for an alive player or "skip".

        Returns:
            VoteReceipt; committed is False if the vote could not be confirmed

        Raises:
            InvalidTransitionError: Voting is not open
            InvalidVoteError: Voter eliminated, tally recorded, or bad target
        """
        self._require_joined()
        ctx = self.context
        session = ctx.session
        if ctx.stage != Stage.MEETING or not session.voting_started:
            raise InvalidTransitionError("Voting is not open")
        if session.votes_tallied:
            raise InvalidVoteError("Votes for this meeting are already tallied")
        me = ctx.me
        if me is None or not me.alive:
            raise InvalidVoteError(f"{ctx.my_name} cannot vote while eliminated")

        if name_key(target) == SKIP:
            target = SKIP
        else:
            voted = ctx.find_player(target)
            if voted is None or not voted.alive:
                raise InvalidVoteError(f"'{target}' is not an alive player")
            target = voted.name

        return await self.propose_local_change(VoteChange(me.name, target))

    async def resume_game(self) -> None:
        """
        End the meeting and return to play (host only).

        The meeting result stays visible until the next meeting is called.
        Players removed during the meeting never block the resume.

        Raises:
            InvalidTransitionError: Voting started, the tally is not
                recorded, and players still present have not voted
        """
        self._require_joined()
        ctx = self.context
        if ctx.is_host:
            await self._maybe_tally()
        ctx.state_machine.guard_resume(ctx.session, ctx.my_name, self.missing_votes())
        row = await self.store.update_session_fields(
            ctx.session_id, {"stage": Stage.PLAYING.value}
        )
        await self._apply_session_row(row)

    # ── Tasks and eliminations ────────────────────────────────

    async def complete_task(self) -> int:
        """Advance this client's task progress by one; returns the new count."""
        return await self._step_task(1)

    async def undo_task(self) -> int:
        """Take back one completed task; returns the new count."""
        return await self._step_task(-1)

    async def _step_task(self, delta: int) -> int:
        self._require_joined()
        ctx = self.context
        if ctx.stage != Stage.PLAYING:
            raise InvalidTransitionError("Tasks can only be done while playing")
        me = ctx.me
        if me is None:
            raise PlayerNotFoundError(f"{ctx.my_name} is no longer in this session")
        count = min(max(me.tasks_completed + delta, 0), len(me.tasks))
        if count == me.tasks_completed:
            return count

        if me.role == Role.TRAITOR:
            # Fake progress never reaches the store
            me.tasks_completed = count
            self.notifier.emit("on_roster_changed", ctx.roster)
            return count

        written = await self.propose_local_change(
            PlayerFieldsChange(me.name, {"tasks_completed": count})
        )
        if not written:
            return me.tasks_completed
        return count

    async def set_player_alive(self, name: str, alive: bool) -> None:
        """
        Eliminate or revive a player by hand (host only).

        Raises:
            AuthorizationError: Not the host
            InvalidTransitionError: No game in progress
            PlayerNotFoundError: No such player
        """
        self._require_host("change who is alive")
        ctx = self.context
        if ctx.stage not in (Stage.PLAYING, Stage.MEETING):
            raise InvalidTransitionError("No game in progress")
        player = ctx.find_player(name)
        if player is None:
            raise PlayerNotFoundError(f"Player '{name}' not in this session")
        row = await self.store.update_player_fields(ctx.session_id, player.name, {"alive": alive})
        await self._apply_player_row(row)
        logger.info(f"{player.name} marked {'alive' if alive else 'eliminated'} by the host")
        if not alive:
            await self._check_win()
