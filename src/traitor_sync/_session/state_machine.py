# Area: Session
"""
traitor_sync._session.state_machine — Session State Machine
===========================================================

Tracks one client's local view of the session stage. Local actions go
through the guarded helpers (start_game, call_meeting, resume, ...);
stages published by other clients are adopted with follow(), which is
idempotent because the change feed may redeliver or reorder them.
"""

import logging
from typing import Dict, Iterable, Optional, Tuple

from ..errors import (
    AuthorizationError, InvalidTransitionError, MeetingLimitError,
)
from .enums import MeetingType, Stage, StageEvent
from .models import Player, Session
from .settings import validate_roster_size

logger = logging.getLogger("traitor_sync.session.state_machine")


# Valid stage transitions: {current_stage: {event: next_stage}}
TRANSITIONS: Dict[Stage, Dict[StageEvent, Stage]] = {
    Stage.SETUP: {
        StageEvent.GAME_CREATED: Stage.WAITING,
        StageEvent.ROOM_JOINED: Stage.WAITING,
    },
    Stage.WAITING: {
        StageEvent.GAME_STARTED: Stage.PLAYING,
        StageEvent.LEFT_SESSION: Stage.SETUP,
    },
    Stage.PLAYING: {
        StageEvent.MEETING_CALLED: Stage.MEETING,
        StageEvent.GAME_WON: Stage.ENDED,
        StageEvent.LEFT_SESSION: Stage.SETUP,
    },
    Stage.MEETING: {
        StageEvent.MEETING_RESUMED: Stage.PLAYING,
        StageEvent.GAME_WON: Stage.ENDED,
        StageEvent.LEFT_SESSION: Stage.SETUP,
    },
    Stage.ENDED: {
        StageEvent.NEW_GAME: Stage.SETUP,
        StageEvent.LEFT_SESSION: Stage.SETUP,
    },
}

# Every event leads to exactly one stage, wherever it is accepted
EVENT_TARGETS: Dict[StageEvent, Stage] = {
    event: target
    for transitions in TRANSITIONS.values()
    for event, target in transitions.items()
}


class SessionStateMachine:
    """
    Stage tracker for one client.

    Attributes:
        current_stage: The stage this client currently shows
    """

    def __init__(self, stage: Stage = Stage.SETUP):
        self.current_stage = stage

    def can_transition(self, event: StageEvent) -> bool:
        """Check whether ``event`` is accepted from the current stage."""
        return event in TRANSITIONS.get(self.current_stage, {})

    def transition(self, event: StageEvent, force: bool = False) -> Stage:
        """
        Execute a stage transition.

        Re-applying an event whose target is already the current stage
        is a no-op.

        Args:
            event: The event triggering the transition
            force: Adopt the event's target even if the pair is not in
                the table (for out-of-order deliveries)

        Returns:
            The stage after the transition

        Raises:
            InvalidTransitionError: If the transition is not valid and force=False
        """
        target = EVENT_TARGETS[event]
        if self.current_stage == target:
            return self.current_stage

        if not self.can_transition(event):
            if force:
                logger.warning(
                    f"Forced transition: {event.value} from {self.current_stage.value}"
                )
                self.current_stage = target
                return self.current_stage
            raise InvalidTransitionError(
                f"Invalid transition: {event.value} from {self.current_stage.value}"
            )

        self.current_stage = target
        return target

    def follow(self, stage: Stage) -> Optional[Tuple[Stage, Stage]]:
        """
        Adopt a stage published through the store.

        Returns:
            (old, new) if the stage changed, None if it was already current
        """
        if stage == self.current_stage:
            return None
        old = self.current_stage
        if stage not in TRANSITIONS.get(old, {}).values():
            # The store is authoritative; a skipped delivery is not an error
            logger.warning(f"Adopting stage {stage.value} from {old.value} out of order")
        self.current_stage = stage
        return old, stage

    def reset(self) -> None:
        """Reset to SETUP (return to menu)."""
        self.current_stage = Stage.SETUP

    # ── Guards ────────────────────────────────────────────────

    def _require(self, event: StageEvent) -> None:
        if not self.can_transition(event):
            raise InvalidTransitionError(
                f"Cannot {event.value.lower().replace('_', ' ')} "
                f"while in {self.current_stage.value}"
            )

    def guard_start(self, session: Session, actor: Optional[str],
                    roster_size: int) -> None:
        """
        Raises:
            AuthorizationError: actor is not the host
            InvalidTransitionError: not in the lobby
            ConfigurationError: roster size or traitor count out of range
        """
        if not session.is_host(actor):
            raise AuthorizationError("start the game", actor)
        self._require(StageEvent.GAME_STARTED)
        validate_roster_size(session.settings, roster_size)

    def guard_call_meeting(self, session: Session, caller: Player,
                           meeting_type: MeetingType) -> None:
        """
        Raises:
            InvalidTransitionError: not playing
            AuthorizationError: caller is eliminated and not the host
            MeetingLimitError: no emergency meetings left for the caller
        """
        self._require(StageEvent.MEETING_CALLED)
        is_host = session.is_host(caller.name)
        if not caller.alive and not is_host:
            raise AuthorizationError("call a meeting", caller.name)
        if meeting_type == MeetingType.EMERGENCY:
            limit = session.settings.meeting_limit
            if caller.emergency_meetings_used >= limit:
                raise MeetingLimitError(caller.name, caller.emergency_meetings_used, limit)

    def guard_resume(self, session: Session, actor: Optional[str],
                     missing_votes: Optional[Iterable[str]] = None) -> None:
        """
        Args:
            missing_votes: Alive players still present who have not voted;
                None when unknown

        Raises:
            AuthorizationError: actor is not the host
            InvalidTransitionError: not in a meeting, or voting started,
                the tally is not recorded and votes are still missing
        """
        if not session.is_host(actor):
            raise AuthorizationError("resume the game", actor)
        self._require(StageEvent.MEETING_RESUMED)
        if session.voting_started and not session.votes_tallied:
            if missing_votes is None or list(missing_votes):
                raise InvalidTransitionError("Cannot resume before the votes are tallied")

    def guard_new_game(self, session: Session, actor: Optional[str]) -> None:
        if not session.is_host(actor):
            raise AuthorizationError("start a new game", actor)
        self._require(StageEvent.NEW_GAME)

    # ── Guarded transitions ───────────────────────────────────

    def start_game(self, session: Session, actor: Optional[str],
                   roster_size: int) -> Stage:
        self.guard_start(session, actor, roster_size)
        return self.transition(StageEvent.GAME_STARTED)

    def call_meeting(self, session: Session, caller: Player,
                     meeting_type: MeetingType) -> Stage:
        self.guard_call_meeting(session, caller, meeting_type)
        return self.transition(StageEvent.MEETING_CALLED)

    def resume(self, session: Session, actor: Optional[str],
               missing_votes: Optional[Iterable[str]] = None) -> Stage:
        self.guard_resume(session, actor, missing_votes)
        return self.transition(StageEvent.MEETING_RESUMED)

    def end(self) -> Stage:
        return self.transition(StageEvent.GAME_WON)

    def new_game(self, session: Session, actor: Optional[str]) -> Stage:
        self.guard_new_game(session, actor)
        return self.transition(StageEvent.NEW_GAME)
