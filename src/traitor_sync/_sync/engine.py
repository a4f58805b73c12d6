# Area: Sync
"""
traitor_sync._sync.engine — Sync Engine
=======================================

One SyncEngine runs per client device. It keeps the client's
SessionContext current from the change feed, sends the client's own
writes to the store using the right merge class, and performs the
host-only duties (tally, game end) exactly once.

Incoming changes go through UpdateRouter to the revision-guarded
handlers; rows the store returns for local writes go through the same
path, so a write and its later feed echo are applied once.
"""

import asyncio
import copy
import logging
import random
from typing import Any, Dict, List, Optional, Tuple, Union

from .._config import SyncConfig
from .._rules.vote_tally import VoteTally, is_vote_complete
from .._rules.win_conditions import WinResult, check_game_over, evaluate_task_victory, evaluate_win
from .._session.enums import Stage, StageEvent, UpdateKind
from .._session.models import Player, Session, name_key
from .._shared.logging_config import log_integrity_error
from .._store.interfaces import ChangeFeed, PlayerChange, SessionChange, SessionStore
from .._store.merge_policy import check_player_fields, check_session_fields
from ..callbacks import SessionListener
from ..errors import (
    AuthorizationError, ConcurrencyAnomaly, IntegrityError, PlayerNotFoundError,
    SessionNotFoundError, TransientStoreError,
)
from .changes import (
    LocalChange, MeetingReadyChange, PlayerFieldsChange, RosterBatchChange,
    SessionFieldsChange, VoteChange,
)
from .context import SessionContext
from .gameplay import GameplayActionsMixin
from .handler_base import UpdateOutcome
from .handler_player_delete import PlayerDeleteHandler
from .handler_player_insert import PlayerInsertHandler
from .handler_player_update import PlayerUpdateHandler
from .handler_session_update import SessionUpdateHandler
from .kick_monitor import KickMonitor
from .lobby import LobbyActionsMixin
from .notifier import ListenerNotifier
from .router import UpdateRouter
from .vote_submitter import VoteReceipt, submit_vote_with_retry

logger = logging.getLogger("traitor_sync.sync.engine")

ACTIVE_STAGES = (Stage.PLAYING, Stage.MEETING)


class SyncEngine(LobbyActionsMixin, GameplayActionsMixin):
    """
    Per-client synchronization engine.

    Args:
        store: Authoritative session store
        feed: Change feed of that store
        listener: Presentation callbacks (optional)
        config: Engine tunables (defaults if None)
        rng: Random source for room codes and role/task assignment
    """

    def __init__(
        self,
        store: SessionStore,
        feed: ChangeFeed,
        listener: Optional[SessionListener] = None,
        config: Optional[SyncConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.feed = feed
        self.config = config or SyncConfig()
        self.rng = rng or random.Random()
        self.context = SessionContext()
        self.notifier = ListenerNotifier(listener)
        self.router = UpdateRouter()
        self.kick_monitor: Optional[KickMonitor] = None
        self._register_handlers()

    def _register_handlers(self) -> None:
        reg = self.router.register_handler
        reg(UpdateKind.SESSION_UPDATE, SessionUpdateHandler(self.context))
        reg(UpdateKind.PLAYER_INSERT, PlayerInsertHandler(self.context))
        reg(UpdateKind.PLAYER_UPDATE, PlayerUpdateHandler(self.context))
        reg(UpdateKind.PLAYER_DELETE, PlayerDeleteHandler(self.context))

    # ── Read-only views ───────────────────────────────────────

    @property
    def session(self) -> Optional[Session]:
        return self.context.session

    @property
    def roster(self) -> List[Player]:
        return self.context.roster

    @property
    def stage(self) -> Stage:
        return self.context.stage

    @property
    def my_name(self) -> Optional[str]:
        return self.context.my_name

    @property
    def is_host(self) -> bool:
        return self.context.is_host

    @property
    def halted(self) -> bool:
        return self.context.halted

    # ── Guards ────────────────────────────────────────────────

    def _ensure_not_halted(self) -> None:
        if self.context.halted:
            raise self.context.halt_error

    def _require_joined(self) -> None:
        self._ensure_not_halted()
        if not self.context.joined:
            raise SessionNotFoundError("This client is not in a session")

    def _require_host(self, action: str) -> None:
        self._require_joined()
        if not self.context.is_host:
            raise AuthorizationError(action, self.context.my_name)

    def _halt(self, error: IntegrityError) -> None:
        ctx = self.context
        if ctx.halted:
            return
        if error.session_id is None:
            error.session_id = ctx.session_id
        ctx.halted = True
        ctx.halt_error = error
        self._stop_kick_monitor()
        log_integrity_error(error)
        self.notifier.emit("on_session_halted", error)

    # ── Incoming changes ──────────────────────────────────────

    async def apply_remote_update(self, change: Union[SessionChange, PlayerChange]) -> UpdateOutcome:
        """
        Apply one change from the feed (or a row returned by the store).

        Stale and duplicate revisions are dropped, so applying the same
        change twice leaves the same state as applying it once.

        Returns:
            What the change did to the local context
        """
        self._ensure_not_halted()
        outcome = self.router.route(change) or UpdateOutcome()
        if outcome.applied:
            await self._after_update(outcome)
        return outcome

    async def _apply_session_row(self, row: Dict[str, Any]) -> UpdateOutcome:
        return await self.apply_remote_update(SessionChange(row["id"], row))

    async def _apply_player_row(self, row: Dict[str, Any],
                                kind: UpdateKind = UpdateKind.PLAYER_UPDATE) -> UpdateOutcome:
        change = PlayerChange(kind, self.context.session_id, row, None, row["revision"])
        return await self.apply_remote_update(change)

    async def _after_update(self, outcome: UpdateOutcome) -> None:
        ctx = self.context
        if outcome.stage_change:
            old, new = outcome.stage_change
            logger.info(f"Stage {old.value} -> {new.value}")
            self.notifier.emit("on_stage_changed", old, new)
        if outcome.roster_changed:
            self.notifier.emit("on_roster_changed", ctx.roster)
        if outcome.vote_result is not None:
            self.notifier.emit("on_vote_result", outcome.vote_result)

        if outcome.self_removed:
            await self._handle_removed()
            return

        self._sync_kick_monitor()
        if ctx.is_host:
            await self._maybe_tally()
            if outcome.task_progress:
                await self._check_task_victory()

    # ── Outgoing changes ──────────────────────────────────────

    async def propose_local_change(self, change: LocalChange) -> Union[bool, VoteReceipt]:
        """
        Write a local change to the store using its merge class.

        Single-field writes are best effort: a TransientStoreError is
        logged and reported as False, and the next feed delivery or
        resync() reconciles. Votes are retried and verified.

        Returns:
            VoteReceipt for a VoteChange, otherwise True if written

        Raises:
            MergePolicyError: The change touches fields it may not overwrite
        """
        self._require_joined()
        if isinstance(change, VoteChange):
            return await self._submit_vote(change.voter, change.target)

        session_id = self.context.session_id
        try:
            if isinstance(change, SessionFieldsChange):
                check_session_fields(change.fields)
                row = await self.store.update_session_fields(session_id, change.fields)
                await self._apply_session_row(row)
            elif isinstance(change, PlayerFieldsChange):
                check_player_fields(change.fields)
                row = await self.store.update_player_fields(session_id, change.name, change.fields)
                await self._apply_player_row(row)
            elif isinstance(change, RosterBatchChange):
                for fields in change.updates.values():
                    check_player_fields(fields)
                rows = await self.store.batch_update_players(session_id, change.updates)
                for row in rows:
                    await self._apply_player_row(row)
            elif isinstance(change, MeetingReadyChange):
                ready = await self.store.merge_meeting_ready(session_id, change.name)
                self._merge_local_aggregate("meeting_ready", ready)
            else:
                raise TypeError(f"Unsupported local change: {type(change).__name__}")
        except TransientStoreError as e:
            logger.warning(f"{type(change).__name__} not written: {e}")
            return False
        return True

    def _merge_local_aggregate(self, field_name: str, merged: Dict[str, Any]) -> None:
        # Per-key merges only add keys within one meeting
        session = self.context.session
        if session is not None and session.stage == Stage.MEETING:
            getattr(session, field_name).update(merged)

    async def _submit_vote(self, voter: str, target: str) -> VoteReceipt:
        ctx = self.context
        meeting_id = ctx.session.meeting_id
        receipt = await submit_vote_with_retry(
            self.store, ctx.session_id, voter, target,
            attempts=self.config.vote_retry_attempts,
            backoff_seconds=self.config.vote_retry_backoff_seconds,
        )
        if receipt.committed and ctx.joined and ctx.session.meeting_id == meeting_id:
            ctx.my_vote = target
            self._merge_local_aggregate("votes", receipt.ledger or {})
            if ctx.is_host:
                await self._maybe_tally()
        return receipt

    # ── Host duties ───────────────────────────────────────────

    def _tally_for(self, meeting_id: str) -> VoteTally:
        ctx = self.context
        if ctx.vote_tally is None or ctx.vote_tally.meeting_id != meeting_id:
            ctx.vote_tally = VoteTally(meeting_id)
        return ctx.vote_tally

    async def _maybe_tally(self) -> None:
        """Tally the meeting if this client is the host and every alive player voted."""
        ctx = self.context
        session = ctx.session
        if (not ctx.is_host or ctx.stage != Stage.MEETING or not session.voting_started
                or session.votes_tallied or not session.meeting_id):
            return
        roster = ctx.roster
        absent = list(ctx.pending_removals)
        if not is_vote_complete(session.votes, roster, absent):
            return

        tally = self._tally_for(session.meeting_id)
        if tally.tallied:
            return
        # Tally on copies; the elimination reaches the roster through the store
        result = tally.run(session.votes, [copy.copy(p) for p in roster], absent)

        try:
            recorded_tally = await self._record_tally_with_retry(
                session.id, session.meeting_id, result.to_dict()
            )
        except ConcurrencyAnomaly as e:
            logger.info(f"Tally not recorded: {e}")
            return
        if recorded_tally is None:
            # resync() or the next update tries again
            ctx.vote_tally = VoteTally(session.meeting_id)
            return
        row, recorded = recorded_tally

        await self._apply_session_row(row)
        if not recorded:
            logger.info(f"Tally for meeting {session.meeting_id} was already recorded")
            return

        if result.eliminated_player:
            try:
                player_row = await self.store.update_player_fields(
                    session.id, result.eliminated_player, {"alive": False}
                )
                await self._apply_player_row(player_row)
            except PlayerNotFoundError:
                logger.info(f"{result.eliminated_player} left before the elimination was written")
            await self._check_win()

    async def _record_tally_with_retry(self, session_id: str, meeting_id: str,
                                       result: Dict[str, Any]) -> Optional[Tuple[Dict[str, Any], bool]]:
        """record_tally with linear backoff; None once every attempt failed."""
        attempts = self.config.vote_retry_attempts
        for attempt in range(1, attempts + 1):
            try:
                return await self.store.record_tally(session_id, meeting_id, result)
            except TransientStoreError as e:
                logger.warning(
                    f"Tally for meeting {meeting_id} not recorded "
                    f"(attempt {attempt}/{attempts}): {e}"
                )
            if attempt < attempts:
                await asyncio.sleep(self.config.vote_retry_backoff_seconds * attempt)
        return None

    def missing_votes(self) -> List[str]:
        """Alive players still in the session who have not voted in this meeting."""
        ctx = self.context
        if ctx.session is None:
            return []
        voted = {name_key(voter) for voter in ctx.session.votes}
        return [
            p.name for p in ctx.roster
            if p.alive and p.key not in voted and p.key not in ctx.pending_removals
        ]

    async def _check_win(self) -> None:
        ctx = self.context
        if not ctx.is_host or ctx.stage not in ACTIVE_STAGES:
            return
        try:
            result = evaluate_win(ctx.roster, ctx.session_id)
        except IntegrityError as e:
            self._halt(e)
            raise
        if result:
            await self._end_game(result)

    async def _check_task_victory(self) -> None:
        ctx = self.context
        if not ctx.is_host or ctx.stage not in ACTIVE_STAGES:
            return
        result = evaluate_task_victory(ctx.roster)
        if result:
            await self._end_game(result)

    async def _end_game(self, result: WinResult) -> None:
        ctx = self.context
        if not ctx.state_machine.can_transition(StageEvent.GAME_WON):
            return
        logger.info(f"Game over: {result.winner.value} win ({result.reason})")
        row = await self.store.update_session_fields(ctx.session_id, {
            "stage": Stage.ENDED.value,
            "winner": result.winner.value,
            "win_reason": result.reason,
        })
        await self._apply_session_row(row)

    # ── Removal and leaving ───────────────────────────────────

    def _sync_kick_monitor(self) -> None:
        ctx = self.context
        should_run = ctx.joined and not ctx.is_host and not ctx.exiting and not ctx.halted
        if should_run and self.kick_monitor is None:
            self.kick_monitor = KickMonitor(
                self.store,
                ctx.session_id,
                current_name=lambda: ctx.my_name if ctx.joined else None,
                is_exiting=lambda: ctx.exiting,
                on_missing=self._handle_removed,
                interval_seconds=self.config.kick_check_interval_seconds,
                grace_seconds=self.config.kick_check_grace_seconds,
            )
            self.kick_monitor.start()
        elif not should_run and self.kick_monitor is not None:
            self._stop_kick_monitor()

    def _stop_kick_monitor(self) -> None:
        monitor, self.kick_monitor = self.kick_monitor, None
        if monitor is not None:
            monitor.stop()

    def _subscribe(self) -> None:
        ctx = self.context
        ctx.subscriptions = [
            self.feed.subscribe_session(ctx.session_id, self.apply_remote_update),
            self.feed.subscribe_players(
                ctx.session_id,
                self.apply_remote_update,
                self.apply_remote_update,
                self.apply_remote_update,
            ),
        ]

    def _leave_locally(self) -> None:
        """Stop monitoring, drop subscriptions and return to SETUP."""
        ctx = self.context
        self._stop_kick_monitor()
        for handle in ctx.subscriptions:
            self.feed.unsubscribe(handle)
        old = ctx.stage
        ctx.state_machine.transition(StageEvent.LEFT_SESSION)
        ctx.reset()
        if old != Stage.SETUP:
            self.notifier.emit("on_stage_changed", old, Stage.SETUP)

    async def _handle_removed(self) -> None:
        """This client's player row is gone: a kick, or a new-game reset."""
        ctx = self.context
        if ctx.exiting or not ctx.joined:
            return
        ctx.exiting = True
        room_code = ctx.session.room_code
        invited = ctx.session.new_game_invitation
        try:
            row, _ = await self.store.fetch_session(ctx.session_id)
            invited = invited or bool(row.get("new_game_invitation"))
        except (SessionNotFoundError, TransientStoreError) as e:
            logger.warning(f"Could not check for a new-game invitation: {e}")

        self._leave_locally()
        if invited:
            ctx.pending_invitation = room_code
            logger.info(f"Invited to a new game in room {room_code}")
            self.notifier.emit("on_new_game_invitation", room_code)
        else:
            logger.warning(f"Removed from room {room_code} by the host")
            self.notifier.emit("on_kicked", room_code)

    # ── Reconciliation ────────────────────────────────────────

    async def resync(self) -> None:
        """
        Reload the session and roster from the store and reconcile.

        Players missing from the store are removed through the delete
        handler (deferred during a meeting). The host then retries an
        unrecorded tally and re-checks the end conditions.
        """
        self._require_joined()
        ctx = self.context
        session_row, player_rows = await self.store.fetch_session(ctx.session_id)
        await self._apply_session_row(session_row)

        present = set()
        for row in player_rows:
            if not ctx.joined:
                return
            player = Player.from_row(row)
            present.add(player.key)
            await self._apply_player_row(row)

        for key, cached in list(ctx.players.items()):
            if not ctx.joined:
                return
            if key not in present and key not in ctx.pending_removals:
                await self.apply_remote_update(PlayerChange(
                    UpdateKind.PLAYER_DELETE, ctx.session_id, None,
                    cached.to_row(), cached.revision + 1,
                ))

        # A tally whose recording failed gets no further feed trigger
        if ctx.joined and ctx.is_host:
            await self._maybe_tally()

        if ctx.joined and ctx.is_host and ctx.stage in ACTIVE_STAGES:
            try:
                result = check_game_over(ctx.roster, ctx.session_id)
            except IntegrityError as e:
                self._halt(e)
                raise
            if result:
                await self._end_game(result)

    async def close(self) -> None:
        """Stop background work and subscriptions without writing to the store."""
        ctx = self.context
        ctx.exiting = True
        self._stop_kick_monitor()
        for handle in ctx.subscriptions:
            self.feed.unsubscribe(handle)
        ctx.subscriptions = []
        logger.debug("Engine closed")
