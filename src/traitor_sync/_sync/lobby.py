# Area: Sync
"""
traitor_sync._sync.lobby — Lobby actions
========================================

Create, join, leave, kick, rename, settings, new game and invitations.
Mixed into SyncEngine; relies on its context, store and helpers.
"""

import logging
from typing import Any, Dict, List, Optional

from .._session.enums import Role, Stage, StageEvent, UpdateKind
from .._session.models import Player, Session, name_key, validate_player_name
from .._session.room_code import generate_room_code, normalize_room_code
from .._session.settings import GameSettings, validate_settings
from .._store.interfaces import PlayerChange
from ..errors import (
    AuthorizationError, ConcurrencyAnomaly, ConfigurationError, InvalidTransitionError,
    JoinRejectedError, PlayerNotFoundError, SessionNotFoundError, TransientStoreError,
)
from ..types import PlayerRow, SessionRow

logger = logging.getLogger("traitor_sync.sync.lobby")


def _fresh_player_fields() -> Dict[str, Any]:
    return {
        "role": Role.UNASSIGNED.value,
        "alive": True,
        "tasks": [],
        "tasks_completed": 0,
        "emergency_meetings_used": 0,
        "ready": False,
    }


class LobbyActionsMixin:
    """Session membership and lobby actions of SyncEngine."""

    async def _enter_session(self, session_row: SessionRow, player_rows: List[PlayerRow],
                             event: StageEvent) -> None:
        ctx = self.context
        ctx.session = Session.from_row(session_row)
        ctx.players = {}
        for row in player_rows:
            player = Player.from_row(row)
            ctx.players[player.key] = player
        ctx.exiting = False

        old = ctx.stage
        ctx.state_machine.transition(event)
        # Reconnects may land in any stage
        ctx.state_machine.follow(ctx.session.stage)
        self._subscribe()

        logger.info(
            f"{ctx.my_name} entered room {ctx.session.room_code} "
            f"({ctx.stage.value}, {len(ctx.players)} players)"
        )
        if ctx.stage != old:
            self.notifier.emit("on_stage_changed", old, ctx.stage)
        self.notifier.emit("on_roster_changed", ctx.roster)
        self._sync_kick_monitor()

    async def _apply_local_delete(self, player: Player) -> None:
        # The store's delete record arrives through the feed; apply it now
        await self.apply_remote_update(PlayerChange(
            UpdateKind.PLAYER_DELETE, self.context.session_id, None,
            player.to_row(), player.revision + 1,
        ))

    # ── Create / join ─────────────────────────────────────────

    async def create_game(self, host_name: str,
                          settings: Optional[Any] = None) -> str:
        """
        Create a session hosted by this client and open its lobby.

        Args:
            host_name: The host's player name
            settings: GameSettings or dict (None = defaults); a meeting
                room is required

        Returns:
            The room code

        Raises:
            ConfigurationError: Invalid name or settings
            InvalidTransitionError: Already in a session
            TransientStoreError: No free room code found
        """
        self._ensure_not_halted()
        ctx = self.context
        if ctx.joined:
            raise InvalidTransitionError("Leave the current session before creating a game")
        name = validate_player_name(host_name)
        game_settings = validate_settings(settings, require_meeting_room=True)

        session_id = None
        for attempt in range(1, self.config.room_code_attempts + 1):
            room_code = generate_room_code(self.rng)
            row = Session(
                id="",
                room_code=room_code,
                stage=Stage.WAITING,
                settings=game_settings,
                host_name=name,
            ).to_row()
            row.pop("id")
            try:
                session_id = await self.store.create(row)
                break
            except ConcurrencyAnomaly:
                logger.info(f"Room code {room_code} taken (attempt {attempt})")
        if session_id is None:
            raise TransientStoreError(
                f"No free room code after {self.config.room_code_attempts} attempts"
            )

        await self.store.insert_player(session_id, Player(name=name).to_row())
        session_row, player_rows = await self.store.fetch_session(session_id)
        ctx.my_name = name
        ctx.pending_invitation = None
        await self._enter_session(session_row, player_rows, StageEvent.GAME_CREATED)
        return session_row["room_code"]

    async def join_game(self, room_code: str, name: str) -> None:
        """
        Join a lobby, or reconnect to a session where ``name`` already plays.

        Raises:
            SessionNotFoundError: Unknown room code
            JoinRejectedError: The room is full or its game already started
            ConfigurationError: Invalid name
            InvalidTransitionError: Already in a session
        """
        self._ensure_not_halted()
        ctx = self.context
        if ctx.joined:
            raise InvalidTransitionError("Leave the current session before joining another")
        name = validate_player_name(name)
        code = normalize_room_code(room_code)
        session_row, player_rows = await self.store.fetch_by_room_code(code)
        session_id = session_row["id"]

        existing = {name_key(row["name"]): row for row in player_rows}
        if name_key(name) in existing:
            name = existing[name_key(name)]["name"]
            logger.info(f"{name} reconnecting to room {code}")
        else:
            stage = Stage(session_row["stage"])
            if stage != Stage.WAITING:
                reason = ("game already in progress"
                          if stage in (Stage.PLAYING, Stage.MEETING) else "lobby is not open")
                raise JoinRejectedError(code, reason)
            settings = GameSettings.model_validate(session_row.get("settings") or {})
            if len(player_rows) >= settings.max_players:
                raise JoinRejectedError(code, "room is full")
            try:
                await self.store.insert_player(session_id, Player(name=name).to_row())
            except ConcurrencyAnomaly as e:
                # Same name inserted by another device first: treat as reconnect
                if e.existing:
                    name = e.existing["name"]
                logger.info(f"{name} already in room {code}, reconnecting")
            session_row, player_rows = await self.store.fetch_session(session_id)

        ctx.my_name = name
        ctx.pending_invitation = None
        await self._enter_session(session_row, player_rows, StageEvent.ROOM_JOINED)

    # ── Leave / kick ──────────────────────────────────────────

    async def leave_game(self) -> None:
        """Leave the session voluntarily; the host hands the role to another player."""
        ctx = self.context
        if not ctx.joined:
            raise SessionNotFoundError("This client is not in a session")
        ctx.exiting = True
        self._stop_kick_monitor()
        session_id = ctx.session_id
        try:
            if ctx.is_host and not ctx.halted:
                successor = next((p for p in ctx.roster if not ctx.is_me(p.name)), None)
                if successor is not None:
                    await self.store.update_session_fields(
                        session_id, {"host_name": successor.name}
                    )
                    logger.info(f"Host role handed to {successor.name}")
            await self.store.delete_player(session_id, ctx.my_name)
        except (PlayerNotFoundError, SessionNotFoundError) as e:
            logger.info(f"Nothing to delete on leave: {e}")
        except TransientStoreError as e:
            logger.warning(f"Leave not written to the store: {e}")
        finally:
            self._leave_locally()
        logger.info(f"{ctx.my_name} left the session")

    async def kick_player(self, name: str) -> None:
        """
        Remove another player (host only).

        Raises:
            AuthorizationError: Not the host, or kicking oneself
            PlayerNotFoundError: No such player
        """
        self._require_host("kick a player")
        ctx = self.context
        player = ctx.find_player(name)
        if player is None:
            raise PlayerNotFoundError(f"Player '{name}' not in this session")
        if ctx.is_me(player.name):
            raise AuthorizationError("kick themselves", ctx.my_name)
        try:
            await self.store.delete_player(ctx.session_id, player.name)
        except PlayerNotFoundError:
            logger.info(f"{player.name} already gone")
        logger.info(f"Kicked {player.name}")
        await self._apply_local_delete(player)

    # ── Lobby editing ─────────────────────────────────────────

    async def rename_player(self, new_name: str) -> str:
        """
        Change this client's name while in the lobby.

        The new row is inserted before the old one is deleted, so the
        client is never absent from the store.

        Raises:
            InvalidTransitionError: Not in the lobby
            ConfigurationError: Invalid name, or only the case changes
            JoinRejectedError: The name is taken
        """
        self._require_joined()
        ctx = self.context
        if ctx.stage != Stage.WAITING:
            raise InvalidTransitionError("Players can only be renamed in the lobby")
        new_name = validate_player_name(new_name)
        old_name = ctx.my_name
        if new_name == old_name:
            return old_name
        if name_key(new_name) == name_key(old_name):
            raise ConfigurationError("A rename must change more than letter case")

        me = ctx.me
        row = me.to_row() if me else Player(name=old_name).to_row()
        row["name"] = new_name
        try:
            inserted = await self.store.insert_player(ctx.session_id, row)
        except ConcurrencyAnomaly as e:
            raise JoinRejectedError(ctx.session.room_code, "name taken") from e

        was_host = ctx.is_host
        ctx.previous_name, ctx.my_name = old_name, new_name
        try:
            if was_host:
                session_row = await self.store.update_session_fields(
                    ctx.session_id, {"host_name": new_name}
                )
                await self._apply_session_row(session_row)
            await self.store.delete_player(ctx.session_id, old_name)
        except Exception:
            ctx.my_name, ctx.previous_name = old_name, None
            raise

        await self._apply_player_row(inserted, UpdateKind.PLAYER_INSERT)
        if me is not None:
            await self._apply_local_delete(me)
        logger.info(f"Renamed {old_name} -> {new_name}")
        return new_name

    async def update_settings(self, changes: Dict[str, Any]) -> GameSettings:
        """
        Change game settings (host only, before the game starts).

        Raises:
            ConfigurationError: The merged settings are invalid
        """
        self._require_host("change settings")
        ctx = self.context
        if ctx.stage not in (Stage.SETUP, Stage.WAITING):
            raise InvalidTransitionError("Settings are fixed once the game starts")
        merged = ctx.session.settings.model_dump()
        merged.update(changes)
        settings = validate_settings(merged, require_meeting_room=ctx.stage == Stage.WAITING)
        row = await self.store.update_session_fields(
            ctx.session_id, {"settings": settings.model_dump()}
        )
        await self._apply_session_row(row)
        return settings

    async def open_lobby(self) -> None:
        """Move a reset session from SETUP back to WAITING (host only)."""
        self._require_host("open the lobby")
        ctx = self.context
        if ctx.stage != Stage.SETUP:
            raise InvalidTransitionError(f"Cannot open the lobby while in {ctx.stage.value}")
        validate_settings(ctx.session.settings, require_meeting_room=True)
        row = await self.store.update_session_fields(
            ctx.session_id, {"stage": Stage.WAITING.value}
        )
        await self._apply_session_row(row)

    # ── New game and invitations ──────────────────────────────

    async def new_game(self, keep_settings: bool = True) -> None:
        """
        Reset the ended session in place (host only).

        Non-host players are removed and see an invitation instead of a
        kick. With keep_settings the lobby reopens right away.
        """
        self._require_host("start a new game")
        ctx = self.context
        ctx.state_machine.guard_new_game(ctx.session, ctx.my_name)
        session_id = ctx.session_id
        settings = ctx.session.settings if keep_settings else GameSettings()

        row = await self.store.clear_meeting_state(session_id, {
            "stage": Stage.SETUP.value,
            "settings": settings.model_dump(),
            "winner": None,
            "win_reason": None,
            "meetings_used": 0,
            "new_game_invitation": True,
        })
        await self._apply_session_row(row)

        for player in ctx.roster:
            if ctx.is_me(player.name):
                continue
            try:
                await self.store.delete_player(session_id, player.name)
            except PlayerNotFoundError:
                logger.info(f"{player.name} already gone")
            await self._apply_local_delete(player)

        me_row = await self.store.update_player_fields(
            session_id, ctx.my_name, _fresh_player_fields()
        )
        await self._apply_player_row(me_row)
        await self.resync()
        logger.info(f"New game prepared in room {ctx.session.room_code}")

        if keep_settings:
            await self.open_lobby()

    async def accept_invitation(self) -> None:
        """Rejoin the room of a pending new-game invitation."""
        self._ensure_not_halted()
        ctx = self.context
        if ctx.pending_invitation is None or ctx.my_name is None:
            raise SessionNotFoundError("No pending invitation")
        await self.join_game(ctx.pending_invitation, ctx.my_name)

    async def return_to_menu(self) -> None:
        """Leave any session and drop a pending invitation."""
        ctx = self.context
        if ctx.joined:
            await self.leave_game()
        ctx.pending_invitation = None
