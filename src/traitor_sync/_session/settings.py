# Area: Session
"""
traitor_sync._session.settings — Game settings model
====================================================

Pydantic models for the host-editable settings of a session and the
task catalog. Validation failures surface as ConfigurationError before
anything is written to the store.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..errors import ConfigurationError
from .catalog import default_room_config


class TaskDescriptor(BaseModel):
    """One task in a room. Unique tasks go to at most one ally per game."""
    name: str = Field(min_length=1)
    enabled: bool = True
    unique: bool = False


class RoomConfig(BaseModel):
    """A room of the catalog and the tasks it holds."""
    enabled: bool = True
    tasks: List[TaskDescriptor] = Field(default_factory=list)


def _default_rooms() -> Dict[str, RoomConfig]:
    return {
        room: RoomConfig.model_validate(config)
        for room, config in default_room_config().items()
    }


class GameSettings(BaseModel):
    """
    Host-editable settings of one session.

    Attributes:
        min_players: Smallest roster that may start a game
        max_players: Largest roster the room accepts
        traitor_count: Traitors drawn at game start
        tasks_per_player: Task slots filled per player
        meeting_limit: Emergency meetings each player may call
        meeting_timer: Discussion/vote timer in seconds
        meeting_room: Where players gather for meetings
        elimination_cooldown: Seconds between traitor eliminations
        cooldown_reduction: Seconds removed from the cooldown per meeting
        additional_rules: Free-form house rules
        rooms: Task catalog keyed by room name
    """

    min_players: int = Field(4, ge=1)
    max_players: int = Field(10, ge=1)
    traitor_count: int = Field(1, ge=1)
    tasks_per_player: int = Field(4, ge=0)
    meeting_limit: int = Field(1, ge=0)
    meeting_timer: int = Field(60, ge=1)
    meeting_room: str = ""
    elimination_cooldown: int = Field(30, ge=0)
    cooldown_reduction: int = Field(5, ge=0)
    additional_rules: str = ""
    rooms: Dict[str, RoomConfig] = Field(default_factory=_default_rooms)

    @field_validator("rooms", mode="before")
    @classmethod
    def _fill_empty_catalog(cls, value: Any) -> Any:
        # A missing catalog would leave every player without tasks
        if not value:
            return default_room_config()
        return value

    @model_validator(mode="after")
    def _check_ranges(self) -> "GameSettings":
        if self.min_players > self.max_players:
            raise ValueError(
                f"min_players ({self.min_players}) cannot be greater than "
                f"max_players ({self.max_players})"
            )
        if self.traitor_count >= self.max_players:
            raise ValueError(
                f"traitor_count ({self.traitor_count}) must be less than "
                f"max_players ({self.max_players})"
            )
        return self

    def enabled_rooms(self) -> List[str]:
        return [name for name, room in self.rooms.items() if room.enabled]


def validate_settings(
    data: Optional[Union[GameSettings, Dict[str, Any]]] = None,
    require_meeting_room: bool = False,
) -> GameSettings:
    """
    Validate settings and return a fresh GameSettings instance.

    Args:
        data: A GameSettings instance or a plain dict (None = defaults)
        require_meeting_room: Reject an empty meeting_room (game creation)

    Returns:
        Validated GameSettings

    Raises:
        ConfigurationError: If any field is missing or out of range
    """
    raw = data.model_dump() if isinstance(data, GameSettings) else dict(data or {})
    try:
        settings = GameSettings.model_validate(raw)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc']) or 'settings'}: {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigurationError(f"Invalid game settings: {errors}", errors) from e

    if require_meeting_room and not settings.meeting_room.strip():
        raise ConfigurationError(
            "A meeting room is required", ["meeting_room: field required"]
        )
    return settings


def validate_roster_size(settings: GameSettings, roster_size: int) -> None:
    """
    Check that a roster of ``roster_size`` may start a game.

    Raises:
        ConfigurationError: If the roster is outside [min_players, max_players]
            or the traitor count does not leave at least one ally
    """
    if roster_size < settings.min_players:
        raise ConfigurationError(
            f"Need at least {settings.min_players} players, have {roster_size}"
        )
    if roster_size > settings.max_players:
        raise ConfigurationError(
            f"At most {settings.max_players} players allowed, have {roster_size}"
        )
    if not 1 <= settings.traitor_count < roster_size:
        raise ConfigurationError(
            f"traitor_count must be between 1 and {roster_size - 1}, "
            f"got {settings.traitor_count}"
        )
