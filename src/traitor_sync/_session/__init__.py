# Area: Session
"""
Session layer - the data a client mirrors and the stage it shows.

This package handles:
- Stage, role and meeting vocabularies
- Session / Player projections and their row shapes
- Game settings validation and the default task catalog
- Room code generation
- The session state machine and its guards
"""

from .enums import MeetingType, Role, Stage, StageEvent, UpdateKind, Winner
from .models import Player, Session, TaskRef, VoteResult, name_key, validate_player_name
from .settings import (
    GameSettings, RoomConfig, TaskDescriptor, validate_roster_size, validate_settings,
)
from .room_code import ROOM_CODE_ALPHABET, generate_room_code, normalize_room_code
from .state_machine import EVENT_TARGETS, TRANSITIONS, SessionStateMachine

__all__ = [
    "MeetingType",
    "Role",
    "Stage",
    "StageEvent",
    "UpdateKind",
    "Winner",
    "Player",
    "Session",
    "TaskRef",
    "VoteResult",
    "name_key",
    "validate_player_name",
    "GameSettings",
    "RoomConfig",
    "TaskDescriptor",
    "validate_roster_size",
    "validate_settings",
    "ROOM_CODE_ALPHABET",
    "generate_room_code",
    "normalize_room_code",
    "EVENT_TARGETS",
    "TRANSITIONS",
    "SessionStateMachine",
]
