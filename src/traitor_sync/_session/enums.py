# Area: Session
"""
traitor_sync._session.enums — Session State Machine Enums
=========================================================

Defines the stages and events of the session state machine plus the
role, winner and meeting vocabularies shared by every layer.
"""

from enum import Enum


class Stage(str, Enum):
    """
    Stages of one session as seen by a client.

    Stage transitions:
    SETUP -> WAITING (on GAME_CREATED or ROOM_JOINED)
    WAITING -> PLAYING (on GAME_STARTED)
    PLAYING -> MEETING (on MEETING_CALLED)
    MEETING -> PLAYING (on MEETING_RESUMED)
    PLAYING/MEETING -> ENDED (on GAME_WON)
    ENDED -> SETUP (on NEW_GAME)
    Any joined stage -> SETUP (on LEFT_SESSION)
    """
    SETUP = "setup"
    WAITING = "waiting"
    PLAYING = "playing"
    MEETING = "meeting"
    ENDED = "ended"


class StageEvent(Enum):
    """
    Events that trigger stage transitions.

    Events are triggered by:
    - GAME_CREATED: host created a new session
    - ROOM_JOINED: player joined an existing room
    - GAME_STARTED: host started the game (roles assigned)
    - MEETING_CALLED: a player called an emergency meeting or reported
    - MEETING_RESUMED: host resumed play after the meeting
    - GAME_WON: a win condition became true
    - NEW_GAME: host reset the session for another game
    - LEFT_SESSION: leave, kick, or return to menu
    """
    GAME_CREATED = "GAME_CREATED"
    ROOM_JOINED = "ROOM_JOINED"
    GAME_STARTED = "GAME_STARTED"
    MEETING_CALLED = "MEETING_CALLED"
    MEETING_RESUMED = "MEETING_RESUMED"
    GAME_WON = "GAME_WON"
    NEW_GAME = "NEW_GAME"
    LEFT_SESSION = "LEFT_SESSION"


class Role(str, Enum):
    """Hidden role of a player, fixed from game start until the next game."""
    UNASSIGNED = "unassigned"
    ALLY = "ally"
    TRAITOR = "traitor"


class Winner(str, Enum):
    """Winning side recorded on the session when the game ends."""
    ALLIES = "allies"
    TRAITORS = "traitors"


class MeetingType(str, Enum):
    """Emergency meetings are limited per player; reports are not."""
    EMERGENCY = "emergency"
    REPORT = "report"


class UpdateKind(str, Enum):
    """Kinds of change notifications delivered by the change feed."""
    SESSION_UPDATE = "session_update"
    PLAYER_INSERT = "player_insert"
    PLAYER_UPDATE = "player_update"
    PLAYER_DELETE = "player_delete"
