# Area: Rules
"""
traitor_sync._rules.win_conditions — Game-over evaluation
=========================================================

Two independent paths end a game:

- Elimination: allies win once no traitor is alive; traitors win once
  alive traitors are at least as many as alive allies.
- Tasks: allies win once the tasks completed by ALL allies, eliminated
  ones included, cover every task handed to allies.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..errors import IntegrityError
from .._session.enums import Role, Winner
from .._session.models import Player

REASON_TRAITORS_ELIMINATED = "all traitors eliminated"
REASON_TRAITORS_OUTNUMBER = "traitors equal or outnumber allies"
REASON_TASKS_COMPLETED = "all tasks completed"


@dataclass(frozen=True)
class WinResult:
    """Winning side and the reason shown on the end screen."""
    winner: Winner
    reason: str


def evaluate_win(roster: Iterable[Player],
                 session_id: Optional[str] = None) -> Optional[WinResult]:
    """
    Check the elimination win conditions.

    Returns:
        WinResult if the game is over, None if it continues

    Raises:
        IntegrityError: If the roster holds no traitors at all
    """
    players: List[Player] = list(roster)
    traitors = [p for p in players if p.role == Role.TRAITOR]
    allies = [p for p in players if p.role == Role.ALLY]

    if not traitors:
        raise IntegrityError(
            "Win check found no traitors in the roster",
            session_id=session_id,
            details={"roster": [
                {"name": p.name, "role": p.role.value, "alive": p.alive} for p in players
            ]},
        )

    alive_traitors = sum(1 for p in traitors if p.alive)
    alive_allies = sum(1 for p in allies if p.alive)

    if alive_traitors == 0:
        return WinResult(Winner.ALLIES, REASON_TRAITORS_ELIMINATED)
    if alive_traitors >= alive_allies and alive_allies > 0:
        return WinResult(Winner.TRAITORS, REASON_TRAITORS_OUTNUMBER)
    return None


def evaluate_task_victory(roster: Iterable[Player]) -> Optional[WinResult]:
    """Allies win when their combined task progress covers their combined task lists."""
    allies = [p for p in roster if p.role == Role.ALLY]
    total = sum(len(p.tasks) for p in allies)
    completed = sum(p.tasks_completed for p in allies)
    if total > 0 and completed >= total:
        return WinResult(Winner.ALLIES, REASON_TASKS_COMPLETED)
    return None


def check_game_over(roster: Iterable[Player],
                    session_id: Optional[str] = None) -> Optional[WinResult]:
    players = list(roster)
    return evaluate_win(players, session_id) or evaluate_task_victory(players)
