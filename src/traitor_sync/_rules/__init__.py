# Area: Rules
"""
Rules - pure game computations with no store access.

This package handles:
- Role and task assignment at game start
- Vote tallying at the end of a meeting
- Win-condition evaluation
"""

from .assigner import Assignment, assign_roles_and_tasks, partition_tasks
from .vote_tally import (
    SKIP, VoteTally, count_alive, count_submitted_votes, is_vote_complete, tally_votes,
    with_absent_skips,
)
from .win_conditions import (
    REASON_TASKS_COMPLETED, REASON_TRAITORS_ELIMINATED, REASON_TRAITORS_OUTNUMBER,
    WinResult, check_game_over, evaluate_task_victory, evaluate_win,
)

__all__ = [
    "Assignment",
    "assign_roles_and_tasks",
    "partition_tasks",
    "SKIP",
    "VoteTally",
    "count_alive",
    "count_submitted_votes",
    "is_vote_complete",
    "tally_votes",
    "with_absent_skips",
    "REASON_TASKS_COMPLETED",
    "REASON_TRAITORS_ELIMINATED",
    "REASON_TRAITORS_OUTNUMBER",
    "WinResult",
    "check_game_over",
    "evaluate_task_victory",
    "evaluate_win",
]
