# Area: Rules
"""
traitor_sync._rules.assigner — Role and task assignment
=======================================================

Draws the traitors for a new game and hands every player a task list.

Task slots are filled in order of preference:
1. With probability ``unique_probability``, an unclaimed unique task
   (allies only)
2. A common task from a room the player has no task in yet
3. Any common task the player does not already hold
4. For allies, any remaining unique task

When nothing qualifies the player simply gets fewer tasks. Unique tasks
leave the pool once drawn; common tasks never run out but never repeat
within one player's list.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from ..errors import ConfigurationError
from .._session.enums import Role
from .._session.models import TaskRef, name_key
from .._session.settings import RoomConfig

logger = logging.getLogger("traitor_sync.rules.assigner")

DEFAULT_UNIQUE_PROBABILITY = 0.3


@dataclass
class Assignment:
    """Role and ordered task list handed to one player."""
    role: Role
    tasks: List[TaskRef] = field(default_factory=list)


def partition_tasks(rooms: Mapping[str, RoomConfig]) -> Tuple[List[TaskRef], List[TaskRef]]:
    """
    Split the enabled tasks of enabled rooms into (common, unique) pools.

    Disabled rooms contribute nothing even if their tasks are enabled.
    """
    common: List[TaskRef] = []
    unique: List[TaskRef] = []
    seen: Set[TaskRef] = set()
    for room_name, room in rooms.items():
        if not room.enabled:
            continue
        for task in room.tasks:
            ref = TaskRef(room=room_name, name=task.name)
            if not task.enabled or ref in seen:
                continue
            seen.add(ref)
            (unique if task.unique else common).append(ref)
    return common, unique


def _draw_unique(pool: List[TaskRef], rng: random.Random) -> TaskRef:
    return pool.pop(rng.randrange(len(pool)))


def _fill_tasks(
    role: Role,
    slots: int,
    common: Sequence[TaskRef],
    unique_pool: List[TaskRef],
    rng: random.Random,
    unique_probability: float,
) -> List[TaskRef]:
    held: List[TaskRef] = []
    used_rooms: Set[str] = set()
    is_ally = role == Role.ALLY

    while len(held) < slots:
        task: Optional[TaskRef] = None

        if is_ally and unique_pool and rng.random() < unique_probability:
            task = _draw_unique(unique_pool, rng)

        if task is None:
            fresh_rooms = [t for t in common if t.room not in used_rooms and t not in held]
            if fresh_rooms:
                task = rng.choice(fresh_rooms)
            else:
                remaining = [t for t in common if t not in held]
                if remaining:
                    task = rng.choice(remaining)
                elif is_ally and unique_pool:
                    task = _draw_unique(unique_pool, rng)

        if task is None:
            break
        held.append(task)
        used_rooms.add(task.room)

    return held


def assign_roles_and_tasks(
    names: Sequence[str],
    traitor_count: int,
    tasks_per_player: int,
    rooms: Mapping[str, RoomConfig],
    rng: Optional[random.Random] = None,
    unique_probability: float = DEFAULT_UNIQUE_PROBABILITY,
) -> Dict[str, Assignment]:
    """
    Assign roles and tasks for a whole roster.

    Args:
        names: Roster names
        traitor_count: Number of traitors to draw
        tasks_per_player: Task slots to fill per player
        rooms: Task catalog (GameSettings.rooms)
        rng: Random source; pass a seeded Random for reproducible games
        unique_probability: Chance per slot of drawing a unique task

    Returns:
        Dict mapping each name (input order) to its Assignment

    Raises:
        ConfigurationError: If traitor_count is not in [1, len(names) - 1]
            or two names collide ignoring case
    """
    roster = list(names)
    if len({name_key(name) for name in roster}) != len(roster):
        raise ConfigurationError("Roster contains duplicate player names")
    if not 1 <= traitor_count < len(roster):
        raise ConfigurationError(
            f"traitor_count must be between 1 and {len(roster) - 1}, got {traitor_count}"
        )
    if tasks_per_player < 0:
        raise ConfigurationError(f"tasks_per_player must be >= 0, got {tasks_per_player}")

    rng = rng or random.Random()
    traitors = set(rng.sample(roster, traitor_count))
    common, unique_pool = partition_tasks(rooms)

    # Shuffle so early players do not always get first pick of unique tasks
    order = list(roster)
    rng.shuffle(order)

    assignments: Dict[str, Assignment] = {}
    for name in order:
        role = Role.TRAITOR if name in traitors else Role.ALLY
        tasks = _fill_tasks(role, tasks_per_player, common, unique_pool, rng, unique_probability)
        if len(tasks) < tasks_per_player:
            logger.info(f"{name} received {len(tasks)} of {tasks_per_player} tasks")
        assignments[name] = Assignment(role=role, tasks=tasks)

    logger.debug(
        f"Assigned {traitor_count} traitor(s) among {len(roster)} players, "
        f"{len(common)} common / {len(unique_pool)} unique tasks left"
    )
    return {name: assignments[name] for name in roster}
