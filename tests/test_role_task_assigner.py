# Area: Rules Tests
"""Tests for role and task assignment."""

import random

import pytest
from traitor_sync._rules.assigner import assign_roles_and_tasks, partition_tasks
from traitor_sync._session.enums import Role
from traitor_sync._session.models import TaskRef
from traitor_sync._session.settings import GameSettings, RoomConfig, TaskDescriptor
from traitor_sync.errors import ConfigurationError

NAMES = ["Ada", "Bob", "Cy", "Dee", "Eve"]


def room(*tasks, enabled=True):
    return RoomConfig(enabled=enabled, tasks=list(tasks))


def task(name, unique=False, enabled=True):
    return TaskDescriptor(name=name, unique=unique, enabled=enabled)


class TestPartitionTasks:
    """Tests for splitting the catalog into common and unique pools."""

    def test_disabled_room_contributes_nothing(self):
        """Test enabled tasks of a disabled room are excluded."""
        rooms = {
            "Kitchen": room(task("Dishes"), task("Fridge", unique=True)),
            "Garage": room(task("Tools"), enabled=False),
        }
        common, unique = partition_tasks(rooms)
        assert common == [TaskRef("Kitchen", "Dishes")]
        assert unique == [TaskRef("Kitchen", "Fridge")]

    def test_disabled_task_excluded(self):
        """Test disabled tasks are skipped."""
        common, unique = partition_tasks({"Kitchen": room(task("Dishes", enabled=False))})
        assert common == [] and unique == []


class TestAssignRolesAndTasks:
    """Tests for assign_roles_and_tasks."""

    def test_exact_traitor_count(self):
        """Test exactly traitor_count traitors are drawn."""
        result = assign_roles_and_tasks(
            NAMES, 2, 3, GameSettings().rooms, rng=random.Random(7)
        )
        roles = [a.role for a in result.values()]
        assert roles.count(Role.TRAITOR) == 2
        assert roles.count(Role.ALLY) == 3
        assert list(result) == NAMES

    def test_no_duplicate_tasks_per_player(self):
        """Test a player never holds the same task twice."""
        result = assign_roles_and_tasks(
            NAMES, 1, 6, GameSettings().rooms, rng=random.Random(3)
        )
        for assignment in result.values():
            assert len(assignment.tasks) == len(set(assignment.tasks))
            assert len(assignment.tasks) == 6

    def test_unique_task_held_by_one_ally_only(self):
        """Test unique tasks go to at most one player and never to traitors."""
        rooms = {
            "Kitchen": room(task("Dishes"), task("Secret", unique=True)),
            "Garage": room(task("Tools"), task("Safe", unique=True)),
        }
        for seed in range(20):
            result = assign_roles_and_tasks(
                NAMES, 1, 2, rooms, rng=random.Random(seed), unique_probability=1.0
            )
            holders = {}
            for name, assignment in result.items():
                for ref in assignment.tasks:
                    if ref.name in ("Secret", "Safe"):
                        assert assignment.role == Role.ALLY
                        holders.setdefault(ref, []).append(name)
            assert all(len(names) == 1 for names in holders.values())

    def test_prefers_rooms_not_yet_used(self):
        """Test common tasks spread across rooms before repeating one."""
        rooms = {
            "Kitchen": room(task("A"), task("B")),
            "Garage": room(task("C"), task("D")),
        }
        result = assign_roles_and_tasks(["Ada", "Bob"], 1, 2, rooms,
                                        rng=random.Random(1), unique_probability=0.0)
        for assignment in result.values():
            assert {ref.room for ref in assignment.tasks} == {"Kitchen", "Garage"}

    def test_short_catalog_gives_fewer_tasks(self):
        """Test players stop receiving tasks when nothing qualifies."""
        rooms = {"Kitchen": room(task("A"))}
        result = assign_roles_and_tasks(["Ada", "Bob"], 1, 3, rooms, rng=random.Random(2))
        for assignment in result.values():
            assert assignment.tasks == [TaskRef("Kitchen", "A")]

    def test_ally_falls_back_to_unique_task(self):
        """Test an ally takes a leftover unique task when no common task remains."""
        rooms = {"Kitchen": room(task("A"), task("Secret", unique=True))}
        result = assign_roles_and_tasks(["Ada", "Bob"], 1, 2, rooms,
                                        rng=random.Random(5), unique_probability=0.0)
        ally = next(a for a in result.values() if a.role == Role.ALLY)
        traitor = next(a for a in result.values() if a.role == Role.TRAITOR)
        assert set(ally.tasks) == {TaskRef("Kitchen", "A"), TaskRef("Kitchen", "Secret")}
        assert traitor.tasks == [TaskRef("Kitchen", "A")]

    def test_seeded_rng_is_reproducible(self):
        """Test the same seed gives the same assignment."""
        first = assign_roles_and_tasks(NAMES, 1, 4, GameSettings().rooms, rng=random.Random(9))
        second = assign_roles_and_tasks(NAMES, 1, 4, GameSettings().rooms, rng=random.Random(9))
        assert first == second

    def test_invalid_traitor_count(self):
        """Test traitor count must leave at least one ally."""
        with pytest.raises(ConfigurationError):
            assign_roles_and_tasks(NAMES, 5, 1, GameSettings().rooms)
        with pytest.raises(ConfigurationError):
            assign_roles_and_tasks(NAMES, 0, 1, GameSettings().rooms)

    def test_duplicate_names_rejected(self):
        """Test names colliding ignoring case are rejected."""
        with pytest.raises(ConfigurationError):
            assign_roles_and_tasks(["Ada", "ADA", "Bob"], 1, 1, GameSettings().rooms)
