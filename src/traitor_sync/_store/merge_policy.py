# Area: Store
"""
traitor_sync._store.merge_policy — Field merge classes
======================================================

Session fields fall into three classes:

- immutable: never written after creation
- aggregate: written concurrently by many clients, only through the
  store's per-key atomic procedures
- single-writer: everything else, merged by overwrite

Player rows are written through partial updates limited to
PLAYER_WRITABLE_FIELDS; the name is the row identity and never changes.
"""

from typing import Any, FrozenSet, Mapping

from ..errors import MergePolicyError
from ..types import SessionRow

IMMUTABLE_SESSION_FIELDS: FrozenSet[str] = frozenset({"id", "room_code", "revision"})

AGGREGATE_SESSION_FIELDS: FrozenSet[str] = frozenset({
    "votes",
    "meeting_ready",
    "votes_tallied",
    "vote_result",
})

SINGLE_WRITER_SESSION_FIELDS: FrozenSet[str] = (
    frozenset(SessionRow.__annotations__)
    - IMMUTABLE_SESSION_FIELDS
    - AGGREGATE_SESSION_FIELDS
)

PLAYER_WRITABLE_FIELDS: FrozenSet[str] = frozenset({
    "role",
    "alive",
    "tasks",
    "tasks_completed",
    "emergency_meetings_used",
    "ready",
})


def check_session_fields(partial: Mapping[str, Any]) -> None:
    """
    Raises:
        MergePolicyError: If ``partial`` touches an immutable, aggregate
            or unknown session field
    """
    keys = set(partial)
    immutable = keys & IMMUTABLE_SESSION_FIELDS
    if immutable:
        raise MergePolicyError(f"Session fields are immutable: {sorted(immutable)}")
    aggregate = keys & AGGREGATE_SESSION_FIELDS
    if aggregate:
        raise MergePolicyError(
            f"Aggregate fields must go through an atomic merge: {sorted(aggregate)}"
        )
    unknown = keys - SINGLE_WRITER_SESSION_FIELDS
    if unknown:
        raise MergePolicyError(f"Unknown session fields: {sorted(unknown)}")


def check_player_fields(partial: Mapping[str, Any]) -> None:
    unknown = set(partial) - PLAYER_WRITABLE_FIELDS
    if unknown:
        raise MergePolicyError(f"Player fields not writable: {sorted(unknown)}")
