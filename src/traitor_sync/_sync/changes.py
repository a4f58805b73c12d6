# Area: Sync
"""
traitor_sync._sync.changes — Outgoing local changes
===================================================

Records accepted by ``SyncEngine.propose_local_change``. Each kind maps
to one merge class:

- SessionFieldsChange: single-writer session fields, overwritten
- PlayerFieldsChange: one player row, overwritten field by field
- RosterBatchChange: several player rows in one atomic write
- VoteChange: one ledger entry, merged atomically with retry
- MeetingReadyChange: one readiness entry, merged atomically
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Union


@dataclass(frozen=True)
class SessionFieldsChange:
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PlayerFieldsChange:
    name: str
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RosterBatchChange:
    updates: Dict[str, Dict[str, Any]] = field(default_factory=dict)


@dataclass(frozen=True)
class VoteChange:
    voter: str
    target: str


@dataclass(frozen=True)
class MeetingReadyChange:
    name: str


LocalChange = Union[
    SessionFieldsChange, PlayerFieldsChange, RosterBatchChange, VoteChange, MeetingReadyChange,
]
