"""
Optimistic mutation tracking.

Each task carries a revision number that increases with every local change.
A pending toggle remembers the revision it produced; its server response is
applied only while that revision is still current. Anything else means a
newer local mutation has superseded it.

    CLEAN ──begin──▶ PENDING ──ok──▶ RECONCILED
                        │
                        └──fail──▶ ROLLED_BACK
"""
from enum import Enum
from dataclasses import dataclass
from typing import Dict


class SyncState(Enum):
    CLEAN = "clean"
    PENDING = "pending"
    RECONCILED = "reconciled"
    ROLLED_BACK = "rolled_back"


@dataclass(frozen=True)
class PendingToggle:
    """An optimistic completion flip awaiting the server's answer."""
    task_id: str
    previous: bool
    optimistic: bool
    revision: int


class RevisionTracker:
    """Per-task revision counters and sync states."""

    def __init__(self):
        self._revisions: Dict[str, int] = {}
        self._states: Dict[str, SyncState] = {}

    def revision(self, task_id: str) -> int:
        return self._revisions.get(task_id, 0)

    def state(self, task_id: str) -> SyncState:
        return self._states.get(task_id, SyncState.CLEAN)

    def bump(self, task_id: str) -> int:
        rev = self.revision(task_id) + 1
        self._revisions[task_id] = rev
        return rev

    def set_state(self, task_id: str, state: SyncState) -> None:
        self._states[task_id] = state

    def is_current(self, pending: PendingToggle) -> bool:
        return self.revision(pending.task_id) == pending.revision

    def forget(self, task_id: str) -> None:
        self._revisions.pop(task_id, None)
        self._states.pop(task_id, None)

    def reset(self) -> None:
        self._revisions.clear()
        self._states.clear()
