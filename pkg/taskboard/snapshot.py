"""
Versioned on-disk snapshot of the client state.

Layout (JSON):
    {
      "version": 1,
      "tasks": [...], "projects": [...],
      "filters": {...}, "view_settings": {...}, "selected_tasks": [...],
      "auth": {"token": "...", "user": {...}}
    }
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .auth import AuthSession
from .errors import SnapshotError
from .schema import Project, Task
from .store import DEFAULT_VIEW_SETTINGS, TaskStore

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def dump_state(store: TaskStore, session: Optional[AuthSession] = None) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "version": SNAPSHOT_VERSION,
        "tasks": [t.to_dict() for t in store.tasks],
        "projects": [p.to_dict() for p in store.projects],
        "filters": dict(store.filters),
        "view_settings": dict(store.view_settings),
        "selected_tasks": list(store.selected_tasks),
    }
    if session is not None:
        data["auth"] = {"token": session.token, "user": session.user}
    return data


def restore_state(data: Dict[str, Any], store: TaskStore,
                  session: Optional[AuthSession] = None) -> None:
    """Load a dumped state into `store` (and `session`). Raises SnapshotError."""
    version = data.get("version") if isinstance(data, dict) else None
    if version != SNAPSHOT_VERSION:
        raise SnapshotError(f"Unsupported snapshot version: {version!r}")
    try:
        tasks = [Task.from_dict(t) for t in data.get("tasks", [])]
        projects = [Project.from_dict(p) for p in data.get("projects", [])]
    except (TypeError, ValueError, AttributeError) as e:
        raise SnapshotError(f"Corrupt snapshot: {e}") from e

    store.tasks = tasks
    store.projects = projects
    store.filters = dict(data.get("filters") or {})
    store.view_settings = {**DEFAULT_VIEW_SETTINGS, **(data.get("view_settings") or {})}
    store.selected_tasks = list(data.get("selected_tasks") or [])

    auth = data.get("auth") or {}
    if session is not None and auth.get("token"):
        session.token = auth["token"]
        session.user = auth.get("user")
        session.api.token = session.token


def save(path: Path, store: TaskStore, session: Optional[AuthSession] = None) -> None:
    """Write the snapshot atomically (tmp file + rename). Raises SnapshotError."""
    path = Path(path)
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w") as f:
            json.dump(dump_state(store, session), f, indent=2)
        tmp.replace(path)
    except (OSError, TypeError, ValueError) as e:
        if tmp.exists():
            tmp.unlink()
        raise SnapshotError(f"Cannot write snapshot {path}: {e}") from e
    logger.debug("Saved snapshot to %s", path)


def load(path: Path, store: TaskStore, session: Optional[AuthSession] = None) -> bool:
    """Restore from `path`. Returns False when there is no snapshot yet."""
    path = Path(path)
    if not path.exists():
        return False
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise SnapshotError(f"Cannot read snapshot {path}: {e}") from e
    restore_state(data, store, session)
    logger.debug("Loaded snapshot from %s", path)
    return True
