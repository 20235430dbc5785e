"""
Client-side task store.

Holds the locally cached tasks and projects, keeps them consistent with
server responses, and records the most recent failure as a single error
string. Completion toggles are applied optimistically (see mutations.py).
"""
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from .api import ApiClient
from .errors import ApiError, ValidationError
from .mutations import PendingToggle, RevisionTracker, SyncState
from .schema import Project, Task, has_id, to_payload

logger = logging.getLogger(__name__)

DEFAULT_VIEW_SETTINGS = {
    "sortBy": "createdAt",
    "sortOrder": "desc",
    "showSubtasks": True,
    "showDescription": False,
}


class ErrorSlot:
    """
    The single current error message.

    A message expires `clear_after` seconds after it was set unless it is
    dismissed or replaced first.
    """

    def __init__(self, clear_after: float = 5.0, clock: Callable[[], float] = time.monotonic):
        self.clear_after = clear_after
        self._clock = clock
        self._message: Optional[str] = None
        self._set_at = 0.0

    def set(self, message: str) -> None:
        self._message = message
        self._set_at = self._clock()

    def get(self) -> Optional[str]:
        if self._message is not None and self._clock() - self._set_at >= self.clear_after:
            self._message = None
        return self._message

    def dismiss(self) -> None:
        self._message = None


def _message(error: Exception, fallback: str) -> str:
    return str(error) or fallback


def _parse(factory: Callable[[Any], Any], data: Any) -> Any:
    """Normalize one server document; malformed input becomes an ApiError."""
    try:
        return factory(data)
    except (ValueError, TypeError, AttributeError) as e:
        raise ApiError(f"Invalid response from server: {e}") from e


def _parse_list(factory: Callable[[Any], Any], data: Any) -> List[Any]:
    if not isinstance(data, list):
        raise ApiError("Invalid response from server: expected a list")
    return [_parse(factory, d) for d in data]


class TaskStore:
    """In-memory repository of tasks and projects backed by the REST API."""

    def __init__(self, api: ApiClient, clock: Callable[[], float] = time.monotonic,
                 error_clear_secs: float = 5.0):
        self.api = api
        self.tasks: List[Task] = []
        self.projects: List[Project] = []
        self.filters: Dict[str, Any] = {}
        self.view_settings: Dict[str, Any] = dict(DEFAULT_VIEW_SETTINGS)
        self.selected_tasks: List[str] = []
        self.is_loading = False
        self._error = ErrorSlot(error_clear_secs, clock)
        self._revisions = RevisionTracker()

    # ── Error state ──────────────────────────────────────────────────────────

    @property
    def error(self) -> Optional[str]:
        return self._error.get()

    def clear_error(self) -> None:
        self._error.dismiss()

    def _fail(self, error: Exception, fallback: str) -> None:
        msg = _message(error, fallback)
        logger.error("%s: %s", fallback, msg)
        self._error.set(msg)
        self.is_loading = False

    def _start(self) -> None:
        self.is_loading = True
        self._error.dismiss()

    # ── Lookups ──────────────────────────────────────────────────────────────

    def get_task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def get_project(self, project_id: str) -> Optional[Project]:
        for project in self.projects:
            if project.id == project_id:
                return project
        return None

    def sync_state(self, task_id: str) -> SyncState:
        return self._revisions.state(task_id)

    def _replace(self, task_id: str, task: Task) -> None:
        self.tasks = [task if t.id == task_id else t for t in self.tasks]

    # ── Tasks ────────────────────────────────────────────────────────────────

    def fetch_tasks(self) -> bool:
        self._start()
        try:
            tasks = _parse_list(Task.from_api, self.api.list_tasks())
        except ApiError as e:
            self._fail(e, "Failed to fetch tasks")
            return False
        self.tasks = tasks
        # A fresh listing supersedes whatever was in flight.
        for task in self.tasks:
            self._revisions.bump(task.id)
            self._revisions.set_state(task.id, SyncState.CLEAN)
        self.is_loading = False
        logger.info("Loaded %d tasks", len(self.tasks))
        return True

    def add_task(self, **fields) -> Task:
        """Create a task. Records the error and re-raises on failure."""
        self._start()
        try:
            title = fields.get("title")
            if not isinstance(title, str) or not title.strip():
                raise ValidationError("Task title is required")
            task = _parse(Task.from_api, self.api.create_task(to_payload(fields)))
        except (ApiError, ValidationError) as e:
            self._fail(e, "Failed to add task")
            raise
        self.tasks = [task] + self.tasks
        self._revisions.bump(task.id)
        self.is_loading = False
        logger.info("Created task %s", task.id)
        return task

    def update_task(self, task_id: str, **updates) -> Optional[Task]:
        self._start()
        try:
            task = _parse(Task.from_api, self.api.update_task(task_id, to_payload(updates)))
        except ApiError as e:
            self._fail(e, "Failed to update task")
            return None
        self._replace(task_id, task)
        self._revisions.bump(task_id)
        self._revisions.set_state(task_id, SyncState.CLEAN)
        self.is_loading = False
        return task

    def delete_task(self, task_id: str) -> bool:
        self._start()
        try:
            self.api.delete_task(task_id)
        except ApiError as e:
            self._fail(e, "Failed to delete task")
            return False
        self.tasks = [t for t in self.tasks if t.id != task_id]
        self.selected_tasks = [tid for tid in self.selected_tasks if tid != task_id]
        self._revisions.forget(task_id)
        self.is_loading = False
        return True

    # ── Optimistic completion ────────────────────────────────────────────────

    def begin_toggle(self, task_id: str) -> Optional[PendingToggle]:
        """Flip `completed` locally before the server has answered."""
        task = self.get_task(task_id)
        if task is None:
            return None
        previous = task.completed
        task.completed = not previous
        rev = self._revisions.bump(task_id)
        self._revisions.set_state(task_id, SyncState.PENDING)
        return PendingToggle(task_id=task_id, previous=previous,
                             optimistic=task.completed, revision=rev)

    def reconcile(self, pending: PendingToggle, data: Any) -> bool:
        """
        Apply the server's version of the task unless it has gone stale.

        A success response without a task document keeps the optimistic copy.
        Raises ApiError if the document cannot be normalized; nothing is
        changed in that case.
        """
        if not self._revisions.is_current(pending):
            logger.info("Discarding stale completion response for task %s", pending.task_id)
            return False
        if has_id(data):
            self._replace(pending.task_id, _parse(Task.from_api, data))
        else:
            logger.warning("Completion of task %s returned no task document; "
                           "keeping local copy", pending.task_id)
        self._revisions.set_state(pending.task_id, SyncState.RECONCILED)
        self.is_loading = False
        return True

    def rollback(self, pending: PendingToggle, error: Exception) -> bool:
        """Undo the optimistic flip and record the failure."""
        self._fail(error, "Failed to complete task")
        if not self._revisions.is_current(pending):
            logger.info("Not rolling back task %s: superseded by a newer change",
                        pending.task_id)
            return False
        task = self.get_task(pending.task_id)
        if task is None:
            return False
        task.completed = pending.previous
        self._revisions.set_state(pending.task_id, SyncState.ROLLED_BACK)
        logger.warning("Rolled back completion of task %s", pending.task_id)
        return True

    def complete_task(self, task_id: str) -> bool:
        pending = self.begin_toggle(task_id)
        if pending is None:
            self._error.set("Task not found")
            return False
        try:
            return self.reconcile(pending, self.api.complete_task(task_id))
        except ApiError as e:
            self.rollback(pending, e)
            return False

    # ── Projects ─────────────────────────────────────────────────────────────

    def fetch_projects(self) -> bool:
        self._start()
        try:
            projects = _parse_list(Project.from_api, self.api.list_projects())
        except ApiError as e:
            self._fail(e, "Failed to fetch projects")
            return False
        self.projects = projects
        self.is_loading = False
        return True

    def add_project(self, name: str, description: str = "", color: Optional[str] = None) -> Optional[Project]:
        self._start()
        payload: Dict[str, Any] = {"name": name, "description": description}
        if color:
            payload["color"] = color
        try:
            if not name.strip():
                raise ValidationError("Project name is required")
            project = _parse(Project.from_api, self.api.create_project(payload))
        except (ApiError, ValidationError) as e:
            self._fail(e, "Failed to add project")
            return None
        self.projects = [project] + self.projects
        self.is_loading = False
        return project

    def update_project(self, project_id: str, **updates) -> Optional[Project]:
        self._start()
        try:
            project = _parse(Project.from_api, self.api.update_project(project_id, updates))
        except ApiError as e:
            self._fail(e, "Failed to update project")
            return None
        self.projects = [project if p.id == project_id else p for p in self.projects]
        self.is_loading = False
        return project

    def delete_project(self, project_id: str) -> bool:
        self._start()
        try:
            self.api.delete_project(project_id)
        except ApiError as e:
            self._fail(e, "Failed to delete project")
            return False
        self.projects = [p for p in self.projects if p.id != project_id]
        self.is_loading = False
        return True

    # ── List state ───────────────────────────────────────────────────────────

    def set_filters(self, **filters) -> None:
        self.filters.update(filters)

    def clear_filters(self) -> None:
        self.filters = {}

    def set_view_settings(self, **settings) -> None:
        self.view_settings.update(settings)

    def set_selected_tasks(self, task_ids: List[str]) -> None:
        self.selected_tasks = list(task_ids)

    def toggle_task_selection(self, task_id: str) -> None:
        if task_id in self.selected_tasks:
            self.selected_tasks = [tid for tid in self.selected_tasks if tid != task_id]
        else:
            self.selected_tasks = self.selected_tasks + [task_id]
