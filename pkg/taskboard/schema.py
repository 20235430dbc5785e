"""
Task and project schema, plus wire normalization.

The API speaks the persistence layer's field names (`_id`, `project`,
camelCase timestamps). Everything inside the client uses the dataclasses
below; `from_api()` is the only way in and `to_payload()` the only way out.
"""
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any


DEFAULT_PROJECT_COLOR = "#6B7280"


class Priority(Enum):
    """Task priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_str(cls, value: Optional[str]) -> "Priority":
        try:
            return cls(value)
        except ValueError:
            return cls.MEDIUM

    @property
    def rank(self) -> int:
        return {"low": 1, "medium": 2, "high": 3}[self.value]


class TaskStatus(Enum):
    """Workflow status, independent of the `completed` flag."""
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"
    CANCELLED = "cancelled"

    @classmethod
    def from_str(cls, value: Optional[str]) -> "TaskStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.TODO


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware datetime (naive = UTC)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _ref_id(value: Any) -> Optional[str]:
    """Resolve an id that may arrive as a string or an embedded document."""
    if isinstance(value, dict):
        value = value.get("_id") or value.get("id")
    if value in (None, "", "none"):
        return None
    return str(value)


def has_id(data: Any) -> bool:
    """True if `data` is a document carrying an `_id` or `id`."""
    return isinstance(data, dict) and _ref_id(data) is not None


def _require_document(data: Any, kind: str) -> None:
    if not isinstance(data, dict):
        raise ValueError(f"Expected a {kind} document, got {type(data).__name__}")


@dataclass
class SubTask:
    id: str
    title: str
    completed: bool = False
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "completed": self.completed,
            "createdAt": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubTask":
        return cls(
            id=_ref_id(data) or "",
            title=data.get("title", ""),
            completed=bool(data.get("completed", False)),
            created_at=parse_timestamp(data.get("createdAt")),
        )


@dataclass
class Task:
    """A task as held by the client."""

    id: str
    title: str
    description: str = ""
    completed: bool = False
    priority: Priority = Priority.MEDIUM
    status: TaskStatus = TaskStatus.TODO
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    project_id: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    subtasks: List[SubTask] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def is_overdue(self, now: datetime) -> bool:
        return not self.completed and self.due_date is not None and self.due_date < now

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with client field names (used by the local snapshot)."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "priority": self.priority.value,
            "status": self.status.value,
            "dueDate": format_timestamp(self.due_date),
            "completedAt": format_timestamp(self.completed_at),
            "projectId": self.project_id,
            "tags": list(self.tags),
            "subtasks": [s.to_dict() for s in self.subtasks],
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Task":
        """Normalize a server (or snapshot) document into a Task."""
        _require_document(data, "task")
        completed = bool(data.get("completed", False))
        completed_at = parse_timestamp(data.get("completedAt"))
        if not completed:
            completed_at = None

        project = data.get("project")
        project_id = _ref_id(project) if project else _ref_id(data.get("projectId"))

        now = utc_now()
        return cls(
            id=_ref_id(data) or "",
            title=data.get("title", ""),
            description=data.get("description") or "",
            completed=completed,
            priority=Priority.from_str(data.get("priority")),
            status=TaskStatus.from_str(data.get("status")),
            due_date=parse_timestamp(data.get("dueDate")),
            completed_at=completed_at,
            project_id=project_id,
            tags=list(data.get("tags") or []),
            subtasks=[SubTask.from_dict(s) for s in data.get("subtasks") or []],
            created_at=parse_timestamp(data.get("createdAt")) or now,
            updated_at=parse_timestamp(data.get("updatedAt")) or now,
        )

    # Snapshots use the same field names, so one reader covers both.
    from_dict = from_api


def to_payload(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build an outgoing request body from client-side field names.

    Accepts both snake_case attribute names and their wire names; values of
    enum or datetime type are flattened. An empty project reference is dropped.
    """
    aliases = {
        "due_date": "dueDate",
        "completed_at": "completedAt",
        "project_id": "project",
        "projectId": "project",
    }
    payload: Dict[str, Any] = {}
    for key, value in fields.items():
        key = aliases.get(key, key)
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, datetime):
            value = value.isoformat()
        elif key == "subtasks":
            value = [s.to_dict() if isinstance(s, SubTask) else s for s in value]
        payload[key] = value

    if "project" in payload and _ref_id(payload["project"]) is None:
        del payload["project"]
    return payload


@dataclass
class Project:
    id: str
    name: str
    description: str = ""
    color: str = DEFAULT_PROJECT_COLOR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
        }

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Project":
        _require_document(data, "project")
        return cls(
            id=_ref_id(data) or "",
            name=data.get("name", ""),
            description=data.get("description") or "",
            color=data.get("color") or DEFAULT_PROJECT_COLOR,
        )

    from_dict = from_api
