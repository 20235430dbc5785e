"""
List, dashboard and project-card views over the task collection.
"""
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Any

from .analytics import as_aware, local_day, round_half_up
from .schema import Priority, Task, TaskStatus

SORT_KEYS = ("createdAt", "updatedAt", "dueDate", "priority", "title")
UPCOMING_DAYS = 7
DASHBOARD_LIST_SIZE = 5


def search_tasks(tasks: Iterable[Task], search: str = "",
                 priorities: Optional[Sequence[Priority]] = None,
                 statuses: Optional[Sequence[TaskStatus]] = None,
                 show_completed: bool = True) -> List[Task]:
    needle = search.lower()
    result = []
    for task in tasks:
        if needle and needle not in task.title.lower():
            continue
        if priorities and task.priority not in priorities:
            continue
        if statuses and task.status not in statuses:
            continue
        if not show_completed and task.completed:
            continue
        result.append(task)
    return result


def _sort_key(sort_by: str):
    if sort_by == "priority":
        return lambda t: t.priority.rank
    if sort_by == "dueDate":
        # Undated tasks sort as the oldest.
        return lambda t: (t.due_date is not None, t.due_date.timestamp() if t.due_date else 0)
    if sort_by == "title":
        return lambda t: t.title.lower()
    if sort_by == "updatedAt":
        return lambda t: t.updated_at
    return lambda t: t.created_at


def sort_tasks(tasks: Iterable[Task], sort_by: str = "createdAt", order: str = "desc") -> List[Task]:
    return sorted(tasks, key=_sort_key(sort_by), reverse=(order != "asc"))


def dashboard_summary(tasks: Sequence[Task], now: datetime) -> Dict[str, Any]:
    """Counts and short lists shown on the dashboard."""
    now = as_aware(now)
    today = local_day(now, now.tzinfo)
    horizon = now + timedelta(days=UPCOMING_DAYS)

    completed = [t for t in tasks if t.completed]
    open_tasks = [t for t in tasks if not t.completed]

    due_today = [
        t for t in tasks
        if t.due_date is not None and local_day(t.due_date, now.tzinfo) == today
    ]
    upcoming = [t for t in open_tasks if t.due_date is not None and now <= t.due_date <= horizon]

    recent = sorted(open_tasks, key=lambda t: t.updated_at, reverse=True)[:DASHBOARD_LIST_SIZE]
    deadlines = sorted(
        (t for t in open_tasks if t.due_date is not None),
        key=lambda t: t.due_date,
    )[:DASHBOARD_LIST_SIZE]

    return {
        "total": len(tasks),
        "completed": len(completed),
        "completion_rate": round_half_up(len(completed) / len(tasks) * 100) if tasks else 0,
        "due_today": len(due_today),
        "overdue": sum(1 for t in tasks if t.is_overdue(now)),
        "upcoming": len(upcoming),
        "recent": recent,
        "deadlines": deadlines,
    }


def project_summary(tasks: Sequence[Task], project_id: str, now: datetime) -> Dict[str, int]:
    now = as_aware(now)
    mine = [t for t in tasks if t.project_id == project_id]
    done = sum(1 for t in mine if t.completed)
    return {
        "total": len(mine),
        "completed": done,
        "overdue": sum(1 for t in mine if t.is_overdue(now)),
        "completion_rate": round_half_up(done / len(mine) * 100) if mine else 0,
    }
