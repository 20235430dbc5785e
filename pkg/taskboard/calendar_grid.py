"""
Month calendar aggregation: tasks grouped by the calendar day they are due.

A task belongs to the day its due date falls on in the aggregator's
timezone; the time of day plays no part.
"""
import calendar
from dataclasses import dataclass, field
from datetime import date, timezone, tzinfo
from typing import Dict, Iterable, List, Optional, Tuple

from .analytics import ALL_PROJECTS, local_day
from .schema import Task

DEFAULT_MAX_VISIBLE = 3


@dataclass
class CalendarDay:
    date: date
    tasks: List[Task] = field(default_factory=list)
    visible: List[Task] = field(default_factory=list)
    overflow: int = 0
    is_today: bool = False

    @property
    def more_label(self) -> str:
        return f"+{self.overflow} more" if self.overflow else ""


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    """Move `delta` months forward (or back) from (year, month)."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


class CalendarAggregator:
    """Groups tasks by due date for month display."""

    def __init__(self, max_visible: int = DEFAULT_MAX_VISIBLE, tz: tzinfo = timezone.utc):
        self.max_visible = max_visible
        self.tz = tz

    def _matches(self, task: Task, project_filter: Optional[str]) -> bool:
        return not project_filter or project_filter == ALL_PROJECTS or task.project_id == project_filter

    def group_by_day(self, tasks: Iterable[Task],
                     project_filter: Optional[str] = ALL_PROJECTS) -> Dict[date, List[Task]]:
        grouped: Dict[date, List[Task]] = {}
        for task in tasks:
            if task.due_date is None or not self._matches(task, project_filter):
                continue
            grouped.setdefault(local_day(task.due_date, self.tz), []).append(task)
        return grouped

    def tasks_for_date(self, tasks: Iterable[Task], day: date,
                       project_filter: Optional[str] = ALL_PROJECTS) -> List[Task]:
        return self.group_by_day(tasks, project_filter).get(day, [])

    def make_day(self, day: date, tasks: List[Task], today: Optional[date] = None) -> CalendarDay:
        return CalendarDay(
            date=day,
            tasks=tasks,
            visible=tasks[:self.max_visible],
            overflow=max(len(tasks) - self.max_visible, 0),
            is_today=day == today,
        )

    def month_grid(self, tasks: Iterable[Task], year: int, month: int,
                   today: Optional[date] = None,
                   project_filter: Optional[str] = ALL_PROJECTS) -> List[CalendarDay]:
        """One CalendarDay for every day of the month, in order."""
        grouped = self.group_by_day(tasks, project_filter)
        _, n_days = calendar.monthrange(year, month)
        days = []
        for d in range(1, n_days + 1):
            day = date(year, month, d)
            days.append(self.make_day(day, grouped.get(day, []), today))
        return days
