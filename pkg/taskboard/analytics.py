"""
Productivity analytics derived from the task collection.

Every function here is pure: the same tasks, window, filter and `now` always
produce the same result. Nothing reads the system clock.

Score formula (weights configurable through ScoreWeights):

    score = round(completion_rate * 0.7 + on_time_rate * 0.3)

    completion_rate = completed / filtered              (percent)
    on_time_rate    = on_time / max(completed, 1)       (percent)
"""
import math
from enum import Enum
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Dict, Iterable, List, Optional, Sequence

from .schema import Priority, Project, Task

ALL_PROJECTS = "all"


class TimeRange(Enum):
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"

    @property
    def days(self) -> int:
        return int(self.value[:-1])

    @classmethod
    def from_str(cls, value: str) -> "TimeRange":
        try:
            return cls(value)
        except ValueError:
            return cls.LAST_30_DAYS


@dataclass(frozen=True)
class ScoreWeights:
    completion: float = 0.7
    on_time: float = 0.3


@dataclass
class TrendPoint:
    date: date
    label: str
    total: int
    completed: int
    completion_rate: float


@dataclass
class ProjectStats:
    project_id: str
    name: str
    color: str
    total: int
    completed: int
    completion_rate: float


@dataclass
class AnalyticsReport:
    time_range: TimeRange
    project_filter: str
    total: int
    completed: int
    overdue: int
    trend: List[TrendPoint] = field(default_factory=list)
    priorities: Dict[Priority, int] = field(default_factory=dict)
    projects: List[ProjectStats] = field(default_factory=list)
    streak: int = 0
    productivity_score: int = 0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def as_aware(now: datetime) -> datetime:
    return now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)


def local_day(dt: datetime, tz: tzinfo = timezone.utc) -> date:
    """Calendar date of `dt` as seen in `tz`."""
    return as_aware(dt).astimezone(tz).date()


def window_start(now: datetime, days: int, tz: tzinfo = timezone.utc) -> datetime:
    """Midnight (in `tz`) opening the `days`-long window that ends today."""
    first = local_day(now, tz) - timedelta(days=days - 1)
    return datetime.combine(first, time.min, tzinfo=tz)


def _matches_project(task: Task, project_filter: Optional[str]) -> bool:
    return not project_filter or project_filter == ALL_PROJECTS or task.project_id == project_filter


def filter_tasks(tasks: Iterable[Task], time_range: TimeRange, now: datetime,
                 project_filter: Optional[str] = ALL_PROJECTS,
                 tz: tzinfo = timezone.utc) -> List[Task]:
    """Tasks created inside the window ending at `now` and matching the project filter."""
    now = as_aware(now)
    start = window_start(now, time_range.days, tz)
    return [
        t for t in tasks
        if start <= t.created_at <= now and _matches_project(t, project_filter)
    ]


def completion_trend(filtered: Sequence[Task], time_range: TimeRange, now: datetime,
                     tz: tzinfo = timezone.utc) -> List[TrendPoint]:
    """Per-day created/completed counts, oldest day first."""
    today = local_day(now, tz)
    by_day: Dict[date, List[Task]] = {}
    for task in filtered:
        by_day.setdefault(local_day(task.created_at, tz), []).append(task)

    points = []
    for offset in range(time_range.days - 1, -1, -1):
        day = today - timedelta(days=offset)
        day_tasks = by_day.get(day, [])
        done = sum(1 for t in day_tasks if t.completed)
        points.append(TrendPoint(
            date=day,
            label=day.strftime("%b %d"),
            total=len(day_tasks),
            completed=done,
            completion_rate=(done / len(day_tasks) * 100) if day_tasks else 0.0,
        ))
    return points


def priority_distribution(filtered: Sequence[Task]) -> Dict[Priority, int]:
    """Counts per priority, high first, zero-filled."""
    counts = {Priority.HIGH: 0, Priority.MEDIUM: 0, Priority.LOW: 0}
    for task in filtered:
        counts[task.priority] += 1
    return counts


def project_stats(filtered: Sequence[Task], projects: Sequence[Project]) -> List[ProjectStats]:
    stats = []
    for project in projects:
        mine = [t for t in filtered if t.project_id == project.id]
        done = sum(1 for t in mine if t.completed)
        stats.append(ProjectStats(
            project_id=project.id,
            name=project.name,
            color=project.color,
            total=len(mine),
            completed=done,
            completion_rate=(done / len(mine) * 100) if mine else 0.0,
        ))
    return stats


def overdue_count(filtered: Sequence[Task], now: datetime) -> int:
    now = as_aware(now)
    return sum(1 for t in filtered if t.is_overdue(now))


def streak(filtered: Sequence[Task], tz: tzinfo = timezone.utc) -> int:
    """Longest run of consecutive days with at least one completion."""
    days = sorted(
        {local_day(t.completed_at, tz) for t in filtered if t.completed and t.completed_at},
        reverse=True,
    )
    best = 0
    current = 0
    last: Optional[date] = None
    for day in days:
        if last is not None and (last - day).days <= 1:
            current += 1
        else:
            best = max(best, current)
            current = 1
        last = day
    return max(best, current)


def _on_time(task: Task) -> bool:
    if task.due_date is None:
        return True
    return task.completed_at is not None and task.completed_at <= task.due_date


def productivity_score(filtered: Sequence[Task], weights: ScoreWeights = ScoreWeights()) -> int:
    if not filtered:
        return 0
    completed = [t for t in filtered if t.completed]
    completion_rate = len(completed) / len(filtered) * 100
    on_time_rate = sum(1 for t in completed if _on_time(t)) / max(len(completed), 1) * 100
    return round_half_up(completion_rate * weights.completion + on_time_rate * weights.on_time)


def build_report(tasks: Iterable[Task], projects: Sequence[Project], time_range: TimeRange,
                 now: datetime, project_filter: Optional[str] = ALL_PROJECTS,
                 weights: ScoreWeights = ScoreWeights(),
                 tz: tzinfo = timezone.utc) -> AnalyticsReport:
    """Compute every statistic for one (window, filter, now) combination."""
    filtered = filter_tasks(tasks, time_range, now, project_filter, tz)
    return AnalyticsReport(
        time_range=time_range,
        project_filter=project_filter or ALL_PROJECTS,
        total=len(filtered),
        completed=sum(1 for t in filtered if t.completed),
        overdue=overdue_count(filtered, now),
        trend=completion_trend(filtered, time_range, now, tz),
        priorities=priority_distribution(filtered),
        projects=project_stats(filtered, projects),
        streak=streak(filtered, tz),
        productivity_score=productivity_score(filtered, weights),
    )
