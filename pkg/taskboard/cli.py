#!/usr/bin/env python3
"""
taskboard CLI
─────────────
Command-line front end for the task-management API.

Usage:
    taskboard login alice@example.com
    taskboard tasks --priority high --sort dueDate
    taskboard add "Write report" --due 2024-03-15 --priority high
    taskboard done <task-id>
    taskboard analytics --range 7d
    taskboard calendar --month 2024-03

State (tasks, projects, list settings, auth token) is kept in a local
snapshot between invocations; see snapshot.py.
"""

import argparse
import getpass
import logging
import sys
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from . import snapshot, views
from .analytics import ALL_PROJECTS, TimeRange, build_report, local_day
from .api import ApiClient
from .auth import AuthSession
from .calendar_grid import CalendarAggregator
from .config import Config
from .errors import SnapshotError, TaskboardError
from .log import setup_logging
from .schema import Priority, Task, TaskStatus, parse_timestamp, utc_now
from .store import TaskStore

logger = logging.getLogger(__name__)


@dataclass
class App:
    config: Config
    api: ApiClient
    store: TaskStore
    session: AuthSession


def build_app(config: Config) -> App:
    api = ApiClient(config.api_url, token=config.token, timeout=config.timeout)
    store = TaskStore(api, error_clear_secs=config.error_clear_secs)
    session = AuthSession(api, error_clear_secs=config.error_clear_secs)
    return App(config=config, api=api, store=store, session=session)


def _fail(message: Optional[str]) -> int:
    print(f"Error: {message or 'unknown error'}", file=sys.stderr)
    return 1


def _format_task(task: Task) -> str:
    mark = "x" if task.completed else " "
    due = f" due {task.due_date.date().isoformat()}" if task.due_date else ""
    return f"[{mark}] {task.id} {task.title} [{task.priority.value}]{due}"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Command handlers
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def cmd_login(args: argparse.Namespace, app: App) -> int:
    password = args.password or getpass.getpass("Password: ")
    if not app.session.login(args.email, password):
        return _fail(app.session.error)
    print(f"Logged in as {args.email}")
    return 0


def cmd_register(args: argparse.Namespace, app: App) -> int:
    password = args.password or getpass.getpass("Password: ")
    confirm = args.password or getpass.getpass("Confirm password: ")
    if not app.session.register(args.name, args.email, password, confirm):
        return _fail(app.session.error)
    print(f"Registered {args.email}")
    return 0


def cmd_logout(args: argparse.Namespace, app: App) -> int:
    app.session.logout()
    print("Logged out")
    return 0


def cmd_tasks(args: argparse.Namespace, app: App) -> int:
    store = app.store
    if not store.fetch_tasks():
        return _fail(store.error)

    if args.sort:
        store.set_view_settings(sortBy=args.sort)
    if args.order:
        store.set_view_settings(sortOrder=args.order)

    tasks = views.search_tasks(
        store.tasks,
        search=args.search or "",
        priorities=[Priority(p) for p in args.priority or []],
        statuses=[TaskStatus(s) for s in args.status or []],
        show_completed=not args.hide_completed,
    )
    tasks = views.sort_tasks(tasks, store.view_settings["sortBy"], store.view_settings["sortOrder"])

    if not tasks:
        print("No tasks found.")
        return 0
    for task in tasks:
        print(_format_task(task))
    print(f"Showing {len(tasks)} of {len(store.tasks)} tasks")
    return 0


def cmd_add(args: argparse.Namespace, app: App) -> int:
    fields = {"title": args.title, "priority": args.priority}
    if args.description:
        fields["description"] = args.description
    if args.due:
        try:
            fields["due_date"] = parse_timestamp(args.due)
        except ValueError:
            return _fail(f"Invalid due date: {args.due}")
    if args.project:
        fields["project_id"] = args.project
    try:
        task = app.store.add_task(**fields)
    except TaskboardError:
        return _fail(app.store.error)
    print(f"Task added: {task.id} {task.title} [{task.priority.value}]")
    return 0


def cmd_done(args: argparse.Namespace, app: App) -> int:
    # Unknown locally: the snapshot may predate the task.
    if app.store.get_task(args.id) is None and not app.store.fetch_tasks():
        return _fail(app.store.error)
    if not app.store.complete_task(args.id):
        return _fail(app.store.error)
    task = app.store.get_task(args.id)
    state = "completed" if task and task.completed else "reopened"
    print(f"Task {args.id} {state}")
    return 0


def cmd_rm(args: argparse.Namespace, app: App) -> int:
    if not app.store.delete_task(args.id):
        return _fail(app.store.error)
    print(f"Task {args.id} deleted.")
    return 0


def cmd_projects(args: argparse.Namespace, app: App) -> int:
    store = app.store
    if not (store.fetch_projects() and store.fetch_tasks()):
        return _fail(store.error)
    now = utc_now()
    if not store.projects:
        print("No projects found.")
    for project in store.projects:
        s = views.project_summary(store.tasks, project.id, now)
        print(f"{project.id} {project.name}: {s['completed']}/{s['total']} done "
              f"({s['completion_rate']}%), {s['overdue']} overdue")
    return 0


def cmd_add_project(args: argparse.Namespace, app: App) -> int:
    project = app.store.add_project(args.name, args.description or "", args.color)
    if project is None:
        return _fail(app.store.error)
    print(f"Project added: {project.id} {project.name}")
    return 0


def cmd_analytics(args: argparse.Namespace, app: App) -> int:
    store = app.store
    if not (store.fetch_tasks() and store.fetch_projects()):
        return _fail(store.error)
    cfg = app.config
    time_range = TimeRange.from_str(args.range) if args.range else cfg.time_range
    report = build_report(store.tasks, store.projects, time_range, utc_now(),
                          project_filter=args.project, weights=cfg.weights, tz=cfg.tz)

    print(f"Tasks ({time_range.value}): {report.total} total, {report.completed} completed, "
          f"{report.overdue} overdue")
    print(f"Productivity score: {report.productivity_score}")
    print(f"Streak: {report.streak} days")
    print("Priorities: " + ", ".join(f"{p.value}={n}" for p, n in report.priorities.items()))
    for ps in report.projects:
        print(f"  {ps.name}: {ps.completed}/{ps.total} ({round(ps.completion_rate)}%)")
    for point in report.trend:
        if point.total:
            print(f"  {point.label}: {point.completed}/{point.total}")
    return 0


def _parse_month(value: Optional[str], today: date):
    if not value:
        return today.year, today.month
    year, month = (int(part) for part in value.split("-", 1))
    if not 1 <= month <= 12:
        raise ValueError(value)
    return year, month


def cmd_calendar(args: argparse.Namespace, app: App) -> int:
    store = app.store
    if not store.fetch_tasks():
        return _fail(store.error)
    cfg = app.config
    today = local_day(utc_now(), cfg.tz)
    try:
        year, month = _parse_month(args.month, today)
    except ValueError:
        return _fail(f"Invalid month: {args.month} (expected YYYY-MM)")

    agg = CalendarAggregator(max_visible=cfg.calendar_max_visible, tz=cfg.tz)
    for day in agg.month_grid(store.tasks, year, month, today, args.project):
        if not day.tasks and not day.is_today:
            continue
        marker = "*" if day.is_today else " "
        titles = ", ".join(t.title for t in day.visible)
        more = f" {day.more_label}" if day.more_label else ""
        print(f"{marker}{day.date.isoformat()}: {titles}{more}")
    return 0


def cmd_dashboard(args: argparse.Namespace, app: App) -> int:
    store = app.store
    if not store.fetch_tasks():
        return _fail(store.error)
    s = views.dashboard_summary(store.tasks, utc_now().astimezone(app.config.tz))
    print(f"Total: {s['total']}  Completed: {s['completed']} ({s['completion_rate']}%)")
    print(f"Due today: {s['due_today']}  Overdue: {s['overdue']}  Upcoming: {s['upcoming']}")
    if s["deadlines"]:
        print("Next deadlines:")
        for task in s["deadlines"]:
            print(f"  {_format_task(task)}")
    return 0


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Entry point
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


COMMANDS = {
    "login": cmd_login,
    "register": cmd_register,
    "logout": cmd_logout,
    "tasks": cmd_tasks,
    "add": cmd_add,
    "done": cmd_done,
    "rm": cmd_rm,
    "projects": cmd_projects,
    "add-project": cmd_add_project,
    "analytics": cmd_analytics,
    "calendar": cmd_calendar,
    "dashboard": cmd_dashboard,
}


def create_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="taskboard", description="Task management client")
    ap.add_argument("--config", default=None, help="Path to config.yaml")
    sub = ap.add_subparsers(dest="command")

    p = sub.add_parser("login", help="Log in and store the token")
    p.add_argument("email")
    p.add_argument("--password", default=None)

    p = sub.add_parser("register", help="Create an account")
    p.add_argument("name")
    p.add_argument("email")
    p.add_argument("--password", default=None)

    sub.add_parser("logout", help="Forget the stored token")

    p = sub.add_parser("tasks", help="List tasks")
    p.add_argument("--search", default=None)
    p.add_argument("--priority", action="append", choices=[x.value for x in Priority])
    p.add_argument("--status", action="append", choices=[x.value for x in TaskStatus])
    p.add_argument("--hide-completed", action="store_true")
    p.add_argument("--sort", choices=views.SORT_KEYS, default=None)
    p.add_argument("--order", choices=["asc", "desc"], default=None)

    p = sub.add_parser("add", help="Add a task")
    p.add_argument("title")
    p.add_argument("--description", default=None)
    p.add_argument("--priority", choices=[x.value for x in Priority], default="medium")
    p.add_argument("--due", default=None, help="Due date (ISO-8601)")
    p.add_argument("--project", default=None)

    p = sub.add_parser("done", help="Toggle completion of a task")
    p.add_argument("id")

    p = sub.add_parser("rm", help="Delete a task")
    p.add_argument("id")

    sub.add_parser("projects", help="List projects")

    p = sub.add_parser("add-project", help="Add a project")
    p.add_argument("name")
    p.add_argument("--description", default=None)
    p.add_argument("--color", default=None)

    p = sub.add_parser("analytics", help="Productivity analytics")
    p.add_argument("--range", choices=[x.value for x in TimeRange], default=None)
    p.add_argument("--project", default=ALL_PROJECTS)

    p = sub.add_parser("calendar", help="Tasks by due date for one month")
    p.add_argument("--month", default=None, help="YYYY-MM (default: current month)")
    p.add_argument("--project", default=ALL_PROJECTS)

    sub.add_parser("dashboard", help="Overview of due and overdue tasks")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    ap = create_parser()
    args = ap.parse_args(argv)
    if args.command is None:
        ap.print_help()
        return 1

    config = Config.load(args.config)
    setup_logging(config.log_level)
    app = build_app(config)

    try:
        snapshot.load(config.state_path, app.store, app.session)
    except SnapshotError as e:
        logger.warning("Starting from empty state: %s", e)

    try:
        code = COMMANDS[args.command](args, app)
    except TaskboardError as e:
        code = _fail(str(e))
    try:
        snapshot.save(config.state_path, app.store, app.session)
    except SnapshotError as e:
        logger.error("State not saved: %s", e)
    return code


if __name__ == "__main__":
    sys.exit(main())
