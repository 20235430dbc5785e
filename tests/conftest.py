"""Shared test fixtures for the taskboard client tests."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure the repo root is importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent))

from pkg.taskboard.api import ApiClient
from pkg.taskboard.errors import ApiError
from pkg.taskboard.store import TaskStore


NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, secs: float) -> None:
        self.now += secs


class FakeApi(ApiClient):
    """
    In-memory stand-in for the REST API.

    Documents use the server's field names (`_id`, `project`). Set
    `fail_with` to make the next calls raise ApiError; `on_complete` runs
    inside complete_task before the response is returned. A non-None
    `complete_response` replaces the body the complete endpoint returns.
    """

    def __init__(self, tasks=None, projects=None):
        super().__init__("http://api.test")
        self.tasks = list(tasks or [])
        self.projects = list(projects or [])
        self.fail_with = None
        self.on_complete = None
        self.complete_response = None
        self.calls = []
        self._next_id = 100

    def request(self, method, endpoint, body=None):
        self.calls.append((method, endpoint, body))
        if self.fail_with:
            raise ApiError(self.fail_with, status=500)
        return self._route(method, endpoint, body)

    def _new_id(self):
        self._next_id += 1
        return f"id{self._next_id}"

    def _find(self, docs, doc_id):
        for doc in docs:
            if doc["_id"] == doc_id:
                return doc
        raise ApiError("Not found", status=404)

    def _route(self, method, endpoint, body):
        parts = endpoint.strip("/").split("/")
        docs = self.tasks if parts[0] == "tasks" else self.projects
        if parts[0] == "auth":
            return {"token": "tok-123", "user": {"email": body["email"]}}
        if len(parts) == 1 and method == "GET":
            return [dict(d) for d in docs]
        if len(parts) == 1 and method == "POST":
            doc = dict(body, _id=self._new_id(),
                       createdAt="2024-03-15T12:00:00.000Z",
                       updatedAt="2024-03-15T12:00:00.000Z")
            docs.append(doc)
            return dict(doc)
        doc = self._find(docs, parts[1])
        if len(parts) == 3 and parts[2] == "complete":
            if self.on_complete:
                self.on_complete()
            if self.complete_response is not None:
                return self.complete_response
            doc.update(completed=True, completedAt="2024-03-15T12:00:01.000Z",
                       updatedAt="2024-03-15T12:00:01.000Z")
            return dict(doc)
        if method == "PUT":
            doc.update(body)
            return dict(doc)
        if method == "DELETE":
            docs.remove(doc)
            return {"message": "deleted"}
        raise ApiError("Unsupported", status=400)


def task_doc(_id, title="Task", **extra):
    doc = {
        "_id": _id,
        "title": title,
        "completed": False,
        "priority": "medium",
        "createdAt": "2024-03-14T09:00:00.000Z",
        "updatedAt": "2024-03-14T09:00:00.000Z",
    }
    doc.update(extra)
    return doc


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def api():
    return FakeApi(
        tasks=[task_doc("t1", "Write report", dueDate="2024-03-15T00:00:00.000Z")],
        projects=[{"_id": "p1", "name": "Work", "color": "#EF4444"}],
    )


@pytest.fixture
def store(api, clock):
    s = TaskStore(api, clock=clock)
    assert s.fetch_tasks()
    return s
