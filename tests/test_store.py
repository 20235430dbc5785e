"""
Tests for TaskStore: CRUD against the fake API, optimistic completion,
error slot behaviour and list state.
"""
import pytest

from pkg.taskboard.errors import ApiError, ValidationError
from pkg.taskboard.mutations import SyncState
from pkg.taskboard.schema import Priority
from pkg.taskboard.store import ErrorSlot, TaskStore

from conftest import FakeClock, task_doc


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Fetch / CRUD
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestFetch:

    def test_fetch_tasks_normalizes(self, store):
        """Fetched documents become Task objects with client ids"""
        assert len(store.tasks) == 1
        task = store.tasks[0]
        assert task.id == "t1"
        assert task.title == "Write report"
        assert store.is_loading is False
        assert store.error is None

    def test_fetch_failure_sets_error(self, api, clock):
        """A failed listing records the server message and keeps the cache"""
        api.fail_with = "Not authorized, no token"
        s = TaskStore(api, clock=clock)
        assert s.fetch_tasks() is False
        assert s.error == "Not authorized, no token"
        assert s.tasks == []

    def test_fetch_projects_either_order(self, api, clock):
        """Projects and tasks can be loaded in any order"""
        s = TaskStore(api, clock=clock)
        assert s.fetch_projects()
        assert s.fetch_tasks()
        assert [p.id for p in s.projects] == ["p1"]
        assert [t.id for t in s.tasks] == ["t1"]

    def test_malformed_listing_keeps_cache(self, store, api):
        """A listing with a bad timestamp is reported, not raised"""
        api.tasks.append(task_doc("t2", dueDate="next tuesday"))
        assert store.fetch_tasks() is False
        assert "Invalid response from server" in store.error
        assert [t.id for t in store.tasks] == ["t1"]
        assert store.is_loading is False

    def test_non_list_listing(self, store, api, monkeypatch):
        """A listing body that is not a list is reported as an error"""
        monkeypatch.setattr(api, "list_tasks", lambda: {})
        assert store.fetch_tasks() is False
        assert store.error == "Invalid response from server: expected a list"


class TestAddTask:

    def test_add_prepends_normalized(self, store, api):
        """New task goes to the front and sends `project`, not `projectId`"""
        task = store.add_task(title="New", priority=Priority.HIGH, project_id="p1")
        assert store.tasks[0] is task
        assert task.id.startswith("id")
        assert task.project_id == "p1"
        assert task.priority == Priority.HIGH
        _, _, body = api.calls[-1]
        assert body["project"] == "p1"
        assert "projectId" not in body

    def test_blank_title_rejected(self, store, api):
        """Blank title fails validation without a request"""
        calls_before = len(api.calls)
        with pytest.raises(ValidationError):
            store.add_task(title="   ")
        assert store.error == "Task title is required"
        assert len(api.calls) == calls_before

    def test_api_failure_reraised(self, store, api):
        """Server failure is recorded and re-raised"""
        api.fail_with = "Server exploded"
        with pytest.raises(ApiError):
            store.add_task(title="New")
        assert store.error == "Server exploded"
        assert len(store.tasks) == 1

    def test_none_project_dropped(self, store, api):
        """The "none" project sentinel is not sent"""
        store.add_task(title="New", projectId="none")
        _, _, body = api.calls[-1]
        assert "project" not in body


class TestUpdateDelete:

    def test_update_replaces_task(self, store):
        """Update swaps in the server's copy"""
        task = store.update_task("t1", title="Renamed")
        assert task.title == "Renamed"
        assert store.get_task("t1").title == "Renamed"

    def test_update_failure_keeps_task(self, store, api):
        """Failed update leaves the cached task untouched"""
        api.fail_with = "nope"
        assert store.update_task("t1", title="Renamed") is None
        assert store.get_task("t1").title == "Write report"
        assert store.error == "nope"

    def test_delete_removes_from_selection(self, store):
        """Deleting a task also deselects it"""
        store.set_selected_tasks(["t1"])
        assert store.delete_task("t1")
        assert store.tasks == []
        assert store.selected_tasks == []

    def test_delete_failure(self, store, api):
        """Failed delete keeps the task"""
        api.fail_with = "Task not found"
        assert store.delete_task("t1") is False
        assert len(store.tasks) == 1


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Optimistic completion
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestCompleteTask:

    def test_flag_flips_before_server_answers(self, store, api):
        """The local flag is already flipped while the request is in flight"""
        seen = []
        api.on_complete = lambda: seen.append(store.get_task("t1").completed)
        assert store.complete_task("t1")
        assert seen == [True]

    def test_success_takes_server_version(self, store):
        """On success the server's task replaces the optimistic one"""
        assert store.complete_task("t1")
        task = store.get_task("t1")
        assert task.completed is True
        assert task.completed_at is not None
        assert store.sync_state("t1") == SyncState.RECONCILED

    def test_server_failure_reverts(self, store, api):
        """A 500 during completion restores the previous value"""
        seen = []

        def fail():
            seen.append(store.get_task("t1").completed)
            raise ApiError("Internal Server Error", status=500)

        api.on_complete = fail
        assert store.complete_task("t1") is False
        assert seen == [True]
        assert store.get_task("t1").completed is False
        assert store.error
        assert store.sync_state("t1") == SyncState.ROLLED_BACK

    def test_failure_from_completed_restores_true(self, api, clock):
        """Reopening a completed task that fails leaves it completed"""
        api.tasks = [task_doc("t2", completed=True, completedAt="2024-03-14T10:00:00Z")]
        s = TaskStore(api, clock=clock)
        s.fetch_tasks()
        api.fail_with = "boom"
        s.complete_task("t2")
        assert s.get_task("t2").completed is True

    def test_unknown_task_sends_nothing(self, store, api):
        """Unknown id reports "Task not found" and sends no request"""
        calls_before = len(api.calls)
        assert store.complete_task("missing") is False
        assert store.error == "Task not found"
        assert len(api.calls) == calls_before

    def test_no_retry(self, store, api):
        """A failed completion is attempted exactly once"""
        api.fail_with = "boom"
        store.complete_task("t1")
        complete_calls = [c for c in api.calls if c[1].endswith("/complete")]
        assert len(complete_calls) == 1

    def test_empty_success_body_keeps_task(self, store, api):
        """A 2xx with no task document keeps the optimistic copy"""
        api.complete_response = {}
        assert store.complete_task("t1")
        task = store.get_task("t1")
        assert task is not None
        assert task.title == "Write report"
        assert task.completed is True
        assert [t.id for t in store.tasks] == ["t1"]
        assert store.sync_state("t1") == SyncState.RECONCILED

    def test_malformed_success_body_rolls_back(self, store, api):
        """A 2xx with a bad timestamp is reported and rolled back"""
        api.complete_response = task_doc("t1", "Write report", completed=True,
                                         completedAt="not a date")
        assert store.complete_task("t1") is False
        assert store.get_task("t1").completed is False
        assert store.sync_state("t1") == SyncState.ROLLED_BACK
        assert "Invalid response from server" in store.error


class TestOutOfOrder:

    def test_stale_response_discarded(self, store):
        """A response for a superseded toggle is ignored"""
        first = store.begin_toggle("t1")
        second = store.begin_toggle("t1")
        assert store.get_task("t1").completed is False

        stale = task_doc("t1", "Write report", completed=True,
                         completedAt="2024-03-15T12:00:00Z")
        assert store.reconcile(first, stale) is False
        assert store.get_task("t1").completed is False
        assert store.sync_state("t1") == SyncState.PENDING

        assert store.reconcile(second, task_doc("t1", "Write report"))
        assert store.sync_state("t1") == SyncState.RECONCILED

    def test_rollback_restores_recorded_value(self, store):
        """Rollback sets the recorded previous value rather than flipping"""
        first = store.begin_toggle("t1")   # False -> True
        second = store.begin_toggle("t1")  # True -> False
        assert store.rollback(second, ApiError("boom"))
        assert store.get_task("t1").completed is True
        assert store.rollback(first, ApiError("boom")) is False
        assert store.get_task("t1").completed is True

    def test_update_supersedes_pending_toggle(self, store):
        """An update made while a toggle is pending wins"""
        pending = store.begin_toggle("t1")
        store.update_task("t1", title="Renamed")
        done = task_doc("t1", "Write report", completed=True)
        assert store.reconcile(pending, done) is False
        assert store.get_task("t1").title == "Renamed"

    def test_refetch_supersedes_pending_toggle(self, store):
        """A refetch makes a late failure a no-op"""
        pending = store.begin_toggle("t1")
        store.fetch_tasks()
        assert store.rollback(pending, ApiError("late failure")) is False
        assert store.sync_state("t1") == SyncState.CLEAN


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Error slot
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestErrorSlot:

    def test_auto_clears_after_five_seconds(self):
        """An error disappears after five seconds"""
        clock = FakeClock()
        slot = ErrorSlot(clock=clock)
        slot.set("boom")
        clock.advance(4.5)
        assert slot.get() == "boom"
        clock.advance(0.5)
        assert slot.get() is None

    def test_dismiss(self):
        """Dismiss clears immediately"""
        slot = ErrorSlot(clock=FakeClock())
        slot.set("boom")
        slot.dismiss()
        assert slot.get() is None

    def test_new_error_restarts_timer(self):
        """Setting a new error restarts the timeout"""
        clock = FakeClock()
        slot = ErrorSlot(clock=clock)
        slot.set("first")
        clock.advance(4)
        slot.set("second")
        clock.advance(4)
        assert slot.get() == "second"

    def test_store_error_expires(self, store, api, clock):
        """Store errors use the same timeout"""
        api.fail_with = "boom"
        store.fetch_tasks()
        assert store.error == "boom"
        clock.advance(5)
        assert store.error is None

    def test_clear_error(self, store, api):
        """clear_error dismisses the store error"""
        api.fail_with = "boom"
        store.fetch_tasks()
        store.clear_error()
        assert store.error is None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Projects and list state
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestProjects:

    def test_project_crud(self, store):
        """Projects can be created, renamed and deleted"""
        assert store.fetch_projects()
        project = store.add_project("Home", color="#10B981")
        assert store.projects[0] is project
        assert project.color == "#10B981"

        updated = store.update_project(project.id, name="House")
        assert updated.name == "House"
        assert store.get_project(project.id).name == "House"

        assert store.delete_project(project.id)
        assert store.get_project(project.id) is None

    def test_blank_project_name(self, store):
        """Blank project name is rejected"""
        assert store.add_project(" ") is None
        assert store.error == "Project name is required"


class TestListState:

    def test_filters_merge_and_clear(self, store):
        """Filters merge on set and empty on clear"""
        store.set_filters(priority=["high"])
        store.set_filters(showCompleted=False)
        assert store.filters == {"priority": ["high"], "showCompleted": False}
        store.clear_filters()
        assert store.filters == {}

    def test_view_settings_defaults(self, store):
        """View settings start from defaults and merge updates"""
        assert store.view_settings["sortBy"] == "createdAt"
        store.set_view_settings(sortOrder="asc")
        assert store.view_settings["sortOrder"] == "asc"
        assert store.view_settings["sortBy"] == "createdAt"

    def test_toggle_selection(self, store):
        """Toggling selection adds then removes the id"""
        store.toggle_task_selection("t1")
        assert store.selected_tasks == ["t1"]
        store.toggle_task_selection("t1")
        assert store.selected_tasks == []
