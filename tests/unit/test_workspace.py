"""Tests for the workspace commands that keep local state in sync with the store."""
from dataclasses import replace
from unittest.mock import MagicMock

import pandas as pd
import pytest

from workflow.errors import NotFoundError, PartialBatchFailure, StoreError, ValidationError
from workflow.models import Client, Status, Subtask, Task, TimeLog, UserProfile
from workflow.periods import ViewMode
from workflow.workspace import Workspace


@pytest.fixture
def workspace(store):
    ws = Workspace.load(store)
    client = ws.add_client(Client(id="", name="Acme"))
    ws.add_task(Task(id="", client_id=client.id, title="Build", start_date="2024-03-01", estimated_hours=10,
                     hourly_rate=100.0))
    return ws


def _task_id(ws) -> str:
    return ws.tasks["id"].iloc[0]


class TestLoad:
    def test_load_reads_all_collections(self, workspace, store):
        reloaded = Workspace.load(store)
        assert len(reloaded.clients) == 1
        assert len(reloaded.tasks) == 1
        assert reloaded.profile.initials == "ME"

    def test_load_propagates_store_errors(self):
        store = MagicMock()
        store.get_clients.side_effect = StoreError("offline")
        with pytest.raises(StoreError):
            Workspace.load(store)


class TestTasks:
    def test_add_task_validates_first(self, workspace):
        with pytest.raises(ValidationError) as excinfo:
            workspace.add_task(Task(id="", client_id="", title=" "))
        assert "title is required" in excinfo.value.problems
        assert len(workspace.tasks) == 1

    def test_update_status_mirrors_locally(self, workspace, store):
        task_id = _task_id(workspace)
        workspace.update_task_status(task_id, Status.BLOCKED)
        assert workspace.task(task_id).status == Status.BLOCKED
        assert store.get_tasks().iloc[0]["status"] == Status.BLOCKED.value

    def test_failed_update_leaves_local_state(self, workspace):
        workspace.store = MagicMock()
        workspace.store.update_task.side_effect = StoreError("offline")
        task_id = _task_id(workspace)
        with pytest.raises(StoreError):
            workspace.update_task(task_id, notes="changed")
        assert workspace.task(task_id).notes == ""

    def test_delete_task_prunes_children(self, workspace):
        task_id = _task_id(workspace)
        workspace.add_log(TimeLog(id="", task_id=task_id, date="2024-03-02", hours=2))
        workspace.update_subtasks(task_id, [Subtask(id="tmp", parent_id=task_id, title="Step")])
        workspace.delete_task(task_id)
        assert workspace.tasks.empty and workspace.logs.empty and workspace.subtasks.empty

    def test_delete_client_prunes_tasks(self, workspace, store):
        workspace.delete_client(workspace.clients["id"].iloc[0])
        assert workspace.tasks.empty
        assert store.get_tasks().empty

    def test_unknown_task_raises(self, workspace):
        with pytest.raises(NotFoundError):
            workspace.task("missing")

    def test_update_mirrors_only_store_fields(self, workspace, store):
        task_id = _task_id(workspace)
        original_client = workspace.task(task_id).client_id
        other = workspace.add_client(Client(id="", name="Globex"))
        workspace.update_task(task_id, client_id=other.id, notes="moved")
        local = workspace.task(task_id)
        assert local.client_id == original_client
        assert local.notes == "moved"
        stored = Workspace.load(store).task(task_id)
        assert stored.client_id == local.client_id


class TestSubtasks:
    def test_sync_creates_and_updates(self, workspace):
        task_id = _task_id(workspace)
        result = workspace.update_subtasks(
            task_id,
            [
                Subtask(id="tmp1", parent_id=task_id, title="Design", estimated_hours=4, percent_complete=100,
                        status=Status.COMPLETE),
                Subtask(id="tmp2", parent_id=task_id, title="Build", estimated_hours=1),
            ],
        )
        assert result.ok
        summary = workspace.rollup().task_summary(task_id)
        assert summary.calculated_progress == pytest.approx(80.0)
        assert summary.status == Status.IN_PROGRESS

        build_step = workspace.task_subtasks(task_id)[1]
        workspace.update_subtasks(task_id, [replace(build_step, status=Status.COMPLETE, percent_complete=100)])
        remaining = workspace.task_subtasks(task_id)
        assert [s.title for s in remaining] == ["Build"]
        assert workspace.rollup().task_summary(task_id).status == Status.COMPLETE

    def test_invalid_subtask_rejected_before_store(self, workspace):
        workspace.store = MagicMock()
        task_id = _task_id(workspace)
        with pytest.raises(ValidationError):
            workspace.update_subtasks(task_id, [Subtask(id="t", parent_id=task_id, title="x", percent_complete=120)])
        workspace.store.create_subtask.assert_not_called()

    def test_partial_failure_mirrors_confirmed_rows(self, workspace):
        task_id = _task_id(workspace)
        real_store = workspace.store
        workspace.store = MagicMock(wraps=real_store)
        workspace.store.create_subtask.side_effect = [
            real_store.create_subtask(Subtask(id="", parent_id=task_id, title="ok")),
            StoreError("rejected"),
        ]
        desired = [Subtask(id="a", parent_id=task_id, title="ok"), Subtask(id="b", parent_id=task_id, title="bad")]
        with pytest.raises(PartialBatchFailure):
            workspace.update_subtasks(task_id, desired)
        assert [s.title for s in workspace.task_subtasks(task_id)] == ["ok"]

    def test_subtask_gone_from_store_is_dropped_locally(self, workspace, store):
        task_id = _task_id(workspace)
        workspace.update_subtasks(task_id, [Subtask(id="tmp", parent_id=task_id, title="Step", estimated_hours=3)])
        existing = workspace.task_subtasks(task_id)[0]
        store.delete_subtask(existing.id)

        with pytest.raises(PartialBatchFailure) as excinfo:
            workspace.update_subtasks(task_id, [replace(existing, title="Edited")])

        assert isinstance(excinfo.value.failed[0][1], NotFoundError)
        assert workspace.task_subtasks(task_id) == []
        assert store.get_subtasks().empty
        assert workspace.rollup().task_summary(task_id).estimated_hours == 10.0


class TestLogsAndProfile:
    def test_add_log_updates_analytics(self, workspace):
        task_id = _task_id(workspace)
        workspace.add_log(TimeLog(id="", task_id=task_id, date="2024-03-05", hours=3))
        result = workspace.analyze(ViewMode.MONTH, "2024-03-01", now=pd.Timestamp("2024-03-10"))
        assert result.total_revenue == 300.0

    def test_log_for_unknown_task(self, workspace):
        with pytest.raises(NotFoundError):
            workspace.add_log(TimeLog(id="", task_id="missing", date="2024-03-05", hours=1))

    def test_non_positive_hours_rejected(self, workspace):
        with pytest.raises(ValidationError):
            workspace.add_log(TimeLog(id="", task_id=_task_id(workspace), date="2024-03-05", hours=0))

    def test_update_profile(self, workspace, store):
        workspace.update_profile(UserProfile(name="Jo", role="Owner", initials="JO"))
        assert store.get_user_profile().name == "Jo"
        with pytest.raises(ValidationError):
            workspace.update_profile(UserProfile(initials="ABCD"))
        assert workspace.profile.name == "Jo"
