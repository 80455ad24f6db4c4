"""Tests for subtask reconciliation and batch application."""
import pytest

from workflow.errors import NotFoundError, PartialBatchFailure
from workflow.models import SUBTASK_COLUMNS, Status, records_to_frame
from workflow.reconcile import (
    CREATE,
    DELETE,
    UPDATE,
    apply_plan,
    is_persisted_identifier,
    merge_subtasks,
    new_temporary_identifier,
    reconcile,
)


TASK_ID = "6f1c2a8e-3b4d-4e5f-9a0b-1c2d3e4f5a6b"


class TestIdentifiers:
    def test_uuid_is_persisted(self, new_id):
        assert is_persisted_identifier(new_id())

    def test_temporary_id_is_not_persisted(self):
        temp = new_temporary_identifier()
        assert len(temp) == 9
        assert not is_persisted_identifier(temp)

    @pytest.mark.parametrize("value", [None, "", "temp1", "x" * 20])
    def test_short_or_missing_ids(self, value):
        assert not is_persisted_identifier(value)

    def test_twenty_one_chars_is_persisted(self):
        assert is_persisted_identifier("x" * 21)


class TestReconcile:
    def test_create_and_update_without_delete(self, make_subtask):
        existing = make_subtask(TASK_ID, title="original")
        edited = make_subtask(TASK_ID, title="edited", id=existing.id)
        new_row = make_subtask(TASK_ID, title="new", id="temp1")

        plan = reconcile(TASK_ID, [existing], [new_row, edited])

        assert [s.title for s in plan.to_create] == ["new"]
        assert [(s.id, s.title) for s in plan.to_update] == [(existing.id, "edited")]
        assert plan.to_delete == []

    def test_dropped_subtask_is_deleted(self, make_subtask):
        a = make_subtask(TASK_ID, title="A")
        b = make_subtask(TASK_ID, title="B")

        plan = reconcile(TASK_ID, [a, b], [a])

        assert plan.to_create == []
        assert [s.id for s in plan.to_update] == [a.id]
        assert plan.to_delete == [b.id]

    def test_create_strips_temporary_id_and_sets_parent(self, make_subtask):
        plan = reconcile(TASK_ID, [], [make_subtask("other", title="x", id="abc123def")])
        created = plan.to_create[0]
        assert created.id == ""
        assert created.parent_id == TASK_ID

    def test_deletes_come_first(self, make_subtask):
        a = make_subtask(TASK_ID, title="A")
        plan = reconcile(TASK_ID, [a], [make_subtask(TASK_ID, title="B", id="tmp")])
        assert [c.action for c in plan.changes] == [DELETE, CREATE]

    def test_persisted_id_not_in_current_is_created(self, make_subtask):
        stray = make_subtask(TASK_ID, title="stray")
        plan = reconcile(TASK_ID, [], [stray])
        assert [c.action for c in plan.changes] == [CREATE]

    def test_empty_desired_deletes_everything(self, make_subtask):
        current = [make_subtask(TASK_ID), make_subtask(TASK_ID)]
        plan = reconcile(TASK_ID, current, [])
        assert plan.to_delete == [s.id for s in current]

    def test_no_changes_for_empty_lists(self):
        assert reconcile(TASK_ID, [], []).is_empty


class TestApplyPlan:
    def test_all_changes_applied(self, make_subtask, flaky_store_factory):
        a = make_subtask(TASK_ID, title="A")
        b = make_subtask(TASK_ID, title="B")
        store = flaky_store_factory()
        desired = [make_subtask(TASK_ID, title="A2", id=a.id), make_subtask(TASK_ID, title="C", id="tmp1")]

        result = apply_plan(store, reconcile(TASK_ID, [a, b], desired), [a, b])

        assert result.ok
        assert [c for c, _ in store.calls] == ["delete", "update", "create"]
        assert store.updates[a.id]["title"] == "A2"
        titles = [s.title for s in result.confirmed]
        assert titles == ["A2", "C"]
        assert is_persisted_identifier(result.confirmed[1].id)

    def test_failures_are_reported_per_operation(self, make_subtask, flaky_store_factory):
        a = make_subtask(TASK_ID, title="A")
        b = make_subtask(TASK_ID, title="B")
        store = flaky_store_factory(fail_ids={a.id, b.id})
        desired = [make_subtask(TASK_ID, title="A2", id=a.id), make_subtask(TASK_ID, title="C", id="tmp1")]

        with pytest.raises(PartialBatchFailure) as excinfo:
            apply_plan(store, reconcile(TASK_ID, [a, b], desired), [a, b])

        failure = excinfo.value
        assert sorted(c.action for c, _ in failure.failed) == [DELETE, UPDATE]
        assert [c.action for c in failure.applied] == [CREATE]
        # Failed update keeps the old version, failed delete keeps the record.
        assert sorted(s.title for s in failure.confirmed) == ["A", "B", "C"]

    def test_failed_create_is_not_confirmed(self, make_subtask, flaky_store_factory):
        store = flaky_store_factory(fail_create_titles={"bad"})
        desired = [make_subtask(TASK_ID, title="bad", id="t1"), make_subtask(TASK_ID, title="good", id="t2")]

        with pytest.raises(PartialBatchFailure) as excinfo:
            apply_plan(store, reconcile(TASK_ID, [], desired), [])

        assert [s.title for s in excinfo.value.confirmed] == ["good"]
        assert len(store.calls) == 2

    def test_missing_records_are_not_confirmed(self, make_subtask, flaky_store_factory):
        a = make_subtask(TASK_ID, title="A")
        b = make_subtask(TASK_ID, title="B")
        store = flaky_store_factory(missing_ids={a.id, b.id})
        desired = [make_subtask(TASK_ID, title="A2", id=a.id), make_subtask(TASK_ID, title="C", id="tmp1")]

        with pytest.raises(PartialBatchFailure) as excinfo:
            apply_plan(store, reconcile(TASK_ID, [a, b], desired), [a, b])

        failure = excinfo.value
        assert all(isinstance(exc, NotFoundError) for _, exc in failure.failed)
        assert sorted(c.action for c, _ in failure.failed) == [DELETE, UPDATE]
        assert [s.title for s in failure.confirmed] == ["C"]


class TestMergeSubtasks:
    def test_replaces_only_target_task(self, make_subtask):
        other = make_subtask("other-task", title="keep")
        old = make_subtask(TASK_ID, title="old")
        frame = records_to_frame([other, old], SUBTASK_COLUMNS)

        merged = merge_subtasks(frame, TASK_ID, [make_subtask(TASK_ID, title="new", status=Status.COMPLETE)])

        assert sorted(merged["title"]) == ["keep", "new"]
        assert merged.loc[merged["title"] == "new", "status"].iloc[0] == Status.COMPLETE.value

    def test_empty_confirmed_removes_task_rows(self, make_subtask):
        frame = records_to_frame([make_subtask(TASK_ID)], SUBTASK_COLUMNS)
        assert merge_subtasks(frame, TASK_ID, []).empty
