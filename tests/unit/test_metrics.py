"""Tests for per-task roll-ups: progress, derived status, billing and budget."""
import pytest

from workflow.errors import NotFoundError
from workflow.metrics import summarize
from workflow.models import BUDGET_ON_TRACK, BUDGET_OVER, Status, Task, TimeLog


def _task(new_id, **kwargs) -> Task:
    kwargs.setdefault("id", new_id())
    kwargs.setdefault("client_id", "c1")
    kwargs.setdefault("title", "Task")
    return Task(**kwargs)


def _row(rollup, task_id):
    return rollup.summaries.set_index("id").loc[task_id]


class TestProgress:
    def test_weighted_by_subtask_estimate(self, new_id, make_subtask):
        task = _task(new_id)
        subtasks = [
            make_subtask(task.id, estimated_hours=4, percent_complete=100, status=Status.COMPLETE),
            make_subtask(task.id, estimated_hours=1, percent_complete=0),
        ]
        rollup = summarize([task], subtasks, [])
        assert _row(rollup, task.id)["calculated_progress"] == pytest.approx(80.0)

    def test_zero_estimate_gives_zero_progress(self, new_id, make_subtask):
        task = _task(new_id)
        rollup = summarize([task], [make_subtask(task.id, estimated_hours=0, percent_complete=50)], [])
        row = _row(rollup, task.id)
        assert row["calculated_progress"] == 0.0
        assert row["estimated_hours"] == 0.0

    @pytest.mark.parametrize(
        "status,expected",
        [(Status.NOT_STARTED, 0.0), (Status.IN_PROGRESS, 50.0), (Status.BLOCKED, 0.0), (Status.COMPLETE, 100.0)],
    )
    def test_status_proxy_without_subtasks(self, new_id, status, expected):
        task = _task(new_id, status=status)
        assert _row(summarize([task], [], []), task.id)["calculated_progress"] == expected

    def test_progress_stays_within_bounds(self, new_id, make_subtask):
        tasks = [_task(new_id) for _ in range(3)]
        subtasks = [
            make_subtask(tasks[0].id, estimated_hours=2, percent_complete=150),
            make_subtask(tasks[1].id, estimated_hours=3, percent_complete=-20),
            make_subtask(tasks[2].id, estimated_hours=0, percent_complete=100),
        ]
        progress = summarize(tasks, subtasks, []).summaries["calculated_progress"]
        assert ((progress >= 0) & (progress <= 100)).all()

    def test_subtask_estimates_override_manual_estimate(self, new_id, make_subtask):
        task = _task(new_id, estimated_hours=40)
        subtasks = [make_subtask(task.id, estimated_hours=2), make_subtask(task.id, estimated_hours=3)]
        row = _row(summarize([task], subtasks, []), task.id)
        assert row["estimated_hours"] == 5.0
        assert row["manual_estimated_hours"] == 40.0


class TestDerivedStatus:
    def test_all_complete_promotes_blocked(self, new_id, make_subtask):
        task = _task(new_id, status=Status.BLOCKED)
        subtasks = [
            make_subtask(task.id, status=Status.COMPLETE, percent_complete=100),
            make_subtask(task.id, status=Status.COMPLETE, percent_complete=100),
        ]
        assert _row(summarize([task], subtasks, []), task.id)["status"] == Status.COMPLETE.value

    def test_complete_is_never_demoted(self, new_id, make_subtask):
        task = _task(new_id, status=Status.COMPLETE)
        subtasks = [make_subtask(task.id, status=Status.COMPLETE), make_subtask(task.id, status=Status.NOT_STARTED)]
        assert _row(summarize([task], subtasks, []), task.id)["status"] == Status.COMPLETE.value

    def test_started_subtask_promotes_not_started(self, new_id, make_subtask):
        task = _task(new_id)
        subtasks = [make_subtask(task.id, percent_complete=10), make_subtask(task.id)]
        assert _row(summarize([task], subtasks, []), task.id)["status"] == Status.IN_PROGRESS.value

    def test_untouched_subtasks_keep_stored_status(self, new_id, make_subtask):
        task = _task(new_id, status=Status.BLOCKED)
        rollup = summarize([task], [make_subtask(task.id)], [])
        assert _row(rollup, task.id)["status"] == Status.BLOCKED.value

    def test_stored_status_is_preserved_on_task(self, new_id, make_subtask):
        task = _task(new_id, status=Status.BLOCKED)
        subtasks = [make_subtask(task.id, status=Status.COMPLETE, percent_complete=100)]
        summary = summarize([task], subtasks, []).task_summary(task.id)
        assert summary.status == Status.COMPLETE
        assert summary.task.status == Status.BLOCKED


class TestBillingAndBudget:
    def test_non_billable_task_earns_nothing(self, new_id):
        task = _task(new_id, is_billable=False, hourly_rate=100, estimated_hours=20)
        logs = [TimeLog(id=new_id(), task_id=task.id, date="2024-01-02", hours=10)]
        row = _row(summarize([task], [], logs), task.id)
        assert row["total_actual_hours"] == 10.0
        assert row["total_billable_amount"] == 0.0

    def test_actual_equal_to_estimate_is_on_track(self, new_id):
        task = _task(new_id, estimated_hours=10)
        logs = [TimeLog(id=new_id(), task_id=task.id, date="2024-01-02", hours=10)]
        assert _row(summarize([task], [], logs), task.id)["budget_status"] == BUDGET_ON_TRACK

    def test_actual_above_estimate_is_over_budget(self, new_id):
        task = _task(new_id, estimated_hours=10)
        logs = [TimeLog(id=new_id(), task_id=task.id, date="2024-01-02", hours=10.01)]
        rollup = summarize([task], [], logs)
        assert _row(rollup, task.id)["budget_status"] == BUDGET_OVER
        assert rollup.task_summary(task.id).is_over_budget


class TestSummarize:
    def test_end_to_end_totals(self, billable_task, march_logs):
        summary = summarize([billable_task], [], march_logs).task_summary(billable_task.id)
        assert summary.total_actual_hours == 5.0
        assert summary.total_billable_amount == 500.0
        assert summary.budget_status == BUDGET_ON_TRACK
        assert len(summary.time_logs) == 2

    def test_preserves_input_order(self, new_id):
        tasks = [_task(new_id, title=f"Task {i}") for i in range(5)]
        assert summarize(tasks, [], []).summaries["id"].tolist() == [t.id for t in tasks]

    def test_orphans_are_excluded(self, new_id, make_subtask):
        task = _task(new_id)
        subtasks = [make_subtask(task.id), make_subtask("missing-task")]
        logs = [
            TimeLog(id=new_id(), task_id=task.id, date="2024-01-02", hours=1),
            TimeLog(id=new_id(), task_id="missing-task", date="2024-01-02", hours=8),
        ]
        rollup = summarize([task], subtasks, logs)
        assert len(rollup.subtasks) == 1
        assert len(rollup.logs) == 1
        assert _row(rollup, task.id)["total_actual_hours"] == 1.0

    def test_empty_inputs(self):
        rollup = summarize([], [], [])
        assert rollup.summaries.empty
        assert rollup.logs.empty

    def test_logs_carry_billable_amount(self, billable_task, march_logs):
        logs = summarize([billable_task], [], march_logs).logs
        assert logs["billable_amount"].tolist() == [300.0, 200.0]
        assert (logs["client_id"] == billable_task.client_id).all()

    def test_unknown_task_summary_raises(self, billable_task):
        with pytest.raises(NotFoundError):
            summarize([billable_task], [], []).task_summary("nope")
