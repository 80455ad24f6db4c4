from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd

from workflow.clean import prepare_logs, prepare_subtasks, prepare_tasks
from workflow.errors import NotFoundError
from workflow.models import (
    BUDGET_ON_TRACK,
    BUDGET_OVER,
    Status,
    Subtask,
    Task,
    TaskSummary,
    TimeLog,
    frame_to_records,
)
from workflow.utils import get_logger


# Coarse stand-in for progress when a task has no subtasks. Consumers rely on
# exactly these three values.
STATUS_PROGRESS = {
    Status.COMPLETE.value: 100.0,
    Status.IN_PROGRESS.value: 50.0,
}

LOG_TASK_COLUMNS = ["client_id", "title", "project_name", "is_billable", "hourly_rate"]


@dataclass
class TaskRollup:
    """Derived view over one snapshot of tasks, subtasks and logs.

    ``summaries`` holds one row per input task in input order. ``subtasks``
    and ``logs`` hold only the records whose owning task is in the snapshot;
    ``logs`` also carries the owning task's client, billing columns and the
    per-log ``billable_amount``.
    """

    summaries: pd.DataFrame
    subtasks: pd.DataFrame
    logs: pd.DataFrame

    def task_summary(self, task_id: str) -> TaskSummary:
        rows = self.summaries[self.summaries["id"] == task_id]
        if rows.empty:
            raise NotFoundError("task", task_id)
        row = rows.iloc[0]

        stored = row.to_dict()
        stored["status"] = row["stored_status"]
        stored["estimated_hours"] = row["manual_estimated_hours"]
        task = Task.from_record(stored)

        subtasks = frame_to_records(self.subtasks[self.subtasks["parent_id"] == task_id], Subtask)
        logs = frame_to_records(self.logs[self.logs["task_id"] == task_id], TimeLog)
        return TaskSummary(
            task=task,
            status=Status(row["status"]),
            estimated_hours=float(row["estimated_hours"]),
            calculated_progress=float(row["calculated_progress"]),
            total_actual_hours=float(row["total_actual_hours"]),
            total_billable_amount=float(row["total_billable_amount"]),
            budget_status=str(row["budget_status"]),
            subtasks=subtasks,
            time_logs=logs,
        )

    def task_summaries(self) -> list[TaskSummary]:
        return [self.task_summary(task_id) for task_id in self.summaries["id"]]


def _subtask_rollup(subtasks: pd.DataFrame) -> pd.DataFrame:
    subtasks = subtasks.copy()
    subtasks["weighted_progress"] = subtasks["percent_complete"] * subtasks["estimated_hours"]
    subtasks["is_complete"] = subtasks["status"].eq(Status.COMPLETE.value)
    subtasks["is_started"] = subtasks["status"].eq(Status.IN_PROGRESS.value) | (
        subtasks["percent_complete"] > 0
    )
    rollup = (
        subtasks.groupby("parent_id", sort=False)
        .agg(
            subtask_count=("id", "size"),
            subtask_estimate=("estimated_hours", "sum"),
            weighted_progress=("weighted_progress", "sum"),
            all_complete=("is_complete", "all"),
            any_started=("is_started", "any"),
        )
        .reset_index()
        .rename(columns={"parent_id": "id"})
    )
    return rollup


def _log_rollup(logs: pd.DataFrame) -> pd.DataFrame:
    return (
        logs.groupby("task_id", sort=False)
        .agg(total_actual_hours=("hours", "sum"), log_count=("id", "size"))
        .reset_index()
        .rename(columns={"task_id": "id"})
    )


def derive_status(
    stored: pd.Series,
    has_subtasks: pd.Series,
    all_complete: pd.Series,
    any_started: pd.Series,
) -> pd.Series:
    """Promote stored statuses from subtask signals.

    All subtasks complete promotes to Complete. Otherwise any started subtask
    promotes to In Progress unless the task is already In Progress or
    Complete. Nothing is ever demoted.
    """
    to_complete = has_subtasks & all_complete
    to_progress = (
        has_subtasks
        & ~to_complete
        & any_started
        & ~stored.isin([Status.IN_PROGRESS.value, Status.COMPLETE.value])
    )
    derived = stored.mask(to_complete, Status.COMPLETE.value)
    return derived.mask(to_progress, Status.IN_PROGRESS.value)


def build_summary_frame(tasks: pd.DataFrame, subtasks: pd.DataFrame, logs: pd.DataFrame) -> pd.DataFrame:
    """Compute per-task roll-ups from prepared frames."""
    merged = tasks.merge(_subtask_rollup(subtasks), on="id", how="left")
    merged = merged.merge(_log_rollup(logs), on="id", how="left")

    merged["subtask_count"] = merged["subtask_count"].fillna(0).astype(int)
    merged["log_count"] = merged["log_count"].fillna(0).astype(int)
    merged["total_actual_hours"] = merged["total_actual_hours"].fillna(0).astype(float)
    has_subtasks = merged["subtask_count"] > 0

    merged["manual_estimated_hours"] = merged["estimated_hours"]
    merged["estimated_hours"] = np.where(
        has_subtasks,
        merged["subtask_estimate"].fillna(0).astype(float),
        merged["manual_estimated_hours"],
    )

    weighted = merged["weighted_progress"].fillna(0).astype(float)
    estimate = merged["estimated_hours"]
    subtask_progress = np.where(estimate > 0, weighted / estimate.where(estimate > 0, 1.0), 0.0)
    status_progress = merged["status"].map(STATUS_PROGRESS).fillna(0.0).astype(float)
    merged["calculated_progress"] = np.where(has_subtasks, subtask_progress, status_progress)

    merged["stored_status"] = merged["status"]
    merged["status"] = derive_status(
        merged["stored_status"],
        has_subtasks,
        merged["all_complete"].fillna(False).astype(bool),
        merged["any_started"].fillna(False).astype(bool),
    )

    merged["total_billable_amount"] = np.where(
        merged["is_billable"], merged["total_actual_hours"] * merged["hourly_rate"], 0.0
    )
    merged["budget_status"] = np.where(
        merged["total_actual_hours"] > merged["estimated_hours"], BUDGET_OVER, BUDGET_ON_TRACK
    )

    return merged.drop(
        columns=["subtask_estimate", "weighted_progress", "all_complete", "any_started"]
    ).reset_index(drop=True)


def summarize(tasks, subtasks, logs) -> TaskRollup:
    """Roll subtasks and time logs up into one summary per task.

    Accepts frames or lists of entity dataclasses. Subtasks and logs that
    reference a task outside the batch are left out; missing associations
    yield empty roll-ups rather than errors.
    """
    logger = get_logger()
    tasks = prepare_tasks(tasks)
    subtasks = prepare_subtasks(subtasks)
    logs = prepare_logs(logs)

    task_ids = set(tasks["id"])
    resolved_subtasks = subtasks[subtasks["parent_id"].isin(task_ids)].reset_index(drop=True)
    resolved_logs = logs[logs["task_id"].isin(task_ids)].reset_index(drop=True)

    orphan_subtasks = len(subtasks) - len(resolved_subtasks)
    orphan_logs = len(logs) - len(resolved_logs)
    if orphan_subtasks or orphan_logs:
        logger.info("Excluded orphan subtasks: %s, orphan logs: %s", orphan_subtasks, orphan_logs)

    summaries = build_summary_frame(tasks, resolved_subtasks, resolved_logs)

    task_attrs = (
        tasks.drop_duplicates(subset=["id"])[["id"] + LOG_TASK_COLUMNS]
        .rename(columns={"id": "task_id"})
    )
    enriched_logs = resolved_logs.merge(task_attrs, on="task_id", how="left")
    enriched_logs["billable_amount"] = np.where(
        enriched_logs["is_billable"].astype(bool),
        enriched_logs["hours"] * enriched_logs["hourly_rate"].astype(float),
        0.0,
    )

    return TaskRollup(summaries=summaries, subtasks=resolved_subtasks, logs=enriched_logs)
