from __future__ import annotations

from typing import Dict

import pandas as pd

from workflow.clean import prepare_all
from workflow.models import BUDGET_OVER, LOG_COLUMNS, SUBTASK_COLUMNS, records_to_frame
from workflow.utils import ensure_unique, get_logger, safe_to_numeric


def _raw_numbers(data, columns: list, column: str) -> pd.Series:
    df = data if isinstance(data, pd.DataFrame) else records_to_frame(data or [], columns)
    if column in df.columns:
        return safe_to_numeric(df[column])
    return pd.Series(dtype=float)


def build_qa_report(
    clients,
    tasks,
    subtasks,
    logs,
    summaries: pd.DataFrame | None = None,
) -> Dict[str, object]:
    """Generate data-integrity checks over the four collections."""
    logger = get_logger()
    raw_percent = _raw_numbers(subtasks, SUBTASK_COLUMNS, "percent_complete")
    raw_hours = _raw_numbers(logs, LOG_COLUMNS, "hours")
    frames = prepare_all(clients, tasks, subtasks, logs)
    clients, tasks, subtasks, logs = frames["clients"], frames["tasks"], frames["subtasks"], frames["logs"]

    task_ids = set(tasks["id"])
    orphan_subtasks = subtasks[~subtasks["parent_id"].isin(task_ids)]
    orphan_logs = logs[~logs["task_id"].isin(task_ids)]
    unknown_client_tasks = tasks[~tasks["client_id"].isin(set(clients["id"]))]

    unique_ids_ok = all(
        ensure_unique(df, ["id"]) for df in (clients, tasks, subtasks, logs)
    )

    report = {
        "client_count": int(len(clients)),
        "task_count": int(len(tasks)),
        "subtask_count": int(len(subtasks)),
        "log_count": int(len(logs)),
        "unique_ids_ok": bool(unique_ids_ok),
        "orphan_subtasks": orphan_subtasks["id"].tolist(),
        "orphan_logs": orphan_logs["id"].tolist(),
        "tasks_with_unknown_client": unknown_client_tasks["id"].tolist(),
        "tasks_without_due_date": tasks.loc[tasks["due_date"].isna(), "id"].tolist(),
        "tasks_without_start_date": tasks.loc[tasks["start_date"].isna(), "id"].tolist(),
        "subtasks_percent_out_of_range": int(((raw_percent < 0) | (raw_percent > 100)).sum()),
        "logs_non_positive_hours": int((raw_hours <= 0).sum()),
        "logs_without_date": int(logs["date"].isna().sum()),
    }
    if summaries is not None:
        report["over_budget_tasks"] = summaries.loc[summaries["budget_status"] == BUDGET_OVER, "id"].tolist()

    logger.info(
        "QA unique ids ok: %s, orphan subtasks: %s, orphan logs: %s",
        report["unique_ids_ok"],
        len(report["orphan_subtasks"]),
        len(report["orphan_logs"]),
    )
    return report
