from __future__ import annotations

from enum import Enum
from typing import Dict, List

import pandas as pd

from workflow.models import (
    CLIENT_COLUMNS,
    LOG_COLUMNS,
    SUBTASK_COLUMNS,
    TASK_COLUMNS,
    Priority,
    Status,
    records_to_frame,
)
from workflow.utils import normalize_whitespace, safe_to_numeric, to_day_start, truthy_flag


def _as_frame(data, columns: List[str]) -> pd.DataFrame:
    if isinstance(data, pd.DataFrame):
        df = data.copy()
    else:
        df = records_to_frame(data or [], columns)
    for col in columns:
        if col not in df.columns:
            df[col] = None
    return df.reset_index(drop=True)


def _ids(series: pd.Series) -> pd.Series:
    return series.apply(normalize_whitespace)


def _numbers(series: pd.Series) -> pd.Series:
    return safe_to_numeric(series).fillna(0).astype(float)


def _labels(series: pd.Series) -> pd.Series:
    return series.apply(lambda v: v.value if isinstance(v, Enum) else v)


def _statuses(series: pd.Series) -> pd.Series:
    valid = {s.value for s in Status}
    series = _labels(series)
    return series.where(series.isin(valid), Status.NOT_STARTED.value)


def prepare_clients(data) -> pd.DataFrame:
    """Standardize client identifiers and labels."""
    df = _as_frame(data, CLIENT_COLUMNS)
    df["id"] = _ids(df["id"])
    df["name"] = df["name"].apply(normalize_whitespace)
    df["color"] = df["color"].fillna("")
    return df


def prepare_tasks(data) -> pd.DataFrame:
    """Standardize task keys, dates, numbers and the billable flag."""
    df = _as_frame(data, TASK_COLUMNS)
    df["id"] = _ids(df["id"])
    df["client_id"] = _ids(df["client_id"])
    df["title"] = df["title"].apply(normalize_whitespace)
    df["project_name"] = df["project_name"].apply(normalize_whitespace)
    df["category"] = df["category"].apply(normalize_whitespace)
    df["start_date"] = to_day_start(df["start_date"])
    df["due_date"] = to_day_start(df["due_date"])
    df["status"] = _statuses(df["status"])
    df["estimated_hours"] = _numbers(df["estimated_hours"]).clip(lower=0)
    df["hourly_rate"] = _numbers(df["hourly_rate"])
    df["is_billable"] = df["is_billable"].apply(truthy_flag).astype(bool)
    df["notes"] = df["notes"].fillna("")
    return df


def prepare_subtasks(data) -> pd.DataFrame:
    """Standardize subtask keys; estimates are clipped to >= 0 and percentages to [0, 100]."""
    df = _as_frame(data, SUBTASK_COLUMNS)
    valid_priorities = {p.value for p in Priority}
    df["id"] = _ids(df["id"])
    df["parent_id"] = _ids(df["parent_id"])
    df["title"] = df["title"].apply(normalize_whitespace)
    df["priority"] = _labels(df["priority"])
    df["priority"] = df["priority"].where(df["priority"].isin(valid_priorities), Priority.MEDIUM.value)
    df["assigned_to"] = df["assigned_to"].fillna("")
    df["estimated_hours"] = _numbers(df["estimated_hours"]).clip(lower=0)
    df["percent_complete"] = _numbers(df["percent_complete"]).clip(lower=0, upper=100)
    df["status"] = _statuses(df["status"])
    return df


def prepare_logs(data) -> pd.DataFrame:
    """Standardize time log keys and dates; negative hours are clipped to 0."""
    df = _as_frame(data, LOG_COLUMNS)
    df["id"] = _ids(df["id"])
    df["task_id"] = _ids(df["task_id"])
    df["subtask_id"] = df["subtask_id"].where(df["subtask_id"].notna(), None)
    df["date"] = to_day_start(df["date"])
    df["hours"] = _numbers(df["hours"]).clip(lower=0)
    df["notes"] = df["notes"].fillna("")
    return df


def prepare_all(clients, tasks, subtasks, logs) -> Dict[str, pd.DataFrame]:
    return {
        "clients": prepare_clients(clients),
        "tasks": prepare_tasks(tasks),
        "subtasks": prepare_subtasks(subtasks),
        "logs": prepare_logs(logs),
    }
