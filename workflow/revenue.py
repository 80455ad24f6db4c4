from __future__ import annotations

import calendar
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from workflow.clean import prepare_clients
from workflow.models import Status
from workflow.utils import month_key


def client_overview(summaries: pd.DataFrame, clients) -> pd.DataFrame:
    """Per-client task counts, revenue and hours; clients without tasks are included."""
    clients = prepare_clients(clients)
    tasks = summaries.copy()
    tasks["is_in_progress"] = tasks["status"].eq(Status.IN_PROGRESS.value)

    g = (
        tasks.groupby("client_id")
        .agg(
            task_count=("id", "size"),
            active_count=("is_in_progress", "sum"),
            total_revenue=("total_billable_amount", "sum"),
            total_hours=("total_actual_hours", "sum"),
        )
        .reset_index()
    )
    overview = clients[["id", "name", "color", "address", "logo"]].merge(
        g.rename(columns={"client_id": "id"}), on="id", how="left"
    )
    overview["task_count"] = overview["task_count"].fillna(0).astype(int)
    overview["active_count"] = overview["active_count"].fillna(0).astype(int)
    overview["total_revenue"] = overview["total_revenue"].fillna(0.0).astype(float)
    overview["total_hours"] = overview["total_hours"].fillna(0.0).astype(float)
    return overview


def client_tasks_by_month(
    summaries: pd.DataFrame, client_id: str, now: Optional[pd.Timestamp] = None
) -> pd.DataFrame:
    """Group one client's tasks by start month with actual, pending and billable totals.

    Pending hours are zero for complete tasks, otherwise the remaining
    estimate floored at zero. Tasks without a start date fall in the current
    month. Months are returned newest first.
    """
    now = pd.Timestamp.now() if now is None else pd.Timestamp(now)
    tasks = summaries[summaries["client_id"] == client_id].copy()
    tasks["month_key"] = month_key(tasks["start_date"]).fillna(now.strftime("%Y-%m"))
    remaining = (tasks["estimated_hours"] - tasks["total_actual_hours"]).clip(lower=0)
    tasks["pending_hours"] = np.where(tasks["status"].eq(Status.COMPLETE.value), 0.0, remaining)

    g = (
        tasks.groupby("month_key")
        .agg(
            task_count=("id", "size"),
            total_actual=("total_actual_hours", "sum"),
            total_pending=("pending_hours", "sum"),
            total_billable=("total_billable_amount", "sum"),
        )
        .reset_index()
        .sort_values("month_key", ascending=False)
        .reset_index(drop=True)
    )
    return g


def month_bounds(key: str) -> Tuple[str, str]:
    """First and last ISO day of a YYYY-MM month, used to pre-fill a new task."""
    year, month = (int(part) for part in key.split("-"))
    last_day = calendar.monthrange(year, month)[1]
    return f"{key}-01", f"{key}-{last_day:02d}"
