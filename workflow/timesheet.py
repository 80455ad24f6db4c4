from __future__ import annotations

from typing import List, Tuple

import numpy as np
import pandas as pd

from workflow.clean import prepare_clients, prepare_logs, prepare_tasks
from workflow.utils import get_logger, month_key


ALL_MONTHS = "ALL"

UNKNOWN_TASK = "Unknown Task"
UNKNOWN_CLIENT_ID = "unknown"
UNKNOWN_CLIENT_NAME = "Unknown Client"
UNKNOWN_CLIENT_COLOR = "bg-gray-100 text-gray-800"


def enrich_logs(logs, tasks, clients) -> pd.DataFrame:
    """Attach task and client details plus billable amount and month key to each log."""
    logs = prepare_logs(logs)
    tasks = prepare_tasks(tasks).drop_duplicates(subset=["id"])
    clients = prepare_clients(clients).drop_duplicates(subset=["id"])

    task_cols = tasks[["id", "title", "client_id", "is_billable", "hourly_rate"]].rename(
        columns={"id": "task_id", "title": "task_title"}
    )
    client_cols = clients[["id", "name", "color"]].rename(
        columns={"id": "client_id", "name": "client_name", "color": "client_color"}
    )

    df = logs.merge(task_cols, on="task_id", how="left")
    df = df.merge(client_cols, on="client_id", how="left")

    known_client = df["client_name"].notna()
    df["task_title"] = df["task_title"].fillna(UNKNOWN_TASK)
    df["client_id"] = df["client_id"].where(known_client, UNKNOWN_CLIENT_ID)
    df["client_name"] = df["client_name"].where(known_client, UNKNOWN_CLIENT_NAME)
    df["client_color"] = df["client_color"].where(known_client, UNKNOWN_CLIENT_COLOR)
    df["is_billable"] = df["is_billable"].fillna(False).astype(bool)
    df["hourly_rate"] = df["hourly_rate"].fillna(0).astype(float)
    df["billable_amount"] = np.where(df["is_billable"], df["hours"] * df["hourly_rate"], 0.0)
    df["month_key"] = month_key(df["date"])
    return df


def available_months(logs) -> List[str]:
    """Distinct YYYY-MM keys, newest first."""
    keys = month_key(prepare_logs(logs)["date"]).dropna().unique()
    return sorted(keys, reverse=True)


def filter_month(enriched: pd.DataFrame, month: str = ALL_MONTHS) -> pd.DataFrame:
    if month == ALL_MONTHS:
        return enriched
    return enriched[enriched["month_key"] == month]


def aggregate_timesheet(
    logs, tasks, clients, month: str = ALL_MONTHS
) -> Tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """Group logs into client totals, client-month totals and the log detail.

    Client totals are sorted by client name, months newest first and the
    detail newest first.
    """
    logger = get_logger()
    enriched = filter_month(enrich_logs(logs, tasks, clients), month)

    client_totals = (
        enriched.groupby(["client_id", "client_name", "client_color"], dropna=False)
        .agg(total_hours=("hours", "sum"), total_billable=("billable_amount", "sum"), log_count=("id", "size"))
        .reset_index()
        .sort_values("client_name", key=lambda s: s.astype(str).str.lower(), kind="stable")
        .reset_index(drop=True)
    )

    client_months = (
        enriched.groupby(["client_id", "client_name", "month_key"], dropna=False)
        .agg(total_hours=("hours", "sum"), total_billable=("billable_amount", "sum"))
        .reset_index()
        .sort_values(["client_name", "month_key"], ascending=[True, False], kind="stable")
        .reset_index(drop=True)
    )

    detail = enriched.sort_values("date", ascending=False, kind="stable").reset_index(drop=True)

    logger.info("Timesheet %s: %s logs across %s clients", month, len(detail), len(client_totals))
    return client_totals, client_months, detail
