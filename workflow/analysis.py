from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np
import pandas as pd

from workflow.clean import prepare_clients
from workflow.metrics import TaskRollup
from workflow.models import UNKNOWN_CLIENT, Status
from workflow.periods import DateRange, ViewMode, period_label, period_range
from workflow.utils import get_logger


MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

CHART_COLORS = ["#6366f1", "#10b981", "#f59e0b", "#8b5cf6", "#ec4899", "#3b82f6"]

# Stand-in for a missing due date when testing interval overlap.
OPEN_DUE_DATE = pd.Timestamp("2099-12-31")

METRIC_DEFINITIONS = {
    "total_revenue": {"name": "Revenue", "formula": "sum(hours x hourly_rate) over billable logs in range"},
    "total_hours": {"name": "Hours Logged", "formula": "sum(hours) over all logs in range"},
    "active_count": {"name": "Active Projects", "formula": "tasks with logs in range or overlapping dates"},
    "deadlines_count": {"name": "Deadlines", "formula": "active tasks due in range (future-due for All Time)"},
}


@dataclass
class PeriodAnalytics:
    mode: ViewMode
    cursor: pd.Timestamp
    range: Optional[DateRange]
    total_revenue: float
    total_hours: float
    deadlines_count: int
    active_tasks: pd.DataFrame
    client_distribution: pd.DataFrame
    trend: pd.DataFrame
    logs_in_range: pd.DataFrame = field(repr=False, default_factory=pd.DataFrame)

    @property
    def label(self) -> str:
        return period_label(self.mode, self.cursor)

    @property
    def totals(self) -> Dict[str, float]:
        return {
            "total_revenue": self.total_revenue,
            "total_hours": self.total_hours,
            "deadlines_count": self.deadlines_count,
            "active_count": len(self.active_tasks),
        }


def filter_logs(logs: pd.DataFrame, date_range: Optional[DateRange]) -> pd.DataFrame:
    """Keep logs dated inside the range; all logs when there is no range."""
    if date_range is None:
        return logs.copy()
    return logs[date_range.contains(logs["date"])].copy()


def active_task_mask(
    summaries: pd.DataFrame, logs_in_range: pd.DataFrame, date_range: Optional[DateRange]
) -> pd.Series:
    """Flag tasks active in the period.

    Without a range a task is active unless Not Started. With a range it is
    active when it has a log in range or its start/due interval overlaps the
    range; a missing due date counts as open-ended.
    """
    if date_range is None:
        return summaries["status"].ne(Status.NOT_STARTED.value)
    has_logs = summaries["id"].isin(logs_in_range["task_id"])
    due = summaries["due_date"].fillna(OPEN_DUE_DATE)
    overlaps = date_range.overlaps(summaries["start_date"], due)
    return has_logs | overlaps


def count_deadlines(active: pd.DataFrame, date_range: Optional[DateRange], now: pd.Timestamp) -> int:
    due = active["due_date"].dropna()
    if date_range is None:
        return int((due >= now).sum())
    return int(date_range.contains(due).sum())


def compute_client_distribution(logs_in_range: pd.DataFrame, clients=None) -> pd.DataFrame:
    """Billable revenue per client, highest first."""
    billable = logs_in_range[logs_in_range["is_billable"].astype(bool)]
    g = (
        billable.groupby("client_id", sort=False)
        .agg(revenue=("billable_amount", "sum"))
        .reset_index()
    )

    clients = prepare_clients(clients)
    if not clients.empty:
        names = clients[["id", "name", "color"]].drop_duplicates(subset=["id"])
        names = names.rename(columns={"id": "client_id", "name": "client_name", "color": "client_color"})
        g = g.merge(names, on="client_id", how="left")
    else:
        g["client_name"] = None
        g["client_color"] = None
    g["client_name"] = g["client_name"].fillna(UNKNOWN_CLIENT)
    g["client_color"] = g["client_color"].fillna("")

    g = g.sort_values("revenue", ascending=False, kind="stable").reset_index(drop=True)
    g["chart_color"] = [CHART_COLORS[i % len(CHART_COLORS)] for i in range(len(g))]
    return g[["client_id", "client_name", "client_color", "revenue", "chart_color"]]


def compute_trend(logs_in_range: pd.DataFrame, mode: ViewMode) -> pd.DataFrame:
    """Billable revenue bucketed by calendar month (YEAR) or day of month (other modes)."""
    billable = logs_in_range[
        logs_in_range["is_billable"].astype(bool) & logs_in_range["date"].notna()
    ].copy()
    if billable.empty:
        return pd.DataFrame({"name": pd.Series(dtype=object), "amount": pd.Series(dtype=float)})

    if mode == ViewMode.YEAR:
        billable["bucket"] = billable["date"].dt.month
        billable["name"] = billable["bucket"].apply(lambda m: MONTH_NAMES[int(m) - 1])
    else:
        billable["bucket"] = billable["date"].dt.day
        billable["name"] = billable["bucket"].astype(int).astype(str)

    g = (
        billable.groupby(["bucket", "name"])
        .agg(amount=("billable_amount", "sum"))
        .reset_index()
        .sort_values("bucket")
    )
    return g[["name", "amount"]].reset_index(drop=True)


def analyze(
    rollup: TaskRollup,
    mode: ViewMode,
    cursor,
    clients=None,
    now: Optional[pd.Timestamp] = None,
) -> PeriodAnalytics:
    """Compute revenue, hours, activity, client split and trend for one period."""
    logger = get_logger()
    mode = ViewMode(mode)
    cursor = pd.Timestamp(cursor).normalize()
    now = pd.Timestamp.now() if now is None else pd.Timestamp(now)

    date_range = period_range(mode, cursor)
    logs_in_range = filter_logs(rollup.logs, date_range)

    summaries = rollup.summaries
    active = summaries[active_task_mask(summaries, logs_in_range, date_range)].reset_index(drop=True)

    total_revenue = float(logs_in_range["billable_amount"].sum())
    total_hours = float(logs_in_range["hours"].sum())
    deadlines = count_deadlines(active, date_range, now)

    distribution = compute_client_distribution(logs_in_range, clients)
    trend = compute_trend(logs_in_range, mode)

    logger.info(
        "Analyzed %s: %s logs in range, %s active tasks",
        period_label(mode, cursor),
        len(logs_in_range),
        len(active),
    )
    return PeriodAnalytics(
        mode=mode,
        cursor=cursor,
        range=date_range,
        total_revenue=total_revenue,
        total_hours=total_hours,
        deadlines_count=deadlines,
        active_tasks=active,
        client_distribution=distribution,
        trend=trend,
        logs_in_range=logs_in_range.reset_index(drop=True),
    )


def revenue_by_period(rollup: TaskRollup, freq: str = "M") -> pd.DataFrame:
    """Billable revenue and hours per calendar period across all logs."""
    logs = rollup.logs[rollup.logs["date"].notna()].copy()
    if logs.empty:
        return pd.DataFrame(
            {
                "period": pd.Series(dtype=object),
                "revenue": pd.Series(dtype=float),
                "hours": pd.Series(dtype=float),
            }
        )
    logs["period"] = logs["date"].dt.to_period(freq)
    g = (
        logs.groupby("period")
        .agg(revenue=("billable_amount", "sum"), hours=("hours", "sum"))
        .reset_index()
        .sort_values("period")
    )
    g["effective_rate_hr"] = np.where(g["hours"] > 0, g["revenue"] / g["hours"].where(g["hours"] > 0, 1.0), 0)
    g["period"] = g["period"].astype(str)
    return g.reset_index(drop=True)
