from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from workflow import io, qa, revenue, timesheet
from workflow.analysis import PeriodAnalytics, revenue_by_period
from workflow.metrics import TaskRollup
from workflow.periods import ViewMode
from workflow.store import ParquetStore
from workflow.utils import get_logger, load_settings, write_json
from workflow.workspace import Workspace


@dataclass
class ReportResult:
    rollup: TaskRollup
    analytics: PeriodAnalytics
    client_overview: pd.DataFrame
    timesheet_clients: pd.DataFrame
    timesheet_months: pd.DataFrame
    revenue_monthly: pd.DataFrame
    qa_report: Dict[str, object]
    output_dir: Path


def open_workspace(settings: Dict[str, object], data_dir: Optional[str | Path] = None) -> Workspace:
    store = ParquetStore(
        data_dir or settings["data_dir"],
        profile_defaults=settings.get("profile_defaults"),
    )
    return Workspace.load(store)


def build_report(
    mode: ViewMode | str,
    cursor,
    data_dir: Optional[str | Path] = None,
    output_dir: Optional[str | Path] = None,
    settings_path: str | Path = "config/settings.yaml",
) -> ReportResult:
    """Run the end-to-end period report build and write its outputs."""
    logger = get_logger()
    settings = load_settings(settings_path)
    mode = ViewMode(mode)

    workspace = open_workspace(settings, data_dir)
    rollup = workspace.rollup()
    analytics = workspace.analyze(mode, cursor)

    month = pd.Timestamp(cursor).strftime("%Y-%m") if mode == ViewMode.MONTH else timesheet.ALL_MONTHS
    ts_clients, ts_months, _ = timesheet.aggregate_timesheet(
        workspace.logs, workspace.tasks, workspace.clients, month=month
    )
    overview = revenue.client_overview(rollup.summaries, workspace.clients)
    revenue_monthly = revenue_by_period(rollup, freq="M")
    qa_report = qa.build_qa_report(
        workspace.clients, workspace.tasks, workspace.subtasks, workspace.logs, rollup.summaries
    )

    processed_dir = Path(output_dir or settings["processed_dir"])
    processed_dir.mkdir(parents=True, exist_ok=True)

    outputs = {
        "task_summaries": rollup.summaries,
        "active_tasks": analytics.active_tasks,
        "client_distribution": analytics.client_distribution,
        "revenue_trend": analytics.trend,
        "client_overview": overview,
        "timesheet_clients": ts_clients,
        "timesheet_months": ts_months,
        "revenue_monthly": revenue_monthly,
    }
    for name, df in outputs.items():
        io.save_parquet(df, processed_dir / f"{name}.parquet")
        io.save_csv(df, processed_dir / f"{name}.csv")

    write_json(
        processed_dir / "period_totals.json",
        {"period": analytics.label, "mode": mode.value, **analytics.totals},
    )
    write_json(processed_dir / "qa_report.json", qa_report)

    logger.info("Report completed for %s", analytics.label)

    return ReportResult(
        rollup=rollup,
        analytics=analytics,
        client_overview=overview,
        timesheet_clients=ts_clients,
        timesheet_months=ts_months,
        revenue_monthly=revenue_monthly,
        qa_report=qa_report,
        output_dir=processed_dir,
    )
