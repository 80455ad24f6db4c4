from __future__ import annotations

import argparse
from pathlib import Path

from workflow import io
from workflow.build import open_workspace
from workflow.timesheet import ALL_MONTHS, aggregate_timesheet
from workflow.utils import load_settings


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export a timesheet workbook")
    parser.add_argument("--month", default=ALL_MONTHS, help="YYYY-MM month or ALL")
    parser.add_argument("--output", required=True, help="Path to .xlsx output")
    parser.add_argument("--data-dir", default=None, help="Store directory (overrides settings)")
    parser.add_argument("--settings", default="config/settings.yaml", help="Path to settings YAML")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    workspace = open_workspace(load_settings(args.settings), args.data_dir)
    client_totals, client_months, detail = aggregate_timesheet(
        workspace.logs, workspace.tasks, workspace.clients, month=args.month
    )
    io.save_excel(
        {"Clients": client_totals, "Months": client_months, "Entries": detail},
        Path(args.output),
    )


if __name__ == "__main__":
    main()
