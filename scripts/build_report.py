from __future__ import annotations

import argparse
from pathlib import Path

import pandas as pd

from workflow.build import build_report
from workflow.periods import ViewMode


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build period analytics outputs")
    parser.add_argument("--mode", default=ViewMode.MONTH.value, choices=[m.value for m in ViewMode], help="Period granularity")
    parser.add_argument("--cursor", default=None, help="Any date inside the period (default: today)")
    parser.add_argument("--data-dir", default=None, help="Store directory (overrides settings)")
    parser.add_argument("--output", default=None, help="Output directory (overrides settings)")
    parser.add_argument("--settings", default="config/settings.yaml", help="Path to settings YAML")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    cursor = pd.Timestamp(args.cursor) if args.cursor else pd.Timestamp.now()
    build_report(
        mode=args.mode,
        cursor=cursor,
        data_dir=Path(args.data_dir) if args.data_dir else None,
        output_dir=Path(args.output) if args.output else None,
        settings_path=args.settings,
    )


if __name__ == "__main__":
    main()
