from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Dict, Iterable

import pandas as pd

from workflow.utils import empty_frame, get_logger


def read_parquet(path: str | Path, columns: Iterable[str]) -> pd.DataFrame:
    """Read a parquet table, or an empty frame with ``columns`` when it does not exist."""
    path = Path(path)
    if not path.exists():
        return empty_frame(columns)
    df = pd.read_parquet(path)
    for col in columns:
        if col not in df.columns:
            df[col] = None
    return df


def save_parquet(df: pd.DataFrame, path: str | Path) -> None:
    """Save dataframe to parquet."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_parquet(path, index=False)


def save_csv(df: pd.DataFrame, path: str | Path) -> None:
    """Save dataframe to CSV."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)


def save_excel(sheets: Dict[str, pd.DataFrame], path: str | Path) -> Path:
    """Write one sheet per frame to an Excel workbook."""
    logger = get_logger()
    excel_path = Path(path)
    excel_path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(excel_path, engine="openpyxl") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=name[:31], index=False)
    logger.info("Wrote workbook: %s", excel_path)
    return excel_path


def workbook_bytes(sheets: Dict[str, pd.DataFrame]) -> bytes:
    """Excel workbook in memory, for download buttons."""
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=name[:31], index=False)
    return buffer.getvalue()
