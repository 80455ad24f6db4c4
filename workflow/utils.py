from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable

import numpy as np
import pandas as pd
import yaml


LOGGER_NAME = "workflow"

TRUTHY_VALUES = ("TRUE", "YES", "Y", "1")


def get_logger() -> logging.Logger:
    """Create or return a module-level logger."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def load_settings(path: str | Path) -> Dict[str, Any]:
    """Load YAML settings from disk."""
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def is_missing(value: Any) -> bool:
    """True for None, NaN and NaT."""
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def normalize_whitespace(value: Any) -> str:
    """Collapse whitespace to single spaces and strip ends."""
    if is_missing(value):
        return ""
    text = str(value)
    return " ".join(text.split()).strip()


def truthy_flag(value: Any, truthy_values: Iterable[Any] = TRUTHY_VALUES) -> bool:
    """Evaluate whether a value should be treated as truthy."""
    if is_missing(value):
        return False
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    str_val = str(value).strip().upper()
    for item in truthy_values:
        if isinstance(item, str):
            if str_val == item.strip().upper():
                return True
        else:
            if value == item:
                return True
    return False


def safe_to_numeric(series: pd.Series) -> pd.Series:
    """Convert a Series to numeric values, coercing errors to NaN."""
    return pd.to_numeric(series, errors="coerce")


def to_day_start(series: pd.Series) -> pd.Series:
    """Parse dates and normalize them to midnight."""
    return pd.to_datetime(series, errors="coerce").dt.normalize()


def to_iso_date(value: Any) -> str | None:
    """Render a date-like value as YYYY-MM-DD, or None when missing."""
    if is_missing(value) or value == "":
        return None
    stamp = pd.Timestamp(value)
    if pd.isna(stamp):
        return None
    return stamp.strftime("%Y-%m-%d")


def month_key(series: pd.Series) -> pd.Series:
    """Format a datetime series as YYYY-MM keys."""
    return pd.to_datetime(series, errors="coerce").dt.strftime("%Y-%m")


def empty_frame(columns: Iterable[str]) -> pd.DataFrame:
    return pd.DataFrame({col: pd.Series(dtype=object) for col in columns})


def write_json(path: str | Path, payload: Dict[str, Any]) -> None:
    """Write a JSON payload to disk."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, default=str)


def ensure_unique(df: pd.DataFrame, keys: list[str]) -> bool:
    """Return True if dataframe has unique keys."""
    return df.duplicated(subset=keys).sum() == 0
