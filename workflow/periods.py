from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import pandas as pd


class ViewMode(str, Enum):
    MONTH = "MONTH"
    QUARTER = "QUARTER"
    YEAR = "YEAR"
    ALL = "ALL"


PERIOD_FREQ = {
    ViewMode.MONTH: "M",
    ViewMode.QUARTER: "Q",
    ViewMode.YEAR: "Y",
}

CURSOR_STEP = {
    ViewMode.MONTH: ("months", 1),
    ViewMode.QUARTER: ("months", 3),
    ViewMode.YEAR: ("years", 1),
}


@dataclass(frozen=True)
class DateRange:
    """Inclusive range from the first instant of ``start`` to the last instant of ``end``."""

    start: pd.Timestamp
    end: pd.Timestamp

    def contains(self, dates: pd.Series) -> pd.Series:
        return (dates >= self.start) & (dates <= self.end)

    def overlaps(self, starts: pd.Series, ends: pd.Series) -> pd.Series:
        return (starts <= self.end) & (ends >= self.start)


def _cursor(cursor) -> pd.Timestamp:
    return pd.Timestamp(cursor).normalize()


def period_range(mode: ViewMode, cursor) -> Optional[DateRange]:
    """Return the calendar month, quarter or year containing ``cursor``; None for ALL."""
    mode = ViewMode(mode)
    if mode == ViewMode.ALL:
        return None
    period = pd.Period(_cursor(cursor), freq=PERIOD_FREQ[mode])
    return DateRange(start=period.start_time, end=period.end_time)


def shift_cursor(mode: ViewMode, cursor, steps: int = 1) -> pd.Timestamp:
    """Move the cursor by whole months, quarters or years; ALL has no navigation."""
    mode = ViewMode(mode)
    cursor = _cursor(cursor)
    if mode == ViewMode.ALL or steps == 0:
        return cursor
    unit, size = CURSOR_STEP[mode]
    return cursor + pd.DateOffset(**{unit: size * steps})


def previous_period(mode: ViewMode, cursor) -> pd.Timestamp:
    return shift_cursor(mode, cursor, -1)


def next_period(mode: ViewMode, cursor) -> pd.Timestamp:
    return shift_cursor(mode, cursor, 1)


def period_label(mode: ViewMode, cursor) -> str:
    mode = ViewMode(mode)
    cursor = _cursor(cursor)
    if mode == ViewMode.MONTH:
        return cursor.strftime("%B %Y")
    if mode == ViewMode.QUARTER:
        return f"Q{cursor.quarter} {cursor.year}"
    if mode == ViewMode.YEAR:
        return str(cursor.year)
    return "All Time"
