from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from workflow.utils import empty_frame, is_missing, to_iso_date, truthy_flag


class Status(str, Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    BLOCKED = "Blocked"
    COMPLETE = "Complete"


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


CATEGORIES = ["Strategy", "Engineering", "Design", "Admin", "Marketing"]

BUDGET_ON_TRACK = "On Track"
BUDGET_OVER = "Over Budget"

UNKNOWN_CLIENT = "Unknown"

CLIENT_COLUMNS = ["id", "name", "color", "address", "logo"]
TASK_COLUMNS = [
    "id",
    "client_id",
    "project_name",
    "title",
    "category",
    "start_date",
    "due_date",
    "status",
    "estimated_hours",
    "hourly_rate",
    "is_billable",
    "notes",
]
SUBTASK_COLUMNS = [
    "id",
    "parent_id",
    "title",
    "priority",
    "assigned_to",
    "estimated_hours",
    "percent_complete",
    "status",
]
LOG_COLUMNS = ["id", "task_id", "subtask_id", "date", "hours", "notes"]
PROFILE_COLUMNS = ["name", "role", "initials"]


def _text(value: Any, default: str = "") -> str:
    return default if is_missing(value) else str(value)


def _optional_text(value: Any) -> Optional[str]:
    return None if is_missing(value) or value == "" else str(value)


def _number(value: Any) -> float:
    if is_missing(value):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _status(value: Any) -> Status:
    try:
        return Status(value)
    except ValueError:
        return Status.NOT_STARTED


def _priority(value: Any) -> Priority:
    try:
        return Priority(value)
    except ValueError:
        return Priority.MEDIUM


@dataclass
class Client:
    id: str
    name: str
    color: str = ""
    address: Optional[str] = None
    logo: Optional[str] = None

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> "Client":
        return cls(
            id=_text(row.get("id")),
            name=_text(row.get("name")),
            color=_text(row.get("color")),
            address=_optional_text(row.get("address")),
            logo=_optional_text(row.get("logo")),
        )

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Task:
    id: str
    client_id: str
    title: str
    project_name: str = ""
    category: str = ""
    start_date: Optional[str] = None
    due_date: Optional[str] = None
    status: Status = Status.NOT_STARTED
    estimated_hours: float = 0.0
    hourly_rate: float = 0.0
    is_billable: bool = True
    notes: str = ""

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> "Task":
        return cls(
            id=_text(row.get("id")),
            client_id=_text(row.get("client_id")),
            title=_text(row.get("title")),
            project_name=_text(row.get("project_name")),
            category=_text(row.get("category")),
            start_date=to_iso_date(row.get("start_date")),
            due_date=to_iso_date(row.get("due_date")),
            status=_status(row.get("status")),
            estimated_hours=_number(row.get("estimated_hours")),
            hourly_rate=_number(row.get("hourly_rate")),
            is_billable=truthy_flag(row.get("is_billable")),
            notes=_text(row.get("notes")),
        )

    def to_record(self) -> Dict[str, Any]:
        record = asdict(self)
        record["status"] = self.status.value
        return record


@dataclass
class Subtask:
    id: str
    parent_id: str
    title: str
    priority: Priority = Priority.MEDIUM
    assigned_to: str = "Me"
    estimated_hours: float = 0.0
    percent_complete: float = 0.0
    status: Status = Status.NOT_STARTED

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> "Subtask":
        return cls(
            id=_text(row.get("id")),
            parent_id=_text(row.get("parent_id")),
            title=_text(row.get("title")),
            priority=_priority(row.get("priority")),
            assigned_to=_text(row.get("assigned_to")),
            estimated_hours=_number(row.get("estimated_hours")),
            percent_complete=_number(row.get("percent_complete")),
            status=_status(row.get("status")),
        )

    def to_record(self) -> Dict[str, Any]:
        record = asdict(self)
        record["priority"] = self.priority.value
        record["status"] = self.status.value
        return record


@dataclass
class TimeLog:
    id: str
    task_id: str
    date: str
    hours: float
    notes: str = ""
    subtask_id: Optional[str] = None

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> "TimeLog":
        return cls(
            id=_text(row.get("id")),
            task_id=_text(row.get("task_id")),
            subtask_id=_optional_text(row.get("subtask_id")),
            date=to_iso_date(row.get("date")) or "",
            hours=_number(row.get("hours")),
            notes=_text(row.get("notes")),
        )

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class UserProfile:
    name: str = ""
    role: str = ""
    initials: str = ""

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> "UserProfile":
        return cls(
            name=_text(row.get("name")),
            role=_text(row.get("role")),
            initials=_text(row.get("initials")),
        )

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TaskSummary:
    """A task with its resolved subtasks and logs plus the derived roll-ups.

    ``status`` and ``estimated_hours`` are the derived values; the stored ones
    remain on ``task``.
    """

    task: Task
    status: Status
    estimated_hours: float
    calculated_progress: float
    total_actual_hours: float
    total_billable_amount: float
    budget_status: str
    subtasks: List[Subtask] = field(default_factory=list)
    time_logs: List[TimeLog] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.task.id

    @property
    def is_over_budget(self) -> bool:
        return self.budget_status == BUDGET_OVER


def records_to_frame(items: Iterable[Any], columns: List[str]) -> pd.DataFrame:
    """Build a frame from entity dataclasses or plain dicts."""
    rows = [item.to_record() if hasattr(item, "to_record") else dict(item) for item in items]
    if not rows:
        return empty_frame(columns)
    df = pd.DataFrame(rows)
    for col in columns:
        if col not in df.columns:
            df[col] = None
    return df[columns]


def frame_to_records(df: pd.DataFrame, entity: type) -> List[Any]:
    """Convert frame rows back into entity dataclasses."""
    names = {f.name for f in fields(entity)}
    records = []
    for row in df.to_dict(orient="records"):
        records.append(entity.from_record({k: v for k, v in row.items() if k in names}))
    return records
