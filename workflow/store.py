from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from workflow import io
from workflow.errors import NotFoundError, StoreError
from workflow.models import (
    CLIENT_COLUMNS,
    LOG_COLUMNS,
    PROFILE_COLUMNS,
    SUBTASK_COLUMNS,
    TASK_COLUMNS,
    Client,
    Subtask,
    Task,
    TimeLog,
    UserProfile,
)
from workflow.utils import get_logger


TABLES = {
    "clients": CLIENT_COLUMNS,
    "tasks": TASK_COLUMNS,
    "subtasks": SUBTASK_COLUMNS,
    "time_logs": LOG_COLUMNS,
    "profiles": PROFILE_COLUMNS,
}

TASK_UPDATE_FIELDS = {
    "title",
    "project_name",
    "category",
    "start_date",
    "due_date",
    "status",
    "estimated_hours",
    "hourly_rate",
    "is_billable",
    "notes",
}
SUBTASK_UPDATE_FIELDS = {"title", "status", "percent_complete", "estimated_hours", "priority", "assigned_to"}


class EntityStore(ABC):
    """Persistence collaborator over clients, tasks, subtasks, time logs and the profile.

    Deletes cascade inside the store (client -> tasks, task -> subtasks and
    logs); callers holding in-memory copies prune those collections
    themselves.
    """

    @abstractmethod
    def get_clients(self) -> pd.DataFrame: ...

    @abstractmethod
    def get_tasks(self) -> pd.DataFrame: ...

    @abstractmethod
    def get_subtasks(self) -> pd.DataFrame: ...

    @abstractmethod
    def get_logs(self) -> pd.DataFrame: ...

    @abstractmethod
    def get_user_profile(self) -> UserProfile: ...

    @abstractmethod
    def create_client(self, client: Client) -> Client: ...

    @abstractmethod
    def create_task(self, task: Task) -> Task: ...

    @abstractmethod
    def create_subtask(self, subtask: Subtask) -> Subtask: ...

    @abstractmethod
    def create_log(self, log: TimeLog) -> TimeLog: ...

    @abstractmethod
    def update_task(self, task_id: str, **fields: Any) -> None: ...

    @abstractmethod
    def update_subtask(self, subtask_id: str, **fields: Any) -> None: ...

    @abstractmethod
    def update_user_profile(self, profile: UserProfile) -> None: ...

    @abstractmethod
    def delete_client(self, client_id: str) -> None: ...

    @abstractmethod
    def delete_task(self, task_id: str) -> None: ...

    @abstractmethod
    def delete_subtask(self, subtask_id: str) -> None: ...


def _db_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class ParquetStore(EntityStore):
    """File-backed store keeping one parquet table per collection under ``data_dir``."""

    def __init__(self, data_dir: str | Path, profile_defaults: Optional[Dict[str, str]] = None):
        self.data_dir = Path(data_dir)
        self.profile_defaults = UserProfile.from_record(profile_defaults or {"name": "User", "role": "Admin", "initials": "ME"})

    def _path(self, table: str) -> Path:
        return self.data_dir / f"{table}.parquet"

    def _load(self, table: str) -> pd.DataFrame:
        try:
            return io.read_parquet(self._path(table), TABLES[table])
        except (OSError, ValueError) as exc:
            raise StoreError(f"Failed to read {table}: {exc}") from exc

    def _save(self, table: str, df: pd.DataFrame) -> None:
        try:
            io.save_parquet(df[TABLES[table]].reset_index(drop=True), self._path(table))
        except (OSError, ValueError) as exc:
            raise StoreError(f"Failed to write {table}: {exc}") from exc

    def _insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        record = {col: _db_value(record.get(col)) for col in TABLES[table]}
        record["id"] = str(uuid.uuid4())
        df = self._load(table)
        row = pd.DataFrame([record], columns=TABLES[table])
        df = row if df.empty else pd.concat([df, row], ignore_index=True)
        self._save(table, df)
        get_logger().info("Created %s %s", table, record["id"])
        return record

    def _update(self, table: str, entity: str, identifier: str, fields: Dict[str, Any], allowed: set) -> None:
        df = self._load(table)
        mask = df["id"] == identifier
        if not mask.any():
            raise NotFoundError(entity, identifier)
        changes = {k: _db_value(v) for k, v in fields.items() if k in allowed and v is not None}
        if not changes:
            return
        df = df.astype({col: object for col in changes})
        for col, value in changes.items():
            df.loc[mask, col] = value
        self._save(table, df)

    def _delete(self, table: str, entity: str, identifier: str) -> pd.DataFrame:
        df = self._load(table)
        mask = df["id"] == identifier
        if not mask.any():
            raise NotFoundError(entity, identifier)
        df = df[~mask]
        self._save(table, df)
        return df

    def get_clients(self) -> pd.DataFrame:
        return self._load("clients")

    def get_tasks(self) -> pd.DataFrame:
        return self._load("tasks")

    def get_subtasks(self) -> pd.DataFrame:
        return self._load("subtasks")

    def get_logs(self) -> pd.DataFrame:
        return self._load("time_logs")

    def get_user_profile(self) -> UserProfile:
        df = self._load("profiles")
        if df.empty:
            return self.profile_defaults
        return UserProfile.from_record(df.iloc[0].to_dict())

    def create_client(self, client: Client) -> Client:
        return Client.from_record(self._insert("clients", client.to_record()))

    def create_task(self, task: Task) -> Task:
        return Task.from_record(self._insert("tasks", task.to_record()))

    def create_subtask(self, subtask: Subtask) -> Subtask:
        return Subtask.from_record(self._insert("subtasks", subtask.to_record()))

    def create_log(self, log: TimeLog) -> TimeLog:
        return TimeLog.from_record(self._insert("time_logs", log.to_record()))

    def update_task(self, task_id: str, **fields: Any) -> None:
        self._update("tasks", "task", task_id, fields, TASK_UPDATE_FIELDS)

    def update_subtask(self, subtask_id: str, **fields: Any) -> None:
        self._update("subtasks", "subtask", subtask_id, fields, SUBTASK_UPDATE_FIELDS)

    def update_user_profile(self, profile: UserProfile) -> None:
        self._save("profiles", pd.DataFrame([profile.to_record()], columns=PROFILE_COLUMNS))

    def delete_client(self, client_id: str) -> None:
        self._delete("clients", "client", client_id)
        tasks = self._load("tasks")
        task_ids = list(tasks.loc[tasks["client_id"] == client_id, "id"])
        if task_ids:
            self._save("tasks", tasks[~tasks["id"].isin(task_ids)])
            self._prune_children(task_ids)
        get_logger().info("Deleted client %s with %s tasks", client_id, len(task_ids))

    def delete_task(self, task_id: str) -> None:
        self._delete("tasks", "task", task_id)
        self._prune_children([task_id])
        get_logger().info("Deleted task %s", task_id)

    def delete_subtask(self, subtask_id: str) -> None:
        self._delete("subtasks", "subtask", subtask_id)

    def _prune_children(self, task_ids: List[str]) -> None:
        subtasks = self._load("subtasks")
        self._save("subtasks", subtasks[~subtasks["parent_id"].isin(task_ids)])
        logs = self._load("time_logs")
        self._save("time_logs", logs[~logs["task_id"].isin(task_ids)])
