from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Any, List, Optional

import pandas as pd

from workflow.analysis import PeriodAnalytics, analyze
from workflow.errors import NotFoundError, PartialBatchFailure
from workflow.metrics import TaskRollup, summarize
from workflow.models import (
    CLIENT_COLUMNS,
    LOG_COLUMNS,
    SUBTASK_COLUMNS,
    TASK_COLUMNS,
    Client,
    Status,
    Subtask,
    Task,
    TimeLog,
    UserProfile,
    frame_to_records,
    records_to_frame,
)
from workflow.periods import ViewMode
from workflow.reconcile import ReconcileResult, apply_plan, merge_subtasks, reconcile
from workflow.store import TASK_UPDATE_FIELDS, EntityStore
from workflow.suggestions import SuggestionProvider, suggestions_to_subtasks
from workflow.utils import empty_frame, get_logger
from workflow.validation import (
    validate_client,
    validate_log,
    validate_profile,
    validate_subtask,
    validate_task,
)


def _append(df: pd.DataFrame, item: Any, columns: List[str]) -> pd.DataFrame:
    row = records_to_frame([item], columns)
    if df.empty:
        return row
    return pd.concat([df, row], ignore_index=True)


@dataclass
class Workspace:
    """In-memory mirror of the store plus the commands that keep it in sync.

    Local state only changes after the store confirms a call, and the
    roll-ups are always recomputed from that confirmed state.
    """

    store: EntityStore
    clients: pd.DataFrame = field(default_factory=lambda: empty_frame(CLIENT_COLUMNS))
    tasks: pd.DataFrame = field(default_factory=lambda: empty_frame(TASK_COLUMNS))
    subtasks: pd.DataFrame = field(default_factory=lambda: empty_frame(SUBTASK_COLUMNS))
    logs: pd.DataFrame = field(default_factory=lambda: empty_frame(LOG_COLUMNS))
    profile: UserProfile = field(default_factory=UserProfile)

    @classmethod
    def load(cls, store: EntityStore, max_workers: int = 5) -> "Workspace":
        """Fetch all collections and the profile concurrently, then join."""
        logger = get_logger()
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            clients = executor.submit(store.get_clients)
            tasks = executor.submit(store.get_tasks)
            subtasks = executor.submit(store.get_subtasks)
            logs = executor.submit(store.get_logs)
            profile = executor.submit(store.get_user_profile)
            workspace = cls(
                store=store,
                clients=clients.result(),
                tasks=tasks.result(),
                subtasks=subtasks.result(),
                logs=logs.result(),
                profile=profile.result(),
            )
        logger.info(
            "Loaded %s clients, %s tasks, %s subtasks, %s logs",
            len(workspace.clients),
            len(workspace.tasks),
            len(workspace.subtasks),
            len(workspace.logs),
        )
        return workspace

    # --- derived views ---

    def rollup(self) -> TaskRollup:
        return summarize(self.tasks, self.subtasks, self.logs)

    def analyze(self, mode: ViewMode, cursor, now: Optional[pd.Timestamp] = None) -> PeriodAnalytics:
        return analyze(self.rollup(), mode, cursor, clients=self.clients, now=now)

    def task(self, task_id: str) -> Task:
        rows = self.tasks[self.tasks["id"] == task_id]
        if rows.empty:
            raise NotFoundError("task", task_id)
        return Task.from_record(rows.iloc[0].to_dict())

    def task_subtasks(self, task_id: str) -> List[Subtask]:
        return frame_to_records(self.subtasks[self.subtasks["parent_id"] == task_id], Subtask)

    # --- clients ---

    def add_client(self, client: Client) -> Client:
        validate_client(client)
        created = self.store.create_client(client)
        self.clients = _append(self.clients, created, CLIENT_COLUMNS)
        return created

    def delete_client(self, client_id: str) -> None:
        """Delete a client; its tasks and their subtasks and logs are pruned locally."""
        self.store.delete_client(client_id)
        task_ids = set(self.tasks.loc[self.tasks["client_id"] == client_id, "id"])
        self.clients = self.clients[self.clients["id"] != client_id].reset_index(drop=True)
        self._prune_tasks(task_ids)

    # --- tasks ---

    def add_task(self, task: Task) -> Task:
        validate_task(task)
        created = self.store.create_task(task)
        self.tasks = _append(self.tasks, created, TASK_COLUMNS)
        return created

    def update_task(self, task_id: str, **fields: Any) -> None:
        if "title" in fields and fields["title"] is not None:
            validate_task(replace(self.task(task_id), title=fields["title"]))
        self.store.update_task(task_id, **fields)
        mask = self.tasks["id"] == task_id
        changes = {k: v for k, v in fields.items() if v is not None and k in TASK_UPDATE_FIELDS}
        if changes:
            self.tasks = self.tasks.astype({col: object for col in changes})
        for col, value in changes.items():
            self.tasks.loc[mask, col] = value.value if isinstance(value, Status) else value

    def update_task_status(self, task_id: str, status: Status) -> None:
        self.update_task(task_id, status=status)

    def delete_task(self, task_id: str) -> None:
        """Delete a task; its subtasks and logs are pruned locally."""
        self.store.delete_task(task_id)
        self._prune_tasks({task_id})

    def _prune_tasks(self, task_ids: set) -> None:
        self.tasks = self.tasks[~self.tasks["id"].isin(task_ids)].reset_index(drop=True)
        self.subtasks = self.subtasks[~self.subtasks["parent_id"].isin(task_ids)].reset_index(drop=True)
        self.logs = self.logs[~self.logs["task_id"].isin(task_ids)].reset_index(drop=True)

    # --- subtasks ---

    def update_subtasks(self, task_id: str, desired: List[Subtask]) -> ReconcileResult:
        """Sync the full edited subtask list of a task with the store.

        On partial failure the confirmed subset is mirrored locally before
        PartialBatchFailure propagates.
        """
        self.task(task_id)
        for subtask in desired:
            validate_subtask(subtask)
        current = self.task_subtasks(task_id)
        plan = reconcile(task_id, current, desired)
        try:
            result = apply_plan(self.store, plan, current)
        except PartialBatchFailure as exc:
            self.subtasks = merge_subtasks(self.subtasks, task_id, exc.confirmed)
            raise
        self.subtasks = merge_subtasks(self.subtasks, task_id, result.confirmed)
        return result

    def suggest_subtasks(self, task_id: str, provider: SuggestionProvider, context: str = "") -> List[Subtask]:
        """Suggested rows with temporary ids; nothing is persisted until update_subtasks."""
        return suggestions_to_subtasks(task_id, provider.suggest_subtasks(self.task(task_id), context))

    # --- logs & profile ---

    def add_log(self, log: TimeLog) -> TimeLog:
        validate_log(log)
        if not (self.tasks["id"] == log.task_id).any():
            raise NotFoundError("task", log.task_id)
        created = self.store.create_log(log)
        self.logs = _append(self.logs, created, LOG_COLUMNS)
        return created

    def invoice_summary(self, task_id: str, provider: SuggestionProvider) -> Optional[str]:
        logs = frame_to_records(self.logs[self.logs["task_id"] == task_id], TimeLog)
        return provider.summarize_for_invoice(self.task(task_id).title, logs)

    def update_profile(self, profile: UserProfile) -> UserProfile:
        validate_profile(profile)
        self.store.update_user_profile(profile)
        self.profile = profile
        return profile
