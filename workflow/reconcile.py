from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

import pandas as pd

from workflow.errors import NotFoundError, PartialBatchFailure, StoreError
from workflow.models import SUBTASK_COLUMNS, Subtask, records_to_frame
from workflow.utils import get_logger


# Store-assigned identifiers are UUIDs (36 chars); rows added locally carry
# short temporary ids until they are created.
PERSISTED_ID_MIN_LENGTH = 20
TEMPORARY_ID_LENGTH = 9

CREATE = "create"
UPDATE = "update"
DELETE = "delete"


def is_persisted_identifier(identifier: Optional[str]) -> bool:
    """True when an id has the shape of a store-assigned identifier."""
    return isinstance(identifier, str) and len(identifier) > PERSISTED_ID_MIN_LENGTH


def new_temporary_identifier() -> str:
    return uuid.uuid4().hex[:TEMPORARY_ID_LENGTH]


@dataclass
class PlannedChange:
    action: str
    subtask_id: str
    subtask: Optional[Subtask] = None


@dataclass
class SubtaskPlan:
    """Changes needed to turn the persisted subtasks of a task into the desired list.

    ``changes`` lists deletes first, then creates and updates in the order of
    the desired list.
    """

    task_id: str
    changes: List[PlannedChange] = field(default_factory=list)

    @property
    def to_create(self) -> List[Subtask]:
        return [c.subtask for c in self.changes if c.action == CREATE]

    @property
    def to_update(self) -> List[Subtask]:
        return [c.subtask for c in self.changes if c.action == UPDATE]

    @property
    def to_delete(self) -> List[str]:
        return [c.subtask_id for c in self.changes if c.action == DELETE]

    @property
    def is_empty(self) -> bool:
        return not self.changes


@dataclass
class ReconcileResult:
    plan: SubtaskPlan
    applied: List[PlannedChange]
    failed: List[Tuple[PlannedChange, Exception]]
    confirmed: List[Subtask]

    @property
    def ok(self) -> bool:
        return not self.failed


def reconcile(task_id: str, current: List[Subtask], desired: List[Subtask]) -> SubtaskPlan:
    """Classify each desired subtask as create or update and each dropped one as delete.

    A desired row is an update only when its id is among the task's current
    ids and looks persisted; anything else is created under ``task_id`` with
    its temporary id stripped. A persisted-looking id reused for a brand new
    row is therefore planned as an update.
    """
    current = [s for s in current if s.parent_id == task_id]
    current_ids = {s.id for s in current}
    desired_ids = {s.id for s in desired}

    changes = [
        PlannedChange(action=DELETE, subtask_id=s.id, subtask=s)
        for s in current
        if s.id not in desired_ids
    ]
    for s in desired:
        if s.id in current_ids and is_persisted_identifier(s.id):
            changes.append(PlannedChange(action=UPDATE, subtask_id=s.id, subtask=replace(s, parent_id=task_id)))
        else:
            changes.append(PlannedChange(action=CREATE, subtask_id=s.id, subtask=replace(s, id="", parent_id=task_id)))
    return SubtaskPlan(task_id=task_id, changes=changes)


def apply_plan(store, plan: SubtaskPlan, current: List[Subtask]) -> ReconcileResult:
    """Run each planned change against the store independently.

    Failed changes do not stop the rest of the batch. There is no rollback:
    when anything fails, PartialBatchFailure reports what was applied, what
    failed and the subtask list that matches the store's confirmed state.
    """
    logger = get_logger()
    previous = {s.id: s for s in current if s.parent_id == plan.task_id}

    applied: List[PlannedChange] = []
    failed: List[Tuple[PlannedChange, Exception]] = []
    confirmed: List[Subtask] = []
    kept_after_failed_delete: List[Subtask] = []

    for change in plan.changes:
        try:
            if change.action == DELETE:
                store.delete_subtask(change.subtask_id)
            elif change.action == UPDATE:
                store.update_subtask(change.subtask_id, **_update_fields(change.subtask))
                confirmed.append(change.subtask)
            else:
                confirmed.append(store.create_subtask(change.subtask))
            applied.append(change)
        except (StoreError, NotFoundError) as exc:
            logger.error("Subtask %s %s failed: %s", change.action, change.subtask_id, exc)
            failed.append((change, exc))
            if isinstance(exc, NotFoundError):
                # The store no longer holds the record.
                continue
            if change.action == DELETE and change.subtask_id in previous:
                kept_after_failed_delete.append(previous[change.subtask_id])
            elif change.action == UPDATE and change.subtask_id in previous:
                confirmed.append(previous[change.subtask_id])

    confirmed.extend(kept_after_failed_delete)
    logger.info(
        "Synced subtasks for task %s: %s applied, %s failed", plan.task_id, len(applied), len(failed)
    )
    if failed:
        raise PartialBatchFailure(applied=applied, failed=failed, confirmed=confirmed)
    return ReconcileResult(plan=plan, applied=applied, failed=failed, confirmed=confirmed)


def _update_fields(subtask: Subtask) -> dict:
    return {
        "title": subtask.title,
        "status": subtask.status,
        "percent_complete": subtask.percent_complete,
        "estimated_hours": subtask.estimated_hours,
        "priority": subtask.priority,
        "assigned_to": subtask.assigned_to,
    }


def merge_subtasks(all_subtasks: pd.DataFrame, task_id: str, confirmed: List[Subtask]) -> pd.DataFrame:
    """Replace one task's subtasks in a local frame, leaving other tasks untouched."""
    others = all_subtasks[all_subtasks["parent_id"] != task_id]
    replacement = records_to_frame(confirmed, SUBTASK_COLUMNS)
    if others.empty:
        return replacement.reset_index(drop=True)
    if replacement.empty:
        return others.reset_index(drop=True)
    return pd.concat([others, replacement], ignore_index=True)
