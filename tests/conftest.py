"""
Shared fixtures for the workflow tests.
"""
import uuid
from dataclasses import replace
from typing import Dict, List

import pytest

from workflow.errors import NotFoundError, StoreError
from workflow.models import Client, Priority, Status, Subtask, Task, TimeLog
from workflow.store import ParquetStore


def persisted_id() -> str:
    """A store-shaped identifier (36-character UUID)."""
    return str(uuid.uuid4())


# =============================================================================
# FIXTURES: Sample Data
# =============================================================================

@pytest.fixture
def client() -> Client:
    return Client(id=persisted_id(), name="Acme Corp", color="bg-blue-100 text-blue-800")


@pytest.fixture
def billable_task(client) -> Task:
    """Billable task at $100/h with a 10h manual estimate and no subtasks."""
    return Task(
        id=persisted_id(),
        client_id=client.id,
        title="Website redesign",
        project_name="Q1 Web",
        category="Design",
        start_date="2024-03-01",
        due_date="2024-03-31",
        status=Status.IN_PROGRESS,
        estimated_hours=10.0,
        hourly_rate=100.0,
        is_billable=True,
    )


@pytest.fixture
def march_logs(billable_task) -> List[TimeLog]:
    return [
        TimeLog(id=persisted_id(), task_id=billable_task.id, date="2024-03-05", hours=3.0),
        TimeLog(id=persisted_id(), task_id=billable_task.id, date="2024-03-20", hours=2.0),
    ]


@pytest.fixture
def make_subtask():
    """Factory for subtasks under a given task."""

    def _make(parent_id: str, title: str = "Step", **kwargs) -> Subtask:
        kwargs.setdefault("id", persisted_id())
        kwargs.setdefault("priority", Priority.MEDIUM)
        return Subtask(parent_id=parent_id, title=title, **kwargs)

    return _make


# =============================================================================
# FIXTURES: Stores
# =============================================================================

@pytest.fixture
def store(tmp_path) -> ParquetStore:
    return ParquetStore(tmp_path / "store")


class FlakyStore:
    """Subtask store double that fails configured calls.

    Ids in ``fail_ids`` raise StoreError; ids in ``missing_ids`` raise NotFoundError.
    """

    def __init__(self, fail_ids=(), fail_create_titles=(), missing_ids=()):
        self.fail_ids = set(fail_ids)
        self.missing_ids = set(missing_ids)
        self.fail_create_titles = set(fail_create_titles)
        self.calls: List[tuple] = []
        self.updates: Dict[str, dict] = {}

    def create_subtask(self, subtask: Subtask) -> Subtask:
        self.calls.append(("create", subtask.title))
        if subtask.title in self.fail_create_titles:
            raise StoreError(f"create rejected: {subtask.title}")
        return replace(subtask, id=persisted_id())

    def update_subtask(self, subtask_id: str, **fields) -> None:
        self.calls.append(("update", subtask_id))
        if subtask_id in self.missing_ids:
            raise NotFoundError("subtask", subtask_id)
        if subtask_id in self.fail_ids:
            raise StoreError(f"update rejected: {subtask_id}")
        self.updates[subtask_id] = fields

    def delete_subtask(self, subtask_id: str) -> None:
        self.calls.append(("delete", subtask_id))
        if subtask_id in self.missing_ids:
            raise NotFoundError("subtask", subtask_id)
        if subtask_id in self.fail_ids:
            raise StoreError(f"delete rejected: {subtask_id}")


@pytest.fixture
def flaky_store_factory():
    return FlakyStore


@pytest.fixture
def new_id():
    return persisted_id
