from __future__ import annotations

from typing import Any, List, Tuple


class WorkflowError(Exception):
    """Base class for errors raised by the workflow package."""


class ValidationError(WorkflowError):
    """A required field is missing or out of range; nothing was submitted."""

    def __init__(self, entity: str, problems: List[str]):
        self.entity = entity
        self.problems = list(problems)
        super().__init__(f"Invalid {entity}: {'; '.join(self.problems)}")


class NotFoundError(WorkflowError):
    """A referenced client, task or subtask does not exist."""

    def __init__(self, entity: str, identifier: str):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found: {identifier}")


class StoreError(WorkflowError):
    """A call to the entity store failed."""


class PartialBatchFailure(WorkflowError):
    """Some operations of a multi-call batch failed while others were applied.

    ``applied`` lists the changes the store accepted, ``failed`` pairs each
    rejected change with its error and ``confirmed`` is the subtask list the
    caller should mirror locally.
    """

    def __init__(self, applied: List[Any], failed: List[Tuple[Any, Exception]], confirmed: List[Any]):
        self.applied = list(applied)
        self.failed = list(failed)
        self.confirmed = list(confirmed)
        super().__init__(
            f"{len(self.failed)} of {len(self.applied) + len(self.failed)} operations failed"
        )
