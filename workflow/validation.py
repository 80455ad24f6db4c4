from __future__ import annotations

from typing import List

import pandas as pd

from workflow.errors import ValidationError
from workflow.models import Client, Subtask, Task, TimeLog, UserProfile


def _blank(value) -> bool:
    return value is None or not str(value).strip()


def _bad_date(value) -> bool:
    return pd.isna(pd.to_datetime(value, errors="coerce"))


def validate_client(client: Client) -> None:
    if _blank(client.name):
        raise ValidationError("client", ["name is required"])


def validate_task(task: Task) -> None:
    problems: List[str] = []
    if _blank(task.title):
        problems.append("title is required")
    if _blank(task.client_id):
        problems.append("client is required")
    for label, value in (("start date", task.start_date), ("due date", task.due_date)):
        if not _blank(value) and _bad_date(value):
            problems.append(f"{label} is not a valid date")
    if task.estimated_hours < 0:
        problems.append("estimated hours cannot be negative")
    if task.hourly_rate < 0:
        problems.append("hourly rate cannot be negative")
    if problems:
        raise ValidationError("task", problems)


def validate_subtask(subtask: Subtask) -> None:
    problems: List[str] = []
    if _blank(subtask.title):
        problems.append("title is required")
    if not 0 <= subtask.percent_complete <= 100:
        problems.append("percent complete must be between 0 and 100")
    if subtask.estimated_hours < 0:
        problems.append("estimated hours cannot be negative")
    if problems:
        raise ValidationError("subtask", problems)


def validate_log(log: TimeLog) -> None:
    problems: List[str] = []
    if _blank(log.task_id):
        problems.append("task is required")
    if _blank(log.date) or _bad_date(log.date):
        problems.append("date is required")
    if not log.hours > 0:
        problems.append("hours must be positive")
    if problems:
        raise ValidationError("time log", problems)


def validate_profile(profile: UserProfile) -> None:
    if len(profile.initials or "") > 3:
        raise ValidationError("profile", ["initials must be at most 3 characters"])
