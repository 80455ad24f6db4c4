"""Tests for input validation before store submission."""
import pytest

from workflow.errors import ValidationError
from workflow.models import Client, Subtask, Task, TimeLog, UserProfile
from workflow.validation import (
    validate_client,
    validate_log,
    validate_profile,
    validate_subtask,
    validate_task,
)


class TestValidation:
    def test_client_requires_name(self):
        with pytest.raises(ValidationError):
            validate_client(Client(id="", name="  "))
        validate_client(Client(id="", name="Acme"))

    def test_task_collects_all_problems(self):
        task = Task(id="", client_id="", title="", start_date="not-a-date", estimated_hours=-1, hourly_rate=-5)
        with pytest.raises(ValidationError) as excinfo:
            validate_task(task)
        assert excinfo.value.problems == [
            "title is required",
            "client is required",
            "start date is not a valid date",
            "estimated hours cannot be negative",
            "hourly rate cannot be negative",
        ]

    def test_valid_task_without_dates(self):
        validate_task(Task(id="", client_id="c1", title="Ok"))

    @pytest.mark.parametrize("percent", [-1, 101])
    def test_subtask_percent_range(self, percent):
        with pytest.raises(ValidationError):
            validate_subtask(Subtask(id="", parent_id="t", title="x", percent_complete=percent))

    def test_log_requires_positive_hours_and_date(self):
        with pytest.raises(ValidationError) as excinfo:
            validate_log(TimeLog(id="", task_id="t", date="", hours=0))
        assert excinfo.value.problems == ["date is required", "hours must be positive"]

    def test_profile_initials(self):
        validate_profile(UserProfile(initials="ABC"))
        with pytest.raises(ValidationError):
            validate_profile(UserProfile(initials="ABCD"))
