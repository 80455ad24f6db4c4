from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional

from workflow.models import Priority, Status, Subtask, Task, TimeLog
from workflow.reconcile import new_temporary_identifier
from workflow.utils import get_logger


DEFAULT_MODEL = "gemini-1.5-flash"
DEFAULT_API_KEY_ENV = "GEMINI_API_KEY"

SUBTASK_PROMPT = """
I am a consultant working on a project.
Task: "{title}"
Category: "{category}"
Project: "{project}"
Context/Notes: "{context}"

Please break this task down into 3-6 actionable subtasks with estimated hours.
Prioritize them logically.
Respond with a JSON array of objects with keys "title" (string),
"estimatedHours" (number) and "priority" (one of "High", "Medium", "Low").
"""

INVOICE_PROMPT = """
Create a professional invoice description line item summary for the following work logs.
Task Name: {title}
Logs: {logs}

Summarize the work completed in 2-3 sentences suitable for a client invoice.
Do not include prices, just the description of work.
"""


class SuggestionProvider:
    """Optional AI capability. Implementations return ``[]`` / ``None`` instead of raising."""

    def suggest_subtasks(self, task: Task, context: str = "") -> List[Dict[str, Any]]:
        return []

    def summarize_for_invoice(self, task_title: str, logs: List[TimeLog]) -> Optional[str]:
        return None


class NullSuggestionProvider(SuggestionProvider):
    pass


class GeminiSuggestionProvider(SuggestionProvider):
    def __init__(self, api_key: Optional[str], model: str = DEFAULT_MODEL, temperature: float = 0.3):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature

    def _generate(self, prompt: str, json_response: bool) -> str:
        import google.generativeai as genai

        genai.configure(api_key=self.api_key)
        config = {"temperature": self.temperature}
        if json_response:
            config["response_mime_type"] = "application/json"
        response = genai.GenerativeModel(self.model).generate_content(prompt, generation_config=config)
        return response.text

    def suggest_subtasks(self, task: Task, context: str = "") -> List[Dict[str, Any]]:
        logger = get_logger()
        if not self.api_key:
            logger.warning("No API key configured for subtask suggestions")
            return []
        prompt = SUBTASK_PROMPT.format(
            title=task.title,
            category=task.category,
            project=task.project_name,
            context=context or task.notes,
        )
        try:
            raw = self._generate(prompt, json_response=True)
            return parse_subtask_suggestions(raw)
        except Exception as exc:
            logger.warning("Subtask suggestion failed: %s", exc)
            return []

    def summarize_for_invoice(self, task_title: str, logs: List[TimeLog]) -> Optional[str]:
        logger = get_logger()
        if not self.api_key:
            return None
        payload = json.dumps([{"date": l.date, "hours": l.hours, "notes": l.notes} for l in logs])
        try:
            text = self._generate(INVOICE_PROMPT.format(title=task_title, logs=payload), json_response=False)
        except Exception as exc:
            logger.warning("Invoice summary failed: %s", exc)
            return None
        return text.strip() if text else None


def parse_subtask_suggestions(raw: Optional[str]) -> List[Dict[str, Any]]:
    """Keep well-formed ``{title, estimatedHours, priority}`` items from a JSON reply."""
    if not raw:
        return []
    items = json.loads(raw)
    if not isinstance(items, list):
        return []
    parsed = []
    for item in items:
        if not isinstance(item, dict) or not item.get("title"):
            continue
        try:
            hours = max(float(item.get("estimatedHours", 0) or 0), 0.0)
        except (TypeError, ValueError):
            hours = 0.0
        priority = item.get("priority")
        parsed.append(
            {
                "title": str(item["title"]).strip(),
                "estimated_hours": hours,
                "priority": priority if priority in {p.value for p in Priority} else Priority.MEDIUM.value,
            }
        )
    return parsed


def suggestions_to_subtasks(task_id: str, suggestions: List[Dict[str, Any]]) -> List[Subtask]:
    """New subtask rows with temporary ids, ready to append to an edited list."""
    return [
        Subtask(
            id=new_temporary_identifier(),
            parent_id=task_id,
            title=s["title"],
            priority=Priority(s["priority"]),
            assigned_to="Me",
            estimated_hours=s["estimated_hours"],
            percent_complete=0.0,
            status=Status.NOT_STARTED,
        )
        for s in suggestions
    ]


def build_provider(settings: Optional[Dict[str, Any]] = None) -> SuggestionProvider:
    """Provider from the ``suggestions`` settings block; the null provider when disabled."""
    config = (settings or {}).get("suggestions", {}) or {}
    if not config.get("enabled", False):
        return NullSuggestionProvider()
    api_key = os.environ.get(config.get("api_key_env", DEFAULT_API_KEY_ENV))
    return GeminiSuggestionProvider(
        api_key=api_key,
        model=config.get("model", DEFAULT_MODEL),
        temperature=float(config.get("temperature", 0.3)),
    )
