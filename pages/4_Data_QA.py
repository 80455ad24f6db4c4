from __future__ import annotations

import json
from pathlib import Path

import streamlit as st

from workflow.app_state import get_settings, get_workspace
from workflow.qa import build_qa_report


st.header("Data QA")

workspace = get_workspace()
settings = get_settings()

report = build_qa_report(
    workspace.clients,
    workspace.tasks,
    workspace.subtasks,
    workspace.logs,
    workspace.rollup().summaries,
)

st.subheader("QA Summary")
st.json(report)

flagged = workspace.tasks[
    workspace.tasks["id"].isin(report["tasks_with_unknown_client"] + report.get("over_budget_tasks", []))
]
st.subheader("Flagged Tasks")
if flagged.empty:
    st.write("No flagged tasks.")
else:
    st.dataframe(flagged, use_container_width=True)

qa_path = Path(settings["processed_dir"]) / "qa_report.json"
if qa_path.exists():
    with st.expander("Last build report"):
        st.json(json.loads(qa_path.read_text(encoding="utf-8")))
