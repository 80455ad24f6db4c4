from __future__ import annotations

import pandas as pd
import streamlit as st

from workflow.app_state import get_provider, get_settings, get_workspace, run_command
from workflow.models import CATEGORIES, SUBTASK_COLUMNS, Priority, Status, Subtask, Task, TimeLog, records_to_frame


st.header("Tasks")

workspace = get_workspace()
settings = get_settings()
provider = get_provider()
rollup = workspace.rollup()
summaries = rollup.summaries
client_names = dict(zip(workspace.clients["id"], workspace.clients["name"]))
statuses = [s.value for s in Status]

with st.expander("New task"):
    if not client_names:
        st.write("Create a client first.")
    else:
        with st.form("new_task", clear_on_submit=True):
            client_id = st.selectbox("Client", list(client_names), format_func=client_names.get)
            title = st.text_input("Title")
            project = st.text_input("Project")
            category = st.selectbox("Category", settings.get("categories", CATEGORIES))
            c1, c2 = st.columns(2)
            start = c1.date_input("Start date", value=pd.Timestamp.now().date())
            due = c2.date_input("Due date", value=None)
            estimate = c1.number_input("Estimated hours", min_value=0.0, value=0.0, step=1.0)
            rate = c2.number_input("Hourly rate", min_value=0.0, value=0.0, step=5.0)
            billable = st.checkbox("Billable", value=True)
            notes = st.text_area("Notes")
            if st.form_submit_button("Create"):
                task = Task(
                    id="",
                    client_id=client_id,
                    title=title,
                    project_name=project,
                    category=category,
                    start_date=start.isoformat() if start else None,
                    due_date=due.isoformat() if due else None,
                    estimated_hours=estimate,
                    hourly_rate=rate,
                    is_billable=billable,
                    notes=notes,
                )
                if run_command("Create task", workspace.add_task, task):
                    st.rerun()

if summaries.empty:
    st.info("No tasks yet.")
    st.stop()

status_filter = st.multiselect("Status", statuses, default=statuses)
view = summaries[summaries["status"].isin(status_filter)].copy()
view["client"] = view["client_id"].map(client_names).fillna("Unknown")
st.dataframe(
    view[["title", "client", "project_name", "status", "due_date", "calculated_progress", "total_actual_hours", "estimated_hours", "budget_status"]],
    use_container_width=True,
)

titles = dict(zip(summaries["id"], summaries["title"]))
task_id = st.selectbox("Open task", list(titles), format_func=titles.get)
summary = rollup.task_summary(task_id)
task = summary.task

st.subheader(task.title)
c1, c2, c3, c4 = st.columns(4)
c1.metric("Progress", f"{summary.calculated_progress:.0f}%")
c2.metric("Actual hours", f"{summary.total_actual_hours:.1f}")
c3.metric("Estimate", f"{summary.estimated_hours:.1f}")
c4.metric("Billable", f"${summary.total_billable_amount:,.0f}")
if summary.is_over_budget:
    st.warning("Over budget")

if not summary.subtasks:
    new_status = st.selectbox("Status", statuses, index=statuses.index(summary.status.value))
    if new_status != task.status.value and st.button("Update status"):
        run_command("Update status", workspace.update_task_status, task_id, Status(new_status))
        st.rerun()
else:
    st.caption(f"Status follows subtasks: {summary.status.value}")

st.markdown("**Subtasks**")
draft_key = f"subtask_draft_{task_id}"
if draft_key not in st.session_state:
    st.session_state[draft_key] = records_to_frame(summary.subtasks, SUBTASK_COLUMNS)

edited = st.data_editor(
    st.session_state[draft_key],
    num_rows="dynamic",
    use_container_width=True,
    column_order=["title", "priority", "assigned_to", "estimated_hours", "percent_complete", "status"],
    column_config={
        "priority": st.column_config.SelectboxColumn("Priority", options=[p.value for p in Priority]),
        "status": st.column_config.SelectboxColumn("Status", options=statuses),
        "percent_complete": st.column_config.NumberColumn("% Complete", min_value=0, max_value=100),
        "estimated_hours": st.column_config.NumberColumn("Est. hours", min_value=0),
    },
    key=f"subtask_editor_{task_id}",
)

c1, c2 = st.columns(2)
if c1.button("Suggest subtasks"):
    with st.spinner("Asking for suggestions"):
        suggested = workspace.suggest_subtasks(task_id, provider)
    if suggested:
        st.session_state[draft_key] = pd.concat(
            [edited, records_to_frame(suggested, SUBTASK_COLUMNS)], ignore_index=True
        )
        st.rerun()
    else:
        st.info("No suggestions available.")

if c2.button("Save subtasks"):
    desired = []
    for row in edited.to_dict(orient="records"):
        row["parent_id"] = task_id
        if not row.get("assigned_to"):
            row["assigned_to"] = "Me"
        desired.append(Subtask.from_record(row))
    result = run_command("Save subtasks", workspace.update_subtasks, task_id, desired)
    st.session_state.pop(draft_key, None)
    if result is not None:
        st.success(f"Saved {len(result.applied)} changes")
    st.rerun()

st.markdown("**Log time**")
with st.form("log_time", clear_on_submit=True):
    c1, c2 = st.columns(2)
    date = c1.date_input("Date", value=pd.Timestamp.now().date())
    hours = c2.number_input("Hours", min_value=0.0, value=1.0, step=0.25)
    subtask_options = {"": "None"} | {s.id: s.title for s in summary.subtasks}
    subtask_id = st.selectbox("Subtask", list(subtask_options), format_func=subtask_options.get)
    notes = st.text_input("Notes")
    if st.form_submit_button("Add log"):
        log = TimeLog(id="", task_id=task_id, date=date.isoformat(), hours=hours, notes=notes, subtask_id=subtask_id or None)
        if run_command("Add time log", workspace.add_log, log):
            st.rerun()

if summary.time_logs:
    st.dataframe(pd.DataFrame([log.to_record() for log in summary.time_logs]), use_container_width=True)
    if st.button("Draft invoice summary"):
        text = workspace.invoice_summary(task_id, provider)
        if text:
            st.text_area("Invoice summary", text, height=120)
        else:
            st.info("Invoice summary unavailable.")

if st.button("Delete task", type="secondary"):
    run_command("Delete task", workspace.delete_task, task_id)
    st.rerun()
