from __future__ import annotations

import pandas as pd
import streamlit as st

from workflow.app_state import get_settings, get_workspace, run_command
from workflow.models import Client, Task
from workflow.revenue import client_overview, client_tasks_by_month, month_bounds
from workflow.utils import month_key


st.header("Clients")

workspace = get_workspace()
settings = get_settings()
summaries = workspace.rollup().summaries
overview = client_overview(summaries, workspace.clients)

with st.expander("Add client"):
    with st.form("new_client", clear_on_submit=True):
        name = st.text_input("Name")
        colors = settings.get("client_colors", ["bg-blue-100 text-blue-800"])
        color = st.selectbox("Badge", colors)
        address = st.text_input("Address")
        if st.form_submit_button("Create"):
            if run_command("Create client", workspace.add_client, Client(id="", name=name, color=color, address=address or None)):
                st.rerun()

if overview.empty:
    st.info("No clients yet.")
    st.stop()

st.dataframe(
    overview[["name", "task_count", "active_count", "total_revenue", "total_hours"]],
    use_container_width=True,
)

names = dict(zip(overview["id"], overview["name"]))
client_id = st.selectbox("Client", list(names), format_func=names.get)

months = client_tasks_by_month(summaries, client_id)
st.subheader(f"{names[client_id]} by month")
if months.empty:
    st.write("No tasks for this client.")
else:
    st.dataframe(months, use_container_width=True)

client_tasks = summaries[summaries["client_id"] == client_id]
task_months = month_key(client_tasks["start_date"]).fillna(pd.Timestamp.now().strftime("%Y-%m"))
for key in months["month_key"]:
    in_month = client_tasks[task_months == key]
    with st.expander(key):
        st.dataframe(
            in_month[["title", "status", "calculated_progress", "total_actual_hours", "estimated_hours", "total_billable_amount"]],
            use_container_width=True,
        )

st.subheader("New task for this client")
with st.form("client_task", clear_on_submit=True):
    month = st.text_input("Month (YYYY-MM)", value=pd.Timestamp.now().strftime("%Y-%m"))
    title = st.text_input("Title")
    project = st.text_input("Project")
    rate = st.number_input("Hourly rate", min_value=0.0, value=0.0, step=5.0)
    if st.form_submit_button("Create task"):
        try:
            start, due = month_bounds(month)
        except ValueError:
            st.warning("Month must look like 2024-02")
        else:
            task = Task(id="", client_id=client_id, title=title, project_name=project, start_date=start, due_date=due, hourly_rate=rate)
            if run_command("Create task", workspace.add_task, task):
                st.rerun()

if st.button("Delete client", type="secondary"):
    run_command("Delete client", workspace.delete_client, client_id)
    st.rerun()
