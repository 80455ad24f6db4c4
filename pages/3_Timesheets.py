from __future__ import annotations

import streamlit as st

from workflow import io
from workflow.app_state import get_workspace
from workflow.timesheet import ALL_MONTHS, aggregate_timesheet, available_months


st.header("Timesheets")

workspace = get_workspace()

months = [ALL_MONTHS] + available_months(workspace.logs)
month = st.selectbox("Month", months, format_func=lambda m: "All months" if m == ALL_MONTHS else m)

client_totals, client_months, detail = aggregate_timesheet(
    workspace.logs, workspace.tasks, workspace.clients, month=month
)

if detail.empty:
    st.info("No time logged for this selection.")
    st.stop()

c1, c2 = st.columns(2)
c1.metric("Hours", f"{detail['hours'].sum():.1f}")
c2.metric("Billable", f"${detail['billable_amount'].sum():,.0f}")

st.subheader("By client")
st.dataframe(client_totals[["client_name", "total_hours", "total_billable", "log_count"]], use_container_width=True)

st.subheader("By client and month")
st.dataframe(client_months, use_container_width=True)

st.subheader("Entries")
detail_cols = ["date", "client_name", "task_title", "hours", "billable_amount", "notes"]
st.dataframe(detail[detail_cols], use_container_width=True)

st.download_button(
    "Download workbook",
    data=io.workbook_bytes({"Clients": client_totals, "Months": client_months, "Entries": detail[detail_cols]}),
    file_name=f"timesheet_{month.lower()}.xlsx",
    mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
)
