from __future__ import annotations

import altair as alt
import pandas as pd
import plotly.express as px
import streamlit as st

from workflow.analysis import METRIC_DEFINITIONS
from workflow.app_state import get_workspace, sidebar_period_controls
from workflow.periods import ViewMode


st.set_page_config(page_title="Work Flow", layout="wide", initial_sidebar_state="expanded")


def fmt_currency(val: float) -> str:
    if pd.isna(val) or val == 0:
        return "$0"
    if abs(val) >= 1_000_000:
        return f"${val/1_000_000:,.2f}M"
    if abs(val) >= 1_000:
        return f"${val/1_000:,.1f}K"
    return f"${val:,.0f}"


def metric_explainer(title: str) -> None:
    lines = [f"**{d['name']}** - `{d['formula']}`" for d in METRIC_DEFINITIONS.values()]
    with st.expander(title):
        st.markdown("\n\n".join(lines))


def main() -> None:
    workspace = get_workspace()
    mode, cursor = sidebar_period_controls()
    analytics = workspace.analyze(mode, cursor)

    profile = workspace.profile
    st.sidebar.markdown("---")
    st.sidebar.markdown(f"**{profile.name or 'User'}** ({profile.initials})  \n{profile.role or 'Admin'}")

    st.header(f"Dashboard - {analytics.label}")

    totals = analytics.totals
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Revenue", fmt_currency(totals["total_revenue"]), help="In selected period")
    c2.metric("Hours Logged", f"{totals['total_hours']:.1f}", help="Total hours worked")
    c3.metric("Active Projects", f"{totals['active_count']}", help="With activity in period")
    c4.metric("Deadlines", f"{totals['deadlines_count']}", help="Due in this period")
    metric_explainer("How these numbers are computed")

    col_left, col_right = st.columns([2, 1])

    with col_left:
        st.subheader("Revenue Trend")
        if analytics.trend.empty:
            st.info("No billable time in this period.")
        else:
            trend = analytics.trend.copy()
            trend["order"] = range(len(trend))
            axis_title = "Month" if mode == ViewMode.YEAR else "Day of month"
            chart = (
                alt.Chart(trend)
                .mark_area(opacity=0.25, line=True)
                .encode(
                    x=alt.X("name:N", sort=alt.SortField("order"), title=axis_title),
                    y=alt.Y("amount:Q", title="Revenue ($)"),
                    tooltip=["name", alt.Tooltip("amount:Q", format="$,.0f")],
                )
            )
            st.altair_chart(chart, use_container_width=True)

    with col_right:
        st.subheader("Revenue by Client")
        distribution = analytics.client_distribution
        if distribution.empty:
            st.info("No client revenue in this period.")
        else:
            fig = px.bar(
                distribution,
                x="revenue",
                y="client_name",
                orientation="h",
                color="client_name",
                color_discrete_sequence=list(distribution["chart_color"]),
            )
            fig.update_layout(showlegend=False, yaxis={"categoryorder": "total ascending"})
            st.plotly_chart(fig, use_container_width=True)

    st.subheader("Active Tasks")
    columns = [
        "title",
        "project_name",
        "status",
        "due_date",
        "calculated_progress",
        "total_actual_hours",
        "estimated_hours",
        "budget_status",
    ]
    st.dataframe(analytics.active_tasks[columns], use_container_width=True)


main()
