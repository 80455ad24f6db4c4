from __future__ import annotations

from typing import Dict, Tuple

import pandas as pd
import streamlit as st

from workflow.build import open_workspace
from workflow.errors import PartialBatchFailure, StoreError, ValidationError, WorkflowError
from workflow.periods import ViewMode, next_period, period_label, previous_period
from workflow.suggestions import SuggestionProvider, build_provider
from workflow.utils import get_logger, load_settings
from workflow.workspace import Workspace


SETTINGS_PATH = "config/settings.yaml"


@st.cache_data(show_spinner=False)
def get_settings(settings_path: str = SETTINGS_PATH) -> Dict[str, object]:
    return load_settings(settings_path)


def get_workspace(settings_path: str = SETTINGS_PATH) -> Workspace:
    """Load the workspace once per session and keep it in session state."""
    if "workspace" not in st.session_state:
        settings = get_settings(settings_path)
        try:
            st.session_state["workspace"] = open_workspace(settings)
        except StoreError as exc:
            get_logger().error("Error loading data: %s", exc)
            st.error(f"Could not load data: {exc}")
            st.stop()
    return st.session_state["workspace"]


def get_provider(settings_path: str = SETTINGS_PATH) -> SuggestionProvider:
    if "suggestions" not in st.session_state:
        st.session_state["suggestions"] = build_provider(get_settings(settings_path))
    return st.session_state["suggestions"]


def run_command(label: str, command, *args, **kwargs):
    """Run a workspace command and report failures without touching confirmed state."""
    logger = get_logger()
    try:
        result = command(*args, **kwargs)
    except ValidationError as exc:
        st.warning("; ".join(exc.problems))
        return None
    except PartialBatchFailure as exc:
        logger.error("%s partially failed: %s", label, exc)
        st.error(f"{label}: {exc}. Only confirmed changes are shown.")
        return None
    except WorkflowError as exc:
        logger.error("%s failed: %s", label, exc)
        st.error(f"Failed to {label.lower()}: {exc}")
        return None
    return result


def sidebar_period_controls(settings_path: str = SETTINGS_PATH) -> Tuple[ViewMode, pd.Timestamp]:
    """Render view mode and previous/next navigation; return the selection."""
    settings = get_settings(settings_path)
    default_mode = ViewMode(settings.get("default_view_mode", ViewMode.MONTH.value))
    st.session_state.setdefault("view_mode", default_mode.value)
    st.session_state.setdefault("cursor", pd.Timestamp.now().normalize())

    st.sidebar.title("Period")
    modes = [m.value for m in ViewMode]
    mode = ViewMode(
        st.sidebar.radio("View", modes, index=modes.index(st.session_state["view_mode"]), horizontal=True)
    )
    st.session_state["view_mode"] = mode.value

    if mode != ViewMode.ALL:
        prev_col, next_col = st.sidebar.columns(2)
        if prev_col.button("Previous"):
            st.session_state["cursor"] = previous_period(mode, st.session_state["cursor"])
        if next_col.button("Next"):
            st.session_state["cursor"] = next_period(mode, st.session_state["cursor"])

    cursor = st.session_state["cursor"]
    st.sidebar.markdown(f"**{period_label(mode, cursor)}**")
    return mode, cursor
