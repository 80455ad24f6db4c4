from __future__ import annotations

import streamlit as st

from workflow.app_state import get_workspace, run_command
from workflow.models import UserProfile


st.header("Settings")

workspace = get_workspace()
profile = workspace.profile

with st.form("profile"):
    name = st.text_input("Name", value=profile.name)
    role = st.text_input("Role", value=profile.role)
    initials = st.text_input("Initials", value=profile.initials, max_chars=3)
    if st.form_submit_button("Save"):
        updated = UserProfile(name=name, role=role, initials=initials.upper())
        if run_command("Save profile", workspace.update_profile, updated):
            st.success("Profile saved")
