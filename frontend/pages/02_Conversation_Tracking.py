from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st

APP_DIR = Path(__file__).resolve().parents[1]
PROJECT_ROOT = APP_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

st.set_page_config(
    page_title="Conversation Tracking | Session Metrics Dashboard",
    page_icon="💬",
    layout="wide",
    initial_sidebar_state="expanded",
)

from frontend.core.api import BackendError, download_export, get_tracking
from frontend.core.config import get_config
from frontend.core.constants import ALL_AGENTS_OPTION, TRACKING_SORT_LABELS
from frontend.core.processing import build_agent_options, count_messages, view_fingerprint
from frontend.ui import components
from frontend.utils import state as app_state


def render_page() -> None:
    config = get_config()
    components.render_sidebar_branding(st.sidebar)
    st.subheader("Conversation Tracking")

    agent = app_state.get_selected_agent("tracking_agent")
    search = st.sidebar.text_input("Search conversations", placeholder="Session ID or message text")
    components.render_sort_buttons(
        TRACKING_SORT_LABELS,
        app_state.get_tracking_sort(),
        app_state.click_tracking_sort,
        key_prefix="tracking",
    )
    sort_by, order = app_state.get_tracking_sort()

    try:
        with st.spinner("Loading conversations..."):
            everything = get_tracking(sort_by=sort_by, order=order, search=search)
    except BackendError as exc:
        components.render_backend_error(exc, config.api_base_url, what="conversations")
        return

    options, labels = build_agent_options(everything.agents, len(everything.sessions))
    if agent not in options:
        agent = ALL_AGENTS_OPTION
    agent = st.sidebar.selectbox(
        "Agent",
        options,
        index=options.index(agent),
        format_func=lambda value: labels.get(value, value),
    )
    st.session_state["tracking_agent"] = agent

    sessions = [
        session
        for session in everything.sessions
        if agent == ALL_AGENTS_OPTION or session.agent == agent
    ]

    st.caption(f"{len(sessions)} sessions · {count_messages(sessions)} messages")
    if not sessions:
        st.info("No conversations match the current filters.")
        return

    for session in sessions:
        components.render_session_card(session, everything.agents)

    params = {"sortBy": sort_by, "order": order, "agent": agent, "q": search}
    shown = [(session.agent, session.session_id, len(session.conversation_data)) for session in sessions]
    components.render_export_buttons(
        lambda fmt: download_export("tracking", fmt, params),
        fingerprint=view_fingerprint({"params": params, "sessions": shown}),
        key_prefix="tracking",
    )


if __name__ == "__main__":
    render_page()
