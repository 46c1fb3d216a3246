from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st

APP_DIR = Path(__file__).resolve().parents[1]
PROJECT_ROOT = APP_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

st.set_page_config(
    page_title="Session Metrics | Session Metrics Dashboard",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded",
)

from frontend.core.api import BackendError, export_metrics_rows, get_agents, get_metrics
from frontend.core.config import get_config
from frontend.core.constants import METRICS_SORT_LABELS
from frontend.core.processing import build_agent_options, filter_rows_by_agent, view_fingerprint
from frontend.ui import charts, components
from frontend.utils import state as app_state


def render_page() -> None:
    config = get_config()
    components.render_sidebar_branding(st.sidebar)
    st.subheader("Session Metrics")

    try:
        agents = get_agents()
    except BackendError as exc:
        components.render_backend_error(exc, config.api_base_url, what="metrics")
        return

    search = st.sidebar.text_input("Search sessions", placeholder="Session ID or message text")
    annotate = st.sidebar.toggle(
        "Analyze with LLM",
        value=False,
        help="Adds try count and score summary for each visible session. Slower.",
    )

    components.render_sort_buttons(
        METRICS_SORT_LABELS,
        app_state.get_metrics_sort(),
        app_state.click_metrics_sort,
        key_prefix="metrics",
    )
    sort_field, sort_order = app_state.get_metrics_sort()

    try:
        with st.spinner("Loading sessions..."):
            everything = get_metrics(sort_field=sort_field, sort_order=sort_order, search=search)
    except BackendError as exc:
        components.render_backend_error(exc, config.api_base_url, what="metrics")
        return

    options, labels = build_agent_options(agents, len(everything))
    agent = st.sidebar.selectbox(
        "Agent",
        options,
        index=options.index(app_state.get_selected_agent("metrics_agent")),
        format_func=lambda value: labels.get(value, value),
    )
    st.session_state["metrics_agent"] = agent

    rows = filter_rows_by_agent(everything, agent)
    if annotate and rows:
        try:
            with st.spinner("Analyzing sessions..."):
                rows = get_metrics(
                    agent=agent,
                    sort_field=sort_field,
                    sort_order=sort_order,
                    search=search,
                    annotate=True,
                )
        except BackendError as exc:
            components.render_backend_error(exc, config.api_base_url, what="metrics")
            return

    st.caption(f"{len(rows)} sessions")
    if not rows:
        st.info("No sessions match the current filters.")
        return

    with st.expander("Charts", expanded=False):
        left, right = st.columns(2)
        left.plotly_chart(charts.create_sessions_per_agent_chart(rows), use_container_width=True)
        right.plotly_chart(charts.create_sessions_over_time_chart(rows), use_container_width=True)

    components.render_metrics_table(rows)
    components.render_export_buttons(
        lambda fmt: export_metrics_rows(rows, fmt),
        fingerprint=view_fingerprint([row.to_dict() for row in rows]),
        key_prefix="metrics",
    )


if __name__ == "__main__":
    render_page()
