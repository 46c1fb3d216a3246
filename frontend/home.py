from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st

# Ensure the project root is available on sys.path for `frontend.*` imports.
APP_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = APP_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

from frontend.core.api import BackendError, get_agents, is_backend_unavailable_error
from frontend.core.config import get_config
from frontend.ui import components
from frontend.utils.logging import get_logger


LOGGER = get_logger("frontend.home")


def main() -> None:
    st.set_page_config(
        page_title="Home | Session Metrics Dashboard",
        page_icon="📊",
        layout="wide",
        initial_sidebar_state="expanded",
    )

    config = get_config()
    components.render_sidebar_branding(st.sidebar)

    agents = None
    try:
        agents = get_agents()
    except BackendError as exc:
        LOGGER.warning("Unable to fetch agent list: %s", exc)
        if is_backend_unavailable_error(exc):
            components.render_backend_wait_splash(config.api_base_url, exc)
            st.stop()
        else:
            st.warning(
                "We couldn't reach the dashboard API yet. "
                "Double-check that the FastAPI service is running, then refresh to try again.\n\n"
                f"Details: {exc}"
            )

    st.title("Session Metrics Dashboard")
    st.caption("Practice-session transcripts from every agent, in one place.")

    if agents is not None:
        st.success(f"Connected. Sessions are read from {len(agents)} agent tables.")
        with st.expander("Agents"):
            badges = " ".join(components.render_agent_badge(agent, agents) for agent in agents)
            st.markdown(badges, unsafe_allow_html=True)

    st.divider()

    st.subheader("What you can explore")
    st.markdown(
        """
        - **Session Metrics** shows one row per session with its message count, start and end time,
          and duration. Switch on *Analyze with LLM* to add the try count and score summary.
        - **Conversation Tracking** lists every session with its full transcript, newest first.
        - Both pages filter by agent, search session ids and message text, and export CSV or JSON.
        """
    )
    st.caption(
        "Durations use clock time only, so a session that runs past midnight shows a negative duration."
    )


if __name__ == "__main__":
    main()
