from __future__ import annotations

import html
from typing import Callable, Mapping, Optional, Sequence, Tuple

import streamlit as st
from streamlit.delta_generator import DeltaGenerator

from frontend.core.api import BackendError, annotate_transcript, is_backend_unavailable_error
from frontend.core.constants import EXPORT_FORMATS
from frontend.core.models import ConversationEntry, ExportFile, SessionMetricsRow, TrackingSession
from frontend.core.processing import (
    agent_badge_color,
    format_session_title,
    format_timestamp,
    metrics_to_frame,
)
from frontend.utils import state as app_state
from frontend.utils.logging import get_logger

LOGGER = get_logger(__name__)


def render_sidebar_branding(container: Optional[DeltaGenerator] = None) -> None:
    """Render a compact app title in the sidebar."""
    target = container or st.sidebar
    target.markdown(
        (
            "<div style=\"font-size:0.85rem;font-weight:600;color:#1f2937;"
            "letter-spacing:0.015em;margin:0.25rem 0 0.75rem 0;\">"
            "📊 Session Metrics Dashboard"
            "</div>"
            "<hr/>"
        ),
        unsafe_allow_html=True,
    )


def render_backend_wait_splash(base_url: str, error: Optional[Exception] = None) -> None:
    """Render a notice while the backend service is unreachable."""
    st.warning(
        f"Waiting for the dashboard API at `{base_url}`. "
        "Start the FastAPI backend service, then retry once it's ready."
    )
    if st.button("Retry now"):
        app_state.trigger_rerun()
    if error is not None:
        with st.expander("Technical details"):
            st.code(str(error), language="text")
            status_code = getattr(error, "status_code", None)
            if status_code is not None:
                st.caption(f"HTTP status: {status_code}")


def render_backend_error(error: BackendError, base_url: str, *, what: str) -> None:
    """Show a fetch failure and stop the page run."""
    LOGGER.warning("Unable to fetch %s: %s", what, error)
    if is_backend_unavailable_error(error):
        render_backend_wait_splash(base_url, error)
    else:
        st.error(f"Failed to fetch {what}. Details: {error}")
    st.stop()


def render_agent_badge(agent: str, known_agents: Sequence[str] = ()) -> str:
    """Return the HTML for a colored agent badge."""
    color = agent_badge_color(agent, known_agents)
    return (
        f"<span style=\"background:{color};color:#ffffff;border-radius:999px;"
        f"padding:0.1rem 0.6rem;font-size:0.75rem;font-weight:600;\">{html.escape(agent)}</span>"
    )


def render_sort_buttons(
    labels: Mapping[str, str],
    current: Tuple[str, str],
    on_click: Callable[[str], None],
    *,
    key_prefix: str,
) -> None:
    """Render one button per sortable field; the active one shows its direction."""
    active_field, active_order = current
    columns = st.columns(len(labels))
    for column, (field, label) in zip(columns, labels.items()):
        arrow = ""
        if field == active_field:
            arrow = " ↓" if active_order.lower() == "desc" else " ↑"
        column.button(
            f"{label}{arrow}",
            key=f"{key_prefix}_sort_{field}",
            on_click=on_click,
            args=(field,),
            use_container_width=True,
        )


def render_transcript(entries: Sequence[ConversationEntry], *, container: Optional[DeltaGenerator] = None) -> None:
    """Render a transcript as alternating user and agent chat messages."""
    target = container or st
    if not entries:
        target.caption("This session has no recorded messages.")
        return
    for entry in entries:
        with target.chat_message("user"):
            st.markdown(entry.question or "_(empty)_")
            if entry.timestamp:
                st.caption(format_timestamp(entry.timestamp))
        with target.chat_message("assistant"):
            st.markdown(entry.response or "_(empty)_")


def render_metrics_table(rows: Sequence[SessionMetricsRow]) -> None:
    """Render the metrics table followed by one expandable transcript per session."""
    frame = metrics_to_frame(rows)
    st.dataframe(frame, hide_index=True, use_container_width=True)

    for row in rows:
        with st.expander(f"{row.session_id} · {row.agent} · {row.conversation_count} messages"):
            render_transcript(row.conversation_data)


def render_annotation_controls(session: TrackingSession) -> None:
    """Offer an on-demand LLM annotation for one transcript."""
    session_key = f"{session.agent}:{session.session_id}"
    annotation = app_state.get_annotation(session_key)
    if annotation is None and session.conversation_data:
        if st.button("Analyze with LLM", key=f"annotate_{session_key}"):
            try:
                result = annotate_transcript(session.conversation_data)
            except BackendError as exc:
                st.error(f"Failed to process with LLM. Details: {exc}")
                return
            annotation = {"try_count": result.try_count, "score_summary": result.score_summary}
            app_state.remember_annotation(session_key, annotation)
    if annotation is not None:
        st.markdown(
            f"**Try count:** {annotation['try_count']} &nbsp;&nbsp; "
            f"**Score summary:** {annotation['score_summary']}"
        )


def render_session_card(session: TrackingSession, known_agents: Sequence[str] = ()) -> None:
    """Render one tracking session as an expander with badge, counts and transcript."""
    message_count = len(session.conversation_data)
    with st.expander(f"{format_session_title(session)} · {message_count} messages"):
        st.markdown(render_agent_badge(session.agent, known_agents), unsafe_allow_html=True)
        st.caption(f"Session ID: {session.session_id}")
        if session.extras:
            with st.popover("Row details"):
                st.json(session.extras)
        render_annotation_controls(session)
        render_transcript(session.conversation_data)


def render_export_buttons(
    fetch: Callable[[str], ExportFile],
    *,
    fingerprint: str,
    key_prefix: str,
) -> None:
    """Offer each export format as a download.

    ``fetch`` is only called when ``fingerprint`` differs from the one the cached
    export was built for, so reruns of an unchanged view reuse the same bytes.
    """
    columns = st.columns(len(EXPORT_FORMATS))
    for column, fmt in zip(columns, EXPORT_FORMATS):
        try:
            export = app_state.prepared_export(
                f"{key_prefix}_{fmt}", fingerprint, lambda fmt=fmt: fetch(fmt)
            )
        except BackendError as exc:
            column.warning(f"{fmt.upper()} export unavailable: {exc}")
            continue
        column.download_button(
            label=f"Export {fmt.upper()}",
            data=export.content,
            file_name=export.filename,
            mime=export.media_type,
            key=f"{key_prefix}_export_{fmt}",
            use_container_width=True,
        )
