from __future__ import annotations

from typing import Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from frontend.core.models import SessionMetricsRow
from frontend.core.processing import agent_badge_color


def _style(fig: go.Figure, *, x_title: str, y_title: str) -> go.Figure:
    fig.update_layout(
        template="plotly_white",
        title_font_size=18,
        title_font_color="#1f2937",
        xaxis_title=x_title,
        yaxis_title=y_title,
        font=dict(family="Inter, sans-serif"),
        plot_bgcolor="rgba(0,0,0,0)",
        paper_bgcolor="rgba(0,0,0,0)",
        margin=dict(t=60, l=50, r=50, b=50),
        showlegend=False,
    )
    return fig


def create_sessions_per_agent_chart(rows: Sequence[SessionMetricsRow]) -> go.Figure:
    """Bar chart of session counts per agent, colored with the agent badges."""
    if not rows:
        return go.Figure()

    counts = (
        pd.DataFrame({"agent": [row.agent for row in rows]})
        .groupby("agent")
        .size()
        .rename("sessions")
        .reset_index()
        .sort_values("sessions", ascending=False)
    )
    agents = list(counts["agent"])
    fig = px.bar(
        counts,
        x="agent",
        y="sessions",
        color="agent",
        color_discrete_map={agent: agent_badge_color(agent, agents) for agent in agents},
        title="Sessions per Agent",
    )
    return _style(fig, x_title="Agent", y_title="Sessions")


def create_sessions_over_time_chart(rows: Sequence[SessionMetricsRow]) -> go.Figure:
    """Daily session volume, with days without sessions filled in as zero."""
    dates = pd.to_datetime(pd.Series([row.date for row in rows], dtype="object"), errors="coerce").dropna()
    if dates.empty:
        return go.Figure()

    daily = dates.value_counts().sort_index()
    full_range = pd.date_range(daily.index.min(), daily.index.max(), freq="D")
    daily = daily.reindex(full_range, fill_value=0).rename_axis("date").rename("sessions").reset_index()

    fig = px.area(daily, x="date", y="sessions", title="Sessions Over Time")
    fig.update_traces(line_color="#2563eb")
    fig.update_xaxes(tickformat="%Y-%m-%d")
    return _style(fig, x_title="Date", y_title="Sessions")
