from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .constants import AGENT_BADGE_COLORS, ALL_AGENTS_OPTION, FALLBACK_BADGE_COLORS, METRICS_TABLE_COLUMNS
from .models import SessionMetricsRow, TrackingSession
from .timezone import coerce_to_display_timezone

CLOCK_FORMAT = "%I:%M:%S %p"
DATE_FORMAT = "%m/%d/%Y"


def format_clock(value: Optional[str]) -> str:
    """Render a timestamp as 12-hour clock time in the display timezone."""
    timestamp = coerce_to_display_timezone(value)
    return timestamp.strftime(CLOCK_FORMAT) if timestamp is not None else "N/A"


def format_day(value: Optional[str]) -> str:
    """Render an ISO date or timestamp as MM/DD/YYYY."""
    if not value:
        return "N/A"
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return str(value)
    return parsed.strftime(DATE_FORMAT)


def format_timestamp(value: Optional[str]) -> str:
    """Render a timestamp with both date and clock time in the display timezone."""
    timestamp = coerce_to_display_timezone(value)
    if timestamp is None:
        return "N/A"
    return f"{timestamp.strftime(DATE_FORMAT)}, {timestamp.strftime(CLOCK_FORMAT)}"


def format_duration(seconds: int) -> str:
    """Render a span as H:MM:SS; sessions crossing midnight come out negative."""
    sign = "-" if seconds < 0 else ""
    hours, remainder = divmod(abs(int(seconds)), 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{sign}{hours}:{minutes:02d}:{secs:02d}"


def format_session_title(session: TrackingSession) -> str:
    """Return the expander title, e.g. ``Session 05/01/2024 at 10:00:00 AM``."""
    timestamp = coerce_to_display_timezone(session.timestamp)
    if timestamp is None:
        return f"Session {session.session_id}"
    return f"Session {timestamp.strftime(DATE_FORMAT)} at {timestamp.strftime(CLOCK_FORMAT)}"


def agent_badge_color(agent: str, known_agents: Sequence[str] = ()) -> str:
    """Return the badge color for an agent label."""
    if agent in AGENT_BADGE_COLORS:
        return AGENT_BADGE_COLORS[agent]
    index = list(known_agents).index(agent) if agent in known_agents else len(agent)
    return FALLBACK_BADGE_COLORS[index % len(FALLBACK_BADGE_COLORS)]


def build_agent_options(agents: Iterable[str], total: int) -> Tuple[List[str], Dict[str, str]]:
    """Return select-box values and their labels, starting with the all-agents option."""
    options = [ALL_AGENTS_OPTION, *agents]
    labels = {ALL_AGENTS_OPTION: f"All Agents ({total})"}
    labels.update({agent: agent for agent in agents})
    return options, labels


def _optional_text(value: Optional[str]) -> str:
    return "" if value is None else value


def metrics_to_frame(rows: Sequence[SessionMetricsRow]) -> pd.DataFrame:
    """Build the display table for the metrics page, keeping the backend's row order."""
    records = [
        [
            row.session_id,
            format_day(row.date),
            row.agent,
            row.conversation_count,
            format_clock(row.start_time),
            format_clock(row.end_time),
            format_duration(row.duration_seconds),
            _optional_text(row.try_count),
            _optional_text(row.score_summary),
        ]
        for row in rows
    ]
    return pd.DataFrame(records, columns=METRICS_TABLE_COLUMNS)


def count_messages(sessions: Iterable[TrackingSession]) -> int:
    return sum(len(session.conversation_data) for session in sessions)


def filter_rows_by_agent(rows: Sequence[SessionMetricsRow], agent: str) -> List[SessionMetricsRow]:
    if agent == ALL_AGENTS_OPTION:
        return list(rows)
    return [row for row in rows if row.agent == agent]


def view_fingerprint(payload: Any) -> str:
    """Stable digest of what a page is showing, used to tell when exports are stale."""
    encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha1(encoded).hexdigest()
