"""CSV and JSON downloads for the metrics and conversation tracking views.

Exports never reorder: callers pass items already filtered and sorted the way
the dashboard shows them.
"""

from __future__ import annotations

import csv
import json
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .models import SessionMetrics, TrackingSession
from .timeutils import clock_duration, format_clock, format_date, format_duration, to_display

METRICS_COLUMNS = [
    "Session ID",
    "Date",
    "Agent",
    "Conversations",
    "Start Time",
    "End Time",
    "Duration",
    "Try Count",
    "Score Summary",
]

SESSION_COLUMNS = [
    "Session Date (Local)",
    "Session Date (UTC)",
    "Session ID",
    "Agent",
    "Question",
    "Response",
    "Timestamp (Local)",
    "Timestamp (UTC)",
]

EXPORT_FORMATS = ("csv", "json")
MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "json": "application/json",
}
_FILENAME_PREFIXES = {
    "metrics": "session_metrics_UTC",
    "sessions": "conversation_data_UTC",
}
_LOCAL_DATETIME_FORMAT = "%m/%d/%Y, %I:%M:%S %p"


def _frame_to_csv(rows: List[List[Any]], columns: List[str]) -> bytes:
    """Quote every field and double embedded quotes."""
    frame = pd.DataFrame(rows, columns=columns)
    return frame.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n").encode("utf-8")


def _to_json(payload: Any) -> bytes:
    return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")


def _local(value: Optional[datetime]) -> str:
    return to_display(value).strftime(_LOCAL_DATETIME_FORMAT) if value else ""


def _utc(value: Optional[datetime]) -> str:
    return value.astimezone(timezone.utc).isoformat() if value else ""


def metrics_record(item: SessionMetrics) -> Dict[str, Any]:
    """Return the displayed columns of one metrics row, plus its computed duration."""
    return {
        "session_id": item.session_id,
        "date": format_date(item.date),
        "agent": item.agent,
        "conversation_count": item.conversation_count,
        "start_time": format_clock(item.start_time),
        "end_time": format_clock(item.end_time),
        "duration": format_duration(clock_duration(item.start_time, item.end_time)),
        "try_count": item.try_count,
        "score_summary": item.score_summary,
    }


def metrics_to_csv(items: Sequence[SessionMetrics]) -> bytes:
    """Serialize metrics rows to CSV with the dashboard's column headers."""
    rows = []
    for item in items:
        record = metrics_record(item)
        rows.append(
            [
                record["session_id"],
                record["date"],
                record["agent"],
                record["conversation_count"],
                record["start_time"],
                record["end_time"],
                record["duration"],
                record["try_count"] or "",
                record["score_summary"] or "",
            ]
        )
    return _frame_to_csv(rows, METRICS_COLUMNS)


def metrics_to_json(items: Sequence[SessionMetrics]) -> bytes:
    """Serialize metrics rows to a pretty-printed JSON array."""
    return _to_json([metrics_record(item) for item in items])


def sessions_to_csv(sessions: Sequence[TrackingSession]) -> bytes:
    """Serialize transcripts to CSV, one row per question/response exchange."""
    rows = []
    for session in sessions:
        for entry in session.conversation_data:
            rows.append(
                [
                    _local(session.timestamp),
                    _utc(session.timestamp),
                    session.session_id,
                    session.agent or "Unknown",
                    entry.question,
                    entry.response,
                    _local(entry.timestamp),
                    _utc(entry.timestamp),
                ]
            )
    return _frame_to_csv(rows, SESSION_COLUMNS)


def sessions_to_json(sessions: Sequence[TrackingSession]) -> bytes:
    """Serialize transcripts to a pretty-printed JSON array of sessions."""
    return _to_json(
        [
            {
                "session_id": session.session_id,
                "timestamp": _utc(session.timestamp),
                "agent": session.agent or "Unknown",
                "conversation_data": [
                    {
                        "question": entry.question,
                        "response": entry.response,
                        "timestamp": _utc(entry.timestamp),
                    }
                    for entry in session.conversation_data
                ],
            }
            for session in sessions
        ]
    )


def export_filename(kind: str, fmt: str, today: Optional[date] = None) -> str:
    """Return the download file name, stamped with the UTC date."""
    if kind not in _FILENAME_PREFIXES:
        raise ValueError(f"Unknown export kind {kind!r}")
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unknown export format {fmt!r}")
    stamp = (today or datetime.now(timezone.utc).date()).isoformat()
    return f"{_FILENAME_PREFIXES[kind]}_{stamp}.{fmt}"
