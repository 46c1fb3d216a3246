"""Tests for filtering, searching and ordering sessions for display."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from backend.models import ConversationEntry, SessionMetrics, TrackingSession
from backend.timeutils import clock_duration, format_duration
from backend.view import (
    filter_by_agent,
    present,
    search_sessions,
    sort_sessions,
    sort_tracking_sessions,
)


def _metrics(session_id, agent, start, end, count=1, entries=None):
    return SessionMetrics(
        session_id=session_id,
        date=start.date(),
        agent=agent,
        conversation_count=count,
        start_time=start,
        end_time=end,
        conversation_data=entries or [],
    )


def _at(day, hour, minute=0, second=0):
    return datetime(2024, 5, day, hour, minute, second, tzinfo=timezone.utc)


@pytest.fixture
def sessions():
    return [
        _metrics("s1", "Agent A", _at(1, 10), _at(1, 10, 30), count=3),
        _metrics("s2", "Agent B", _at(2, 9), _at(2, 9, 5), count=1),
        _metrics("s3", "Agent A", _at(3, 14), _at(3, 16), count=3),
        _metrics(
            "s4",
            "Agent C",
            _at(1, 8),
            _at(1, 8, 1),
            count=2,
            entries=[ConversationEntry(question="What is a formulary?", response="A drug list.")],
        ),
    ]


def test_filter_all_keeps_everything(sessions):
    assert filter_by_agent(sessions, "all") == sessions
    assert filter_by_agent(sessions, None) == sessions


def test_filter_keeps_only_matching_agent(sessions):
    filtered = filter_by_agent(sessions, "Agent A")
    assert [item.session_id for item in filtered] == ["s1", "s3"]


def test_default_presentation_is_newest_first(sessions):
    assert [item.session_id for item in present(sessions)] == ["s3", "s2", "s1", "s4"]


def test_sort_is_stable_for_equal_keys(sessions):
    ordered = sort_sessions(sessions, "conversation_count", "asc")
    assert [item.session_id for item in ordered] == ["s2", "s4", "s1", "s3"]

    descending = sort_sessions(sessions, "conversation_count", "desc")
    assert [item.session_id for item in descending] == ["s1", "s3", "s4", "s2"]


def test_sort_is_idempotent(sessions):
    once = sort_sessions(sessions, "agent", "asc")
    assert sort_sessions(once, "agent", "asc") == once


def test_present_does_not_mutate_input(sessions):
    snapshot = list(sessions)
    present(sessions, filter_agent="Agent A", sort_field="duration", sort_order="asc")
    assert sessions == snapshot


def test_duration_sort_uses_clock_span(sessions):
    ordered = sort_sessions(sessions, "duration", "desc")
    assert [item.session_id for item in ordered] == ["s3", "s1", "s2", "s4"]


def test_start_time_sort_ignores_date(sessions):
    ordered = sort_sessions(sessions, "start_time", "asc")
    assert [item.session_id for item in ordered] == ["s4", "s2", "s1", "s3"]


def test_unknown_sort_field_is_rejected(sessions):
    with pytest.raises(ValueError):
        sort_sessions(sessions, "try_count", "asc")
    with pytest.raises(ValueError):
        sort_sessions(sessions, "date", "upwards")


def test_search_matches_id_and_transcript_text(sessions):
    assert [item.session_id for item in search_sessions(sessions, "S2")] == ["s2"]
    assert [item.session_id for item in search_sessions(sessions, "formulary")] == ["s4"]
    assert search_sessions(sessions, "  ") == sessions


def test_clock_duration_across_midnight_is_negative():
    span = clock_duration(_at(1, 23, 50), _at(2, 0, 10))
    assert span == timedelta(hours=-23, minutes=-40)
    assert format_duration(span) == "-23:40:00"


def test_format_duration_pads_minutes_and_seconds():
    assert format_duration(timedelta(minutes=12, seconds=5)) == "0:12:05"
    assert format_duration(timedelta(hours=2)) == "2:00:00"


def test_tracking_sort_by_id_puts_missing_ids_last():
    stamp = _at(1, 12)
    rows = [
        TrackingSession(id=None, session_id="x", timestamp=stamp, agent="A"),
        TrackingSession(id=5, session_id="y", timestamp=stamp, agent="A"),
        TrackingSession(id=2, session_id="z", timestamp=stamp, agent="B"),
    ]

    ordered = sort_tracking_sessions(rows, "id", "DESC")

    assert [row.session_id for row in ordered] == ["y", "z", "x"]
    assert ordered[0].timestamp.date() == date(2024, 5, 1)


def test_descending_then_ascending_restores_tie_order(sessions):
    ascending = sort_sessions(sessions, "conversation_count", "asc")
    round_trip = sort_sessions(
        sort_sessions(ascending, "conversation_count", "desc"), "conversation_count", "asc"
    )
    assert [item.session_id for item in round_trip] == [item.session_id for item in ascending]


def test_filtered_view_is_subset_of_unfiltered(sessions):
    everything = present(sessions, filter_agent="all")
    only_a = present(sessions, filter_agent="Agent A")
    assert {item.session_id for item in only_a} <= {item.session_id for item in everything}
    assert all(item.agent == "Agent A" for item in only_a)
