"""Tests for fan-out aggregation across session tables."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

import pytest

from backend.aggregator import AggregationError, SessionAggregator
from backend.db import create_database_engine
from backend.registry import TableSpec, UnknownTableError

ALPHA = TableSpec("Tracking-alpha", "Alpha - Practice Session")
BETA = TableSpec("Tracking-beta : Workplace Sim", "Beta - Workplace Sim")
MISSING = TableSpec("Tracking-missing", "Missing - Practice Session")


def make_entry(question, response, timestamp):
    return {"question": question, "response": response, "timestamp": timestamp}


@pytest.fixture
def populated(create_session_table):
    create_session_table(
        ALPHA.table_name,
        [
            {
                "id": 1,
                "session_id": "a-1",
                "timestamp": "2024-05-01T10:30:00+00:00",
                "conversation_data": [
                    make_entry("Hi", "Hello", "2024-05-01T10:00:00+00:00"),
                    make_entry("Score?", "Total Score: 6/8", "2024-05-01T10:12:30+00:00"),
                ],
            },
            {
                "id": 2,
                "session_id": "a-2",
                "timestamp": "2024-05-02T09:00:00+00:00",
                "conversation_data": [],
            },
        ],
    )
    create_session_table(
        BETA.table_name,
        [
            {
                "id": 7,
                "session_id": "b-1",
                "timestamp": "2024-05-03T08:00:00+00:00",
                "conversation_data": [make_entry("Q", "R", "2024-05-03T07:55:00+00:00")],
                "user_email": "learner@example.com",
            }
        ],
    )


def test_collect_metrics_reads_every_table(session_engine, populated):
    aggregator = SessionAggregator(session_engine, (ALPHA, BETA))

    metrics = aggregator.collect_metrics()

    assert [item.session_id for item in metrics] == ["a-2", "a-1", "b-1"]
    assert {item.agent for item in metrics} == {ALPHA.agent_label, BETA.agent_label}


def test_metrics_derive_times_from_transcript(session_engine, populated):
    aggregator = SessionAggregator(session_engine, (ALPHA,))

    by_id = {item.session_id: item for item in aggregator.collect_metrics()}
    session = by_id["a-1"]

    assert session.conversation_count == 2
    assert session.date == date(2024, 5, 1)
    assert session.start_time == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert session.end_time == datetime(2024, 5, 1, 10, 12, 30, tzinfo=timezone.utc)
    assert session.duration_seconds == 750
    assert session.try_count is None


def test_empty_transcript_falls_back_to_row_timestamp(session_engine, populated):
    aggregator = SessionAggregator(session_engine, (ALPHA,))

    by_id = {item.session_id: item for item in aggregator.collect_metrics()}
    session = by_id["a-2"]

    row_time = datetime(2024, 5, 2, 9, 0, tzinfo=timezone.utc)
    assert session.conversation_count == 0
    assert session.start_time == row_time
    assert session.end_time == row_time
    assert session.duration_seconds == 0


def test_blank_entry_timestamp_falls_back_to_row_timestamp(session_engine, create_session_table):
    blank = TableSpec("Tracking-blank", "Blank - Practice Session")
    create_session_table(
        blank.table_name,
        [
            {
                "id": 1,
                "session_id": "k-1",
                "timestamp": "2024-05-03T08:00:00+00:00",
                "conversation_data": [make_entry("Hi", "Hello", "2024-05-03T08:00:00+00:00")],
            },
            {
                "id": 2,
                "session_id": "k-2",
                "timestamp": "2024-05-03T09:00:00+00:00",
                "conversation_data": [
                    make_entry("Hi", "Hello", ""),
                    make_entry("Again", "Total Score: 5/8", "2024-05-03T09:05:00+00:00"),
                ],
            },
        ],
    )
    aggregator = SessionAggregator(session_engine, (blank,))

    by_id = {item.session_id: item for item in aggregator.collect_metrics()}

    assert set(by_id) == {"k-1", "k-2"}
    session = by_id["k-2"]
    assert session.conversation_count == 2
    assert session.conversation_data[0].timestamp is None
    assert session.start_time == datetime(2024, 5, 3, 9, 0, tzinfo=timezone.utc)
    assert session.end_time == datetime(2024, 5, 3, 9, 5, tzinfo=timezone.utc)
    assert session.duration_seconds == 300


def test_failing_table_is_skipped(session_engine, populated, caplog):
    aggregator = SessionAggregator(session_engine, (ALPHA, MISSING, BETA))

    with caplog.at_level(logging.WARNING, logger="backend.aggregator"):
        metrics = aggregator.collect_metrics()

    assert {item.session_id for item in metrics} == {"a-1", "a-2", "b-1"}
    assert any(MISSING.table_name in record.getMessage() for record in caplog.records)


def test_malformed_rows_skip_only_their_table(session_engine, create_session_table, populated):
    broken = TableSpec("Tracking-broken", "Broken - Practice Session")
    create_session_table(
        broken.table_name,
        [{"id": 1, "session_id": "x-1", "timestamp": "2024-05-01T00:00:00+00:00", "conversation_data": "not json"}],
    )
    aggregator = SessionAggregator(session_engine, (broken, BETA))

    metrics = aggregator.collect_metrics()

    assert [item.session_id for item in metrics] == ["b-1"]


def test_all_tables_failing_returns_empty_list(session_engine):
    aggregator = SessionAggregator(session_engine, (MISSING,))
    assert aggregator.collect_metrics() == []


def test_unregistered_target_is_refused(session_engine, populated):
    aggregator = SessionAggregator(session_engine, (ALPHA,))
    with pytest.raises(UnknownTableError):
        aggregator.collect_metrics([TableSpec("pg_user", "Sneaky")])


def test_unreachable_database_raises(tmp_path):
    engine = create_database_engine(f"sqlite:///{tmp_path / 'missing' / 'nowhere.db'}")
    aggregator = SessionAggregator(engine, (ALPHA,))
    with pytest.raises(AggregationError):
        aggregator.collect_metrics()
    engine.dispose()


def test_collect_sessions_merges_and_orders(session_engine, populated):
    aggregator = SessionAggregator(session_engine, (ALPHA, BETA))

    newest_first = aggregator.collect_sessions()
    by_id = aggregator.collect_sessions(sort_by="id", order="ASC")

    assert [session.session_id for session in newest_first] == ["b-1", "a-2", "a-1"]
    assert [session.id for session in by_id] == [1, 2, 7]


def test_collect_sessions_filters_agent_and_keeps_extra_columns(session_engine, populated):
    aggregator = SessionAggregator(session_engine, (ALPHA, BETA))

    sessions = aggregator.collect_sessions(agent=BETA.agent_label)

    assert len(sessions) == 1
    assert sessions[0].agent == BETA.agent_label
    assert sessions[0].extras == {"user_email": "learner@example.com"}
    assert sessions[0].conversation_data[0].question == "Q"


def test_collect_sessions_rejects_unknown_sort(session_engine):
    aggregator = SessionAggregator(session_engine, (ALPHA,))
    with pytest.raises(ValueError):
        aggregator.collect_sessions(sort_by="session_id")
