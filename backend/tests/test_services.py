"""Tests for the dashboard service wiring against a real database."""

from __future__ import annotations

import csv
import io
import json

import pytest

from backend.aggregator import SessionAggregator
from backend.annotator import TranscriptAnnotator
from backend.providers.base import CompletionProvider, CompletionResult
from backend.registry import TableSpec
from backend.services import DashboardService

PRACTICE = TableSpec("Tracking-practice", "Practice Session")
SIM = TableSpec("Tracking-sim : Workplace", "Workplace Sim")


class CountingProvider(CompletionProvider):
    name = "counting"

    def __init__(self) -> None:
        self.prompts = []

    def unavailable_reason(self):
        return None

    def complete(self, model, prompt, system=None, options=None) -> CompletionResult:
        self.prompts.append(prompt)
        return CompletionResult(content="try_count: 1\nscore_summary: try 1, score 8/8", model=model, provider="fake")


@pytest.fixture
def service(session_engine, create_session_table):
    create_session_table(
        PRACTICE.table_name,
        [
            {
                "id": 1,
                "session_id": "p-1",
                "timestamp": "2024-05-01T10:00:00+00:00",
                "conversation_data": [
                    {"question": "Q1", "response": 'He said "hi"', "timestamp": "2024-05-01T10:00:00+00:00"}
                ],
            }
        ],
    )
    create_session_table(
        SIM.table_name,
        [
            {
                "id": 1,
                "session_id": "w-1",
                "timestamp": "2024-05-02T10:00:00+00:00",
                "conversation_data": [],
            }
        ],
    )
    provider = CountingProvider()
    aggregator = SessionAggregator(session_engine, (PRACTICE, SIM), max_workers=2)
    built = DashboardService(aggregator, TranscriptAnnotator(provider, max_workers=2))
    built.provider = provider
    return built


def test_agents_follow_registry(service):
    assert service.agents() == ["Practice Session", "Workplace Sim"]
    service.check_registry()


def test_list_metrics_filters_before_annotating(service):
    rows = service.list_metrics(agent="Practice Session", annotate=True)

    assert [row.session_id for row in rows] == ["p-1"]
    assert rows[0].try_count == "1"
    assert len(service.provider.prompts) == 1


def test_list_metrics_without_annotation_leaves_fields_empty(service):
    rows = service.list_metrics()

    assert [row.session_id for row in rows] == ["w-1", "p-1"]
    assert all(row.try_count is None for row in rows)
    assert service.provider.prompts == []


def test_list_sessions_applies_search(service):
    sessions = service.list_sessions(search="said")
    assert [session.session_id for session in sessions] == ["p-1"]


def test_export_metrics_csv(service):
    body, media_type, filename = service.export_metrics("csv", agent="all")

    rows = list(csv.reader(io.StringIO(body.decode("utf-8"))))
    assert media_type == "text/csv; charset=utf-8"
    assert filename.startswith("session_metrics_UTC_") and filename.endswith(".csv")
    assert [row[0] for row in rows[1:]] == ["w-1", "p-1"]


def test_export_sessions_json(service):
    body, media_type, filename = service.export_sessions("json", sort_by="id", order="ASC")

    payload = json.loads(body)
    assert media_type == "application/json"
    assert filename.endswith(".json")
    assert {session["agent"] for session in payload} == {"Practice Session", "Workplace Sim"}


def test_export_rejects_unknown_format(service):
    with pytest.raises(ValueError):
        service.export_metrics("xml")


def test_render_metrics_keeps_given_rows_and_annotations(service):
    shown = service.list_metrics(agent="all", annotate=True)
    calls_before = len(service.provider.prompts)
    edited = [shown[1].model_copy(update={"score_summary": "shown on screen"}), shown[0]]

    body, media_type, filename = service.render_metrics("csv", edited)

    rows = list(csv.reader(io.StringIO(body.decode("utf-8"))))
    assert media_type == "text/csv; charset=utf-8"
    assert filename.endswith(".csv")
    assert [row[0] for row in rows[1:]] == ["p-1", "w-1"]
    assert rows[1][-1] == "shown on screen"
    assert len(service.provider.prompts) == calls_before
