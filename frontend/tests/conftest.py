from __future__ import annotations

from typing import Iterator

import pytest

from frontend.core import config as core_config
from frontend.core.models import ConversationEntry, SessionMetricsRow, TrackingSession


@pytest.fixture(autouse=True)
def reset_config_cache(monkeypatch) -> Iterator[None]:
    """Reset cached configuration and fix the API base URL for tests."""
    monkeypatch.setenv("SESSION_DASH_API_BASE_URL", "http://testserver")
    monkeypatch.setenv("SESSION_DASH_DISPLAY_TZ", "UTC")
    monkeypatch.delenv("SESSION_DASH_API_FALLBACKS", raising=False)
    core_config.get_config.cache_clear()
    yield
    core_config.get_config.cache_clear()


@pytest.fixture
def sample_metrics_row() -> SessionMetricsRow:
    return SessionMetricsRow(
        session_id="s-1",
        date="2024-05-01",
        agent="101 - Block 5 - Practice Session",
        conversation_count=2,
        start_time="2024-05-01T14:00:00Z",
        end_time="2024-05-01T14:12:05Z",
        duration_seconds=725,
        conversation_data=[ConversationEntry(question="Hi", response="Total Score: 6/8")],
    )


@pytest.fixture
def sample_tracking_session() -> TrackingSession:
    return TrackingSession(
        id=3,
        session_id="t-1",
        timestamp="2024-05-01T09:05:00+00:00",
        agent="103 - Block 7 - Practice Session",
        conversation_data=[
            ConversationEntry(question="Q1", response="R1", timestamp="2024-05-01T09:05:00+00:00"),
            ConversationEntry(question="Q2", response="R2", timestamp="2024-05-01T09:07:00+00:00"),
        ],
    )
