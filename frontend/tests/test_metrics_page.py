from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import patch

import pytest
from streamlit.testing.v1 import AppTest

PAGE = str(Path(__file__).resolve().parents[1] / "pages" / "01_Session_Metrics.py")
BASE_URL = "http://testserver"

ROWS = [
    {
        "session_id": "s-1",
        "date": "2024-05-01",
        "agent": "Agent A",
        "conversation_count": 1,
        "start_time": "2024-05-01T10:00:00Z",
        "end_time": "2024-05-01T10:02:00Z",
        "duration_seconds": 120,
        "conversation_data": [{"question": "Hi", "response": "Total Score: 5/8", "timestamp": None}],
    },
    {
        "session_id": "s-2",
        "date": "2024-05-02",
        "agent": "Agent B",
        "conversation_count": 0,
        "start_time": "2024-05-02T09:00:00Z",
        "end_time": "2024-05-02T09:00:00Z",
        "duration_seconds": 0,
        "conversation_data": [],
    },
]


class Reply:
    def __init__(self, payload: Any, headers: Optional[Dict[str, str]] = None, content: bytes = b"") -> None:
        self._payload = payload
        self.status_code = 200
        self.headers = headers or {"content-type": "application/json"}
        self.content = content

    def raise_for_status(self) -> None:
        return None

    def json(self) -> Any:
        return self._payload


class FakeBackend:
    """Answers the dashboard API and records every request the page makes."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, method: str, url: str, timeout: float = 30.0, **kwargs: Any) -> Reply:
        path = url[len(BASE_URL):]
        params = dict(kwargs.get("params") or {})
        self.calls.append({"method": method, "path": path, "params": params, "json": kwargs.get("json")})

        if path == "/api/v1/agents":
            return Reply(["Agent A", "Agent B", "Agent C"])
        if path == "/api/v1/metrics" and method == "GET":
            rows = [dict(row) for row in ROWS]
            if params.get("annotate"):
                for row in rows:
                    row.update(try_count="1", score_summary="try 1, score 5/8")
            return Reply({"success": True, "data": rows})
        if path == "/api/v1/metrics/export" and method == "POST":
            headers = {
                "content-type": "application/json",
                "content-disposition": f'attachment; filename="session_metrics_UTC_2024-05-02.{params["format"]}"',
            }
            return Reply(None, headers=headers, content=b"[]")
        raise AssertionError(f"Unexpected request {method} {path}")

    def matching(self, path: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if call["path"] == path]


@pytest.fixture
def backend():
    fake = FakeBackend()
    with patch("frontend.core.api.requests.request", side_effect=fake):
        yield fake


def test_llm_toggle_makes_one_annotated_call_and_exports_shown_rows(backend) -> None:
    app = AppTest.from_file(PAGE, default_timeout=30)
    app.run()
    backend.calls.clear()

    app.toggle[0].set_value(True).run()

    assert not app.exception
    annotated = [call for call in backend.calls if call["params"].get("annotate")]
    assert [(call["method"], call["path"]) for call in annotated] == [("GET", "/api/v1/metrics")]

    exports = backend.matching("/api/v1/metrics/export")
    assert sorted(call["params"]["format"] for call in exports) == ["csv", "json"]
    assert all(call["method"] == "POST" for call in exports)
    for call in exports:
        sent = call["json"]["data"]
        assert [row["session_id"] for row in sent] == ["s-1", "s-2"]
        assert {row["try_count"] for row in sent} == {"1"}


def test_unchanged_view_reuses_prepared_exports(backend) -> None:
    app = AppTest.from_file(PAGE, default_timeout=30)
    app.run()
    assert len(backend.matching("/api/v1/metrics/export")) == 2
    backend.calls.clear()

    app.run()

    assert not app.exception
    assert backend.matching("/api/v1/metrics/export") == []


def test_all_agents_option_counts_sessions(backend) -> None:
    app = AppTest.from_file(PAGE, default_timeout=30)
    app.run()

    assert not app.exception
    assert app.selectbox[0].options[0] == "All Agents (2)"
    assert not any(call["params"].get("annotate") for call in backend.calls)
