"""Shared fixtures for backend tests."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator

import pytest

# Keep the module-level engine off Postgres while the test suite imports the app.
os.environ.setdefault("SESSION_DASH_DB_URL", "sqlite:///:memory:")
os.environ.setdefault("SESSION_DASH_DISPLAY_TZ", "UTC")

from sqlalchemy import text  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402

from backend.db import create_database_engine  # noqa: E402


@pytest.fixture
def session_engine(tmp_path: Path) -> Iterator[Engine]:
    """File-backed SQLite engine so fan-out threads each get their own connection."""
    engine = create_database_engine(f"sqlite:///{tmp_path / 'sessions.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def create_session_table(session_engine: Engine) -> Callable[[str, Iterable[Dict[str, Any]]], None]:
    """Create a session table shaped like the production tables and fill it."""

    def _create(table_name: str, rows: Iterable[Dict[str, Any]]) -> None:
        quoted = session_engine.dialect.identifier_preparer.quote_identifier(table_name)
        with session_engine.begin() as connection:
            connection.execute(
                text(
                    f"CREATE TABLE {quoted} ("
                    "id INTEGER PRIMARY KEY, session_id TEXT, timestamp TEXT, "
                    "conversation_data TEXT, user_email TEXT)"
                )
            )
            for row in rows:
                payload = dict(row)
                conversation = payload.get("conversation_data")
                if conversation is not None and not isinstance(conversation, str):
                    payload["conversation_data"] = json.dumps(conversation)
                payload.setdefault("id", None)
                payload.setdefault("user_email", None)
                connection.execute(
                    text(
                        f"INSERT INTO {quoted} (id, session_id, timestamp, conversation_data, user_email) "
                        "VALUES (:id, :session_id, :timestamp, :conversation_data, :user_email)"
                    ),
                    payload,
                )

    return _create
