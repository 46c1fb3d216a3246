"""Database engine and read-query builders for the session tables."""

from __future__ import annotations

import logging
from typing import Any, Collection, Dict

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Dialect, Engine
from sqlalchemy.sql.elements import TextClause

from .config import DATABASE_URL
from .registry import UnknownTableError

LOGGER = logging.getLogger(__name__)

SORT_COLUMNS = {"timestamp": "timestamp", "id": "id"}
SORT_DIRECTIONS = ("ASC", "DESC")


def create_database_engine(url: str) -> Engine:
    """Create the pooled engine shared by every request in the process."""
    engine_kwargs: Dict[str, Any] = {
        "future": True,
        "pool_pre_ping": True,
    }
    if url.startswith("sqlite"):
        # SQLite requires disabling same-thread checks for the fan-out worker threads.
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(url, **engine_kwargs)


def quote_table_name(table_name: str, *, registered: Collection[str], dialect: Dialect) -> str:
    """Return a quoted identifier for a registered table.

    Raises:
        UnknownTableError: If ``table_name`` is not part of the registry.
    """
    if table_name not in registered:
        raise UnknownTableError(f"Refusing to query unregistered table {table_name!r}")
    return dialect.identifier_preparer.quote_identifier(table_name)


def summary_query(table_name: str, *, registered: Collection[str], dialect: Dialect) -> TextClause:
    """Build the metrics read: the three columns needed for session metrics, newest first."""
    quoted = quote_table_name(table_name, registered=registered, dialect=dialect)
    return text(
        f"SELECT session_id, timestamp, conversation_data FROM {quoted} ORDER BY timestamp DESC"
    )


def detail_query(
    table_name: str,
    sort_by: str,
    order: str,
    *,
    registered: Collection[str],
    dialect: Dialect,
) -> TextClause:
    """Build the tracking read: every column, ordered by timestamp or id."""
    column = SORT_COLUMNS.get(sort_by)
    direction = order.upper()
    if column is None:
        raise ValueError(f"Unsupported sort column {sort_by!r}")
    if direction not in SORT_DIRECTIONS:
        raise ValueError(f"Unsupported sort direction {order!r}")
    quoted = quote_table_name(table_name, registered=registered, dialect=dialect)
    return text(f"SELECT * FROM {quoted} ORDER BY {column} {direction}")


engine = create_database_engine(DATABASE_URL)
LOGGER.debug("Database engine created for dialect %s", engine.dialect.name)
