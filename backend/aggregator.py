"""Fan-out reads across the registered session tables.

Every registered table is queried independently. A table that fails to read or
whose rows do not match the expected row schema is logged and contributes no
rows, so the dashboard still shows whatever the other tables returned.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from pydantic import ValidationError
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import TextClause

from .config import QUERY_WORKERS
from .db import SORT_COLUMNS, SORT_DIRECTIONS, detail_query, summary_query
from .models import SessionMetrics, SessionRow, TrackingSession
from .registry import TABLE_REGISTRY, TableSpec, UnknownTableError, select_specs
from .timeutils import to_display
from .view import sort_tracking_sessions

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class AggregationError(RuntimeError):
    """Raised when no table can be read at all, e.g. the connection pool is unusable."""


def build_session_metrics(row: SessionRow, agent: str) -> SessionMetrics:
    """Derive the metrics view of one session row.

    Start and end come from the first and last transcript entries, falling back
    to the row timestamp when the transcript is empty or an entry has no time.
    """
    entries = row.conversation_data
    start = entries[0].timestamp if entries and entries[0].timestamp else row.timestamp
    end = entries[-1].timestamp if entries and entries[-1].timestamp else row.timestamp
    return SessionMetrics(
        session_id=row.session_id,
        date=to_display(row.timestamp).date(),
        agent=agent,
        conversation_count=len(entries),
        start_time=to_display(start),
        end_time=to_display(end),
        conversation_data=entries,
    )


def build_tracking_session(row: SessionRow, agent: str) -> TrackingSession:
    """Tag a raw session row with its agent label."""
    return TrackingSession(
        id=row.id,
        session_id=row.session_id,
        timestamp=row.timestamp,
        agent=agent,
        conversation_data=row.conversation_data,
        extras=dict(row.model_extra or {}),
    )


class SessionAggregator:
    """Reads session rows from every registered table through one pooled engine."""

    def __init__(
        self,
        engine: Engine,
        specs: Sequence[TableSpec] = TABLE_REGISTRY,
        *,
        max_workers: int = QUERY_WORKERS,
    ) -> None:
        self._engine = engine
        self._specs = tuple(specs)
        self._registered = frozenset(spec.table_name for spec in self._specs)
        self._max_workers = max(1, max_workers)

    @property
    def specs(self) -> Sequence[TableSpec]:
        return self._specs

    def collect_metrics(self, specs: Optional[Sequence[TableSpec]] = None) -> List[SessionMetrics]:
        """Return session metrics from every table that could be read.

        Raises:
            AggregationError: If the database cannot be reached before any table is tried.
            UnknownTableError: If ``specs`` contains a table outside the registry.
        """
        targets = self._check_targets(self._specs if specs is None else specs)
        self._ensure_pool()
        return self._fan_out(targets, self.fetch_metrics)

    def collect_sessions(
        self,
        sort_by: str = "timestamp",
        order: str = "DESC",
        agent: Optional[str] = None,
    ) -> List[TrackingSession]:
        """Return raw sessions for the tracking view, merged and ordered across tables."""
        if sort_by not in SORT_COLUMNS:
            raise ValueError(f"Unsupported sort column {sort_by!r}")
        if order.upper() not in SORT_DIRECTIONS:
            raise ValueError(f"Unsupported sort direction {order!r}")

        targets = select_specs(self._specs, agent)
        self._ensure_pool()
        sessions = self._fan_out(
            targets,
            lambda spec: self.fetch_sessions(spec, sort_by=sort_by, order=order),
        )
        return sort_tracking_sessions(sessions, sort_by, order)

    def fetch_metrics(self, spec: TableSpec) -> List[SessionMetrics]:
        """Read one table and derive metrics for each row. Errors propagate to the caller."""
        query = summary_query(
            spec.table_name, registered=self._registered, dialect=self._engine.dialect
        )
        rows = self._read_rows(query)
        return [build_session_metrics(SessionRow.model_validate(row), spec.agent_label) for row in rows]

    def fetch_sessions(self, spec: TableSpec, *, sort_by: str, order: str) -> List[TrackingSession]:
        """Read every column of one table for the tracking view."""
        query = detail_query(
            spec.table_name,
            sort_by,
            order,
            registered=self._registered,
            dialect=self._engine.dialect,
        )
        rows = self._read_rows(query)
        return [build_tracking_session(SessionRow.model_validate(row), spec.agent_label) for row in rows]

    def _check_targets(self, specs: Sequence[TableSpec]) -> List[TableSpec]:
        for spec in specs:
            if spec.table_name not in self._registered:
                raise UnknownTableError(f"Refusing to query unregistered table {spec.table_name!r}")
        return list(specs)

    def _ensure_pool(self) -> None:
        try:
            with self._engine.connect():
                pass
        except SQLAlchemyError as exc:
            LOGGER.error("Database connection unavailable: %s", exc)
            raise AggregationError("Database connection unavailable") from exc

    def _read_rows(self, query: TextClause) -> List[Dict[str, Any]]:
        with self._engine.connect() as connection:
            result = connection.execute(query)
            return [dict(row) for row in result.mappings()]

    def _fan_out(
        self,
        specs: Sequence[TableSpec],
        fetch: Callable[[TableSpec], List[T]],
    ) -> List[T]:
        if not specs:
            return []

        workers = min(self._max_workers, len(specs))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="table-read") as executor:
            futures = [(spec, executor.submit(fetch, spec)) for spec in specs]

        combined: List[T] = []
        for spec, future in futures:
            try:
                rows = future.result()
            except (SQLAlchemyError, ValidationError, ValueError) as exc:
                LOGGER.warning("Error querying table %s: %s", spec.table_name, exc)
                continue
            LOGGER.debug("Read %d rows from table %s", len(rows), spec.table_name)
            combined.extend(rows)
        return combined
