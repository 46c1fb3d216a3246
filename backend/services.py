"""Process-scoped service that wires the registry, aggregator, annotator and exporter."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.engine import Engine

from . import exporter
from .aggregator import SessionAggregator
from .annotator import TranscriptAnnotator
from .config import ANNOTATION_WORKERS, QUERY_WORKERS
from .db import engine as default_engine
from .models import Annotation, ConversationEntry, SessionMetrics, TrackingSession
from .providers import OpenAIProvider
from .registry import TABLE_REGISTRY, TableSpec, agent_labels, validate_registry
from .view import DEFAULT_SORT_FIELD, DEFAULT_SORT_ORDER, present, search_sessions

LOGGER = logging.getLogger(__name__)

ExportPayload = Tuple[bytes, str, str]


class DashboardService:
    """Entry point used by the API routes for every dashboard operation."""

    def __init__(
        self,
        aggregator: SessionAggregator,
        annotator: TranscriptAnnotator,
    ) -> None:
        self._aggregator = aggregator
        self._annotator = annotator

    @classmethod
    def from_engine(
        cls,
        engine: Engine,
        specs: Sequence[TableSpec] = TABLE_REGISTRY,
    ) -> "DashboardService":
        """Build the service around one engine using the configured provider."""
        aggregator = SessionAggregator(engine, specs, max_workers=QUERY_WORKERS)
        annotator = TranscriptAnnotator(OpenAIProvider(), max_workers=ANNOTATION_WORKERS)
        return cls(aggregator, annotator)

    def check_registry(self) -> None:
        """Validate the table registry; raises ValueError when it is unusable."""
        validate_registry(self._aggregator.specs)
        LOGGER.info(
            "Serving %d session tables: %s",
            len(self._aggregator.specs),
            ", ".join(spec.table_name for spec in self._aggregator.specs),
        )

    def agents(self) -> List[str]:
        return agent_labels(self._aggregator.specs)

    def list_metrics(
        self,
        agent: Optional[str] = None,
        sort_field: str = DEFAULT_SORT_FIELD,
        sort_order: str = DEFAULT_SORT_ORDER,
        search: Optional[str] = None,
        annotate: bool = False,
    ) -> List[SessionMetrics]:
        """Aggregate every table, then filter, search and sort for display.

        Annotation runs after filtering so only visible sessions reach the model.
        """
        metrics = self._aggregator.collect_metrics()
        visible = present(
            metrics,
            filter_agent=agent,
            sort_field=sort_field,
            sort_order=sort_order,
            search=search,
        )
        LOGGER.info("Presenting %d of %d sessions", len(visible), len(metrics))
        if annotate:
            visible = self._annotator.annotate_many(visible)
        return visible

    def list_sessions(
        self,
        sort_by: str = "timestamp",
        order: str = "DESC",
        agent: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[TrackingSession]:
        """Return raw sessions for the conversation tracking view."""
        sessions = self._aggregator.collect_sessions(sort_by=sort_by, order=order, agent=agent)
        return search_sessions(sessions, search)

    def annotate_transcript(self, conversation_data: Sequence[ConversationEntry]) -> Annotation:
        return self._annotator.annotate(conversation_data)

    def complete(self, prompt: str) -> str:
        return self._annotator.complete(prompt)

    def export_metrics(self, fmt: str, **filters) -> ExportPayload:
        """Render the metrics view as a download: (body, media type, file name)."""
        items = self.list_metrics(**filters)
        return _render(fmt, "metrics", items, exporter.metrics_to_csv, exporter.metrics_to_json)

    def render_metrics(self, fmt: str, items: Sequence[SessionMetrics]) -> ExportPayload:
        """Serialise rows the caller already holds, in their given order, with no reads or model calls."""
        return _render(fmt, "metrics", items, exporter.metrics_to_csv, exporter.metrics_to_json)

    def export_sessions(self, fmt: str, **filters) -> ExportPayload:
        """Render the tracking view as a download: (body, media type, file name)."""
        sessions = self.list_sessions(**filters)
        return _render(fmt, "sessions", sessions, exporter.sessions_to_csv, exporter.sessions_to_json)


def _render(
    fmt: str,
    kind: str,
    items: Sequence,
    to_csv: Callable[[Sequence], bytes],
    to_json: Callable[[Sequence], bytes],
) -> ExportPayload:
    renderers: Dict[str, Callable[[Sequence], bytes]] = {"csv": to_csv, "json": to_json}
    if fmt not in renderers:
        raise ValueError(f"Unknown export format {fmt!r}")
    body = renderers[fmt](items)
    return body, exporter.MEDIA_TYPES[fmt], exporter.export_filename(kind, fmt)


dashboard_service = DashboardService.from_engine(default_engine)


def get_dashboard_service() -> DashboardService:
    """FastAPI dependency to retrieve the shared dashboard service."""
    return dashboard_service
