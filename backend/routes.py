"""API routes for the Session Metrics Dashboard backend."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from .aggregator import AggregationError
from .db import SORT_DIRECTIONS
from .exporter import EXPORT_FORMATS
from .health import check_database_health, check_llm_health
from .models import (
    Annotation,
    AnnotationRequest,
    LLMRequest,
    LLMResponse,
    MetricsExportRequest,
    MetricsResponse,
    TrackingResponse,
)
from .services import DashboardService, get_dashboard_service
from .view import DEFAULT_SORT_FIELD, DEFAULT_SORT_ORDER, SORT_FIELDS, SORT_ORDERS

LOGGER = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["sessions"])

METRICS_FAILURE = "Failed to fetch metrics"
TRACKING_FAILURE = "Failed to fetch conversations"
LLM_FAILURE = "Failed to process with LLM"


def resolve_dashboard_service() -> DashboardService:
    """Wrapper to allow monkeypatching of the shared dashboard service dependency."""
    return get_dashboard_service()


def _metrics_filters(
    agent: Optional[str] = Query(default=None, description="Agent label or 'all'"),
    sort_field: str = Query(default=DEFAULT_SORT_FIELD, alias="sortField"),
    sort_order: str = Query(default=DEFAULT_SORT_ORDER, alias="sortOrder"),
    search: Optional[str] = Query(default=None, alias="q"),
    annotate: bool = Query(default=False, description="Run the LLM annotator on each session"),
) -> Dict[str, Any]:
    """Validate and collect the metrics listing query parameters."""
    normalized_order = sort_order.lower()
    if sort_field not in SORT_FIELDS:
        raise HTTPException(
            status_code=422,
            detail=f"sortField must be one of {', '.join(SORT_FIELDS)}",
        )
    if normalized_order not in SORT_ORDERS:
        raise HTTPException(
            status_code=422,
            detail="sortOrder must be 'asc' or 'desc'",
        )
    return {
        "agent": agent,
        "sort_field": sort_field,
        "sort_order": normalized_order,
        "search": search,
        "annotate": annotate,
    }


def _tracking_filters(
    sort_by: str = Query(default="timestamp", alias="sortBy"),
    order: str = Query(default="DESC"),
    agent: Optional[str] = Query(default=None, description="Agent label or 'all'"),
    search: Optional[str] = Query(default=None, alias="q"),
) -> Dict[str, Any]:
    """Validate and collect the tracking listing query parameters."""
    normalized_order = order.upper()
    if sort_by not in ("timestamp", "id"):
        raise HTTPException(
            status_code=422,
            detail="sortBy must be 'timestamp' or 'id'",
        )
    if normalized_order not in SORT_DIRECTIONS:
        raise HTTPException(
            status_code=422,
            detail="order must be 'ASC' or 'DESC'",
        )
    return {"sort_by": sort_by, "order": normalized_order, "agent": agent, "search": search}


def _check_format(fmt: str) -> str:
    normalized = fmt.lower()
    if normalized not in EXPORT_FORMATS:
        raise HTTPException(
            status_code=422,
            detail="format must be 'csv' or 'json'",
        )
    return normalized


def _download(body: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/health/database", tags=["health"])
def health_database() -> Dict[str, Any]:
    """Return the health status for the session database."""
    return check_database_health().to_dict()


@router.get("/health/llm", tags=["health"])
def health_llm() -> Dict[str, Any]:
    """Return the health status for the completion provider."""
    return check_llm_health().to_dict()


@router.get("/agents", response_model=List[str])
def list_agents(service: DashboardService = Depends(resolve_dashboard_service)) -> List[str]:
    """Return every agent label in registry order."""
    return service.agents()


@router.get("/metrics", response_model=MetricsResponse)
def list_metrics(
    filters: Dict[str, Any] = Depends(_metrics_filters),
    service: DashboardService = Depends(resolve_dashboard_service),
) -> MetricsResponse:
    """Return per-session metrics aggregated across every agent table."""
    try:
        data = service.list_metrics(**filters)
    except AggregationError as exc:
        LOGGER.error("Metrics aggregation failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=METRICS_FAILURE
        ) from exc
    return MetricsResponse(success=True, data=data)


@router.get("/metrics/export")
def export_metrics(
    fmt: str = Query(default="csv", alias="format"),
    filters: Dict[str, Any] = Depends(_metrics_filters),
    service: DashboardService = Depends(resolve_dashboard_service),
) -> Response:
    """Download the metrics view as CSV or JSON."""
    normalized = _check_format(fmt)
    try:
        body, media_type, filename = service.export_metrics(normalized, **filters)
    except AggregationError as exc:
        LOGGER.error("Metrics export failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=METRICS_FAILURE
        ) from exc
    return _download(body, media_type, filename)


@router.post("/metrics/export")
def export_displayed_metrics(
    payload: MetricsExportRequest,
    fmt: str = Query(default="csv", alias="format"),
    service: DashboardService = Depends(resolve_dashboard_service),
) -> Response:
    """Download the given metrics rows as CSV or JSON, in the order received."""
    body, media_type, filename = service.render_metrics(_check_format(fmt), payload.data)
    return _download(body, media_type, filename)


@router.get("/tracking", response_model=TrackingResponse)
def list_tracking(
    filters: Dict[str, Any] = Depends(_tracking_filters),
    service: DashboardService = Depends(resolve_dashboard_service),
) -> TrackingResponse:
    """Return raw sessions with their transcripts, tagged by agent."""
    try:
        data = service.list_sessions(**filters)
    except AggregationError as exc:
        LOGGER.error("Conversation aggregation failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=TRACKING_FAILURE
        ) from exc
    return TrackingResponse(success=True, data=data, agents=service.agents())


@router.get("/tracking/export")
def export_tracking(
    fmt: str = Query(default="csv", alias="format"),
    filters: Dict[str, Any] = Depends(_tracking_filters),
    service: DashboardService = Depends(resolve_dashboard_service),
) -> Response:
    """Download the conversation transcripts as CSV or JSON."""
    normalized = _check_format(fmt)
    try:
        body, media_type, filename = service.export_sessions(normalized, **filters)
    except AggregationError as exc:
        LOGGER.error("Conversation export failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=TRACKING_FAILURE
        ) from exc
    return _download(body, media_type, filename)


@router.post("/annotations", response_model=Annotation)
def annotate_transcript(
    payload: AnnotationRequest,
    service: DashboardService = Depends(resolve_dashboard_service),
) -> Annotation:
    """Return the LLM-derived try count and score summary for one transcript."""
    return service.annotate_transcript(payload.conversation_data)


@router.post("/llm", response_model=LLMResponse)
def process_with_llm(
    payload: LLMRequest,
    service: DashboardService = Depends(resolve_dashboard_service),
) -> LLMResponse:
    """Send a free-form prompt through the annotation instruction and return the reply."""
    try:
        reply = service.complete(payload.prompt)
    except Exception as exc:  # pylint: disable=broad-except
        LOGGER.error("LLM API error: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=LLM_FAILURE
        ) from exc
    return LLMResponse(success=True, response=reply or "No response generated")
