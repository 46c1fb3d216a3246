from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional, Sequence

import requests

from .config import get_config, get_api_base_url_candidates
from .constants import EXPORT_FORMATS
from .models import (
    Annotation,
    ConversationEntry,
    ExportFile,
    SessionMetricsRow,
    TrackingPayload,
)

_FILENAME_PATTERN = re.compile(r'filename="?([^";]+)"?')


class BackendError(Exception):
    """Raised when the backend API is unreachable or returns an error."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.cause = cause


def is_backend_unavailable_error(error: Optional[BackendError]) -> bool:
    """Return True if the error likely represents a transient backend outage."""
    if error is None:
        return False

    if error.status_code in {502, 503, 504}:
        return True

    cause = getattr(error, "cause", None)
    transient_exceptions: Iterable[type[BaseException]] = (
        requests.exceptions.ConnectionError,
        requests.exceptions.Timeout,
        requests.exceptions.ConnectTimeout,
        requests.exceptions.ReadTimeout,
    )
    return isinstance(cause, tuple(transient_exceptions))


def _send(
    path: str,
    *,
    method: str = "GET",
    timeout: Optional[float] = None,
    **kwargs: Any,
) -> requests.Response:
    """Try each configured base URL until one answers, then raise on HTTP errors."""
    config = get_config()
    timeout = timeout or config.request_timeout
    last_exc: Optional[BaseException] = None

    for base_url in get_api_base_url_candidates():
        url = f"{base_url.rstrip('/')}{path}"
        try:
            response = requests.request(method=method.upper(), url=url, timeout=timeout, **kwargs)
            response.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            detail = ""
            if exc.response is not None:
                status_code = exc.response.status_code
                try:
                    payload = exc.response.json()
                except ValueError:
                    payload = None

                if isinstance(payload, dict):
                    detail_value = payload.get("detail")
                    if detail_value:
                        detail = str(detail_value)
                if not detail:
                    text = exc.response.text.strip()
                    if text:
                        detail = text
            else:
                status_code = None

            message = f"Backend request failed: {exc}"
            if detail:
                message = f"{message} - {detail}"
            raise BackendError(message, status_code=status_code, cause=exc) from exc
        except requests.exceptions.RequestException as exc:
            last_exc = exc
            continue
        else:
            return response

    raise BackendError(f"Backend request failed: {last_exc}", cause=last_exc) from last_exc


def _request(
    path: str,
    *,
    method: str = "GET",
    timeout: Optional[float] = None,
    **kwargs: Any,
) -> Any:
    """Execute an HTTP request against the backend service and decode the JSON body."""
    response = _send(path, method=method, timeout=timeout, **kwargs)
    if response.status_code == 204:
        return {}

    try:
        return response.json()
    except ValueError as exc:
        raise BackendError("Backend returned an invalid JSON response.", cause=exc) from exc


def _clean_params(params: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in params.items() if value not in (None, "")}


def get_agents() -> List[str]:
    """Fetch the agent labels in registry order."""
    payload = _request("/api/v1/agents")
    return [str(agent) for agent in payload or []]


def get_metrics(
    *,
    agent: Optional[str] = None,
    sort_field: str = "date",
    sort_order: str = "desc",
    search: Optional[str] = None,
    annotate: bool = False,
) -> List[SessionMetricsRow]:
    """Fetch the filtered and sorted session metrics."""
    config = get_config()
    params = _clean_params(
        {
            "agent": agent,
            "sortField": sort_field,
            "sortOrder": sort_order,
            "q": search,
            "annotate": "true" if annotate else None,
        }
    )
    timeout = config.annotation_timeout if annotate else None
    payload = _request("/api/v1/metrics", params=params, timeout=timeout)
    return [SessionMetricsRow.from_dict(item) for item in (payload or {}).get("data") or []]


def get_tracking(
    *,
    sort_by: str = "timestamp",
    order: str = "DESC",
    agent: Optional[str] = None,
    search: Optional[str] = None,
) -> TrackingPayload:
    """Fetch raw sessions for the conversation tracking page."""
    params = _clean_params({"sortBy": sort_by, "order": order, "agent": agent, "q": search})
    payload = _request("/api/v1/tracking", params=params)
    return TrackingPayload.from_dict(payload)


def annotate_transcript(conversation_data: Sequence[ConversationEntry]) -> Annotation:
    """Ask the backend for the try count and score summary of one transcript."""
    config = get_config()
    payload = _request(
        "/api/v1/annotations",
        method="POST",
        json={"conversation_data": [entry.to_dict() for entry in conversation_data]},
        timeout=config.annotation_timeout,
    )
    return Annotation.from_dict(payload)


def download_export(kind: str, fmt: str, params: Optional[Dict[str, Any]] = None) -> ExportFile:
    """Fetch a CSV or JSON export of the metrics ("metrics") or tracking ("tracking") view."""
    if kind not in ("metrics", "tracking"):
        raise ValueError(f"Unknown export kind {kind!r}")
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unknown export format {fmt!r}")

    query = _clean_params(dict(params or {}))
    query["format"] = fmt
    timeout = get_config().annotation_timeout if query.get("annotate") else None
    response = _send(f"/api/v1/{kind}/export", params=query, timeout=timeout)
    return _export_file(response, kind, fmt)


def export_metrics_rows(rows: Sequence[SessionMetricsRow], fmt: str) -> ExportFile:
    """Have the backend serialise rows already on screen, so exports match the table exactly."""
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unknown export format {fmt!r}")

    response = _send(
        "/api/v1/metrics/export",
        method="POST",
        params={"format": fmt},
        json={"data": [row.to_dict() for row in rows]},
    )
    return _export_file(response, "metrics", fmt)


def _export_file(response: requests.Response, kind: str, fmt: str) -> ExportFile:
    disposition = response.headers.get("content-disposition", "")
    match = _FILENAME_PATTERN.search(disposition)
    filename = match.group(1) if match else f"{kind}.{fmt}"
    return ExportFile(
        content=response.content,
        filename=filename,
        media_type=response.headers.get("content-type", "application/octet-stream"),
    )
