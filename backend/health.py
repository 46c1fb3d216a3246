"""Readiness probes for the session database and the completion provider."""

from __future__ import annotations

import math
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Optional

from sqlalchemy import text

from .db import engine
from .providers import OpenAIProvider

PROBE_INTERVAL_SECONDS = 5.0
DATABASE_PROBE_TIMEOUT_SECONDS = 15.0

Probe = Callable[[], Optional[Dict[str, Any]]]


@dataclass
class HealthResult:
    """Outcome of probing one dependency."""

    service: str
    status: str
    attempts: int
    elapsed_seconds: float
    detail: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the result, leaving out empty ``detail`` and ``meta``."""
        return {key: value for key, value in asdict(self).items() if value or key not in ("detail", "meta")}


def poll_health(
    probe: Probe,
    *,
    service: str,
    interval_seconds: float = PROBE_INTERVAL_SECONDS,
    timeout_seconds: float = DATABASE_PROBE_TIMEOUT_SECONDS,
) -> HealthResult:
    """Call ``probe`` up to ``ceil(timeout / interval)`` times, sleeping between failures.

    The first call that returns without raising wins; its return value becomes
    ``meta``. Otherwise the last error message is reported as ``detail``.
    """
    started = time.perf_counter()
    attempts = max(1, math.ceil(timeout_seconds / interval_seconds))
    error: Optional[str] = None

    for attempt in range(1, attempts + 1):
        try:
            meta = probe() or {}
        except Exception as exc:  # pylint: disable=broad-except
            error = str(exc) or type(exc).__name__
            if attempt < attempts:
                time.sleep(interval_seconds)
            continue
        return HealthResult(
            service=service,
            status="ok",
            attempts=attempt,
            elapsed_seconds=time.perf_counter() - started,
            meta=meta,
        )

    return HealthResult(
        service=service,
        status="error",
        attempts=attempts,
        elapsed_seconds=time.perf_counter() - started,
        detail=error or "Unhealthy",
    )


def _ping_database() -> Dict[str, Any]:
    with engine.connect() as connection:
        value = connection.execute(text("SELECT 1")).scalar_one_or_none()
    return {"result": value, "dialect": engine.dialect.name}


def _ping_llm() -> Dict[str, Any]:
    provider = OpenAIProvider()
    reason = provider.unavailable_reason()
    if reason:
        raise RuntimeError(reason)
    return {"provider": provider.name, "base_url": provider.base_url}


def check_database_health(
    *,
    interval_seconds: float = PROBE_INTERVAL_SECONDS,
    timeout_seconds: float = DATABASE_PROBE_TIMEOUT_SECONDS,
) -> HealthResult:
    """Probe the session database until it answers or the timeout elapses."""
    return poll_health(
        _ping_database,
        service="database",
        interval_seconds=interval_seconds,
        timeout_seconds=timeout_seconds,
    )


def check_llm_health() -> HealthResult:
    """Probe the completion provider once; its own request carries a timeout."""
    return poll_health(
        _ping_llm,
        service="llm",
        interval_seconds=PROBE_INTERVAL_SECONDS,
        timeout_seconds=PROBE_INTERVAL_SECONDS,
    )
