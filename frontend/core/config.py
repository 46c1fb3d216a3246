from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Tuple

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")
load_dotenv()

# docker-compose service name first, then a local uvicorn.
DEFAULT_API_URLS: Tuple[str, ...] = ("http://backend:8502", "http://localhost:8502")


@dataclass(frozen=True)
class AppConfig:
    """Where the dashboard finds its API and how long it waits."""

    api_base_url: str
    fallback_api_urls: Tuple[str, ...]
    request_timeout: float = 30.0
    # Annotated listings wait on one model call per visible session.
    annotation_timeout: float = 300.0
    display_timezone: str = "UTC"

    @property
    def api_base_url_candidates(self) -> Tuple[str, ...]:
        return (self.api_base_url, *self.fallback_api_urls)


def _split_urls(value: str) -> List[str]:
    return [url.strip().rstrip("/") for url in value.split(",") if url.strip()]


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Read the environment once; tests clear the cache to re-read it."""
    configured = _split_urls(os.getenv("SESSION_DASH_API_BASE_URL", ""))
    candidates = configured + _split_urls(os.getenv("SESSION_DASH_API_FALLBACKS", "")) + list(DEFAULT_API_URLS)
    unique = list(dict.fromkeys(candidates))

    return AppConfig(
        api_base_url=unique[0],
        fallback_api_urls=tuple(unique[1:]),
        request_timeout=_float_env("SESSION_DASH_REQUEST_TIMEOUT_SECONDS", 30.0),
        annotation_timeout=_float_env("SESSION_DASH_ANNOTATION_TIMEOUT_SECONDS", 300.0),
        display_timezone=os.getenv("SESSION_DASH_DISPLAY_TZ", "").strip() or "UTC",
    )


def get_api_base_url_candidates() -> Tuple[str, ...]:
    return get_config().api_base_url_candidates
