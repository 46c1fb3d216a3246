"""Configuration helpers for the Session Metrics Dashboard backend."""

from __future__ import annotations

import os
from typing import List

from dotenv import load_dotenv

# Load environment variables from a .env file if present.
load_dotenv()


def _split_origins(value: str) -> List[str]:
    """Convert a comma-separated origin string into a clean list.

    Args:
        value (str): One or many origins separated by commas.
    Returns:
        List[str]: Normalized origin values with whitespace removed.
    """
    return [origin.strip() for origin in value.split(",") if origin.strip()]


def _positive_int(name: str, default: int) -> int:
    """Read an integer environment variable, clamping it to at least 1."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return max(1, int(raw))
    except ValueError:
        return default


DEFAULT_ALLOWED_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:8501"
DEFAULT_DATABASE_URL = "postgresql+psycopg2://localhost:5432/documents"

API_HOST = os.getenv("SESSION_DASH_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("SESSION_DASH_API_PORT", "8502"))
API_ALLOWED_ORIGINS = _split_origins(
    os.getenv("SESSION_DASH_API_ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS)
)

DATABASE_URL = os.getenv("SESSION_DASH_DB_URL", "").strip() or DEFAULT_DATABASE_URL

# Fan-out pools for per-table reads and per-session annotation calls.
QUERY_WORKERS = _positive_int("SESSION_DASH_QUERY_WORKERS", 4)
ANNOTATION_WORKERS = _positive_int("SESSION_DASH_ANNOTATION_WORKERS", 4)

# Zone used when rendering session dates and clock times.
DISPLAY_TIMEZONE = os.getenv("SESSION_DASH_DISPLAY_TZ", "UTC").strip() or "UTC"

# OpenAI Configuration
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_API_BASE = os.getenv("OPENAI_API_BASE", "https://api.openai.com/v1").rstrip("/")

ANNOTATION_MODEL = os.getenv("SESSION_DASH_ANNOTATION_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"
ANNOTATION_TEMPERATURE = float(os.getenv("SESSION_DASH_ANNOTATION_TEMPERATURE", "0.3"))
ANNOTATION_MAX_TOKENS = _positive_int("SESSION_DASH_ANNOTATION_MAX_TOKENS", 500)
LLM_TIMEOUT_SECONDS = float(os.getenv("SESSION_DASH_LLM_TIMEOUT_SECONDS", "30"))
