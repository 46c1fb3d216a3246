from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import pandas as pd
from zoneinfo import ZoneInfo

from .config import get_config

UTC_TIMEZONE = ZoneInfo("UTC")


def display_timezone() -> ZoneInfo:
    """Return the zone user-facing timestamps are rendered in."""
    return ZoneInfo(get_config().display_timezone)


def coerce_to_display_timezone(value: Any) -> Optional[pd.Timestamp]:
    """Convert an ISO string or datetime to the display timezone; naive values are UTC."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None

    if isinstance(value, pd.Timestamp):
        timestamp: Optional[pd.Timestamp] = value
    elif isinstance(value, datetime):
        timestamp = pd.Timestamp(value)
    else:
        timestamp = pd.to_datetime(value, errors="coerce")

    if timestamp is None or pd.isna(timestamp):
        return None
    if timestamp.tzinfo is None:
        timestamp = timestamp.tz_localize(UTC_TIMEZONE)
    return timestamp.tz_convert(display_timezone())
