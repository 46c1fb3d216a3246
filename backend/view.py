"""Filtering, searching and ordering of aggregated sessions for display.

Everything here is pure: the same inputs always produce the same output order.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, TypeVar

from .models import ConversationEntry, SessionMetrics, TrackingSession
from .registry import is_all_agents
from .timeutils import clock_duration, clock_time

SORT_FIELDS = ("date", "agent", "conversation_count", "start_time", "end_time", "duration")
SORT_ORDERS = ("asc", "desc")
DEFAULT_SORT_FIELD = "date"
DEFAULT_SORT_ORDER = "desc"


class _HasAgent(Protocol):
    agent: str
    session_id: str
    conversation_data: List[ConversationEntry]


S = TypeVar("S", bound=_HasAgent)


_SORT_KEYS: Dict[str, Callable[[SessionMetrics], Any]] = {
    "date": lambda item: (item.date, clock_time(item.start_time)),
    "agent": lambda item: item.agent,
    "conversation_count": lambda item: item.conversation_count,
    "start_time": lambda item: clock_time(item.start_time),
    "end_time": lambda item: clock_time(item.end_time),
    "duration": lambda item: clock_duration(item.start_time, item.end_time),
}


def filter_by_agent(items: Sequence[S], agent: Optional[str]) -> List[S]:
    """Keep items stamped with ``agent``; the "all" sentinel keeps everything."""
    if is_all_agents(agent):
        return list(items)
    return [item for item in items if item.agent == agent]


def search_sessions(items: Sequence[S], term: Optional[str]) -> List[S]:
    """Case-insensitive match on the session id or any question/response text."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(items)

    def matches(item: S) -> bool:
        if needle in item.session_id.lower():
            return True
        return any(
            needle in entry.question.lower() or needle in entry.response.lower()
            for entry in item.conversation_data
        )

    return [item for item in items if matches(item)]


def sort_sessions(
    items: Sequence[SessionMetrics],
    field: str = DEFAULT_SORT_FIELD,
    order: str = DEFAULT_SORT_ORDER,
) -> List[SessionMetrics]:
    """Stable sort by one of ``SORT_FIELDS``; equal keys keep their input order."""
    key = _SORT_KEYS.get(field)
    if key is None:
        raise ValueError(f"Unsupported sort field {field!r}")
    normalized_order = order.lower()
    if normalized_order not in SORT_ORDERS:
        raise ValueError(f"Unsupported sort order {order!r}")
    return sorted(items, key=key, reverse=normalized_order == "desc")


def present(
    items: Sequence[SessionMetrics],
    filter_agent: Optional[str] = None,
    sort_field: str = DEFAULT_SORT_FIELD,
    sort_order: str = DEFAULT_SORT_ORDER,
    search: Optional[str] = None,
) -> List[SessionMetrics]:
    """Return the filtered, searched and ordered subset of ``items`` to render."""
    visible = filter_by_agent(items, filter_agent)
    visible = search_sessions(visible, search)
    return sort_sessions(visible, sort_field, sort_order)


def sort_tracking_sessions(
    sessions: Sequence[TrackingSession],
    sort_by: str,
    order: str,
) -> List[TrackingSession]:
    """Order merged tracking rows by timestamp or id; rows without an id go last."""
    descending = order.upper() == "DESC"
    if sort_by == "id":
        with_id = [session for session in sessions if session.id is not None]
        without_id = [session for session in sessions if session.id is None]
        return sorted(with_id, key=lambda session: session.id, reverse=descending) + without_id
    return sorted(sessions, key=lambda session: session.timestamp, reverse=descending)
