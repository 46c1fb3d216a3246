from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional, Tuple

import streamlit as st

from frontend.core.constants import ALL_AGENTS_OPTION, METRICS_SORT_LABELS, TRACKING_SORT_LABELS
from frontend.core.models import ExportFile

METRICS_SORT_KEY = "metrics_sort"
TRACKING_SORT_KEY = "tracking_sort"
ANNOTATIONS_KEY = "transcript_annotations"
EXPORTS_KEY = "prepared_exports"


@dataclass(frozen=True)
class SortState:
    """Selected sort column and direction for a sessions table.

    The metrics API spells directions ``desc``/``asc`` and the tracking API
    ``DESC``/``ASC``, so each state carries its own spelling.
    """

    field: str
    order: str
    descending: str = "desc"
    ascending: str = "asc"

    def toggle(self, field: str) -> "SortState":
        """Flip the order for the active field, or switch to ``field`` descending."""
        if field == self.field:
            flipped = self.ascending if self.order == self.descending else self.descending
            return replace(self, order=flipped)
        return replace(self, field=field, order=self.descending)

    def as_tuple(self) -> Tuple[str, str]:
        return self.field, self.order


def trigger_rerun() -> None:
    """Trigger a Streamlit rerun using the most compatible API."""
    rerun_fn = getattr(st, "rerun", None) or getattr(st, "experimental_rerun", None)
    if rerun_fn:
        rerun_fn()


def _sort_state(key: str, default: SortState) -> SortState:
    return st.session_state.setdefault(key, default)


def get_metrics_sort() -> Tuple[str, str]:
    return _sort_state(METRICS_SORT_KEY, SortState("date", "desc")).as_tuple()


def click_metrics_sort(field: str) -> None:
    if field not in METRICS_SORT_LABELS:
        raise ValueError(f"Unsupported sort field {field!r}")
    current = _sort_state(METRICS_SORT_KEY, SortState("date", "desc"))
    st.session_state[METRICS_SORT_KEY] = current.toggle(field)


def get_tracking_sort() -> Tuple[str, str]:
    return _sort_state(TRACKING_SORT_KEY, SortState("timestamp", "DESC", "DESC", "ASC")).as_tuple()


def click_tracking_sort(field: str) -> None:
    if field not in TRACKING_SORT_LABELS:
        raise ValueError(f"Unsupported sort field {field!r}")
    current = _sort_state(TRACKING_SORT_KEY, SortState("timestamp", "DESC", "DESC", "ASC"))
    st.session_state[TRACKING_SORT_KEY] = current.toggle(field)


def get_selected_agent(key: str) -> str:
    return st.session_state.setdefault(key, ALL_AGENTS_OPTION)


def remember_annotation(session_key: str, annotation: Dict[str, str]) -> None:
    """Keep a transcript annotation for the rest of the browser session."""
    st.session_state.setdefault(ANNOTATIONS_KEY, {})[session_key] = annotation


def get_annotation(session_key: str) -> Optional[Dict[str, str]]:
    return st.session_state.get(ANNOTATIONS_KEY, {}).get(session_key)


def prepared_export(slot: str, fingerprint: str, fetch: Callable[[], ExportFile]) -> ExportFile:
    """Return the export for ``slot``, fetching again only when the view's fingerprint changed."""
    exports = st.session_state.setdefault(EXPORTS_KEY, {})
    cached = exports.get(slot)
    if cached is not None and cached[0] == fingerprint:
        return cached[1]
    export = fetch()
    exports[slot] = (fingerprint, export)
    return export
