from __future__ import annotations

from typing import Dict, List, Tuple

# Sentinel understood by the backend as "every agent".
ALL_AGENTS_OPTION = "all"

METRICS_SORT_LABELS: Dict[str, str] = {
    "date": "Date",
    "agent": "Agent",
    "conversation_count": "Conversations",
    "start_time": "Start Time",
    "end_time": "End Time",
    "duration": "Duration",
}

TRACKING_SORT_LABELS: Dict[str, str] = {
    "timestamp": "Time",
    "id": "Sequence",
}

METRICS_TABLE_COLUMNS: List[str] = [
    "Session ID",
    "Date",
    "Agent",
    "Conversations",
    "Start Time",
    "End Time",
    "Duration",
    "Try Count",
    "Score Summary",
]

EXPORT_FORMATS: Tuple[str, ...] = ("csv", "json")

# Badge colors by agent label; unknown labels cycle through the fallback palette.
AGENT_BADGE_COLORS: Dict[str, str] = {
    "101- Block 3 - Practice Session": "#2563eb",
    "101 - Block 5 - Practice Session": "#7c3aed",
    "101 - Block 9 - Practice Session": "#db2777",
    "101 - Block 12 - Practice (Workplace Sim)": "#ea580c",
    "103- Block 3 - Practice Session": "#059669",
    "103 - Block 5 - Practice Session": "#0891b2",
    "103 - Block 7 - Practice Session": "#ca8a04",
    "103 - Block 10 - Practice (Workplace Sim)": "#dc2626",
    "103-workplace-sim-nondiscrimination-testing": "#4f46e5",
}
FALLBACK_BADGE_COLORS: Tuple[str, ...] = ("#475569", "#0f766e", "#9333ea", "#b45309")
