from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ConversationEntry:
    """One question/response exchange as returned by the backend."""

    question: str = ""
    response: str = ""
    timestamp: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ConversationEntry":
        payload = payload or {}
        return cls(
            question=payload.get("question") or "",
            response=payload.get("response") or "",
            timestamp=payload.get("timestamp"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"question": self.question, "response": self.response, "timestamp": self.timestamp}


def _entries(payload: Dict[str, Any]) -> List[ConversationEntry]:
    return [ConversationEntry.from_dict(item) for item in payload.get("conversation_data") or []]


@dataclass(frozen=True)
class SessionMetricsRow:
    """Per-session metrics row shown on the metrics page."""

    session_id: str
    date: str
    agent: str
    conversation_count: int
    start_time: str
    end_time: str
    duration_seconds: int = 0
    conversation_data: List[ConversationEntry] = field(default_factory=list)
    try_count: Optional[str] = None
    score_summary: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SessionMetricsRow":
        payload = payload or {}
        return cls(
            session_id=str(payload.get("session_id", "")),
            date=str(payload.get("date", "")),
            agent=payload.get("agent") or "",
            conversation_count=int(payload.get("conversation_count", 0) or 0),
            start_time=str(payload.get("start_time", "")),
            end_time=str(payload.get("end_time", "")),
            duration_seconds=int(payload.get("duration_seconds", 0) or 0),
            conversation_data=_entries(payload),
            try_count=payload.get("try_count"),
            score_summary=payload.get("score_summary"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "date": self.date,
            "agent": self.agent,
            "conversation_count": self.conversation_count,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "conversation_data": [entry.to_dict() for entry in self.conversation_data],
            "try_count": self.try_count,
            "score_summary": self.score_summary,
        }


@dataclass(frozen=True)
class TrackingSession:
    """Raw session row with its agent label, used by the conversation tracking page."""

    session_id: str
    timestamp: str
    agent: str
    id: Optional[int] = None
    conversation_data: List[ConversationEntry] = field(default_factory=list)
    extras: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "TrackingSession":
        payload = payload or {}
        raw_id = payload.get("id")
        return cls(
            session_id=str(payload.get("session_id", "")),
            timestamp=str(payload.get("timestamp", "")),
            agent=payload.get("agent") or "Unknown",
            id=int(raw_id) if raw_id is not None else None,
            conversation_data=_entries(payload),
            extras=payload.get("extras") or {},
        )


@dataclass(frozen=True)
class TrackingPayload:
    """Tracking listing plus the agent filter options."""

    sessions: List[TrackingSession]
    agents: List[str]

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "TrackingPayload":
        payload = payload or {}
        return cls(
            sessions=[TrackingSession.from_dict(item) for item in payload.get("data") or []],
            agents=[str(agent) for agent in payload.get("agents") or []],
        )


@dataclass(frozen=True)
class Annotation:
    """LLM-derived try count and score summary; "null" marks a value not found."""

    try_count: str = "null"
    score_summary: str = "null"

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Annotation":
        payload = payload or {}
        return cls(
            try_count=str(payload.get("try_count") or "null"),
            score_summary=str(payload.get("score_summary") or "null"),
        )


@dataclass(frozen=True)
class ExportFile:
    """Downloaded export body with the server-chosen file name."""

    content: bytes
    filename: str
    media_type: str
