"""Pydantic models for the Session Metrics Dashboard backend."""

import datetime as dt
import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from .timeutils import clock_duration

NOT_FOUND = "null"


def _as_utc(value: Optional[dt.datetime]) -> Optional[dt.datetime]:
    """Treat naive database timestamps as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value


class ConversationEntry(BaseModel):
    """One question/response exchange inside a session transcript.

    Attributes:
        question: Text the user sent to the agent.
        response: Text the agent generated in reply.
        timestamp: When the exchange was recorded.
    """

    question: str = Field(default="", description="User question")
    response: str = Field(default="", description="Generated response")
    timestamp: Optional[dt.datetime] = Field(
        default=None, description="Timestamp when the exchange was recorded"
    )

    @field_validator("question", "response", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _blank_timestamp(cls, value: Any) -> Any:
        # Blank entry times fall back to the row timestamp downstream.
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return _as_utc(value)


class SessionRow(BaseModel):
    """Validated shape of one row read from a session table.

    Columns other than the ones declared here are kept in ``model_extra``.
    """

    model_config = ConfigDict(extra="allow")

    id: Optional[int] = Field(default=None, description="Sequence column, when the table has one")
    session_id: str = Field(..., description="Session identifier, unique within its table")
    timestamp: dt.datetime = Field(..., description="Timestamp when the session row was written")
    conversation_data: List[ConversationEntry] = Field(
        default_factory=list, description="Transcript in chronological order"
    )

    @field_validator("session_id", mode="before")
    @classmethod
    def _coerce_session_id(cls, value: Any) -> Any:
        if value is None:
            return value
        return str(value)

    @field_validator("conversation_data", mode="before")
    @classmethod
    def _decode_conversation(cls, value: Any) -> Any:
        # JSON columns arrive decoded from Postgres but as text from SQLite.
        if value is None:
            return []
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("utf-8")
        if isinstance(value, str):
            return json.loads(value) if value.strip() else []
        return value

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: dt.datetime) -> dt.datetime:
        return _as_utc(value)


class SessionMetrics(BaseModel):
    """Per-session metrics row shown on the metrics page.

    Attributes:
        session_id: Session identifier.
        date: Calendar date of the session row in the display timezone.
        agent: Label of the agent whose table the session came from.
        conversation_count: Number of exchanges in the transcript.
        start_time: Timestamp of the first exchange (or the row timestamp).
        end_time: Timestamp of the last exchange (or the row timestamp).
        conversation_data: Full transcript.
        try_count: LLM-derived number of attempts; ``"null"`` when not found.
        score_summary: LLM-derived per-attempt scores; ``"null"`` when not found.
    """

    session_id: str
    date: dt.date
    agent: str
    conversation_count: int
    start_time: dt.datetime
    end_time: dt.datetime
    conversation_data: List[ConversationEntry] = Field(default_factory=list)
    try_count: Optional[str] = Field(default=None, description="Absent until annotated")
    score_summary: Optional[str] = Field(default=None, description="Absent until annotated")

    @computed_field  # type: ignore[misc]
    @property
    def duration_seconds(self) -> int:
        """Clock-time span between start and end, ignoring the calendar date."""
        return int(clock_duration(self.start_time, self.end_time).total_seconds())


class TrackingSession(BaseModel):
    """Raw session row tagged with its agent, used by the conversation tracking view."""

    id: Optional[int] = None
    session_id: str
    timestamp: dt.datetime
    agent: str
    conversation_data: List[ConversationEntry] = Field(default_factory=list)
    extras: Dict[str, Any] = Field(
        default_factory=dict, description="Additional table columns passed through untouched"
    )


class Annotation(BaseModel):
    """Best-effort try count and score summary extracted from a transcript."""

    try_count: str = Field(default=NOT_FOUND)
    score_summary: str = Field(default=NOT_FOUND)


class MetricsResponse(BaseModel):
    """Payload returned by the metrics listing endpoint."""

    success: bool = True
    data: List[SessionMetrics] = Field(default_factory=list)


class TrackingResponse(BaseModel):
    """Payload returned by the tracking listing endpoint."""

    success: bool = True
    data: List[TrackingSession] = Field(default_factory=list)
    agents: List[str] = Field(default_factory=list, description="Available agent filter options")


class AnnotationRequest(BaseModel):
    """Transcript submitted for annotation."""

    conversation_data: List[ConversationEntry] = Field(default_factory=list)


class LLMRequest(BaseModel):
    """Free-form prompt sent through the annotation instruction."""

    prompt: str = Field(..., description="Serialized transcript or any text to analyse")


class LLMResponse(BaseModel):
    """Raw model reply for a free-form prompt."""

    success: bool = True
    response: str


class MetricsExportRequest(BaseModel):
    """Metrics rows exactly as displayed, to be serialised without re-querying."""

    data: List[SessionMetrics] = Field(default_factory=list)
