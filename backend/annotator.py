"""LLM-backed try-count and score extraction for session transcripts.

The hosted model is asked for two lines, ``try_count: ...`` and
``score_summary: ...``. Nothing guarantees it honours that format, so the
reply is decoded best-effort: anything missing, and any failure to reach the
provider, becomes the ``"null"`` sentinel instead of an error.
"""

from __future__ import annotations

import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from .config import (
    ANNOTATION_MAX_TOKENS,
    ANNOTATION_MODEL,
    ANNOTATION_TEMPERATURE,
    ANNOTATION_WORKERS,
)
from .models import NOT_FOUND, Annotation, ConversationEntry, SessionMetrics
from .providers.base import CompletionProvider

LOGGER = logging.getLogger(__name__)

ANNOTATION_SYSTEM_PROMPT = (
    "For this conversation, help me deduce the following metrics or data.\n"
    "1. Extract how many number of tries the user had to reach a perfect response or their own "
    "satisfactory response or till end of conversation.\n"
    "2. Extract the scores the user scored in each try. For reference, the scores are on a 8 point "
    "or 16 point scale. Ensure to not process the actual prompt explaining the scoring rubric. "
    "For reference, the data to look for will be like \"Total Score:\" If Total Score is not "
    "available, return null.\n\n"
    "Provide the output in this exact format:\n"
    "try_count: [number of tries]\n"
    "score_summary: [scores for each try]\n\n"
    "Example output:\n"
    "try_count: 3\n"
    "score_summary: try 1, score 4/8; try 2, score 6/8; try 3, score 7/8\n\n"
    "If no tries or scores are available, return:\n"
    "try_count: 0\n"
    "score_summary: null"
)

TRY_COUNT_PATTERN = re.compile(r"try_count:\s*(\d+|null)")
SCORE_SUMMARY_PATTERN = re.compile(r"score_summary:[ \t]*(\S.*?)[ \t\r]*$", re.MULTILINE)

_PREVIEW_LIMIT = 512


def _preview(text: Optional[str]) -> str:
    """Return a truncated text preview for logging."""
    if text is None:
        return "<none>"
    if len(text) > _PREVIEW_LIMIT:
        return f"{text[:_PREVIEW_LIMIT]}…(truncated)"
    return text


def serialize_transcript(conversation_data: Sequence[ConversationEntry]) -> str:
    """Render a transcript as the JSON text sent to the model."""
    return json.dumps(
        [entry.model_dump(mode="json") for entry in conversation_data],
        indent=2,
        ensure_ascii=False,
    )


def parse_annotation(reply: Optional[str]) -> Annotation:
    """Decode a model reply into an Annotation, using ``"null"`` for anything not found.

    Args:
        reply: Raw text returned by the model.

    Returns:
        Annotation with the token after ``try_count:`` and the rest of the line
        after ``score_summary:``.
    """
    text = reply or ""
    try_match = TRY_COUNT_PATTERN.search(text)
    score_match = SCORE_SUMMARY_PATTERN.search(text)
    return Annotation(
        try_count=try_match.group(1) if try_match else NOT_FOUND,
        score_summary=score_match.group(1) if score_match else NOT_FOUND,
    )


class TranscriptAnnotator:
    """Asks the configured provider for a try count and score summary per transcript."""

    def __init__(
        self,
        provider: CompletionProvider,
        *,
        model: str = ANNOTATION_MODEL,
        temperature: float = ANNOTATION_TEMPERATURE,
        max_tokens: int = ANNOTATION_MAX_TOKENS,
        max_workers: int = ANNOTATION_WORKERS,
    ) -> None:
        self.provider = provider
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.max_workers = max(1, max_workers)

    def complete(self, prompt: str) -> str:
        """Send ``prompt`` under the annotation instruction and return the raw reply.

        Raises:
            Exception: Whatever the provider raises; callers decide how to surface it.
        """
        result = self.provider.complete(
            self.model,
            prompt,
            system=ANNOTATION_SYSTEM_PROMPT,
            options={"temperature": self.temperature, "max_tokens": self.max_tokens},
        )
        return result.content or ""

    def annotate(self, conversation_data: Sequence[ConversationEntry]) -> Annotation:
        """Return the try count and score summary for one transcript. Never raises."""
        if not conversation_data:
            LOGGER.debug("Skipping annotation for empty transcript")
            return Annotation()

        prompt = serialize_transcript(conversation_data)
        try:
            reply = self.complete(prompt)
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.warning(
                "Annotation via %s failed: %s | prompt=%s",
                self.provider.name,
                exc,
                _preview(prompt),
            )
            return Annotation()

        annotation = parse_annotation(reply)
        if annotation.try_count == NOT_FOUND and annotation.score_summary == NOT_FOUND:
            LOGGER.info("Model reply did not contain annotation fields | response=%s", _preview(reply))
        return annotation

    def annotate_many(self, sessions: Sequence[SessionMetrics]) -> List[SessionMetrics]:
        """Annotate each session independently and return annotated copies in input order."""
        if not sessions:
            return []

        workers = min(self.max_workers, len(sessions))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="annotate") as executor:
            annotations = list(
                executor.map(lambda session: self.annotate(session.conversation_data), sessions)
            )

        LOGGER.info("Annotated %d sessions with model %s", len(sessions), self.model)
        return [
            session.model_copy(
                update={
                    "try_count": annotation.try_count,
                    "score_summary": annotation.score_summary,
                }
            )
            for session, annotation in zip(sessions, annotations)
        ]
