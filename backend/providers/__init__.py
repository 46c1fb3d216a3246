"""Completion providers used by the transcript annotator."""

from .base import CompletionProvider, CompletionResult
from .openai import OpenAIProvider

__all__ = ["CompletionProvider", "CompletionResult", "OpenAIProvider"]
