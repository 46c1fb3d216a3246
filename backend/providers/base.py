"""Interface the transcript annotator uses to reach a hosted completion model."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class CompletionResult:
    """Text returned by one completion call.

    Attributes:
        content: Reply text; empty when the model produced nothing.
        model: Model name that was requested.
        provider: Identifier of the provider that answered.
        metadata: Provider extras such as finish reason and token usage.
    """

    content: str
    model: str
    provider: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class CompletionProvider(ABC):
    """A chat-completion backend that can answer one prompt at a time."""

    name: str = "provider"

    @abstractmethod
    def unavailable_reason(self) -> Optional[str]:
        """Return why the provider cannot be used right now, or None when it can."""

    def is_available(self) -> bool:
        return self.unavailable_reason() is None

    @abstractmethod
    def complete(
        self,
        model: str,
        prompt: str,
        system: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> CompletionResult:
        """Send ``prompt`` (with an optional system instruction) and return the reply.

        Raises:
            ValueError: If the provider is not configured.
            requests.exceptions.RequestException: If the HTTP call fails.
        """
