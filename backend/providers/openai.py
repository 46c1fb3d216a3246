"""OpenAI-compatible chat completions provider.

Any service exposing ``/chat/completions`` and ``/models`` with Bearer
authentication works; point ``OPENAI_API_BASE`` at it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from .. import config
from .base import CompletionProvider, CompletionResult

LOGGER = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 10
# Options sent as top-level request fields; anything else is passed through as given.
_SAMPLING_OPTIONS = ("temperature", "max_tokens")


def _message_text(message: Dict[str, Any]) -> str:
    """Return the text of a chat message whose content is a string or a list of parts."""
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [
            part["text"]
            for part in content
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        ]
        return "".join(parts).strip()
    return ""


class OpenAIProvider(CompletionProvider):
    """Calls an OpenAI-compatible API with an API key."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.api_key = config.OPENAI_API_KEY if api_key is None else api_key
        self.base_url = (base_url or config.OPENAI_API_BASE).rstrip("/")
        self.timeout = config.LLM_TIMEOUT_SECONDS if timeout is None else timeout

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def unavailable_reason(self) -> Optional[str]:
        if not self.api_key:
            return "API key not configured (set OPENAI_API_KEY)"

        try:
            response = requests.get(
                f"{self.base_url}/models", headers=self.headers, timeout=PROBE_TIMEOUT_SECONDS
            )
        except requests.exceptions.Timeout:
            return "Service timeout (unreachable)"
        except requests.exceptions.ConnectionError:
            return "Connection failed (check OPENAI_API_BASE)"
        except requests.exceptions.RequestException as exc:
            return f"Service error: {exc}"

        if response.status_code == 401:
            return "Authentication failed (invalid API key)"
        if response.status_code != 200:
            return f"Service returned status {response.status_code}"
        return None

    def build_payload(
        self,
        model: str,
        prompt: str,
        system: Optional[str],
        options: Dict[str, Any],
    ) -> Dict[str, Any]:
        messages: List[Dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload: Dict[str, Any] = {"model": model, "messages": messages}
        for key in _SAMPLING_OPTIONS:
            if key in options:
                payload[key] = options[key]
        payload.update({key: value for key, value in options.items() if key not in _SAMPLING_OPTIONS})
        return payload

    def complete(
        self,
        model: str,
        prompt: str,
        system: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> CompletionResult:
        if not self.api_key:
            raise ValueError("OpenAI API key not configured (set OPENAI_API_KEY)")

        LOGGER.debug("Requesting completion from %s with model %s", self.base_url, model)
        response = requests.post(
            f"{self.base_url}/chat/completions",
            headers=self.headers,
            json=self.build_payload(model, prompt, system, options or {}),
            timeout=self.timeout,
        )
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            raise requests.exceptions.HTTPError(f"{exc} Response: {response.text.strip()}") from exc

        data = response.json()
        choice = (data.get("choices") or [{}])[0] or {}
        content = _message_text(choice.get("message") or {})
        finish_reason = choice.get("finish_reason")
        if not content:
            LOGGER.warning("Completion returned no text; finish_reason=%s", finish_reason)

        return CompletionResult(
            content=content,
            model=model,
            provider=self.name,
            metadata={
                "finish_reason": finish_reason,
                "usage": data.get("usage", {}),
                "model_used": data.get("model"),
            },
        )
