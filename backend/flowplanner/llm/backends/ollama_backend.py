from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import requests

from flowplanner.core.errors import CompletionError
from flowplanner.models.domain import ChatMessage

logger = logging.getLogger(__name__)


@dataclass
class OllamaCompletionBackend:
    """
    Completion backend using Ollama's chat API. Local models have no quota, so
    every failure surfaces as a plain CompletionError.
    """

    host: str
    model: str
    timeout: float = 30.0

    def complete(
        self,
        messages: Sequence[ChatMessage],
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> str:
        payload = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }
        try:
            resp = requests.post(
                f"{self.host.rstrip('/')}/api/chat", json=payload, timeout=self.timeout
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Ollama request failed: %s", exc)
            raise CompletionError("Local model request failed") from exc

        message = data.get("message") if isinstance(data, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if content is not None and not isinstance(content, str):
            raise CompletionError("Local model returned an invalid response")
        return content or ""
