from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence

import requests

from flowplanner.core.errors import (
    CompletionError,
    QuotaExhaustedError,
    RateLimitedError,
)
from flowplanner.models.domain import ChatMessage

logger = logging.getLogger(__name__)


def _serialize_messages(messages: Sequence[ChatMessage]) -> List[dict]:
    return [{"role": m.role, "content": m.content} for m in messages]


@dataclass
class GatewayCompletionBackend:
    """
    Completion backend for an OpenAI-compatible ``/chat/completions`` gateway.
    HTTP 429 and 402 are raised as distinct errors so callers can tell a
    throttled request from an exhausted quota.
    """

    api_key: str
    base_url: str
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
            "messages": _serialize_messages(messages),
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            resp = requests.post(
                f"{self.base_url.rstrip('/')}/chat/completions",
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Completion request failed: %s", exc)
            raise CompletionError("AI gateway unreachable") from exc

        if resp.status_code == 429:
            raise RateLimitedError("Rate limit exceeded. Please try again in a moment.")
        if resp.status_code == 402:
            raise QuotaExhaustedError("AI credits exhausted. Please add credits to continue.")
        if not resp.ok:
            logger.error("AI gateway error: %s %s", resp.status_code, resp.text[:500])
            raise CompletionError(f"AI gateway error: {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            logger.error("AI gateway returned a non-JSON body")
            raise CompletionError("AI gateway returned an invalid response") from exc

        if not isinstance(data, dict):
            raise CompletionError("AI gateway returned an invalid response")
        choices = data.get("choices") or []
        if not choices:
            return ""
        if not isinstance(choices, list) or not isinstance(choices[0], dict):
            raise CompletionError("AI gateway returned an invalid response")
        message = choices[0].get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if content is None:
            return ""
        if not isinstance(content, str):
            logger.error("AI gateway returned non-text content: %s", type(content).__name__)
            raise CompletionError("AI gateway returned an invalid response")
        return content
