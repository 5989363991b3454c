from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Protocol, Sequence

from flowplanner.llm.backends.gateway_backend import GatewayCompletionBackend
from flowplanner.llm.backends.ollama_backend import OllamaCompletionBackend
from flowplanner.models.domain import ChatMessage

if TYPE_CHECKING:
    from flowplanner.core.config import Settings


class CompletionBackend(Protocol):
    def complete(
        self,
        messages: Sequence[ChatMessage],
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> str:
        ...


class LLMClient:
    """
    Thin wrapper over a pluggable text-completion backend. The rest of the
    application only ever sees prompts going in and text coming out; swapping
    providers means implementing CompletionBackend.complete.
    """

    def __init__(self, backend: CompletionBackend):
        self.backend = backend

    def complete(
        self,
        messages: Sequence[ChatMessage],
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> str:
        return self.backend.complete(
            messages, temperature=temperature, max_tokens=max_tokens
        )

    def complete_prompt(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 1024,
    ) -> str:
        messages: List[ChatMessage] = []
        if system:
            messages.append(ChatMessage(role="system", content=system))
        messages.append(ChatMessage(role="user", content=prompt))
        return self.complete(messages, temperature=temperature, max_tokens=max_tokens)


def build_llm_client(settings: Settings, required: bool = False) -> Optional[LLMClient]:
    """
    Returns None when no completion provider is configured, unless ``required``
    is set, in which case the missing credential is a ConfigurationError.
    """
    if settings.llm_provider.lower() == "ollama":
        return LLMClient(
            backend=OllamaCompletionBackend(
                host=settings.ollama_host,
                model=settings.ollama_model,
                timeout=settings.llm_timeout_seconds,
            )
        )
    if not settings.llm_configured:
        if required:
            settings.require_llm_api_key()
        return None
    return LLMClient(
        backend=GatewayCompletionBackend(
            api_key=settings.require_llm_api_key(),
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            timeout=settings.llm_timeout_seconds,
        )
    )
