"""Interface the orchestrator expects from a model provider."""

from collections.abc import AsyncIterator
from typing import Protocol

from app.models.llm import LLMToolDefinition, Message, ProviderEvent


class ModelProvider(Protocol):
    """A streaming chat model that can request tool calls."""

    def stream_message(
        self,
        messages: list[Message],
        system_prompt: str,
        tools: list[LLMToolDefinition] | None = None,
    ) -> AsyncIterator[ProviderEvent]:
        """Submit the conversation and stream back normalized block events."""
        ...

    def validate_message_tokens(self, message: str) -> None:
        """Raise ValueError if a single user message is too large to submit."""
        ...
