"""Shared fixtures and a scripted model provider for the test suite."""

import json
from collections.abc import AsyncIterator
from datetime import date

import pytest

from app.models.llm import (
    BlockDelta,
    BlockStart,
    BlockStop,
    LLMToolDefinition,
    Message,
    ProviderEvent,
    TurnStop,
    TurnUsage,
)
from app.services.executor import ToolExecutor
from app.services.recruiting import InMemoryRecruitingDataStore
from app.tools.base import CallerContext
from app.tools.registry import ToolsRegistry

TODAY = date(2025, 3, 1)


class ScriptedProvider:
    """Model provider that replays one prepared event list per turn.

    An Exception placed in a script is raised at that point of the stream.
    """

    def __init__(self, turns: list[list[ProviderEvent | Exception]], max_message_chars: int = 2000):
        self.turns = list(turns)
        self.max_message_chars = max_message_chars
        self.calls: list[list[Message]] = []
        self.system_prompts: list[str] = []
        self.tools: list[list[LLMToolDefinition] | None] = []

    async def stream_message(
        self,
        messages: list[Message],
        system_prompt: str,
        tools: list[LLMToolDefinition] | None = None,
    ) -> AsyncIterator[ProviderEvent]:
        self.calls.append(list(messages))
        self.system_prompts.append(system_prompt)
        self.tools.append(tools)
        if not self.turns:
            raise AssertionError("Model was asked for more turns than were scripted")

        for event in self.turns.pop(0):
            if isinstance(event, Exception):
                raise event
            yield event

    def validate_message_tokens(self, message: str) -> None:
        if len(message) > self.max_message_chars:
            raise ValueError(f"Message exceeds token limit: {len(message)} > {self.max_message_chars}")


class Script:
    """Builders for the provider events of a single turn."""

    @staticmethod
    def text(*chunks: str, stop_reason: str = "end_turn") -> list[ProviderEvent]:
        return [
            TurnUsage(input_tokens=100),
            BlockStart(index=0, block_type="text"),
            *(BlockDelta(index=0, text=chunk) for chunk in chunks),
            BlockStop(index=0),
            TurnUsage(output_tokens=20),
            TurnStop(stop_reason=stop_reason),
        ]

    @staticmethod
    def tools(*calls: tuple[str, str, dict], text: str | None = None) -> list[ProviderEvent]:
        """A turn requesting ``calls`` given as (id, name, arguments), optionally after some text."""
        events: list[ProviderEvent] = [TurnUsage(input_tokens=100)]
        index = 0
        if text is not None:
            events += [BlockStart(index=0, block_type="text"), BlockDelta(index=0, text=text), BlockStop(index=0)]
            index = 1

        for tool_id, name, arguments in calls:
            raw = json.dumps(arguments)
            split = len(raw) // 2
            events += [
                BlockStart(index=index, block_type="tool_use", tool_id=tool_id, tool_name=name),
                BlockDelta(index=index, partial_json=raw[:split]),
                BlockDelta(index=index, partial_json=raw[split:]),
                BlockStop(index=index),
            ]
            index += 1

        events += [TurnUsage(output_tokens=30), TurnStop(stop_reason="tool_use")]
        return events


@pytest.fixture
def script():
    return Script


@pytest.fixture
def provider_factory():
    return ScriptedProvider


@pytest.fixture
def data_store():
    return InMemoryRecruitingDataStore(today=TODAY)


@pytest.fixture
def registry(data_store):
    return ToolsRegistry(data_store)


@pytest.fixture
def executor(registry):
    return ToolExecutor(registry, tool_timeout_seconds=5)


@pytest.fixture
def caller():
    return CallerContext(caller_id="12345", request_id="test-request")
