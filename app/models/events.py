"""Lifecycle notifications and the wire events relayed to clients."""

import json
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel

from app.models.llm import ToolResult


class LifecycleKind(StrEnum):
    """Notifications raised by the decoder and the orchestrator."""

    TEXT_START = "text_start"
    TEXT_DELTA = "text_delta"
    TOOL_START = "tool_start"
    TOOL_COMPLETE = "tool_complete"
    TOOLS_EXECUTING = "tools_executing"
    TOOLS_COMPLETE = "tools_complete"
    COMPLETE = "complete"


@dataclass(frozen=True)
class LifecycleEvent:
    """An internal progress notification for one conversation run."""

    kind: LifecycleKind
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def text_start(cls) -> "LifecycleEvent":
        return cls(LifecycleKind.TEXT_START)

    @classmethod
    def text_delta(cls, text: str) -> "LifecycleEvent":
        return cls(LifecycleKind.TEXT_DELTA, {"text": text})

    @classmethod
    def tool_start(cls, tool: str) -> "LifecycleEvent":
        return cls(LifecycleKind.TOOL_START, {"tool": tool})

    @classmethod
    def tool_complete(cls, tool: str) -> "LifecycleEvent":
        return cls(LifecycleKind.TOOL_COMPLETE, {"tool": tool})

    @classmethod
    def tools_executing(cls, count: int) -> "LifecycleEvent":
        return cls(LifecycleKind.TOOLS_EXECUTING, {"count": count})

    @classmethod
    def tools_complete(cls, results: list[ToolResult]) -> "LifecycleEvent":
        return cls(LifecycleKind.TOOLS_COMPLETE, {"results": [result.model_dump() for result in results]})

    @classmethod
    def complete(cls, response: str, tools_used: list[str]) -> "LifecycleEvent":
        return cls(LifecycleKind.COMPLETE, {"response": response, "tools_used": tools_used})


class StreamEventType(StrEnum):
    """Event types sent to the client over the streaming channel."""

    START = "start"
    TEXT = "text"
    TOOL_START = "tool_start"
    TOOL_COMPLETE = "tool_complete"
    TOOLS_EXECUTING = "tools_executing"
    TOOLS_COMPLETE = "tools_complete"
    COMPLETE = "complete"
    ERROR = "error"


class StreamEvent(BaseModel):
    """One server-sent event."""

    type: StreamEventType
    data: dict[str, Any]

    def to_sse(self) -> dict[str, str]:
        """Render as the dict accepted by ``EventSourceResponse``."""
        return {"event": self.type.value, "data": json.dumps(self.data)}
