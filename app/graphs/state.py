"""State definitions for LangGraph conversation flow."""

import operator
from enum import StrEnum
from typing import Annotated

from pydantic import BaseModel, Field

from app.models.llm import LLMUsage, Message, ToolCall


class ConversationPhase(StrEnum):
    """Where a conversation run currently is.

    Decoding happens inside the agent node. A failed run has no phase; it ends
    with ConversationFailedError.
    """

    SUBMITTED = "submitted"
    TOOLS_PENDING = "tools_pending"
    TOOLS_RESOLVED = "tools_resolved"
    FINALIZING = "finalizing"
    DONE = "done"


class ConversationState(BaseModel):
    """Main conversation state for LangGraph.

    This state is passed through all nodes in the graph and holds everything
    one client request owns: history, the decoded turn awaiting tools, and
    the text accumulated for the final response.
    """

    # Core conversation data
    history: Annotated[list[Message], operator.add]
    caller_id: str
    request_id: str

    phase: ConversationPhase = ConversationPhase.SUBMITTED
    turns: int = 0

    # Tool execution tracking
    max_tool_rounds: int = 1
    tool_rounds: int = 0
    pending_tool_calls: list[ToolCall] = Field(default_factory=list)
    last_text: str = ""
    tools_used: Annotated[list[str], operator.add] = Field(default_factory=list)

    # Final response
    response_parts: Annotated[list[str], operator.add] = Field(default_factory=list)
    response: str | None = None

    # Token usage across every turn
    usage: LLMUsage = Field(default_factory=LLMUsage)
