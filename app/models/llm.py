"""LLM-related data models and types (provider-agnostic)."""

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator


# Content block types
class TextBlock(BaseModel):
    """Text content block."""

    type: Literal["text"] = "text"
    text: str

    class Config:
        extra = "ignore"  # Ignore any additional fields from Anthropic


class ToolUseBlock(BaseModel):
    """Tool use content block."""

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any]

    class Config:
        extra = "ignore"  # Ignore any additional fields from Anthropic


class ToolResultBlock(BaseModel):
    """Tool result content block."""

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False

    class Config:
        extra = "ignore"  # Ignore any additional fields from Anthropic


ContentBlock = TextBlock | ToolUseBlock | ToolResultBlock


class LLMToolDefinition(BaseModel):
    """Complete tool definition for LLM."""

    name: str
    description: str
    input_schema: dict[str, Any]


class ToolCall(BaseModel):
    """A fully decoded tool call requested by the model."""

    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)

    def to_block(self) -> ToolUseBlock:
        return ToolUseBlock(id=self.id, name=self.name, input=self.input)


class ToolResult(BaseModel):
    """Outcome of executing one tool call."""

    tool_use_id: str
    content: str
    is_error: bool = False

    def to_block(self) -> ToolResultBlock:
        return ToolResultBlock(tool_use_id=self.tool_use_id, content=self.content, is_error=self.is_error)


class Message(BaseModel):
    """One turn of conversation history.

    Assistant messages may carry the tool calls the model made; the synthetic
    user message that follows carries their results back to the model.
    """

    role: Literal["user", "assistant"]
    content: str | list[ContentBlock] = ""
    tool_calls: list[ToolCall] | None = None
    tool_results: list[ToolResult] | None = None

    @model_validator(mode="after")
    def check_tool_roles(self) -> "Message":
        """Tool calls come from the assistant, tool results go back as the user."""
        if self.tool_calls and self.role != "assistant":
            raise ValueError("tool_calls are only allowed on assistant messages")
        if self.tool_results and self.role != "user":
            raise ValueError("tool_results are only allowed on user messages")
        if isinstance(self.content, list):
            if self.role == "assistant" and any(isinstance(block, ToolResultBlock) for block in self.content):
                raise ValueError("tool_result blocks are only allowed on user messages")
            if self.role == "user" and any(isinstance(block, ToolUseBlock) for block in self.content):
                raise ValueError("tool_use blocks are only allowed on assistant messages")
        return self

    @property
    def text(self) -> str:
        """Plain text of this message, ignoring tool blocks."""
        if isinstance(self.content, str):
            return self.content
        return "".join(block.text for block in self.content if isinstance(block, TextBlock))

    def to_provider_content(self) -> str | list[ContentBlock]:
        """Content in the shape the model provider expects."""
        if self.tool_results:
            return [result.to_block() for result in self.tool_results]

        if self.tool_calls:
            blocks: list[ContentBlock] = []
            if self.text:
                blocks.append(TextBlock(text=self.text))
            blocks.extend(call.to_block() for call in self.tool_calls)
            return blocks

        return self.content


# Normalized provider stream events
@dataclass(frozen=True)
class BlockStart:
    """A content block was opened at ``index``."""

    index: int
    block_type: Literal["text", "tool_use"]
    tool_id: str | None = None
    tool_name: str | None = None
    tool_input: dict[str, Any] | None = None


@dataclass(frozen=True)
class BlockDelta:
    """An incremental fragment for the block at ``index``."""

    index: int
    text: str | None = None
    partial_json: str | None = None


@dataclass(frozen=True)
class BlockStop:
    """The block at ``index`` was closed."""

    index: int


@dataclass(frozen=True)
class TurnUsage:
    """Token accounting reported by the provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0


@dataclass(frozen=True)
class TurnStop:
    """The provider reported why the turn ended."""

    stop_reason: str | None


ProviderEvent = BlockStart | BlockDelta | BlockStop | TurnUsage | TurnStop


@dataclass
class LLMUsage:
    """Token/resource usage information from LLM provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    def add(self, usage: TurnUsage) -> None:
        """Accumulate usage reported by one provider event."""
        self.input_tokens += usage.input_tokens
        self.output_tokens += usage.output_tokens
        self.total_tokens += usage.input_tokens + usage.output_tokens
        self.cache_creation_input_tokens += usage.cache_creation_input_tokens
        self.cache_read_input_tokens += usage.cache_read_input_tokens

    def merged(self, other: "LLMUsage") -> "LLMUsage":
        """Return the sum of this usage and ``other``."""
        return LLMUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
            cache_creation_input_tokens=self.cache_creation_input_tokens + other.cache_creation_input_tokens,
            cache_read_input_tokens=self.cache_read_input_tokens + other.cache_read_input_tokens,
        )

    @property
    def cache_hit_rate(self) -> float:
        """Calculate cache hit rate as percentage."""
        total_input = self.input_tokens + self.cache_read_input_tokens + self.cache_creation_input_tokens
        if total_input == 0:
            return 0.0
        return (self.cache_read_input_tokens / total_input) * 100


@dataclass
class DecodedTurn:
    """A finished model turn: the assistant text and any tool calls."""

    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    stop_reason: str | None = None
    usage: LLMUsage = field(default_factory=LLMUsage)
