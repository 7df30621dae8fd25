"""Decoding of streamed provider events into finished model turns."""

import json
from collections.abc import AsyncIterable, Callable
from dataclasses import dataclass, field
from typing import Any, Literal

from app.exceptions import StreamDecodeError
from app.models.events import LifecycleEvent
from app.models.llm import (
    BlockDelta,
    BlockStart,
    BlockStop,
    DecodedTurn,
    LLMUsage,
    ProviderEvent,
    ToolCall,
    TurnStop,
    TurnUsage,
)
from app.utils.logging import get_logger

logger = get_logger(__name__)

EventSink = Callable[[LifecycleEvent], None]


@dataclass
class _OpenBlock:
    block_type: Literal["text", "tool_use"]
    tool_id: str | None = None
    tool_name: str | None = None
    initial_input: dict[str, Any] | None = None
    json_parts: list[str] = field(default_factory=list)


class StreamDecoder:
    """Reduces the block-start / block-delta / block-stop events of one turn.

    Text fragments are forwarded to ``on_event`` as they arrive. Tool argument
    fragments are buffered per block and only surface as a complete ToolCall
    once their block stops. A decoder instance handles exactly one turn.
    """

    def __init__(self, on_event: EventSink | None = None):
        self.on_event = on_event or (lambda event: None)
        self._open_blocks: dict[int, _OpenBlock] = {}
        self._text_parts: list[str] = []
        self._tool_calls: list[ToolCall] = []
        self._usage = LLMUsage()
        self._stop_reason: str | None = None

    async def decode(self, events: AsyncIterable[ProviderEvent]) -> DecodedTurn:
        """Consume the whole event stream and return the finished turn.

        Raises:
            StreamDecodeError: If the stream is malformed or ends inside a tool call block
        """
        async for event in events:
            self.feed(event)
        return self.finish()

    def feed(self, event: ProviderEvent) -> None:
        """Apply one provider event."""
        if isinstance(event, BlockStart):
            self._start_block(event)
        elif isinstance(event, BlockDelta):
            self._apply_delta(event)
        elif isinstance(event, BlockStop):
            self._stop_block(event)
        elif isinstance(event, TurnUsage):
            self._usage.add(event)
        elif isinstance(event, TurnStop):
            self._stop_reason = event.stop_reason
        else:
            logger.warning(f"Ignoring unknown provider event: {event!r}")

    def finish(self) -> DecodedTurn:
        """Close out the turn once the provider stream has ended."""
        unclosed_tools = [
            f"{block.tool_name} (block {index})"
            for index, block in self._open_blocks.items()
            if block.block_type == "tool_use"
        ]
        if unclosed_tools:
            raise StreamDecodeError(f"Stream ended inside tool call block: {', '.join(unclosed_tools)}")

        if self._open_blocks:
            logger.warning(f"Stream ended with {len(self._open_blocks)} unclosed text block(s)")
            self._open_blocks.clear()

        turn = DecodedTurn(
            text="".join(self._text_parts),
            tool_calls=list(self._tool_calls),
            stop_reason=self._stop_reason,
            usage=self._usage,
        )
        logger.debug(
            f"Decoded turn - Stop reason: {turn.stop_reason}, text chars: {len(turn.text)}, "
            f"tool calls: {len(turn.tool_calls)}"
        )
        return turn

    def _start_block(self, event: BlockStart) -> None:
        if event.index in self._open_blocks:
            raise StreamDecodeError(f"Block {event.index} opened twice")

        if event.block_type == "text":
            self._open_blocks[event.index] = _OpenBlock(block_type="text")
            self.on_event(LifecycleEvent.text_start())
            return

        if not event.tool_id or not event.tool_name:
            raise StreamDecodeError(f"Tool call block {event.index} is missing its id or name")

        self._open_blocks[event.index] = _OpenBlock(
            block_type="tool_use",
            tool_id=event.tool_id,
            tool_name=event.tool_name,
            initial_input=event.tool_input,
        )
        self.on_event(LifecycleEvent.tool_start(event.tool_name))

    def _apply_delta(self, event: BlockDelta) -> None:
        block = self._open_blocks.get(event.index)
        if block is None:
            raise StreamDecodeError(f"Delta for block {event.index}, which is not open")

        if block.block_type == "text":
            if event.partial_json is not None:
                raise StreamDecodeError(f"Tool argument fragment sent to text block {event.index}")
            if event.text:
                self._text_parts.append(event.text)
                self.on_event(LifecycleEvent.text_delta(event.text))
            return

        if event.text is not None:
            raise StreamDecodeError(f"Text fragment sent to tool call block {event.index}")
        if event.partial_json:
            block.json_parts.append(event.partial_json)

    def _stop_block(self, event: BlockStop) -> None:
        block = self._open_blocks.pop(event.index, None)
        if block is None:
            raise StreamDecodeError(f"Stop for block {event.index}, which is not open")

        if block.block_type == "text":
            return

        tool_call = ToolCall(
            id=block.tool_id or "",
            name=block.tool_name or "",
            input=self._parse_arguments(block),
        )
        self._tool_calls.append(tool_call)
        self.on_event(LifecycleEvent.tool_complete(tool_call.name))

    def _parse_arguments(self, block: _OpenBlock) -> dict[str, Any]:
        raw = "".join(block.json_parts)
        if not raw.strip():
            return dict(block.initial_input or {})

        try:
            arguments = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StreamDecodeError(f"Malformed arguments for tool call {block.tool_name}: {e}") from e

        if not isinstance(arguments, dict):
            raise StreamDecodeError(f"Arguments for tool call {block.tool_name} are not an object")
        return arguments
