"""Relay of conversation progress to clients as server-sent events."""

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import aclosing

from app.exceptions import ConversationFailedError
from app.graphs.conversation import ConversationOrchestrator
from app.models.events import LifecycleEvent, LifecycleKind, StreamEvent, StreamEventType
from app.models.llm import Message
from app.utils.logging import get_logger

logger = get_logger(__name__)

START_MESSAGE = "Agent thinking..."

# text_start has no wire counterpart
WIRE_EVENT_TYPES: dict[LifecycleKind, StreamEventType] = {
    LifecycleKind.TEXT_DELTA: StreamEventType.TEXT,
    LifecycleKind.TOOL_START: StreamEventType.TOOL_START,
    LifecycleKind.TOOL_COMPLETE: StreamEventType.TOOL_COMPLETE,
    LifecycleKind.TOOLS_EXECUTING: StreamEventType.TOOLS_EXECUTING,
    LifecycleKind.TOOLS_COMPLETE: StreamEventType.TOOLS_COMPLETE,
    LifecycleKind.COMPLETE: StreamEventType.COMPLETE,
}


def to_stream_event(event: LifecycleEvent) -> StreamEvent | None:
    """Map a lifecycle notification onto its wire event, if it has one."""
    event_type = WIRE_EVENT_TYPES.get(event.kind)
    if event_type is None:
        return None
    return StreamEvent(type=event_type, data=event.data)


class EventRelay:
    """Streams one orchestrator run to a client.

    Emits ``start`` first, then every mapped notification as it happens, and
    ends with exactly one of ``complete`` or ``error``.
    """

    def __init__(self, orchestrator: ConversationOrchestrator):
        self.orchestrator = orchestrator

    async def stream(
        self,
        message: str,
        caller_id: str,
        history: list[Message] | None = None,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> AsyncIterator[dict[str, str]]:
        """Yield SSE-ready events for one conversation run.

        Args:
            message: The user's new message
            caller_id: Validated identity of the requesting athlete
            history: Prior messages supplied by the client
            is_disconnected: Checked before each event; relaying stops once it returns True
        """
        yield StreamEvent(type=StreamEventType.START, data={"message": START_MESSAGE}).to_sse()

        try:
            async with aclosing(self.orchestrator.run(message, caller_id, history)) as events:
                async for event in events:
                    if is_disconnected is not None and await is_disconnected():
                        logger.info(f"Client for caller {caller_id} disconnected, stopping relay")
                        return

                    stream_event = to_stream_event(event)
                    if stream_event is not None:
                        yield stream_event.to_sse()
        except ConversationFailedError as e:
            logger.warning(f"Conversation for caller {caller_id} failed: {e.message}")
            yield StreamEvent(type=StreamEventType.ERROR, data={"message": e.message}).to_sse()
