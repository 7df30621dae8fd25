"""Node implementations for the conversation graph."""

import asyncio
from contextlib import aclosing
from typing import Any

from langgraph.config import get_stream_writer

from app.clients.base import ModelProvider
from app.graphs.prompts import get_system_prompt
from app.graphs.state import ConversationPhase, ConversationState
from app.models.events import LifecycleEvent
from app.models.llm import Message
from app.services.decoder import StreamDecoder
from app.services.executor import ToolExecutor
from app.tools.base import CallerContext
from app.tools.registry import ToolsRegistry
from app.utils.logging import get_logger

logger = get_logger(__name__)


def create_agent_node(provider: ModelProvider, registry: ToolsRegistry, turn_timeout_seconds: float | None):
    async def agent_node(state: ConversationState) -> dict[str, Any]:
        """Submit the history to the model and decode its streamed reply.

        Decoder notifications go straight to the LangGraph stream writer so the
        client sees text as the provider produces it.
        """
        turn_number = state.turns + 1
        logger.info(f"Agent turn {turn_number} for request {state.request_id} ({len(state.history)} messages)")

        writer = get_stream_writer()
        decoder = StreamDecoder(on_event=writer)

        events = provider.stream_message(
            messages=state.history,
            system_prompt=get_system_prompt(state.caller_id),
            tools=registry.get_tool_schemas(),
        )
        async with asyncio.timeout(turn_timeout_seconds), aclosing(events):
            turn = await decoder.decode(events)

        logger.info(
            f"Agent turn {turn_number} decoded - Stop reason: {turn.stop_reason}, "
            f"tool calls: {[call.name for call in turn.tool_calls]}"
        )

        phase = ConversationPhase.FINALIZING
        if turn.tool_calls:
            if state.tool_rounds < state.max_tool_rounds:
                phase = ConversationPhase.TOOLS_PENDING
            else:
                logger.warning(
                    f"Tool round limit ({state.max_tool_rounds}) reached for request {state.request_id}; "
                    f"not executing {len(turn.tool_calls)} tool call(s)"
                )

        return {
            "phase": phase,
            "turns": turn_number,
            "pending_tool_calls": turn.tool_calls,
            "last_text": turn.text,
            "response_parts": [turn.text] if turn.text else [],
            "usage": state.usage.merged(turn.usage),
        }

    return agent_node


def create_tools_node(executor: ToolExecutor):
    async def tools_node(state: ConversationState) -> dict[str, Any]:
        """Execute the pending tool calls and fold call and results into history."""
        writer = get_stream_writer()
        tool_calls = state.pending_tool_calls

        logger.info(f"Executing {len(tool_calls)} tool call(s) for request {state.request_id}")
        writer(LifecycleEvent.tools_executing(len(tool_calls)))

        caller = CallerContext(caller_id=state.caller_id, request_id=state.request_id)
        results = await executor.execute_all(tool_calls, caller)

        failed = sum(1 for result in results if result.is_error)
        if failed:
            logger.warning(f"{failed} of {len(results)} tool call(s) failed for request {state.request_id}")
        writer(LifecycleEvent.tools_complete(results))

        return {
            "phase": ConversationPhase.TOOLS_RESOLVED,
            "history": [
                Message(role="assistant", content=state.last_text, tool_calls=tool_calls),
                Message(role="user", tool_results=results),
            ],
            "pending_tool_calls": [],
            "tool_rounds": state.tool_rounds + 1,
            "tools_used": [call.name for call in tool_calls],
        }

    return tools_node


def finalize_node(state: ConversationState) -> dict[str, Any]:
    """Join the assistant text of every turn into the final response."""
    writer = get_stream_writer()
    response = "".join(state.response_parts)

    logger.info(
        f"Request {state.request_id} complete after {state.turns} turn(s) - tools used: {state.tools_used}, "
        f"tokens: {state.usage.total_tokens} ({state.usage.input_tokens} in, {state.usage.output_tokens} out), "
        f"cache hit rate: {state.usage.cache_hit_rate:.1f}%"
    )
    writer(LifecycleEvent.complete(response, state.tools_used))

    return {"phase": ConversationPhase.DONE, "response": response}
