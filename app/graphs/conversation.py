"""Main conversation graph implementation."""

from collections.abc import AsyncIterator
from contextlib import aclosing
from uuid import uuid4

from langgraph.graph import END, StateGraph

from app.clients.base import ModelProvider
from app.exceptions import ConversationFailedError, StreamDecodeError
from app.graphs.edges import route_agent_output
from app.graphs.nodes import create_agent_node, create_tools_node, finalize_node
from app.graphs.state import ConversationState
from app.models.events import LifecycleEvent
from app.models.llm import Message
from app.services.executor import ToolExecutor
from app.tools.registry import ToolsRegistry
from app.utils.logging import get_logger

logger = get_logger(__name__)


def create_conversation_graph(
    provider: ModelProvider,
    registry: ToolsRegistry,
    executor: ToolExecutor,
    turn_timeout_seconds: float | None = None,
):
    """Create the main conversation graph.

    This graph orchestrates one client request:
    - agent: submit history to the model and decode the streamed turn
    - tools: execute requested tool calls and append call and results to history
    - finalize: join the assistant text of all turns into the response

    Args:
        provider: Streaming model provider
        registry: Tools advertised to the model
        executor: Executor for requested tool calls
        turn_timeout_seconds: Limit for one model turn (None disables it)

    Returns:
        Compiled LangGraph workflow
    """
    logger.info("Creating conversation graph")

    workflow = StateGraph(ConversationState)

    workflow.add_node("agent", create_agent_node(provider, registry, turn_timeout_seconds))
    workflow.add_node("tools", create_tools_node(executor))
    workflow.add_node("finalize", finalize_node)

    workflow.set_entry_point("agent")

    workflow.add_conditional_edges(
        "agent",
        route_agent_output,
        {
            "tools": "tools",
            "finalize": "finalize",
        },
    )
    workflow.add_edge("tools", "agent")
    workflow.add_edge("finalize", END)

    compiled = workflow.compile()

    logger.info("Conversation graph created successfully")
    return compiled


def create_initial_state(
    message: str,
    caller_id: str,
    history: list[Message] | None = None,
    max_tool_rounds: int = 1,
    request_id: str | None = None,
) -> ConversationState:
    """Create initial conversation state.

    Args:
        message: User's message
        caller_id: Identity of the requesting athlete
        history: Prior messages supplied by the client
        max_tool_rounds: Tool rounds allowed before the run finalizes
        request_id: Identifier used in logs

    Returns:
        Initial ConversationState
    """
    return ConversationState(
        history=[*(history or []), Message(role="user", content=message)],
        caller_id=caller_id,
        request_id=request_id or uuid4().hex,
        max_tool_rounds=max_tool_rounds,
    )


class ConversationOrchestrator:
    """Drives the tool-calling conversation for one client request at a time.

    The model provider is injected so tests can substitute a scripted fake.
    Each ``run`` owns its own state; the orchestrator itself holds none.
    """

    def __init__(
        self,
        provider: ModelProvider,
        registry: ToolsRegistry,
        executor: ToolExecutor,
        max_tool_rounds: int = 1,
        turn_timeout_seconds: float | None = None,
    ):
        """Initialize the conversation orchestrator.

        Args:
            provider: Streaming model provider
            registry: Tools advertised to the model
            executor: Executor for requested tool calls
            max_tool_rounds: Tool rounds executed per request before finalizing
            turn_timeout_seconds: Limit for one model turn (None disables it)
        """
        if max_tool_rounds < 0:
            raise ValueError("max_tool_rounds cannot be negative")

        self.provider = provider
        self.max_tool_rounds = max_tool_rounds
        self.graph = create_conversation_graph(provider, registry, executor, turn_timeout_seconds)

    def validate_message(self, message: str) -> None:
        """Reject a message the provider could not accept.

        Raises:
            ValueError: If the message exceeds the provider's token limit
        """
        self.provider.validate_message_tokens(message)

    async def run(
        self,
        message: str,
        caller_id: str,
        history: list[Message] | None = None,
        request_id: str | None = None,
    ) -> AsyncIterator[LifecycleEvent]:
        """Run the conversation, yielding lifecycle notifications as they occur.

        The last notification of a successful run is ``complete``.

        Raises:
            ConversationFailedError: On provider, timeout or decode failures
        """
        initial_state = create_initial_state(message, caller_id, history, self.max_tool_rounds, request_id)
        logger.info(f"Processing message for request {initial_state.request_id}, caller {caller_id}")

        config = {
            # agent and tools alternate once per round, plus the last agent turn and finalize
            "recursion_limit": 2 * self.max_tool_rounds + 4,
        }

        try:
            stream = self.graph.astream(initial_state.model_dump(), config, stream_mode="custom")
            async with aclosing(stream):
                async for event in stream:
                    yield event
        except StreamDecodeError as e:
            logger.error(f"Request {initial_state.request_id} failed: {e}")
            raise ConversationFailedError(f"Could not decode the model response: {e}") from e
        except TimeoutError as e:
            logger.error(f"Request {initial_state.request_id} failed: model turn timed out")
            raise ConversationFailedError("The model took too long to respond. Please try again.") from e
        except Exception as e:
            logger.error(f"Request {initial_state.request_id} failed: {e}", exc_info=True)
            raise ConversationFailedError(str(e) or type(e).__name__) from e
