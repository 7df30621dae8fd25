"""Edge logic and routing for the conversation graph."""

from typing import Literal

from app.graphs.state import ConversationPhase, ConversationState
from app.utils.logging import get_logger

logger = get_logger(__name__)


def route_agent_output(state: ConversationState) -> Literal["tools", "finalize"]:
    """Route from agent node based on the phase it left the run in."""
    logger.debug(f"Routing from agent node. Phase: {state.phase}")

    if state.phase == ConversationPhase.TOOLS_PENDING:
        return "tools"
    return "finalize"
