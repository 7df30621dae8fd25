"""FastAPI dependencies wiring the conversation core to its collaborators."""

from fastapi import HTTPException, Request

from app.clients.anthropic import AnthropicClient
from app.clients.base import ModelProvider
from app.config import Settings, get_settings
from app.graphs.conversation import ConversationOrchestrator
from app.services.executor import ToolExecutor
from app.services.recruiting import RecruitingDataStore, get_data_store
from app.services.session_manager import InMemorySessionManager
from app.tools.registry import ToolsRegistry
from app.utils.logging import get_logger

logger = get_logger(__name__)

_session_manager: InMemorySessionManager | None = None


def get_session_manager() -> InMemorySessionManager:
    """Get or create session manager instance."""
    global _session_manager
    if _session_manager is None:
        _session_manager = InMemorySessionManager(get_settings().session_timeout_minutes)
    return _session_manager


def build_orchestrator(
    settings: Settings,
    data_store: RecruitingDataStore,
    provider: ModelProvider | None = None,
) -> ConversationOrchestrator:
    """Assemble an orchestrator from settings.

    Args:
        settings: Runtime configuration
        data_store: Recruiting data the tools operate on
        provider: Model provider (defaults to an Anthropic client built from settings)
    """
    registry = ToolsRegistry(data_store)
    executor = ToolExecutor(
        registry,
        tool_timeout_seconds=settings.tool_timeout_seconds,
        parallel=settings.parallel_tool_execution,
    )
    return ConversationOrchestrator(
        provider=provider or AnthropicClient(settings.anthropic_api_key, settings.anthropic_config()),
        registry=registry,
        executor=executor,
        max_tool_rounds=settings.max_tool_rounds,
        turn_timeout_seconds=settings.model_turn_timeout_seconds,
    )


def get_orchestrator(request: Request) -> ConversationOrchestrator:
    """Get the process-wide orchestrator, building it on first use."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        try:
            orchestrator = build_orchestrator(get_settings(), get_data_store())
        except ValueError as e:
            logger.error(f"Failed to configure conversation orchestrator: {e}")
            raise HTTPException(status_code=503, detail="Model provider is not configured") from e
        request.app.state.orchestrator = orchestrator
    return orchestrator
