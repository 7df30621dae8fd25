"""API endpoints for the recruiting agent service."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response
from sse_starlette.sse import EventSourceResponse

from app import __version__
from app.api.dependencies import get_orchestrator, get_session_manager
from app.config import Settings, get_settings
from app.graphs.conversation import ConversationOrchestrator
from app.models.athlete import Athlete
from app.models.conversation import (
    AthleteSearchResponse,
    ChatRequest,
    HealthResponse,
    OpportunitiesResponse,
    SessionCreateRequest,
    SessionResponse,
)
from app.services.recruiting import RecruitingDataStore, get_data_store
from app.services.relay import EventRelay
from app.services.session_manager import InMemorySessionManager
from app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

SERVICE_NAME = "sparq-recruiting-agent"
MISSING_FIELDS_DETAIL = "Missing required fields: message, athlete_user_id"


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def resolve_caller(
    body: ChatRequest,
    authorization: str | None,
    session_manager: InMemorySessionManager,
) -> str:
    """Determine which athlete a chat request acts for.

    A bearer token, when presented, takes precedence over the body's
    ``athlete_user_id``; a body ID that disagrees with the session is rejected.

    Raises:
        HTTPException: 401 for an invalid or expired token, 403 for a mismatched ID,
            400 when neither identifies the caller
    """
    body_user_id = str(body.athlete_user_id) if body.athlete_user_id not in (None, "") else None

    if authorization:
        caller_id = session_manager.validate(_bearer_token(authorization))
        if caller_id is None:
            logger.warning("Rejected chat request with invalid or expired session token")
            raise HTTPException(status_code=401, detail="Invalid or expired session")
        if body_user_id is not None and body_user_id != caller_id:
            logger.warning(f"Session for athlete {caller_id} used to act for athlete {body_user_id}")
            raise HTTPException(status_code=403, detail="Session does not belong to this athlete")
        return caller_id

    if body_user_id is None:
        raise HTTPException(status_code=400, detail=MISSING_FIELDS_DETAIL)
    return body_user_id


async def chat_request(body: ChatRequest, settings: Settings = Depends(get_settings)) -> ChatRequest:
    """Reject a chat request whose message is missing or too long."""
    if not body.message or not body.message.strip():
        raise HTTPException(status_code=400, detail=MISSING_FIELDS_DETAIL)

    if len(body.message) > settings.max_message_chars:
        logger.warning(f"Chat message exceeds {settings.max_message_chars} characters")
        raise HTTPException(
            status_code=400,
            detail=f"Message is too long. Please keep it under {settings.max_message_chars} characters.",
        )
    return body


async def chat_caller(
    body: ChatRequest = Depends(chat_request),
    authorization: str | None = Header(default=None),
    session_manager: InMemorySessionManager = Depends(get_session_manager),
) -> str:
    return resolve_caller(body, authorization, session_manager)


# Field and caller checks are declared ahead of the orchestrator so they fail first
@router.post("/api/chat", tags=["Conversation"])
async def chat(
    request: Request,
    body: ChatRequest = Depends(chat_request),
    caller_id: str = Depends(chat_caller),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> EventSourceResponse:
    """Stream the agent's reply to a message as server-sent events.

    Every rejection happens before the stream opens, so a rejected request
    gets a plain JSON error and never a partial stream.
    """
    try:
        orchestrator.validate_message(body.message)
    except ValueError as e:
        logger.warning(f"Message validation error for athlete {caller_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e

    logger.info(f"Streaming chat for athlete {caller_id}: {body.message[:50]}...")
    relay = EventRelay(orchestrator)
    return EventSourceResponse(
        relay.stream(
            body.message,
            caller_id,
            body.conversation_history,
            is_disconnected=request.is_disconnected,
        )
    )


@router.post("/api/sessions", response_model=SessionResponse, status_code=201, tags=["Sessions"])
async def create_session(
    body: SessionCreateRequest,
    session_manager: InMemorySessionManager = Depends(get_session_manager),
    data_store: RecruitingDataStore = Depends(get_data_store),
) -> SessionResponse:
    """Open a session for a known athlete."""
    athlete = await data_store.get_athlete(body.athlete_user_id)
    if athlete is None:
        raise HTTPException(status_code=404, detail=f"Athlete {body.athlete_user_id} not found")

    session = session_manager.create_session(athlete.user_id)
    return SessionResponse(token=session.token, athlete_user_id=session.athlete_user_id)


@router.delete("/api/sessions/{token}", status_code=204, tags=["Sessions"])
async def delete_session(
    token: str,
    session_manager: InMemorySessionManager = Depends(get_session_manager),
) -> Response:
    """Close a session."""
    if not session_manager.delete_session(token):
        raise HTTPException(status_code=404, detail="Session not found")
    return Response(status_code=204)


@router.get("/api/athlete/search", response_model=AthleteSearchResponse, tags=["Athletes"])
async def search_athletes(
    q: str = Query(default=""),
    data_store: RecruitingDataStore = Depends(get_data_store),
) -> AthleteSearchResponse:
    """Search athletes by name."""
    return AthleteSearchResponse(athletes=await data_store.search_athletes(q))


@router.get("/api/athlete/{user_id}", response_model=Athlete, tags=["Athletes"])
async def get_athlete(
    user_id: int,
    data_store: RecruitingDataStore = Depends(get_data_store),
) -> Athlete:
    """Get an athlete's profile."""
    athlete = await data_store.get_athlete(user_id)
    if athlete is None:
        raise HTTPException(status_code=404, detail=f"Athlete {user_id} not found")
    return athlete


@router.get("/api/opportunities/{user_id}", response_model=OpportunitiesResponse, tags=["Athletes"])
async def get_opportunities(
    user_id: int,
    limit: int = Query(default=10, ge=1, le=50),
    data_store: RecruitingDataStore = Depends(get_data_store),
) -> OpportunitiesResponse:
    """Get opportunities ranked by fit for an athlete."""
    if await data_store.get_athlete(user_id) is None:
        raise HTTPException(status_code=404, detail=f"Athlete {user_id} not found")

    opportunities = await data_store.recommend_opportunities(user_id, limit=limit)
    return OpportunitiesResponse(opportunities=opportunities, total=len(opportunities))


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        service=SERVICE_NAME,
        timestamp=datetime.now(UTC),
        version=__version__,
    )
