"""Request and response models for the HTTP API."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.models.athlete import AthleteSummary, OpportunityRecommendation
from app.models.llm import Message


class ChatRequest(BaseModel):
    """Request model for the streaming chat endpoint.

    ``message`` and ``athlete_user_id`` are checked by the endpoint itself so
    that a missing field is reported with a single 400 before any streaming
    begins.
    """

    message: str | None = None
    athlete_user_id: int | str | None = None
    conversation_history: list[Message] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    service: str
    timestamp: datetime
    version: str


class SessionCreateRequest(BaseModel):
    """Request model for opening a session."""

    athlete_user_id: int | str


class SessionResponse(BaseModel):
    """Response model for an opened session."""

    token: str
    athlete_user_id: str


class AthleteSearchResponse(BaseModel):
    """Response model for athlete name search."""

    athletes: list[AthleteSummary]


class OpportunitiesResponse(BaseModel):
    """Response model for recommended opportunities."""

    opportunities: list[OpportunityRecommendation]
    total: int
