"""Base types and definitions for tools."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel


class ToolName(StrEnum):
    """Every tool the recruiting agent can call."""

    GET_ATHLETE_PROFILE = "get_athlete_profile"
    SEARCH_OPPORTUNITIES = "search_opportunities"
    ANALYZE_FIT = "analyze_fit"
    DRAFT_EMAIL = "draft_email"
    TRACK_APPLICATION = "track_application"
    GET_COACH_INSIGHTS = "get_coach_insights"


@dataclass(frozen=True)
class CallerContext:
    """Identity of the athlete on whose behalf a tool runs."""

    caller_id: str
    request_id: str | None = None


ToolHandler = Callable[[Any, CallerContext], Awaitable[Any]]


@dataclass
class ToolDefinition:
    """Definition of a tool available to the AI assistant."""

    name: ToolName
    description: str
    input_schema_class: type[BaseModel]
    handler: ToolHandler

    def get_json_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        return self.input_schema_class.model_json_schema()

    def parse_input(self, raw_input: dict[str, Any]) -> BaseModel:
        """Parse and validate tool input."""
        return self.input_schema_class.model_validate(raw_input)


class ToolOutput(BaseModel):
    """Common shape of tool return values."""

    success: bool = True
    error: str | None = None


def ensure_caller(athlete_user_id: int | str, caller: CallerContext, action: str) -> None:
    """Raise PermissionError unless ``athlete_user_id`` is the athlete being served."""
    if str(athlete_user_id) != caller.caller_id:
        raise PermissionError(f"Cannot {action} for another athlete")
