"""Application tracking tool."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from app.models.athlete import ApplicationRecord, ApplicationStatus
from app.services.recruiting import RecruitingDataStore
from app.tools.base import CallerContext, ToolDefinition, ToolName, ToolOutput, ensure_caller


class TrackApplicationInput(BaseModel):
    """Input schema for application tracking."""

    opportunity_id: str = Field(..., min_length=1, description="The opportunity/event ID")
    athlete_user_id: int = Field(..., description="The athlete's user ID")
    status: ApplicationStatus = Field(
        ...,
        description='Status: "interested", "applied", "registered", "attended", "followed_up"',
    )
    notes: str | None = Field(default=None, max_length=1000, description="Any notes about this application")


class TrackApplicationOutput(ToolOutput):
    tracked: ApplicationRecord
    applications: list[ApplicationRecord] = Field(default_factory=list)


def create_track_application_tool(data_store: RecruitingDataStore) -> ToolDefinition:
    async def track_application_handler(
        params: TrackApplicationInput, caller: CallerContext
    ) -> TrackApplicationOutput:
        ensure_caller(params.athlete_user_id, caller, "track applications")

        if await data_store.get_opportunity(params.opportunity_id) is None:
            raise LookupError(f"Opportunity {params.opportunity_id} not found")

        record = await data_store.record_application(
            ApplicationRecord(
                opportunity_id=params.opportunity_id,
                athlete_user_id=caller.caller_id,
                status=params.status,
                notes=params.notes,
                tracked_at=datetime.now(UTC),
            )
        )
        applications = await data_store.get_applications(caller.caller_id)
        return TrackApplicationOutput(tracked=record, applications=applications)

    return ToolDefinition(
        name=ToolName.TRACK_APPLICATION,
        description=(
            "Track an application or registration for an opportunity. Records the athlete's "
            "current status so follow-ups can be suggested later."
        ),
        input_schema_class=TrackApplicationInput,
        handler=track_application_handler,
    )
