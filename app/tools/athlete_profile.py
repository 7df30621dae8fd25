"""Athlete profile tool."""

from pydantic import BaseModel, Field

from app.models.athlete import Athlete
from app.services.recruiting import RecruitingDataStore
from app.tools.base import CallerContext, ToolDefinition, ToolName, ToolOutput


class GetAthleteProfileInput(BaseModel):
    """Input schema for the athlete profile tool."""

    user_id: int | None = Field(
        default=None,
        description="The athlete's GMTM user ID. Defaults to the athlete you are working for.",
        examples=[12345],
    )


class AthleteProfileOutput(ToolOutput):
    athlete: Athlete


def create_get_athlete_profile_tool(data_store: RecruitingDataStore) -> ToolDefinition:
    async def get_athlete_profile_handler(
        params: GetAthleteProfileInput, caller: CallerContext
    ) -> AthleteProfileOutput:
        user_id = params.user_id if params.user_id is not None else caller.caller_id

        athlete = await data_store.get_athlete(user_id)
        if athlete is None:
            raise LookupError(f"Athlete {user_id} not found")

        return AthleteProfileOutput(athlete=athlete)

    return ToolDefinition(
        name=ToolName.GET_ATHLETE_PROFILE,
        description=(
            "Get the athlete's full GMTM profile including metrics, position, location, "
            "graduation year, goals and constraints. Call this first when you need to "
            "personalize advice."
        ),
        input_schema_class=GetAthleteProfileInput,
        handler=get_athlete_profile_handler,
    )
