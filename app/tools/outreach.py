"""Coach outreach tools: email drafting and program insights."""

from pydantic import BaseModel, Field

from app.models.athlete import CoachInsights
from app.services.recruiting import RecruitingDataStore
from app.tools.base import CallerContext, ToolDefinition, ToolName, ToolOutput, ensure_caller


class DraftEmailInput(BaseModel):
    """Input schema for drafting a coach email."""

    recipient_name: str = Field(..., min_length=1, max_length=100, description="Coach or recruiter name")
    school: str = Field(..., min_length=1, max_length=100, description="School or organization name")
    athlete_user_id: int = Field(..., description="The athlete's user ID for personalization")
    context: str = Field(
        ...,
        min_length=1,
        description='Why reaching out (e.g., "expressing interest", "following up on camp")',
    )


class EmailDraft(BaseModel):
    subject: str
    body: str


class DraftEmailOutput(ToolOutput):
    email: EmailDraft


class CoachInsightsInput(BaseModel):
    """Input schema for coach insights."""

    school: str = Field(..., min_length=1, max_length=100, description="School name")
    position: str | None = Field(default=None, description='Position to research (e.g., "WR")')


class CoachInsightsOutput(ToolOutput):
    school: str
    position: str | None = None
    insights: CoachInsights


def create_draft_email_tool(data_store: RecruitingDataStore) -> ToolDefinition:
    async def draft_email_handler(params: DraftEmailInput, caller: CallerContext) -> DraftEmailOutput:
        ensure_caller(params.athlete_user_id, caller, "draft emails")

        athlete = await data_store.get_athlete(params.athlete_user_id)
        if athlete is None:
            raise LookupError(f"Athlete {params.athlete_user_id} not found")

        metrics = athlete.metrics
        metric_lines = []
        if metrics.forty_yard is not None:
            metric_lines.append(f"- 40-yard dash: {metrics.forty_yard}s")
        if metrics.vertical is not None:
            metric_lines.append(f'- Vertical jump: {metrics.vertical}"')
        if metrics.sparq_score is not None:
            metric_lines.append(f"- SPARQ Score: {metrics.sparq_score}")

        body = (
            f"Dear Coach {params.recipient_name},\n\n"
            f"My name is {athlete.full_name}, and I'm a {athlete.position} from {athlete.city}, "
            f"{athlete.state} graduating in {athlete.graduation_year}.\n\n"
            f"I'm reaching out because {params.context}.\n\n"
            "Here are my current metrics:\n"
            + "\n".join(metric_lines)
            + f"\n\nI would love the opportunity to compete at {params.school}. You can view my full "
            "profile and highlight film at: [GMTM Profile Link]\n\n"
            "Thank you for your time and consideration.\n\n"
            f"Best regards,\n{athlete.full_name}\nEmail: [athlete email]\nPhone: [athlete phone]"
        )

        return DraftEmailOutput(
            email=EmailDraft(
                subject=f"{athlete.full_name} - {athlete.position} Class of {athlete.graduation_year}",
                body=body,
            )
        )

    return ToolDefinition(
        name=ToolName.DRAFT_EMAIL,
        description=(
            "Draft a personalized outreach email to a coach or recruiter, including the "
            "athlete's position, graduation year and key metrics."
        ),
        input_schema_class=DraftEmailInput,
        handler=draft_email_handler,
    )


def create_get_coach_insights_tool(data_store: RecruitingDataStore) -> ToolDefinition:
    async def get_coach_insights_handler(params: CoachInsightsInput, caller: CallerContext) -> CoachInsightsOutput:
        insights = await data_store.get_coach_insights(params.school, params.position)
        return CoachInsightsOutput(school=params.school, position=params.position, insights=insights)

    return ToolDefinition(
        name=ToolName.GET_COACH_INSIGHTS,
        description="Get information about a coach or program's recruiting history and preferences",
        input_schema_class=CoachInsightsInput,
        handler=get_coach_insights_handler,
    )
