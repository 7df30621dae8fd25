"""Opportunity search and fit analysis tools."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from app.models.athlete import Opportunity
from app.services.recruiting import AFFORDABLE_COST, NEARBY_MILES, RecruitingDataStore, score_fit
from app.tools.base import CallerContext, ToolDefinition, ToolName, ToolOutput, ensure_caller

DIVISION_LEVELS = {"D1", "D2", "D3", "NAIA", "JUCO", "ALL"}


class SearchOpportunitiesInput(BaseModel):
    """Input schema for opportunity search."""

    position: str = Field(
        ...,
        min_length=1,
        max_length=10,
        description="Position to filter by (e.g., WR, QB, RB)",
        examples=["WR", "QB"],
    )
    location: str | None = Field(default=None, description='State or region (e.g., "CA" or "West Coast")')
    max_distance_miles: float | None = Field(
        default=None, gt=0, description="Maximum distance from athlete's location"
    )
    date_range: str | None = Field(
        default=None,
        description='Time period (e.g., "next_30_days", "next_3_months")',
        examples=["next_30_days", "next_3_months"],
    )
    division_level: str | None = Field(default=None, description='D1, D2, D3, NAIA, JUCO, or "all"')

    @field_validator("division_level")
    @classmethod
    def validate_division_level(cls, v: str | None) -> str | None:
        """Validate division level."""
        if v is not None and v.upper() not in DIVISION_LEVELS:
            raise ValueError("Division level must be one of D1, D2, D3, NAIA, JUCO or all")
        return v


class SearchOpportunitiesOutput(ToolOutput):
    count: int
    opportunities: list[Opportunity]


class AnalyzeFitInput(BaseModel):
    """Input schema for fit analysis."""

    opportunity_id: str = Field(..., min_length=1, description="The opportunity/event ID to analyze")
    athlete_user_id: int = Field(..., description="The athlete's user ID")


class FitReasons(BaseModel):
    distance: str
    position: str
    cost: str


class FitAnalysisOutput(ToolOutput):
    fit_score: int | None = None
    fit_level: Literal["excellent", "good", "fair"] | None = None
    reasons: FitReasons | None = None
    recommendation: str | None = None


def fit_level(fit_score: int) -> Literal["excellent", "good", "fair"]:
    if fit_score >= 80:
        return "excellent"
    if fit_score >= 60:
        return "good"
    return "fair"


def create_search_opportunities_tool(data_store: RecruitingDataStore) -> ToolDefinition:
    async def search_opportunities_handler(
        params: SearchOpportunitiesInput, caller: CallerContext
    ) -> SearchOpportunitiesOutput:
        opportunities = await data_store.search_opportunities(
            position=params.position,
            location=params.location,
            max_distance_miles=params.max_distance_miles,
            date_range=params.date_range,
            division_level=params.division_level,
        )
        return SearchOpportunitiesOutput(count=len(opportunities), opportunities=opportunities)

    return ToolDefinition(
        name=ToolName.SEARCH_OPPORTUNITIES,
        description=(
            "Search for combines, showcases, camps, and tryouts that match the athlete's profile. "
            "Filter by position (required), location, maximum travel distance, a date window "
            "such as next_30_days, and division level."
        ),
        input_schema_class=SearchOpportunitiesInput,
        handler=search_opportunities_handler,
    )


def create_analyze_fit_tool(data_store: RecruitingDataStore) -> ToolDefinition:
    async def analyze_fit_handler(params: AnalyzeFitInput, caller: CallerContext) -> FitAnalysisOutput:
        ensure_caller(params.athlete_user_id, caller, "analyze fit")

        opportunity = await data_store.get_opportunity(params.opportunity_id)
        if opportunity is None:
            return FitAnalysisOutput(success=False, error="Opportunity not found")

        athlete = await data_store.get_athlete(params.athlete_user_id)
        if athlete is None:
            return FitAnalysisOutput(success=False, error="Athlete not found")

        fit_score = score_fit(athlete, opportunity)
        is_good_distance = opportunity.distance_miles < NEARBY_MILES
        matches_position = athlete.position in opportunity.positions
        affordable = opportunity.scholarship_available or opportunity.cost < AFFORDABLE_COST

        return FitAnalysisOutput(
            fit_score=fit_score,
            fit_level=fit_level(fit_score),
            reasons=FitReasons(
                distance="Within reasonable travel distance" if is_good_distance else "May require significant travel",
                position="Your position is featured" if matches_position else "Limited exposure for your position",
                cost="Affordable or scholarship available" if affordable else "Cost may be a barrier",
            ),
            recommendation="Strongly recommend applying" if fit_score >= 60 else "Consider if no better options",
        )

    return ToolDefinition(
        name=ToolName.ANALYZE_FIT,
        description=(
            "Analyze if an opportunity is a good fit for the athlete based on travel distance, "
            "whether their position is featured, and cost or scholarship availability."
        ),
        input_schema_class=AnalyzeFitInput,
        handler=analyze_fit_handler,
    )
