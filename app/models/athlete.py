"""Athlete and recruiting opportunity data models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class AthleteMetrics(BaseModel):
    """Combine-style testing results."""

    forty_yard: float | None = None
    vertical: float | None = None
    shuttle: float | None = None
    powerball: float | None = None
    sparq_score: float | None = None


class Athlete(BaseModel):
    """Athlete business model."""

    user_id: int
    first_name: str
    last_name: str
    position: str
    graduation_year: int
    city: str
    state: str
    sport: str = "Football"
    height: str | None = None
    weight: int | None = None
    metrics: AthleteMetrics = Field(default_factory=AthleteMetrics)
    highlights_count: int = 0
    goals: str | None = None
    constraints: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class AthleteSummary(BaseModel):
    """Row returned by athlete name search."""

    user_id: int
    first_name: str
    last_name: str
    graduation_year: int
    city: str
    state: str
    position: str
    sport: str


class Opportunity(BaseModel):
    """A combine, camp, showcase or tryout."""

    id: str
    type: str
    name: str
    date: str
    location: str
    distance_miles: int
    cost: int
    positions: list[str]
    division_level: str
    expected_coaches: int
    description: str
    scholarship_available: bool = False


class OpportunityRecommendation(BaseModel):
    """An opportunity scored against an athlete's profile."""

    id: str
    type: str
    name: str
    date: str
    location: str
    distance_miles: int
    fit_score: int
    status: str = "recommended"


class ApplicationStatus(StrEnum):
    """Stages of an athlete's application to an opportunity."""

    INTERESTED = "interested"
    APPLIED = "applied"
    REGISTERED = "registered"
    ATTENDED = "attended"
    FOLLOWED_UP = "followed_up"


class ApplicationRecord(BaseModel):
    """A tracked application status for one athlete and opportunity."""

    opportunity_id: str
    athlete_user_id: str
    status: ApplicationStatus
    notes: str | None = None
    tracked_at: datetime


class RecentRecruit(BaseModel):
    """A player a program signed recently."""

    name: str
    position: str
    height: str
    forty: float
    year: int


class CoachInsights(BaseModel):
    """What a program looks for and how it prefers to be contacted."""

    recruiting_style: str
    recent_recruits: list[RecentRecruit]
    preferred_profile: str
    contact_preference: str
