"""Recruiting data service interface and implementations."""

import re
from datetime import UTC, date, datetime, timedelta
from typing import Protocol

from app.models.athlete import (
    ApplicationRecord,
    Athlete,
    AthleteMetrics,
    AthleteSummary,
    CoachInsights,
    Opportunity,
    OpportunityRecommendation,
    RecentRecruit,
)
from app.utils.logging import get_logger

logger = get_logger(__name__)

NEARBY_MILES = 150
AFFORDABLE_COST = 150
MAX_SEARCH_RESULTS = 20

_DATE_RANGE_PATTERN = re.compile(r"^next_(\d+)_(day|week|month)s?$")


class RecruitingDataStore(Protocol):
    """Interface for the athlete and opportunity data tools read from."""

    async def get_athlete(self, user_id: int | str) -> Athlete | None:
        """Get an athlete's full profile.

        Args:
            user_id: The athlete's GMTM user ID

        Returns:
            The athlete, or None if unknown
        """
        ...

    async def search_athletes(self, query: str) -> list[AthleteSummary]:
        """Find athletes whose full or last name contains ``query``."""
        ...

    async def get_opportunity(self, opportunity_id: str) -> Opportunity | None:
        """Get an opportunity by ID."""
        ...

    async def search_opportunities(
        self,
        position: str,
        location: str | None = None,
        max_distance_miles: float | None = None,
        date_range: str | None = None,
        division_level: str | None = None,
    ) -> list[Opportunity]:
        """Filter opportunities by position, location, distance, date window and division."""
        ...

    async def recommend_opportunities(self, user_id: int | str, limit: int = 10) -> list[OpportunityRecommendation]:
        """Score every opportunity for an athlete, best fit first."""
        ...

    async def record_application(self, record: ApplicationRecord) -> ApplicationRecord:
        """Store an application status, replacing any earlier one for the same opportunity."""
        ...

    async def get_applications(self, athlete_user_id: int | str) -> list[ApplicationRecord]:
        """Get the tracked applications for an athlete."""
        ...

    async def get_coach_insights(self, school: str, position: str | None = None) -> CoachInsights:
        """Get a program's recruiting tendencies."""
        ...


def score_fit(athlete: Athlete, opportunity: Opportunity) -> int:
    """Score how well an opportunity fits an athlete, from 0 to 100."""
    is_good_distance = opportunity.distance_miles < NEARBY_MILES
    matches_position = athlete.position in opportunity.positions
    affordable = opportunity.scholarship_available or opportunity.cost < AFFORDABLE_COST

    return (33 if is_good_distance else 0) + (33 if matches_position else 0) + (34 if affordable else 0)


def parse_date_range(date_range: str, today: date) -> date:
    """Convert a window such as ``next_30_days`` or ``next_3_months`` into its end date.

    Raises:
        ValueError: If the window is not understood
    """
    match = _DATE_RANGE_PATTERN.match(date_range.strip().lower())
    if not match:
        raise ValueError(f"Unsupported date range '{date_range}' (expected e.g. next_30_days, next_3_months)")

    amount = int(match.group(1))
    unit = match.group(2)
    if unit == "day":
        return today + timedelta(days=amount)
    if unit == "week":
        return today + timedelta(weeks=amount)
    return today + timedelta(days=30 * amount)


class InMemoryRecruitingDataStore:
    """In-memory recruiting data store.

    Uses mock athletes and opportunities stored in memory. Opportunity dates
    are laid out relative to ``today`` so date windows stay meaningful.
    """

    def __init__(self, today: date | None = None):
        """Initialize with mock recruiting data."""
        self.today = today or datetime.now(UTC).date()
        self.athletes = {athlete.user_id: athlete for athlete in self._create_mock_athletes()}
        self.opportunities = self._create_mock_opportunities()
        self.applications: dict[tuple[str, str], ApplicationRecord] = {}

    async def get_athlete(self, user_id: int | str) -> Athlete | None:
        """Get an athlete's full profile."""
        try:
            return self.athletes.get(int(user_id))
        except (TypeError, ValueError):
            return None

    async def search_athletes(self, query: str) -> list[AthleteSummary]:
        """Find athletes whose full or last name contains ``query``."""
        term = query.strip().lower()
        if len(term) < 2:
            return []

        matches = [
            athlete
            for athlete in self.athletes.values()
            if term in athlete.full_name.lower() or term in athlete.last_name.lower()
        ]
        matches.sort(key=lambda athlete: (athlete.last_name, athlete.first_name))

        return [
            AthleteSummary(
                user_id=athlete.user_id,
                first_name=athlete.first_name,
                last_name=athlete.last_name,
                graduation_year=athlete.graduation_year,
                city=athlete.city,
                state=athlete.state,
                position=athlete.position,
                sport=athlete.sport,
            )
            for athlete in matches[:MAX_SEARCH_RESULTS]
        ]

    async def get_opportunity(self, opportunity_id: str) -> Opportunity | None:
        """Get an opportunity by ID."""
        return next((opp for opp in self.opportunities if opp.id == opportunity_id), None)

    async def search_opportunities(
        self,
        position: str,
        location: str | None = None,
        max_distance_miles: float | None = None,
        date_range: str | None = None,
        division_level: str | None = None,
    ) -> list[Opportunity]:
        """Filter opportunities by position, location, distance, date window and division."""
        latest = parse_date_range(date_range, self.today) if date_range else None

        results = []
        for opp in self.opportunities:
            if position and position.upper() not in opp.positions:
                continue
            if location and location.lower() not in opp.location.lower():
                continue
            if max_distance_miles and opp.distance_miles > max_distance_miles:
                continue
            if division_level and division_level.lower() != "all" and opp.division_level != division_level.upper():
                continue
            if latest and not (self.today <= date.fromisoformat(opp.date) <= latest):
                continue
            results.append(opp)
        return results

    async def recommend_opportunities(self, user_id: int | str, limit: int = 10) -> list[OpportunityRecommendation]:
        """Score every opportunity for an athlete, best fit first."""
        athlete = await self.get_athlete(user_id)
        if athlete is None:
            return []

        scored = sorted(
            ((score_fit(athlete, opp), opp) for opp in self.opportunities),
            key=lambda pair: (-pair[0], pair[1].date),
        )
        return [
            OpportunityRecommendation(
                id=opp.id,
                type=opp.type,
                name=opp.name,
                date=opp.date,
                location=opp.location,
                distance_miles=opp.distance_miles,
                fit_score=fit_score,
            )
            for fit_score, opp in scored[:limit]
        ]

    async def record_application(self, record: ApplicationRecord) -> ApplicationRecord:
        """Store an application status, replacing any earlier one for the same opportunity."""
        self.applications[(record.athlete_user_id, record.opportunity_id)] = record
        logger.info(
            f"Tracked application {record.opportunity_id} for athlete {record.athlete_user_id}: {record.status}"
        )
        return record

    async def get_applications(self, athlete_user_id: int | str) -> list[ApplicationRecord]:
        """Get the tracked applications for an athlete."""
        key = str(athlete_user_id)
        return [record for (athlete, _), record in self.applications.items() if athlete == key]

    async def get_coach_insights(self, school: str, position: str | None = None) -> CoachInsights:
        """Get a program's recruiting tendencies."""
        return CoachInsights(
            recruiting_style="Actively recruits from showcases and combines",
            recent_recruits=[
                RecentRecruit(name="James Wilson", position="WR", height="6'0\"", forty=4.48, year=2025),
                RecentRecruit(name="David Chen", position="WR", height="6'2\"", forty=4.55, year=2024),
            ],
            preferred_profile="Speed-focused receivers with good hands",
            contact_preference="Email first, then follow up with camp attendance",
        )

    def _create_mock_athletes(self) -> list[Athlete]:
        """Create mock athlete data for testing."""
        return [
            Athlete(
                user_id=12345,
                first_name="Marcus",
                last_name="Johnson",
                position="WR",
                graduation_year=2026,
                city="Los Angeles",
                state="CA",
                height="6'1\"",
                weight=185,
                metrics=AthleteMetrics(forty_yard=4.52, vertical=36.5, shuttle=4.18, powerball=42, sparq_score=117.3),
                highlights_count=8,
                goals="Play D1 football, preferably West Coast",
                constraints="Limited travel budget, needs scholarship assistance",
            ),
            Athlete(
                user_id=12346,
                first_name="Tyler",
                last_name="Brooks",
                position="QB",
                graduation_year=2027,
                city="Sacramento",
                state="CA",
                height="6'3\"",
                weight=205,
                metrics=AthleteMetrics(forty_yard=4.81, vertical=31.0, shuttle=4.35, powerball=38, sparq_score=98.6),
                highlights_count=5,
                goals="Start at a D2 program with strong academics",
            ),
            Athlete(
                user_id=12347,
                first_name="Andre",
                last_name="Johnson",
                position="RB",
                graduation_year=2026,
                city="Phoenix",
                state="AZ",
                height="5'10\"",
                weight=190,
                metrics=AthleteMetrics(forty_yard=4.47, vertical=38.0, shuttle=4.10, powerball=40, sparq_score=121.9),
                highlights_count=11,
                goals="Play D1, open to any region",
            ),
        ]

    def _create_mock_opportunities(self) -> list[Opportunity]:
        """Create mock opportunity data dated relative to today."""

        def in_days(days: int) -> str:
            return (self.today + timedelta(days=days)).isoformat()

        return [
            Opportunity(
                id="combine_001",
                type="combine",
                name="Elite West Coast Showcase",
                date=in_days(25),
                location="San Diego, CA",
                distance_miles=120,
                cost=150,
                positions=["WR", "DB", "RB"],
                division_level="D1",
                expected_coaches=45,
                description="Top D1 programs from Pac-12 and Mountain West",
            ),
            Opportunity(
                id="camp_002",
                type="camp",
                name="USC WR Camp",
                date=in_days(45),
                location="Los Angeles, CA",
                distance_miles=15,
                cost=200,
                positions=["WR"],
                division_level="D1",
                expected_coaches=12,
                description="Direct exposure to USC coaching staff",
            ),
            Opportunity(
                id="showcase_003",
                type="showcase",
                name="California State Showcase",
                date=in_days(32),
                location="Fresno, CA",
                distance_miles=220,
                cost=100,
                scholarship_available=True,
                positions=["WR", "TE", "QB"],
                division_level="D2",
                expected_coaches=30,
                description="D2 and D3 schools from California",
            ),
        ]


_data_store: InMemoryRecruitingDataStore | None = None


def get_data_store() -> InMemoryRecruitingDataStore:
    """Get or create the recruiting data store instance."""
    global _data_store
    if _data_store is None:
        _data_store = InMemoryRecruitingDataStore()
    return _data_store
