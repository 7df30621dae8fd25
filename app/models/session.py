"""Session state models."""

from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass
class Session:
    """An authenticated caller session."""

    token: str
    athlete_user_id: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_activity: datetime = field(default_factory=lambda: datetime.now(UTC))

    def update_activity(self) -> None:
        """Update the last activity timestamp."""
        self.last_activity = datetime.now(UTC)
