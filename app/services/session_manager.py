"""Session management for in-memory storage."""

from datetime import UTC, datetime, timedelta

from cuid2 import cuid_wrapper

from app.models.session import Session
from app.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


class InMemorySessionManager:
    """In-memory session store mapping opaque tokens to caller identities."""

    def __init__(self, session_timeout_minutes: int = 60):
        """Initialize session manager.

        Args:
            session_timeout_minutes: Minutes of inactivity before a session expires
        """
        self.sessions: dict[str, Session] = {}
        self.session_timeout = timedelta(minutes=session_timeout_minutes)

    def create_session(self, athlete_user_id: int | str) -> Session:
        """Open a session for an athlete.

        Args:
            athlete_user_id: The athlete's GMTM user ID

        Returns:
            Newly created session
        """
        self._cleanup_expired_sessions()

        session = Session(token=self._generate_token(), athlete_user_id=str(athlete_user_id))
        self.sessions[session.token] = session
        logger.info(f"Opened session for athlete {session.athlete_user_id}")
        return session

    def validate(self, token: str | None) -> str | None:
        """Resolve a session token to the caller's identity.

        Args:
            token: Session token presented by the client

        Returns:
            The athlete user ID if the token is valid and unexpired, None otherwise
        """
        if not token:
            return None

        session = self.get_session(token)
        return session.athlete_user_id if session else None

    def get_session(self, token: str) -> Session | None:
        """Get existing session by token.

        Args:
            token: Session token

        Returns:
            Session if found and not expired, None otherwise
        """
        self._cleanup_expired_sessions()

        session = self.sessions.get(token)
        if session:
            session.update_activity()
        return session

    def delete_session(self, token: str) -> bool:
        """Delete a session.

        Args:
            token: Session token

        Returns:
            True if session was deleted, False if not found
        """
        if token in self.sessions:
            del self.sessions[token]
            return True
        return False

    def _generate_token(self) -> str:
        """Generate a new CUID-based session token."""
        return cuid()

    def _cleanup_expired_sessions(self) -> None:
        """Remove expired sessions from memory."""
        current_time = datetime.now(UTC)
        expired_sessions = [
            token
            for token, session in self.sessions.items()
            if current_time - session.last_activity > self.session_timeout
        ]

        for token in expired_sessions:
            del self.sessions[token]

        if expired_sessions:
            logger.debug(f"Expired {len(expired_sessions)} sessions")

    def get_session_count(self) -> int:
        """Get current number of active sessions."""
        self._cleanup_expired_sessions()
        return len(self.sessions)
