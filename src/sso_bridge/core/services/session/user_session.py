from src.sso_bridge.core.models.session import UserSession
from src.sso_bridge.core.security import generate_secure_token
from src.sso_bridge.core.storage.session_storage import SessionStorage

SESSION_KEY_PREFIX = "session:"


class UserSessionService:
    """Service for managing user sessions."""

    def __init__(
        self, session_storage: SessionStorage, session_max_age: int = 3600
    ) -> None:
        self._storage = session_storage
        self._session_max_age = session_max_age

    @staticmethod
    def _key(session_id: str) -> str:
        return f"{SESSION_KEY_PREFIX}{session_id}"

    async def create_user_session(self, user_id: str, provider: str) -> UserSession:
        """Create and store a new session for ``user_id``."""
        user_session = UserSession.create(
            session_id=generate_secure_token(32),
            user_id=user_id,
            provider=provider,
            session_max_age=self._session_max_age,
        )

        await self._storage.set(
            self._key(user_session.id), user_session, self._session_max_age
        )
        return user_session

    async def get_user_session(self, session_id: str) -> UserSession | None:
        """Get user session by ID.

        Returns:
            User session or None if not found/expired
        """
        user_session = await self._storage.get(self._key(session_id), UserSession)

        if not user_session:
            return None

        if user_session.is_expired():
            await self._storage.delete(self._key(session_id))
            return None

        return user_session

    async def purge_expired(self) -> int:
        """Cleanup expired sessions from storage."""
        return await self._storage.cleanup_expired()
