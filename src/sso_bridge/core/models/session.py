"""Session models for locally established SSO sessions."""

import time

from pydantic import BaseModel, Field


class UserSession(BaseModel):
    """Persistent user session created after a successful sign-in."""

    id: str = Field(description="Session identifier carried by the session cookie")
    user_id: str = Field(description="Internal user ID")
    provider: str = Field(description="How the session was established")
    created_at: int = Field(description="Creation timestamp")
    last_accessed_at: int = Field(description="Last access timestamp")
    expires_at: int = Field(description="Session expiration timestamp")

    @classmethod
    def create(
        cls,
        session_id: str,
        user_id: str,
        provider: str,
        session_max_age: int = 3600,
    ) -> "UserSession":
        """Create a new user session with timestamps."""
        now = int(time.time())
        return cls(
            id=session_id,
            user_id=user_id,
            provider=provider,
            created_at=now,
            last_accessed_at=now,
            expires_at=now + session_max_age,
        )

    def is_expired(self) -> bool:
        """Check if session is expired."""
        return time.time() > self.expires_at
