"""Session storage backends."""

from .session_storage import (
    InMemorySessionStorage,
    RedisSessionStorage,
    SessionStorage,
    SessionStorageError,
    create_session_storage,
)

__all__ = [
    "SessionStorage",
    "SessionStorageError",
    "InMemorySessionStorage",
    "RedisSessionStorage",
    "create_session_storage",
]
