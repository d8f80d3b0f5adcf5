"""Unit tests for session storage and the user session service."""

import time
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.sso_bridge.core.models.session import UserSession
from src.sso_bridge.core.services.session.user_session import UserSessionService
from src.sso_bridge.core.storage.session_storage import (
    InMemorySessionStorage,
    RedisSessionStorage,
    SessionStorageError,
    create_session_storage,
)
from src.sso_bridge.runtime.config.config_data import RedisConfig


def _session(session_id="s1", user_id="u_42", max_age=3600) -> UserSession:
    return UserSession.create(
        session_id=session_id, user_id=user_id, provider="sso", session_max_age=max_age
    )


class TestInMemorySessionStorage:
    @pytest.mark.asyncio
    async def test_set_get_delete(self):
        storage = InMemorySessionStorage()
        await storage.set("session:s1", _session(), 60)

        loaded = await storage.get("session:s1", UserSession)
        assert loaded.user_id == "u_42"
        assert await storage.exists("session:s1")

        await storage.delete("session:s1")
        assert await storage.get("session:s1", UserSession) is None

    @pytest.mark.asyncio
    async def test_ttl_expiry(self, monkeypatch):
        storage = InMemorySessionStorage()
        await storage.set("session:s1", _session(), 10)

        later = time.time() + 11
        monkeypatch.setattr(time, "time", lambda: later)

        assert not await storage.exists("session:s1")
        assert await storage.cleanup_expired() == 0

    @pytest.mark.asyncio
    async def test_cleanup_removes_only_expired(self, monkeypatch):
        storage = InMemorySessionStorage()
        await storage.set("session:short", _session("short"), 10)
        await storage.set("session:long", _session("long"), 600)

        later = time.time() + 11
        monkeypatch.setattr(time, "time", lambda: later)

        assert await storage.cleanup_expired() == 1
        assert await storage.get("session:long", UserSession) is not None


class TestRedisSessionStorage:
    @pytest.mark.asyncio
    async def test_backend_errors_raise_storage_error(self):
        client = AsyncMock()
        client.setex.side_effect = RedisConnectionError("down")
        storage = RedisSessionStorage(client)

        with pytest.raises(SessionStorageError):
            await storage.set("session:s1", _session(), 60)

    @pytest.mark.asyncio
    async def test_ping_failure_reports_unhealthy(self):
        client = AsyncMock()
        client.ping.side_effect = RedisConnectionError("down")

        assert not await RedisSessionStorage(client).ping()


class TestCreateSessionStorage:
    @pytest.mark.asyncio
    async def test_in_memory_when_redis_disabled(self):
        storage = await create_session_storage(RedisConfig(enabled=False))
        assert isinstance(storage, InMemorySessionStorage)


class TestUserSessionService:
    @pytest.mark.asyncio
    async def test_create_and_get(self):
        service = UserSessionService(InMemorySessionStorage(), session_max_age=120)

        session = await service.create_user_session("u_42", "sso")
        loaded = await service.get_user_session(session.id)

        assert loaded.user_id == "u_42"
        assert loaded.expires_at - loaded.created_at == 120

    @pytest.mark.asyncio
    async def test_session_ids_are_unique(self):
        service = UserSessionService(InMemorySessionStorage())
        first = await service.create_user_session("u_42", "sso")
        second = await service.create_user_session("u_42", "sso")
        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_expired_session_is_dropped_on_read(self, monkeypatch):
        storage = InMemorySessionStorage()
        service = UserSessionService(storage, session_max_age=60)
        session = await service.create_user_session("u_42", "sso")
        # Keep the storage entry alive past the session's own expiry
        await storage.set(f"session:{session.id}", session, 3600)

        later = time.time() + 61
        monkeypatch.setattr(time, "time", lambda: later)

        assert await service.get_user_session(session.id) is None
        assert not await storage.exists(f"session:{session.id}")
