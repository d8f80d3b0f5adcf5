"""Where established sessions live: Redis when configured and reachable,
otherwise process memory (single instance only).
"""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from typing import Any, TypeVar

import redis.asyncio as redis
from loguru import logger
from pydantic import BaseModel, ValidationError
from redis.exceptions import RedisError

from src.sso_bridge.runtime.config.config_data import RedisConfig

T = TypeVar("T", bound=BaseModel)


class SessionStorageError(RuntimeError):
    """Raised when the storage backend cannot complete an operation."""


class SessionStorage(ABC):
    """Key/value store for pydantic session models with per-key expiry.

    Backends raise ``SessionStorageError`` when they cannot answer, so callers
    can tell an outage from a missing session.
    """

    @abstractmethod
    async def set(self, key: str, value: BaseModel, ttl_seconds: int) -> None: ...

    @abstractmethod
    async def get(self, key: str, model_class: type[T]) -> T | None:
        """Return the stored model, or None when absent, expired or corrupted."""

    @abstractmethod
    async def delete(self, key: str) -> None: ...

    @abstractmethod
    async def exists(self, key: str) -> bool: ...

    @abstractmethod
    async def cleanup_expired(self) -> int:
        """Drop expired entries and return how many were removed."""

    @abstractmethod
    async def ping(self) -> bool: ...


class InMemorySessionStorage(SessionStorage):
    """In-memory session storage with TTL support."""

    def __init__(self):
        self._data: dict[str, dict[str, Any]] = {}

    async def set(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        expires_at = time.time() + ttl_seconds
        self._data[key] = {
            "data": json.loads(value.model_dump_json()),
            "expires_at": expires_at,
        }

    async def get(self, key: str, model_class: type[T]) -> T | None:
        if not await self.exists(key):
            return None

        try:
            return model_class.model_validate(self._data[key]["data"])
        except ValidationError:
            logger.warning(f"Dropping corrupted session entry {key}")
            del self._data[key]
            return None

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def exists(self, key: str) -> bool:
        entry = self._data.get(key)
        if entry is None:
            return False

        if time.time() > entry["expires_at"]:
            del self._data[key]
            return False

        return True

    async def cleanup_expired(self) -> int:
        now = time.time()
        expired_keys = [
            key for key, entry in self._data.items() if now > entry["expires_at"]
        ]

        for key in expired_keys:
            del self._data[key]

        return len(expired_keys)

    async def ping(self) -> bool:
        return True


class RedisSessionStorage(SessionStorage):
    """Redis-based session storage with JSON serialization."""

    def __init__(self, redis_client: redis.Redis):
        self._redis = redis_client

    async def set(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        try:
            await self._redis.setex(key, ttl_seconds, value.model_dump_json())
        except RedisError as e:
            raise SessionStorageError(f"Redis set failed: {e}") from e

    async def get(self, key: str, model_class: type[T]) -> T | None:
        try:
            data = await self._redis.get(key)
        except RedisError as e:
            raise SessionStorageError(f"Redis get failed: {e}") from e

        if data is None:
            return None

        if isinstance(data, bytes):
            data = data.decode("utf-8")

        try:
            return model_class.model_validate_json(data)
        except ValidationError:
            logger.warning(f"Dropping corrupted session entry {key}")
            await self.delete(key)
            return None

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except RedisError as e:
            raise SessionStorageError(f"Redis delete failed: {e}") from e

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self._redis.exists(key))
        except RedisError as e:
            raise SessionStorageError(f"Redis exists failed: {e}") from e

    async def cleanup_expired(self) -> int:
        """Redis handles expiration automatically."""
        return 0

    async def ping(self) -> bool:
        try:
            await self._redis.ping()
            return True
        except RedisError:
            return False


async def create_session_storage(config: RedisConfig) -> SessionStorage:
    """Create Redis storage when configured and reachable, else in-memory."""
    if not config.enabled or not config.url:
        logger.info("Session storage: in-memory (Redis not configured)")
        return InMemorySessionStorage()

    redis_client = redis.from_url(
        config.connection_string,
        encoding="utf-8",
        decode_responses=config.decode_responses,
        socket_connect_timeout=2,
        socket_timeout=2,
    )

    redis_storage = RedisSessionStorage(redis_client)
    if await redis_storage.ping():
        logger.info("Session storage: Redis connected")
        return redis_storage

    logger.warning("Redis unavailable, using in-memory session storage")
    await redis_client.aclose()
    return InMemorySessionStorage()
