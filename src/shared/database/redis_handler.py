"""
Redis Connection Handler

Thin async wrapper around ``redis.asyncio.Redis`` for plain string
keys and values.
"""

import logging

from redis.asyncio import Redis

from src.shared.config import BaseServerSettings
from src.shared.exceptions import DatabaseConnectionError

logger = logging.getLogger("falkordb_mcp.redis_handler")


class RedisHandler:
    """
    Manages a single async Redis client with ``decode_responses`` enabled.

    Usage
    -----
    async with RedisHandler("redis://localhost:6379") as store:
        await store.set("greeting", "hello")
        value = await store.get("greeting")      # "hello"
        missing = await store.get("nope")        # None
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379",
        username: str | None = None,
        password: str | None = None,
    ):
        self._url = url
        self._username = username or None
        self._password = password or None
        self._client: Redis | None = None

    @classmethod
    def from_settings(cls, settings: BaseServerSettings) -> "RedisHandler":
        return cls(
            url=settings.redis_url,
            username=settings.redis_username,
            password=settings.redis_password,
        )

    # ─── Lifecycle ──────────────────────────────────────────

    async def connect(self) -> "RedisHandler":
        """Create the client and verify connectivity."""
        if self._client is not None:
            return self

        self._client = Redis.from_url(
            self._url,
            username=self._username,
            password=self._password,
            decode_responses=True,
        )
        try:
            await self._client.ping()
            logger.info("Connected to Redis at %s", self._url)
        except Exception:
            logger.error("Failed to connect to Redis at %s", self._url)
            self._client = None
            raise
        return self

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")

    async def __aenter__(self) -> "RedisHandler":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def client(self) -> Redis:
        if self._client is None:
            raise DatabaseConnectionError("RedisHandler is not connected, call connect() first")
        return self._client

    # ─── Key-value operations ───────────────────────────────

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key does not exist."""
        return await self.client.get(key)

    async def set(self, key: str, value: str) -> None:
        """Upsert ``key``; an existing value is overwritten."""
        await self.client.set(key, value)

    async def delete(self, key: str) -> int:
        """Delete ``key`` and return how many keys were removed (0 or 1)."""
        return await self.client.delete(key)

    async def list_keys(self, pattern: str = "*") -> list[str]:
        """Return every key matching ``pattern``, sorted.

        Uses SCAN rather than KEYS so large keyspaces do not block the server.
        """
        return sorted([key async for key in self.client.scan_iter(match=pattern)])

    async def verify(self) -> bool:
        try:
            return bool(await self.client.ping())
        except Exception:
            return False
